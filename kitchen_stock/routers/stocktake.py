from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from kitchen_stock.core.api_docs import error_responses
from kitchen_stock.core.deps import get_db, get_operator_name
from kitchen_stock.core.money import as_float
from kitchen_stock.models.inventory import EditableInventory, InventorySnapshot
from kitchen_stock.schemas.common import DeletedOut
from kitchen_stock.schemas.stocktake import (
    EditableInventoryCreate,
    EditableInventoryOut,
    EditableInventoryUpdate,
    EditableInventoryUpsert,
    InventorySnapshotOut,
    StocktakeCorrection,
    StocktakeIn,
)
from kitchen_stock.services import variance_service

router = APIRouter(tags=["stocktake"])


def _editable_out(row: EditableInventory) -> EditableInventoryOut:
    return EditableInventoryOut(
        id=row.id,
        product_id=row.product_id,
        initial_quantity=float(row.initial_quantity),
        final_quantity=float(row.final_quantity),
        notes=row.notes,
        last_updated=row.last_updated,
        created_at=row.created_at,
    )


def _stocktake_out(row: InventorySnapshot) -> InventorySnapshotOut:
    return InventorySnapshotOut(
        id=row.id,
        product_id=row.product_id,
        snapshot_date=row.snapshot_date,
        initial_quantity=float(row.initial_quantity),
        final_quantity=float(row.final_quantity),
        theoretical_quantity=as_float(row.theoretical_quantity),
        variance=as_float(row.variance),
        shrinkage=as_float(-row.variance) if row.variance is not None else None,
        created_at=row.created_at,
    )


@router.get(
    "/editable-inventory",
    response_model=list[EditableInventoryOut],
    summary="List editable inventory snapshots",
    responses=error_responses(500),
)
def list_editable_inventory(db: Session = Depends(get_db)):
    return [_editable_out(row) for row in variance_service.list_snapshots(db)]


@router.post(
    "/editable-inventory",
    response_model=EditableInventoryOut,
    summary="Create editable inventory snapshot",
    responses=error_responses(404, 409, 422, 500),
)
def create_editable_inventory(payload: EditableInventoryCreate, db: Session = Depends(get_db)):
    row = variance_service.create_snapshot(
        db,
        product_id=payload.product_id,
        initial_quantity=payload.initial_quantity,
        final_quantity=payload.final_quantity,
        notes=payload.notes,
    )
    return _editable_out(row)


@router.post(
    "/editable-inventory/upsert",
    response_model=EditableInventoryOut,
    summary="Create or update a product's editable inventory snapshot",
    responses=error_responses(404, 422, 500),
)
def upsert_editable_inventory(
    payload: EditableInventoryUpsert,
    db: Session = Depends(get_db),
    actor: str = Depends(get_operator_name),
):
    row = variance_service.upsert_snapshot(
        db,
        product_id=payload.product_id,
        initial_quantity=payload.initial_quantity,
        final_quantity=payload.final_quantity,
        notes=payload.notes,
        actor=actor,
    )
    return _editable_out(row)


@router.get(
    "/editable-inventory/product/{product_id}",
    response_model=EditableInventoryOut,
    summary="Get a product's editable inventory snapshot",
    responses=error_responses(404, 500),
)
def get_editable_inventory(product_id: str, db: Session = Depends(get_db)):
    return _editable_out(variance_service.get_snapshot_by_product(db, product_id))


@router.put(
    "/editable-inventory/{snapshot_id}",
    response_model=EditableInventoryOut,
    summary="Update editable inventory snapshot",
    responses=error_responses(404, 422, 500),
)
def update_editable_inventory(
    snapshot_id: str,
    payload: EditableInventoryUpdate,
    db: Session = Depends(get_db),
):
    row = variance_service.update_snapshot(db, snapshot_id, changes=payload.model_dump(exclude_unset=True))
    return _editable_out(row)


@router.delete(
    "/editable-inventory/{snapshot_id}",
    response_model=DeletedOut,
    summary="Delete editable inventory snapshot",
    responses=error_responses(404, 500),
)
def delete_editable_inventory(snapshot_id: str, db: Session = Depends(get_db)):
    variance_service.delete_snapshot(db, snapshot_id)
    return DeletedOut(id=snapshot_id)


@router.get(
    "/inventory-snapshots",
    response_model=list[InventorySnapshotOut],
    summary="List stocktakes",
    responses=error_responses(500),
)
def list_inventory_snapshots(
    product_id: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    return [_stocktake_out(row) for row in variance_service.list_stocktakes(db, product_id=product_id)]


@router.post(
    "/inventory-snapshots",
    response_model=InventorySnapshotOut,
    summary="Record a stocktake against the theoretical quantity",
    responses=error_responses(404, 422, 500),
)
def create_inventory_snapshot(
    payload: StocktakeIn,
    db: Session = Depends(get_db),
    actor: str = Depends(get_operator_name),
):
    row = variance_service.create_theoretical_snapshot(
        db,
        product_id=payload.product_id,
        actual_quantity=payload.actual_quantity,
        snapshot_date=payload.snapshot_date,
        actor=actor,
    )
    return _stocktake_out(row)


@router.get(
    "/inventory-snapshots/product/{product_id}",
    response_model=list[InventorySnapshotOut],
    summary="List a product's stocktakes",
    responses=error_responses(404, 500),
)
def list_product_inventory_snapshots(product_id: str, db: Session = Depends(get_db)):
    return [_stocktake_out(row) for row in variance_service.list_stocktakes(db, product_id=product_id)]


@router.get(
    "/inventory-snapshots/{stocktake_id}",
    response_model=InventorySnapshotOut,
    summary="Get stocktake",
    responses=error_responses(404, 500),
)
def get_inventory_snapshot(stocktake_id: str, db: Session = Depends(get_db)):
    return _stocktake_out(variance_service.get_stocktake(db, stocktake_id))


@router.delete(
    "/inventory-snapshots/{stocktake_id}",
    response_model=DeletedOut,
    summary="Delete stocktake",
    responses=error_responses(404, 500),
)
def delete_inventory_snapshot(stocktake_id: str, db: Session = Depends(get_db)):
    variance_service.delete_stocktake(db, stocktake_id)
    return DeletedOut(id=stocktake_id)


@router.put(
    "/inventory-snapshots/{stocktake_id}",
    response_model=InventorySnapshotOut,
    summary="Correct a stocktake's counted quantity",
    responses=error_responses(404, 422, 500),
)
def correct_inventory_snapshot(
    stocktake_id: str,
    payload: StocktakeCorrection,
    db: Session = Depends(get_db),
    actor: str = Depends(get_operator_name),
):
    row = variance_service.correct_stocktake(
        db,
        stocktake_id,
        actual_quantity=payload.actual_quantity,
        actor=actor,
    )
    return _stocktake_out(row)
