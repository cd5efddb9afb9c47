from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from kitchen_stock.core.api_docs import error_responses
from kitchen_stock.core.deps import get_db, get_operator_name
from kitchen_stock.models.inventory import StockMovement
from kitchen_stock.schemas.common import DeletedOut, PaginationMeta
from kitchen_stock.schemas.inventory import (
    MovementDirection,
    MovementSource,
    StockMovementCorrection,
    StockMovementCreate,
    StockMovementListOut,
    StockMovementOut,
)
from kitchen_stock.services.ledger_service import (
    append_movement,
    correct_movement,
    delete_movement,
    get_movement,
    list_movements,
    list_movements_by_product,
)

router = APIRouter(prefix="/inventory", tags=["inventory"])


def _movement_out(row: StockMovement) -> StockMovementOut:
    return StockMovementOut(
        id=row.id,
        product_id=row.product_id,
        direction=row.direction,
        quantity=float(row.quantity),
        unit_price=float(row.unit_price) if row.unit_price is not None else None,
        total_cost=float(row.total_cost) if row.total_cost is not None else None,
        source=row.source,
        source_id=row.source_id,
        movement_date=row.movement_date,
        note=row.note,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


@router.post(
    "/movements",
    response_model=StockMovementOut,
    summary="Append a ledger entry",
    responses=error_responses(404, 422, 500),
)
def create_movement(payload: StockMovementCreate, db: Session = Depends(get_db)):
    entry = append_movement(
        db,
        product_id=payload.product_id,
        direction=payload.direction,
        quantity=payload.quantity,
        source=payload.source,
        movement_date=payload.movement_date,
        unit_price=payload.unit_price,
        total_cost=payload.total_cost,
        source_id=payload.source_id,
        note=payload.note,
    )
    db.commit()
    db.refresh(entry)
    return _movement_out(entry)


@router.get(
    "/movements",
    response_model=StockMovementListOut,
    summary="List ledger entries",
    responses={
        200: {
            "description": "Paginated stock movement ledger",
            "content": {
                "application/json": {
                    "example": {
                        "items": [
                            {
                                "id": "movement-id",
                                "product_id": "product-id",
                                "direction": "in",
                                "quantity": 10.0,
                                "unit_price": 2.0,
                                "total_cost": 20.0,
                                "source": "order",
                                "source_id": "order-id",
                                "movement_date": "2026-10-01",
                                "note": "Automatic receipt from order Ortofrutta Bianchi - Giulia",
                                "created_at": "2026-10-01T10:00:00Z",
                                "updated_at": "2026-10-01T10:00:00Z",
                            }
                        ],
                        "pagination": {
                            "total": 12,
                            "limit": 50,
                            "offset": 0,
                            "count": 1,
                            "has_next": True,
                        },
                    }
                }
            },
        },
        **error_responses(422, 500),
    },
)
def list_ledger_movements(
    product_id: str | None = Query(default=None, description="Optional product filter"),
    direction: MovementDirection | None = Query(default=None),
    source: MovementSource | None = Query(default=None),
    start_date: date | None = Query(default=None, description="Inclusive lower bound on movement date"),
    end_date: date | None = Query(default=None, description="Inclusive upper bound on movement date"),
    limit: int = Query(default=50, ge=1, le=200, description="Page size"),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    db: Session = Depends(get_db),
):
    rows, total = list_movements(
        db,
        product_id=product_id,
        direction=direction,
        source=source,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    items = [_movement_out(row) for row in rows]
    count = len(items)
    return StockMovementListOut(
        items=items,
        pagination=PaginationMeta(
            total=total,
            limit=limit,
            offset=offset,
            count=count,
            has_next=(offset + count) < total,
        ),
    )


@router.get(
    "/movements/product/{product_id}",
    response_model=list[StockMovementOut],
    summary="List ledger entries for a product",
    responses=error_responses(404, 500),
)
def list_product_movements(product_id: str, db: Session = Depends(get_db)):
    return [_movement_out(row) for row in list_movements_by_product(db, product_id)]


@router.get(
    "/movements/{movement_id}",
    response_model=StockMovementOut,
    summary="Get ledger entry",
    responses=error_responses(404, 500),
)
def get_ledger_movement(movement_id: str, db: Session = Depends(get_db)):
    return _movement_out(get_movement(db, movement_id))


@router.put(
    "/movements/{movement_id}",
    response_model=StockMovementOut,
    summary="Correct a ledger entry",
    responses=error_responses(404, 422, 500),
)
def correct_ledger_movement(
    movement_id: str,
    payload: StockMovementCorrection,
    db: Session = Depends(get_db),
    actor: str = Depends(get_operator_name),
):
    entry = correct_movement(
        db,
        movement_id,
        actor=actor,
        changes=payload.model_dump(exclude_unset=True),
    )
    return _movement_out(entry)


@router.delete(
    "/movements/{movement_id}",
    response_model=DeletedOut,
    summary="Delete a ledger entry",
    responses=error_responses(404, 500),
)
def delete_ledger_movement(
    movement_id: str,
    db: Session = Depends(get_db),
    actor: str = Depends(get_operator_name),
):
    delete_movement(db, movement_id, actor=actor)
    return DeletedOut(id=movement_id)
