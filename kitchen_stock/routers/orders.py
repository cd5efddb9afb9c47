from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from kitchen_stock.core.api_docs import error_responses
from kitchen_stock.core.deps import get_db, get_operator_name
from kitchen_stock.core.money import to_money
from kitchen_stock.models.order import PurchaseOrder
from kitchen_stock.schemas.common import DeletedOut, PaginationMeta
from kitchen_stock.schemas.order import (
    OrderItemOut,
    OrderStatusUpdateIn,
    PurchaseOrderCreate,
    PurchaseOrderListOut,
    PurchaseOrderOut,
    PurchaseOrderUpdate,
    PurchaseOrderUpdateOut,
)
from kitchen_stock.services.order_service import (
    OrderUpdateResult,
    create_purchase_order,
    delete_purchase_order,
    get_purchase_order,
    list_purchase_orders,
    normalize_order_status,
    update_purchase_order,
)

router = APIRouter(prefix="/purchase-orders", tags=["purchase-orders"])


def _order_out(order: PurchaseOrder) -> PurchaseOrderOut:
    return PurchaseOrderOut(
        id=order.id,
        supplier=order.supplier,
        order_date=order.order_date,
        items=[
            OrderItemOut(
                product_id=line["product_id"],
                quantity=float(line.get("quantity") or 0),
                unit_price=float(line.get("unit_price") or 0),
                total_price=float(line.get("total_price") or 0),
            )
            for line in order.items or []
        ],
        total_amount=float(to_money(order.total_amount)),
        status=order.status,
        operator_name=order.operator_name,
        notes=order.notes,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def _update_out(result: OrderUpdateResult) -> PurchaseOrderUpdateOut:
    return PurchaseOrderUpdateOut(
        **_order_out(result.order).model_dump(),
        movements_created=result.movements_created,
        duplicate_activation=result.duplicate_activation,
    )


@router.post(
    "",
    response_model=PurchaseOrderUpdateOut,
    summary="Create purchase order",
    responses=error_responses(422, 500),
)
def create_order(
    payload: PurchaseOrderCreate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_operator_name),
):
    result = create_purchase_order(
        db,
        supplier=payload.supplier,
        order_date=payload.order_date,
        items=payload.items,
        actor=actor,
        status=payload.status,
        operator_name=payload.operator_name,
        notes=payload.notes,
    )
    return _update_out(result)


@router.get(
    "",
    response_model=PurchaseOrderListOut,
    summary="List purchase orders",
    responses=error_responses(422, 500),
)
def list_orders(
    status: str | None = Query(default=None, description="Optional status filter"),
    limit: int = Query(default=50, ge=1, le=200, description="Page size"),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    db: Session = Depends(get_db),
):
    normalized_status = normalize_order_status(status) if status else None
    rows, total = list_purchase_orders(db, status=normalized_status, limit=limit, offset=offset)
    items = [_order_out(row) for row in rows]
    count = len(items)
    return PurchaseOrderListOut(
        items=items,
        status=normalized_status,
        pagination=PaginationMeta(
            total=total,
            limit=limit,
            offset=offset,
            count=count,
            has_next=(offset + count) < total,
        ),
    )


@router.get(
    "/{order_id}",
    response_model=PurchaseOrderOut,
    summary="Get purchase order",
    responses=error_responses(404, 500),
)
def get_order(order_id: str, db: Session = Depends(get_db)):
    return _order_out(get_purchase_order(db, order_id))


@router.put(
    "/{order_id}",
    response_model=PurchaseOrderUpdateOut,
    summary="Update purchase order",
    description="Confirming an order receives its lines into the stock ledger exactly once.",
    responses=error_responses(404, 422, 500),
)
def update_order(
    order_id: str,
    payload: PurchaseOrderUpdate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_operator_name),
):
    result = update_purchase_order(db, order_id, changes=payload.model_dump(exclude_unset=True), actor=actor)
    return _update_out(result)


@router.patch(
    "/{order_id}/status",
    response_model=PurchaseOrderUpdateOut,
    summary="Update purchase order status",
    responses=error_responses(404, 422, 500),
)
def update_order_status(
    order_id: str,
    payload: OrderStatusUpdateIn,
    db: Session = Depends(get_db),
    actor: str = Depends(get_operator_name),
):
    result = update_purchase_order(db, order_id, changes={"status": payload.status}, actor=actor)
    return _update_out(result)


@router.delete(
    "/{order_id}",
    response_model=DeletedOut,
    summary="Delete purchase order",
    responses=error_responses(404, 500),
)
def delete_order(
    order_id: str,
    db: Session = Depends(get_db),
    actor: str = Depends(get_operator_name),
):
    delete_purchase_order(db, order_id, actor=actor)
    return DeletedOut(id=order_id)
