import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from kitchen_stock.core.config import settings
from kitchen_stock.core.exceptions import ResourceNotFound, ValidationFailed
from kitchen_stock.core.id_utils import generate_shortuuid
from kitchen_stock.core.money import ZERO_MONEY, to_money, to_quantity
from kitchen_stock.core.observability import log_event
from kitchen_stock.models.inventory import StockMovement
from kitchen_stock.models.order import PurchaseOrder
from kitchen_stock.schemas.order import ALLOWED_ORDER_STATUSES, ORDER_STATUS_ALIASES
from kitchen_stock.services.audit_service import log_audit_event
from kitchen_stock.services.ledger_service import append_movement
from kitchen_stock.services.product_service import ensure_products_exist

logger = logging.getLogger("kitchen_stock.api.orders")

CONFIRMED = "confirmed"
UPDATABLE_FIELDS = ("supplier", "order_date", "items", "status", "operator_name", "notes")


@dataclass
class OrderUpdateResult:
    order: PurchaseOrder
    movements_created: int = 0
    duplicate_activation: bool = False


def normalize_order_status(status: str) -> str:
    normalized = str(status or "").strip().lower()
    normalized = ORDER_STATUS_ALIASES.get(normalized, normalized)
    if normalized not in ALLOWED_ORDER_STATUSES:
        allowed = ", ".join(sorted(ALLOWED_ORDER_STATUSES))
        raise ValidationFailed.for_field("status", f"Invalid order status. Allowed: {allowed}")
    return normalized


def build_order_lines(db: Session, items: list[Any]) -> tuple[list[dict[str, Any]], Decimal]:
    """Validate raw order lines and compute line and order totals.

    Accepts pydantic models or plain dicts. Raises before anything is written.
    """
    if not items:
        raise ValidationFailed.for_field("items", "Order must contain at least one line")

    lines: list[dict[str, Any]] = []
    issues: list[dict[str, str]] = []
    for index, raw in enumerate(items):
        data = raw.model_dump() if hasattr(raw, "model_dump") else dict(raw)
        product_id = str(data.get("product_id") or "").strip()
        if not product_id:
            issues.append({"field": f"items.{index}.product_id", "message": "Product is required", "type": "missing"})
            continue
        try:
            quantity = to_quantity(data.get("quantity"))
            unit_price = to_money(data.get("unit_price") if data.get("unit_price") is not None else 0)
        except ArithmeticError:
            issues.append({"field": f"items.{index}", "message": "Quantity and unit price must be numeric", "type": "decimal_parsing"})
            continue
        if quantity < 0 or unit_price < 0:
            issues.append({"field": f"items.{index}", "message": "Quantity and unit price must be >= 0", "type": "greater_than_equal"})
            continue
        lines.append(
            {
                "product_id": product_id,
                "quantity": float(quantity),
                "unit_price": float(unit_price),
                "total_price": float(to_money(quantity * unit_price)),
            }
        )
    if issues:
        raise ValidationFailed("Validation failed", details=issues)

    ensure_products_exist(db, [line["product_id"] for line in lines], field="items.product_id")
    total_amount = sum((to_money(line["total_price"]) for line in lines), ZERO_MONEY)
    return lines, to_money(total_amount)


def receipt_note(order: PurchaseOrder) -> str:
    operator = (order.operator_name or "").strip() or settings.default_operator_name
    return f"Automatic receipt from order {order.supplier} - {operator}"


def get_purchase_order(db: Session, order_id: str) -> PurchaseOrder:
    order = db.get(PurchaseOrder, order_id)
    if order is None:
        raise ResourceNotFound("Purchase order", order_id)
    return order


def list_purchase_orders(
    db: Session,
    *,
    status: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[PurchaseOrder], int]:
    count_stmt = select(func.count(PurchaseOrder.id))
    stmt = select(PurchaseOrder)
    if status:
        count_stmt = count_stmt.where(PurchaseOrder.status == status)
        stmt = stmt.where(PurchaseOrder.status == status)
    total = int(db.execute(count_stmt).scalar_one())
    stmt = stmt.order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.created_at.desc()).offset(offset).limit(limit)
    return list(db.execute(stmt).scalars()), total


def _order_movement_count(db: Session, order_id: str) -> int:
    return int(
        db.execute(
            select(func.count(StockMovement.id)).where(
                StockMovement.source == "order",
                StockMovement.source_id == order_id,
            )
        ).scalar_one()
    )


def _materialize_receipt(db: Session, order: PurchaseOrder) -> int:
    created = 0
    for line in order.items:
        quantity = to_quantity(line.get("quantity"))
        unit_price = to_money(line.get("unit_price") or 0)
        append_movement(
            db,
            product_id=line["product_id"],
            direction="in",
            quantity=quantity,
            unit_price=unit_price,
            total_cost=to_money(quantity * unit_price),
            source="order",
            source_id=order.id,
            movement_date=order.order_date,
            note=receipt_note(order),
        )
        created += 1
    return created


def create_purchase_order(
    db: Session,
    *,
    supplier: str,
    order_date: date,
    items: list[Any],
    actor: str,
    status: str = "pending",
    operator_name: str | None = None,
    notes: str | None = None,
) -> OrderUpdateResult:
    """Create an order. Creating it directly as confirmed materializes its receipt."""
    normalized_status = normalize_order_status(status)
    lines, total_amount = build_order_lines(db, items)

    order = PurchaseOrder(
        id=generate_shortuuid(),
        supplier=supplier.strip(),
        order_date=order_date,
        items=lines,
        total_amount=total_amount,
        status=normalized_status,
        operator_name=operator_name,
        notes=notes,
    )
    try:
        db.add(order)
        movements_created = 0
        if normalized_status == CONFIRMED:
            movements_created = _materialize_receipt(db, order)
        log_audit_event(
            db,
            actor=actor,
            action="purchase_order.create",
            target_type="purchase_order",
            target_id=order.id,
            metadata_json={
                "status": normalized_status,
                "items_count": len(lines),
                "movements_created": movements_created,
            },
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(order)
    return OrderUpdateResult(order=order, movements_created=movements_created)


def update_purchase_order(
    db: Session,
    order_id: str,
    *,
    changes: dict[str, Any],
    actor: str,
) -> OrderUpdateResult:
    """Update an order and, on the transition into ``confirmed``, receive its goods.

    The order row is locked before the existence check for prior receipt
    entries, and the check, the inserts and the status write commit together.
    A second activation of the same order (sequential or concurrent) finds the
    first one's entries and only applies the field update.
    """
    unknown = sorted(set(changes) - set(UPDATABLE_FIELDS))
    if unknown:
        raise ValidationFailed.for_field(unknown[0], "Field cannot be updated")

    next_status = normalize_order_status(changes["status"]) if changes.get("status") is not None else None
    lines = total_amount = None
    if changes.get("items") is not None:
        lines, total_amount = build_order_lines(db, changes["items"])
    if "supplier" in changes and not str(changes["supplier"] or "").strip():
        raise ValidationFailed.for_field("supplier", "Supplier is required")

    try:
        order = db.execute(
            select(PurchaseOrder).where(PurchaseOrder.id == order_id).with_for_update()
        ).scalar_one_or_none()
        if order is None:
            raise ResourceNotFound("Purchase order", order_id)

        current_status = ORDER_STATUS_ALIASES.get(order.status, order.status)
        target_status = next_status or current_status
        is_activating = target_status == CONFIRMED and current_status != CONFIRMED

        duplicate_activation = False
        if is_activating:
            duplicate_activation = _order_movement_count(db, order.id) > 0

        if changes.get("supplier") is not None:
            order.supplier = changes["supplier"].strip()
        if changes.get("order_date") is not None:
            order.order_date = changes["order_date"]
        if lines is not None:
            order.items = lines
            order.total_amount = total_amount
        if "operator_name" in changes:
            order.operator_name = changes["operator_name"]
        if "notes" in changes:
            order.notes = changes["notes"]
        order.status = target_status

        movements_created = 0
        if is_activating and not duplicate_activation:
            movements_created = _materialize_receipt(db, order)
            log_audit_event(
                db,
                actor=actor,
                action="purchase_order.receipt.materialize",
                target_type="purchase_order",
                target_id=order.id,
                metadata_json={"movements_created": movements_created, "movement_date": order.order_date.isoformat()},
            )

        if target_status != current_status:
            log_audit_event(
                db,
                actor=actor,
                action="purchase_order.status.update",
                target_type="purchase_order",
                target_id=order.id,
                metadata_json={
                    "from_status": current_status,
                    "to_status": target_status,
                    "duplicate_activation": duplicate_activation,
                },
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    if duplicate_activation:
        log_event(logger, "order.confirmation.duplicate", level=logging.WARNING, order_id=order_id)
    elif movements_created:
        log_event(
            logger,
            "order.confirmation.materialized",
            order_id=order_id,
            movements_created=movements_created,
        )

    db.refresh(order)
    return OrderUpdateResult(
        order=order,
        movements_created=movements_created,
        duplicate_activation=duplicate_activation,
    )


def delete_purchase_order(db: Session, order_id: str, *, actor: str) -> None:
    """Delete an order. Receipt entries already in the ledger stay."""
    order = get_purchase_order(db, order_id)
    log_audit_event(
        db,
        actor=actor,
        action="purchase_order.delete",
        target_type="purchase_order",
        target_id=order.id,
        metadata_json={"status": order.status, "supplier": order.supplier},
    )
    db.delete(order)
    db.commit()
