from datetime import date
from decimal import Decimal

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from kitchen_stock.core.exceptions import ResourceNotFound, ValidationFailed
from kitchen_stock.core.id_utils import generate_shortuuid
from kitchen_stock.core.money import to_money, to_quantity
from kitchen_stock.models.inventory import MOVEMENT_DIRECTIONS, MOVEMENT_SOURCES, StockMovement
from kitchen_stock.services.audit_service import log_audit_event
from kitchen_stock.services.product_service import get_product

CORRECTABLE_FIELDS = ("quantity", "unit_price", "total_cost", "movement_date", "note")


def _movement_snapshot(entry: StockMovement) -> dict:
    return {
        "quantity": str(entry.quantity),
        "unit_price": str(entry.unit_price) if entry.unit_price is not None else None,
        "total_cost": str(entry.total_cost) if entry.total_cost is not None else None,
        "movement_date": entry.movement_date.isoformat(),
        "note": entry.note,
    }


def _line_cost(quantity: Decimal, unit_price: Decimal | None) -> Decimal | None:
    if unit_price is None:
        return None
    return to_money(Decimal(str(quantity)) * Decimal(str(unit_price)))


def append_movement(
    db: Session,
    *,
    product_id: str,
    direction: str,
    quantity: Decimal,
    source: str,
    movement_date: date,
    unit_price: Decimal | None = None,
    total_cost: Decimal | None = None,
    source_id: str | None = None,
    note: str | None = None,
) -> StockMovement:
    if direction not in MOVEMENT_DIRECTIONS:
        raise ValidationFailed.for_field("direction", f"Invalid direction: {direction}")
    if source not in MOVEMENT_SOURCES:
        raise ValidationFailed.for_field("source", f"Invalid source: {source}")
    if quantity is None or Decimal(str(quantity)) < 0:
        raise ValidationFailed.for_field("quantity", "Quantity must be greater than or equal to 0")
    get_product(db, product_id)

    normalized_quantity = to_quantity(quantity)
    normalized_price = to_money(unit_price) if unit_price is not None else None
    if total_cost is not None:
        normalized_total = to_money(total_cost)
    else:
        normalized_total = _line_cost(normalized_quantity, normalized_price)

    entry = StockMovement(
        id=generate_shortuuid(),
        product_id=product_id,
        direction=direction,
        quantity=normalized_quantity,
        unit_price=normalized_price,
        total_cost=normalized_total,
        source=source,
        source_id=source_id,
        movement_date=movement_date,
        note=note,
    )
    db.add(entry)
    return entry


def _filtered(
    stmt: Select,
    *,
    product_id: str | None = None,
    direction: str | None = None,
    source: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> Select:
    if product_id:
        stmt = stmt.where(StockMovement.product_id == product_id)
    if direction:
        stmt = stmt.where(StockMovement.direction == direction)
    if source:
        stmt = stmt.where(StockMovement.source == source)
    if start_date:
        stmt = stmt.where(StockMovement.movement_date >= start_date)
    if end_date:
        stmt = stmt.where(StockMovement.movement_date <= end_date)
    return stmt


def list_movements(
    db: Session,
    *,
    product_id: str | None = None,
    direction: str | None = None,
    source: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[list[StockMovement], int]:
    filters = dict(
        product_id=product_id,
        direction=direction,
        source=source,
        start_date=start_date,
        end_date=end_date,
    )
    total = int(db.execute(_filtered(select(func.count(StockMovement.id)), **filters)).scalar_one())
    stmt = _filtered(select(StockMovement), **filters).order_by(
        StockMovement.movement_date.desc(),
        StockMovement.created_at.desc(),
    )
    if offset:
        stmt = stmt.offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.execute(stmt).scalars()), total


def list_movements_by_product(db: Session, product_id: str) -> list[StockMovement]:
    get_product(db, product_id)
    rows, _ = list_movements(db, product_id=product_id)
    return rows


def get_movement(db: Session, movement_id: str) -> StockMovement:
    entry = db.get(StockMovement, movement_id)
    if entry is None:
        raise ResourceNotFound("Stock movement", movement_id)
    return entry


def correct_movement(
    db: Session,
    movement_id: str,
    *,
    actor: str,
    changes: dict,
) -> StockMovement:
    """Apply a correction to an existing entry.

    Only quantity, prices, date and note may change. Direction, source, product
    and source id stay as written. When quantity or unit price changes without an
    explicit total, the total is recomputed from the corrected values.
    """
    unknown = sorted(set(changes) - set(CORRECTABLE_FIELDS))
    if unknown:
        raise ValidationFailed(
            "Validation failed",
            details=[
                {"field": field, "message": "Field cannot be corrected", "type": "immutable_field"}
                for field in unknown
            ],
        )

    entry = get_movement(db, movement_id)
    before = _movement_snapshot(entry)

    if "quantity" in changes:
        if changes["quantity"] is None or Decimal(str(changes["quantity"])) < 0:
            raise ValidationFailed.for_field("quantity", "Quantity must be greater than or equal to 0")
        entry.quantity = to_quantity(changes["quantity"])
    if "unit_price" in changes:
        entry.unit_price = to_money(changes["unit_price"]) if changes["unit_price"] is not None else None
    if "movement_date" in changes and changes["movement_date"] is not None:
        entry.movement_date = changes["movement_date"]
    if "note" in changes:
        entry.note = changes["note"]

    if changes.get("total_cost") is not None:
        entry.total_cost = to_money(changes["total_cost"])
    elif entry.unit_price is not None and ("quantity" in changes or "unit_price" in changes):
        entry.total_cost = _line_cost(entry.quantity, entry.unit_price)

    log_audit_event(
        db,
        actor=actor,
        action="stock_movement.correct",
        target_type="stock_movement",
        target_id=entry.id,
        metadata_json={"before": before, "after": _movement_snapshot(entry)},
    )
    db.commit()
    db.refresh(entry)
    return entry


def delete_movement(db: Session, movement_id: str, *, actor: str) -> None:
    entry = get_movement(db, movement_id)
    log_audit_event(
        db,
        actor=actor,
        action="stock_movement.delete",
        target_type="stock_movement",
        target_id=entry.id,
        metadata_json={
            "product_id": entry.product_id,
            "direction": entry.direction,
            "source": entry.source,
            "source_id": entry.source_id,
            **_movement_snapshot(entry),
        },
    )
    db.delete(entry)
    db.commit()


def sum_quantity(
    db: Session,
    *,
    product_id: str,
    direction: str,
    source: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> Decimal:
    stmt = _filtered(
        select(func.coalesce(func.sum(StockMovement.quantity), 0)),
        product_id=product_id,
        direction=direction,
        source=source,
        start_date=start_date,
        end_date=end_date,
    )
    return to_quantity(db.execute(stmt).scalar_one())


def inbound_quantity(
    db: Session,
    product_id: str,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> Decimal:
    return sum_quantity(
        db,
        product_id=product_id,
        direction="in",
        start_date=start_date,
        end_date=end_date,
    )


def quantities_by_product(
    db: Session,
    *,
    direction: str,
    source: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> dict[str, Decimal]:
    stmt = _filtered(
        select(StockMovement.product_id, func.coalesce(func.sum(StockMovement.quantity), 0)),
        direction=direction,
        source=source,
        start_date=start_date,
        end_date=end_date,
    ).group_by(StockMovement.product_id)
    totals: dict[str, Decimal] = {}
    for product_id, quantity in db.execute(stmt).all():
        totals[product_id] = to_quantity(quantity)
    return totals


def movement_value(
    db: Session,
    *,
    direction: str,
    start_date: date | None = None,
    end_date: date | None = None,
) -> Decimal:
    stmt = _filtered(
        select(func.coalesce(func.sum(StockMovement.total_cost), 0)),
        direction=direction,
        start_date=start_date,
        end_date=end_date,
    )
    return to_money(db.execute(stmt).scalar_one())
