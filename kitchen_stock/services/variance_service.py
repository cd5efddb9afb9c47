import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kitchen_stock.core.config import settings
from kitchen_stock.core.exceptions import ResourceConflict, ResourceNotFound, ValidationFailed
from kitchen_stock.core.id_utils import generate_shortuuid
from kitchen_stock.core.money import ZERO_QUANTITY, to_money, to_quantity
from kitchen_stock.core.observability import log_event
from kitchen_stock.models.inventory import EditableInventory, InventorySnapshot
from kitchen_stock.models.product import Product
from kitchen_stock.services.audit_service import log_audit_event
from kitchen_stock.services.ledger_service import inbound_quantity, quantities_by_product, sum_quantity
from kitchen_stock.services.outbound_service import OutboundBreakdown, outbound_breakdowns, outbound_quantity
from kitchen_stock.services.product_service import get_product

logger = logging.getLogger("kitchen_stock.api.inventory")


@dataclass
class VarianceResult:
    product_id: str
    initial_quantity: Decimal
    inbound: Decimal
    outbound: Decimal
    final_quantity: Decimal
    variance_value: Decimal
    status: str

    @property
    def theoretical_quantity(self) -> Decimal:
        return self.initial_quantity + self.inbound - self.outbound

    @property
    def variance(self) -> Decimal:
        # positive means shortage
        return self.theoretical_quantity - self.final_quantity


def _validate_counts(initial_quantity, final_quantity) -> tuple[Decimal, Decimal]:
    issues = []
    if initial_quantity is None or Decimal(str(initial_quantity)) < 0:
        issues.append({"field": "initial_quantity", "message": "Must be greater than or equal to 0", "type": "greater_than_equal"})
    if final_quantity is None or Decimal(str(final_quantity)) < 0:
        issues.append({"field": "final_quantity", "message": "Must be greater than or equal to 0", "type": "greater_than_equal"})
    if issues:
        raise ValidationFailed("Validation failed", details=issues)
    return to_quantity(initial_quantity), to_quantity(final_quantity)


def variance_status(theoretical: Decimal, variance: Decimal) -> str:
    magnitude = abs(variance)
    if theoretical <= 0:
        if magnitude > Decimal(str(settings.variance_absolute_tolerance)):
            return "warning"
        return "ok"
    ratio = magnitude / theoretical
    if ratio > Decimal(str(settings.variance_critical_ratio)):
        return "critical"
    if ratio > Decimal(str(settings.variance_warning_ratio)):
        return "warning"
    return "ok"


# editable snapshot


def list_snapshots(db: Session) -> list[EditableInventory]:
    return list(db.execute(select(EditableInventory).order_by(EditableInventory.last_updated.desc())).scalars())


def find_snapshot(db: Session, product_id: str) -> EditableInventory | None:
    return db.execute(
        select(EditableInventory).where(EditableInventory.product_id == product_id)
    ).scalar_one_or_none()


def get_snapshot_by_product(db: Session, product_id: str) -> EditableInventory:
    snapshot = find_snapshot(db, product_id)
    if snapshot is None:
        raise ResourceNotFound("Editable inventory", product_id)
    return snapshot


def get_snapshot(db: Session, snapshot_id: str) -> EditableInventory:
    snapshot = db.get(EditableInventory, snapshot_id)
    if snapshot is None:
        raise ResourceNotFound("Editable inventory", snapshot_id)
    return snapshot


def create_snapshot(
    db: Session,
    *,
    product_id: str,
    initial_quantity,
    final_quantity,
    notes: str | None = None,
) -> EditableInventory:
    initial, final = _validate_counts(initial_quantity, final_quantity)
    get_product(db, product_id)
    if find_snapshot(db, product_id) is not None:
        raise ResourceConflict("Editable inventory already exists for this product")
    snapshot = EditableInventory(
        id=generate_shortuuid(),
        product_id=product_id,
        initial_quantity=initial,
        final_quantity=final,
        notes=notes,
    )
    db.add(snapshot)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ResourceConflict("Editable inventory already exists for this product") from None
    db.refresh(snapshot)
    return snapshot


def _apply_counts(snapshot: EditableInventory, initial: Decimal, final: Decimal, notes: str | None) -> None:
    snapshot.initial_quantity = initial
    snapshot.final_quantity = final
    if notes is not None:
        snapshot.notes = notes
    snapshot.last_updated = datetime.now(timezone.utc)


def upsert_snapshot(
    db: Session,
    *,
    product_id: str,
    initial_quantity,
    final_quantity,
    actor: str,
    notes: str | None = None,
) -> EditableInventory:
    """Create the product's editable snapshot or update it in place.

    Two first-time upserts racing each other both try to insert; the loser hits
    the unique constraint on ``product_id`` and retries as an update.
    """
    initial, final = _validate_counts(initial_quantity, final_quantity)
    get_product(db, product_id)

    snapshot = find_snapshot(db, product_id)
    created = snapshot is None
    if created:
        snapshot = EditableInventory(id=generate_shortuuid(), product_id=product_id, notes=notes)
        db.add(snapshot)
    _apply_counts(snapshot, initial, final, notes)
    log_audit_event(
        db,
        actor=actor,
        action="editable_inventory.upsert",
        target_type="product",
        target_id=product_id,
        metadata_json={"created": created, "initial_quantity": str(initial), "final_quantity": str(final)},
    )
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if not created:
            raise
        snapshot = get_snapshot_by_product(db, product_id)
        _apply_counts(snapshot, initial, final, notes)
        log_audit_event(
            db,
            actor=actor,
            action="editable_inventory.upsert",
            target_type="product",
            target_id=product_id,
            metadata_json={"created": False, "initial_quantity": str(initial), "final_quantity": str(final)},
        )
        db.commit()
    db.refresh(snapshot)
    return snapshot


def update_snapshot(db: Session, snapshot_id: str, *, changes: dict) -> EditableInventory:
    snapshot = get_snapshot(db, snapshot_id)
    initial = changes.get("initial_quantity", snapshot.initial_quantity)
    final = changes.get("final_quantity", snapshot.final_quantity)
    initial, final = _validate_counts(initial, final)
    _apply_counts(snapshot, initial, final, changes.get("notes"))
    db.commit()
    db.refresh(snapshot)
    return snapshot


def delete_snapshot(db: Session, snapshot_id: str) -> None:
    snapshot = get_snapshot(db, snapshot_id)
    db.delete(snapshot)
    db.commit()


# live variance


def _counts_for(snapshot: EditableInventory | None) -> tuple[Decimal, Decimal]:
    if snapshot is None:
        return ZERO_QUANTITY, ZERO_QUANTITY
    return to_quantity(snapshot.initial_quantity), to_quantity(snapshot.final_quantity)


def _variance_for(
    product: Product,
    snapshot: EditableInventory | None,
    inbound: Decimal,
    outbound: Decimal,
) -> VarianceResult:
    initial, final = _counts_for(snapshot)
    theoretical = initial + inbound - outbound
    variance = theoretical - final
    return VarianceResult(
        product_id=product.id,
        initial_quantity=initial,
        inbound=inbound,
        outbound=outbound,
        final_quantity=final,
        variance_value=to_money(variance * Decimal(str(product.price_per_unit))),
        status=variance_status(theoretical, variance),
    )


def product_variance(
    db: Session,
    product_id: str,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> VarianceResult:
    product = get_product(db, product_id)
    inbound = inbound_quantity(db, product_id, start_date=start_date, end_date=end_date)
    outbound = outbound_quantity(db, product_id, start_date=start_date, end_date=end_date)
    return _variance_for(product, find_snapshot(db, product_id), inbound, outbound)


def inventory_grid(
    db: Session,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[tuple[Product, VarianceResult]]:
    products = list(db.execute(select(Product).order_by(Product.name.asc(), Product.code.asc())).scalars())
    snapshots = {row.product_id: row for row in db.execute(select(EditableInventory)).scalars()}
    inbound = quantities_by_product(db, direction="in", start_date=start_date, end_date=end_date)
    outbound = outbound_breakdowns(db, start_date=start_date, end_date=end_date)

    rows = []
    for product in products:
        breakdown = outbound.get(product.id, OutboundBreakdown(product_id=product.id))
        rows.append(
            (
                product,
                _variance_for(
                    product,
                    snapshots.get(product.id),
                    inbound.get(product.id, ZERO_QUANTITY),
                    breakdown.total,
                ),
            )
        )
    return rows


# stocktake history


def list_stocktakes(db: Session, *, product_id: str | None = None) -> list[InventorySnapshot]:
    stmt = select(InventorySnapshot)
    if product_id:
        stmt = stmt.where(InventorySnapshot.product_id == product_id)
    stmt = stmt.order_by(InventorySnapshot.snapshot_date.desc(), InventorySnapshot.created_at.desc())
    return list(db.execute(stmt).scalars())


def get_stocktake(db: Session, stocktake_id: str) -> InventorySnapshot:
    row = db.get(InventorySnapshot, stocktake_id)
    if row is None:
        raise ResourceNotFound("Inventory snapshot", stocktake_id)
    return row


def correct_stocktake(db: Session, stocktake_id: str, *, actual_quantity, actor: str) -> InventorySnapshot:
    if actual_quantity is None or Decimal(str(actual_quantity)) < 0:
        raise ValidationFailed.for_field("actual_quantity", "Must be greater than or equal to 0", "greater_than_equal")
    row = get_stocktake(db, stocktake_id)
    before = {"final_quantity": str(row.final_quantity), "variance": str(row.variance)}

    row.final_quantity = to_quantity(actual_quantity)
    if row.theoretical_quantity is not None:
        row.variance = row.final_quantity - to_quantity(row.theoretical_quantity)
    log_audit_event(
        db,
        actor=actor,
        action="inventory_snapshot.correct",
        target_type="product",
        target_id=row.product_id,
        metadata_json={
            "snapshot_id": row.id,
            "before": before,
            "after": {"final_quantity": str(row.final_quantity), "variance": str(row.variance)},
        },
    )
    db.commit()
    db.refresh(row)
    return row


def delete_stocktake(db: Session, stocktake_id: str) -> None:
    row = get_stocktake(db, stocktake_id)
    db.delete(row)
    db.commit()


def _previous_stocktake(db: Session, product_id: str, snapshot_date: date) -> InventorySnapshot | None:
    return db.execute(
        select(InventorySnapshot)
        .where(
            InventorySnapshot.product_id == product_id,
            InventorySnapshot.snapshot_date <= snapshot_date,
        )
        .order_by(InventorySnapshot.snapshot_date.desc(), InventorySnapshot.created_at.desc())
        .limit(1)
    ).scalar_one_or_none()


def create_theoretical_snapshot(
    db: Session,
    *,
    product_id: str,
    actual_quantity,
    snapshot_date: date,
    actor: str,
) -> InventorySnapshot:
    """Record a dated stocktake against the quantity the ledger predicts.

    The baseline is the latest stocktake dated on or before ``snapshot_date``
    (same-day recounts chain onto the earlier count), with ledger entries
    dated strictly after it and up to ``snapshot_date``. Without a previous
    stocktake the catalog quantity is the baseline and every ledger entry
    counts, whatever its date. The stored variance is actual minus
    theoretical, so a surplus is positive.
    """
    if actual_quantity is None or Decimal(str(actual_quantity)) < 0:
        raise ValidationFailed.for_field("actual_quantity", "Must be greater than or equal to 0", "greater_than_equal")
    product = get_product(db, product_id)
    actual = to_quantity(actual_quantity)

    previous = _previous_stocktake(db, product_id, snapshot_date)
    if previous is None:
        baseline = to_quantity(product.quantity)
        window_start = None
        window_end = None
    else:
        baseline = to_quantity(previous.final_quantity)
        window_start = previous.snapshot_date + timedelta(days=1)
        window_end = snapshot_date

    inbound = sum_quantity(db, product_id=product_id, direction="in", start_date=window_start, end_date=window_end)
    outbound = sum_quantity(db, product_id=product_id, direction="out", start_date=window_start, end_date=window_end)
    theoretical = baseline + inbound - outbound
    variance = actual - theoretical

    row = InventorySnapshot(
        id=generate_shortuuid(),
        product_id=product_id,
        snapshot_date=snapshot_date,
        initial_quantity=baseline,
        final_quantity=actual,
        theoretical_quantity=theoretical,
        variance=variance,
    )
    db.add(row)
    log_audit_event(
        db,
        actor=actor,
        action="inventory_snapshot.create",
        target_type="product",
        target_id=product_id,
        metadata_json={
            "snapshot_id": row.id,
            "snapshot_date": snapshot_date.isoformat(),
            "theoretical_quantity": str(theoretical),
            "variance": str(variance),
        },
    )
    db.commit()
    db.refresh(row)
    log_event(
        logger,
        "inventory.stocktake.recorded",
        product_id=product_id,
        snapshot_date=snapshot_date.isoformat(),
        variance=str(variance),
    )
    return row
