from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from kitchen_stock.core.exceptions import ResourceNotFound, ValidationFailed
from kitchen_stock.models.product import ALLOWED_UNITS, Product

EFFECTIVE_PRICE_QUANT = Decimal("0.0001")


def effective_price_per_unit(price_per_unit: Decimal, waste_percent: Decimal) -> Decimal:
    """Price of one usable unit once trimming loss is accounted for."""
    price = Decimal(str(price_per_unit))
    waste = Decimal(str(waste_percent))
    if price < 0:
        raise ValidationFailed.for_field("price_per_unit", "Price per unit cannot be negative")
    if waste < 0 or waste >= 100:
        raise ValidationFailed.for_field("waste_percent", "Waste percent must be in [0, 100)")
    usable_ratio = Decimal("1") - waste / Decimal("100")
    return (price / usable_ratio).quantize(EFFECTIVE_PRICE_QUANT, rounding=ROUND_HALF_UP)


def validate_unit(unit: str) -> str:
    normalized = unit.strip().lower()
    if normalized not in ALLOWED_UNITS:
        allowed = ", ".join(sorted(ALLOWED_UNITS))
        raise ValidationFailed.for_field("unit", f"Invalid unit. Allowed: {allowed}")
    return normalized


def get_product(db: Session, product_id: str) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise ResourceNotFound("Product", product_id)
    return product


def ensure_products_exist(db: Session, product_ids: Iterable[str], *, field: str = "product_id") -> None:
    wanted = {product_id for product_id in product_ids}
    if not wanted:
        return
    found = set(db.execute(select(Product.id).where(Product.id.in_(wanted))).scalars())
    missing = sorted(wanted - found)
    if missing:
        raise ValidationFailed(
            "Validation failed",
            details=[
                {"field": field, "message": f"Unknown product: {product_id}", "type": "not_found"}
                for product_id in missing
            ],
        )
