from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kitchen_stock.core.api_docs import error_responses
from kitchen_stock.core.deps import get_db, get_operator_name
from kitchen_stock.core.exceptions import ResourceConflict
from kitchen_stock.core.id_utils import generate_shortuuid
from kitchen_stock.core.money import to_money, to_quantity
from kitchen_stock.models.product import Product
from kitchen_stock.schemas.product import ProductCreate, ProductOut, ProductUpdate
from kitchen_stock.services.audit_service import log_audit_event
from kitchen_stock.services.product_service import effective_price_per_unit, get_product, validate_unit

router = APIRouter(prefix="/products", tags=["products"])


def _product_out(product: Product) -> ProductOut:
    return ProductOut(
        id=product.id,
        code=product.code,
        name=product.name,
        supplier=product.supplier,
        unit=product.unit,
        quantity=float(product.quantity),
        price_per_unit=float(product.price_per_unit),
        waste_percent=float(product.waste_percent),
        effective_price_per_unit=float(product.effective_price_per_unit),
        notes=product.notes,
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


@router.post(
    "",
    response_model=ProductOut,
    summary="Create product",
    responses=error_responses(409, 422, 500),
)
def create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    code = payload.code.strip()
    existing = db.execute(select(Product.id).where(Product.code == code)).scalar_one_or_none()
    if existing:
        raise ResourceConflict("Product code already exists")

    product = Product(
        id=generate_shortuuid(),
        code=code,
        name=payload.name.strip(),
        supplier=payload.supplier,
        unit=validate_unit(payload.unit),
        quantity=to_quantity(payload.quantity),
        price_per_unit=to_money(payload.price_per_unit),
        waste_percent=payload.waste_percent,
        effective_price_per_unit=effective_price_per_unit(payload.price_per_unit, payload.waste_percent),
        notes=payload.notes,
    )
    db.add(product)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ResourceConflict("Product code already exists") from None
    db.refresh(product)
    return _product_out(product)


@router.get(
    "",
    response_model=list[ProductOut],
    summary="List products",
    responses=error_responses(422, 500),
)
def list_products(
    q: str | None = Query(default=None, description="Search by code or name"),
    db: Session = Depends(get_db),
):
    stmt = select(Product)
    if q and q.strip():
        pattern = f"%{q.strip().lower()}%"
        stmt = stmt.where(or_(func.lower(Product.code).like(pattern), func.lower(Product.name).like(pattern)))
    rows = db.execute(stmt.order_by(Product.name.asc())).scalars().all()
    return [_product_out(row) for row in rows]


@router.get(
    "/{product_id}",
    response_model=ProductOut,
    summary="Get product",
    responses=error_responses(404, 500),
)
def get_product_detail(product_id: str, db: Session = Depends(get_db)):
    return _product_out(get_product(db, product_id))


@router.patch(
    "/{product_id}",
    response_model=ProductOut,
    summary="Update product",
    responses=error_responses(404, 422, 500),
)
def update_product(
    product_id: str,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_operator_name),
):
    product = get_product(db, product_id)
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("name") is not None:
        product.name = changes["name"].strip()
    if "supplier" in changes:
        product.supplier = changes["supplier"]
    if changes.get("unit") is not None:
        product.unit = validate_unit(changes["unit"])
    if changes.get("quantity") is not None:
        product.quantity = to_quantity(changes["quantity"])
    if "notes" in changes:
        product.notes = changes["notes"]

    pricing_changed = changes.get("price_per_unit") is not None or changes.get("waste_percent") is not None
    if pricing_changed:
        before = {
            "price_per_unit": str(product.price_per_unit),
            "waste_percent": str(product.waste_percent),
        }
        if changes.get("price_per_unit") is not None:
            product.price_per_unit = to_money(changes["price_per_unit"])
        if changes.get("waste_percent") is not None:
            product.waste_percent = changes["waste_percent"]
        # historical ledger totals keep the price they were written with
        product.effective_price_per_unit = effective_price_per_unit(product.price_per_unit, product.waste_percent)
        log_audit_event(
            db,
            actor=actor,
            action="product.pricing.update",
            target_type="product",
            target_id=product.id,
            metadata_json={
                "before": before,
                "after": {
                    "price_per_unit": str(product.price_per_unit),
                    "waste_percent": str(product.waste_percent),
                },
            },
        )

    db.commit()
    db.refresh(product)
    return _product_out(product)
