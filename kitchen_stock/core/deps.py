from typing import Generator

from fastapi import Header
from sqlalchemy.orm import Session

from kitchen_stock.core.config import settings
from kitchen_stock.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_operator_name(
    x_operator_name: str | None = Header(default=None, description="Operator recorded on audit events"),
) -> str:
    cleaned = (x_operator_name or "").strip()
    return cleaned or settings.default_operator_name
