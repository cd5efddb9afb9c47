from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from kitchen_stock.core.id_utils import generate_shortuuid
from kitchen_stock.models.audit_log import AuditLog


def log_audit_event(
    db: Session,
    *,
    actor: str,
    action: str,
    target_type: str,
    target_id: str | None = None,
    metadata_json: dict[str, Any] | None = None,
) -> AuditLog:
    event = AuditLog(
        id=generate_shortuuid(),
        actor=actor,
        action=action,
        target_type=target_type,
        target_id=target_id,
        metadata_json=metadata_json,
    )
    db.add(event)
    return event


def list_audit_events(db: Session, *, target_type: str, target_id: str) -> list[AuditLog]:
    return list(
        db.execute(
            select(AuditLog)
            .where(AuditLog.target_type == target_type, AuditLog.target_id == target_id)
            .order_by(AuditLog.created_at.asc())
        ).scalars()
    )
