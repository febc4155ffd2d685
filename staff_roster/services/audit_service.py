"""Audit logging service.

Writes audit log entries for state-changing operations. Entries are added
to the caller's session and flushed, so they commit or roll back together
with the change they describe.

Stores can switch auditing off with ``enable_audit_log``; ``DELETE_ROSTER``
entries are always written because roster deletes are de-duplicated
against them.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from staff_roster.models.audit import AuditLogEntry

logger = logging.getLogger("audit")

ALWAYS_AUDITED = frozenset({"DELETE_ROSTER"})


@dataclass
class AuditContext:
    """The acting user plus where the request came from."""

    actor: Any
    ip_address: str = ""
    user_agent: str = ""

    @property
    def user_id(self) -> Optional[int]:
        return getattr(self.actor, "id", None)

    @property
    def store_id(self) -> Optional[int]:
        return getattr(self.actor, "store_id", None)


def log_action(
    db: Session,
    ctx: Optional[AuditContext],
    action: str,
    entity_type: str = "",
    entity_id: Any = None,
    entity_name: str = "",
    changes: Optional[dict[str, Any]] = None,
    details: Optional[dict[str, Any]] = None,
    store_id: Optional[int] = None,
    enabled: bool = True,
) -> Optional[AuditLogEntry]:
    """Add an audit log entry to ``db`` and flush it.

    Args:
        db: The caller's session; the caller owns the commit.
        ctx: Acting user and request origin (None for system actions).
        action: Upper-case action name (CREATE_ROSTER, CHECK_IN, ...).
        entity_type: Type of entity affected (roster, user, role, ...).
        entity_id: ID of the affected entity.
        entity_name: Human-readable label for the entity.
        changes: Map of field -> {"old": ..., "new": ...}.
        details: Additional metadata.
        store_id: Store scope; defaults to the actor's store.
        enabled: The store's ``enable_audit_log`` setting.
    """
    if not enabled and action not in ALWAYS_AUDITED:
        logger.debug("Audit disabled, skipping %s on %s %s", action, entity_type, entity_id)
        return None

    actor = ctx.actor if ctx else None
    entry = AuditLogEntry(
        store_id=store_id if store_id is not None else (ctx.store_id if ctx else None),
        user_id=ctx.user_id if ctx else None,
        user_name=getattr(actor, "full_name", "") or getattr(actor, "email", "") or "",
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        entity_name=entity_name or None,
        changes=changes or None,
        details=details or {},
        ip_address=(ctx.ip_address if ctx else "") or None,
        user_agent=(ctx.user_agent if ctx else "") or None,
        created_at=datetime.now(timezone.utc),
    )
    db.add(entry)
    db.flush()
    logger.info(
        "%s %s %s by user %s",
        action,
        entity_type,
        entity_id,
        ctx.user_id if ctx else "system",
    )
    return entry


def diff_changes(before: dict[str, Any], after: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Build a changes map containing only the fields whose value differs."""
    changes: dict[str, dict[str, Any]] = {}
    for key, new in after.items():
        old = before.get(key)
        if old != new:
            changes[key] = {"old": old, "new": new}
    return changes


def purge_older_than(db: Session, days: int) -> int:
    """Delete audit entries older than ``days``. Returns the number removed."""
    if days <= 0:
        return 0
    cutoff = datetime.now(timezone.utc) - timedelta(days=days)
    removed = (
        db.query(AuditLogEntry)
        .filter(AuditLogEntry.created_at < cutoff, AuditLogEntry.action.notin_(ALWAYS_AUDITED))
        .delete(synchronize_session=False)
    )
    db.commit()
    if removed:
        logger.info("Purged %d audit entries older than %d days", removed, days)
    return removed
