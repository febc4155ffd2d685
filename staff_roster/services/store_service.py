"""Store lookup and settings service."""

import logging
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from staff_roster.core.errors import NotFoundError, ValidationFailedError
from staff_roster.core.rbac_policy import Permission, authorize
from staff_roster.models.store import Store
from staff_roster.schemas.store import StoreSettings, StoreSettingsUpdate
from staff_roster.services.audit_service import AuditContext, diff_changes, log_action

logger = logging.getLogger(__name__)


class StoreService:
    """Reads and updates per-store roster settings."""

    def __init__(self, db: Session):
        self.db = db

    def get_store(self, store_id: int) -> Store:
        store = self.db.get(Store, store_id)
        if store is None:
            raise NotFoundError("Store not found", details={"storeId": store_id})
        return store

    def get_settings(self, store_id: Optional[int]) -> StoreSettings:
        """Validated settings for ``store_id``; defaults fill any gaps."""
        store = self.db.get(Store, store_id) if store_id is not None else None
        if store is None:
            return StoreSettings()
        try:
            return StoreSettings.model_validate(store.settings or {})
        except ValidationError:
            logger.warning("Store %s has invalid settings, falling back to defaults", store_id)
            return StoreSettings()

    def update_settings(self, ctx: AuditContext, update: StoreSettingsUpdate) -> StoreSettings:
        store = self.get_store(ctx.actor.store_id)
        current = self.get_settings(store.id)
        authorize(ctx.actor, Permission.MANAGE_SETTINGS, store_settings=current)

        merged = current.model_dump()
        merged.update(update.model_dump(exclude_unset=True, exclude_none=True))
        try:
            new_settings = StoreSettings.model_validate(merged)
        except ValidationError as e:
            raise ValidationFailedError(
                "Invalid store settings",
                details={"errors": [err["msg"] for err in e.errors()]},
            )

        before = current.model_dump(mode="json", by_alias=True)
        after = new_settings.model_dump(mode="json", by_alias=True)
        store.settings = new_settings.model_dump(mode="json")

        # Audit with the new value so switching auditing back on is recorded
        log_action(
            self.db,
            ctx,
            "UPDATE_SETTINGS",
            entity_type="settings",
            entity_id=store.id,
            entity_name=store.name,
            changes=diff_changes(before, after),
            enabled=current.enable_audit_log or new_settings.enable_audit_log,
        )
        self.db.commit()
        return new_settings
