"""Preference service."""

from datetime import UTC, datetime
from typing import Any, Dict, Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Preference
from .schemas import AppPreferences, PreferencesUpdate


def _serialize(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


class PreferenceService:
    """Key/value preference store with typed access.

    Values are stored as strings and parsed back through ``AppPreferences``;
    keys with no stored value fall back to the application settings.
    """

    async def get_preference(self, key: str, db: AsyncSession) -> Optional[str]:
        result = await db.execute(select(Preference.value).where(Preference.key == key))
        return result.scalar_one_or_none()

    async def set_preference(self, key: str, value: str, db: AsyncSession) -> None:
        await self._upsert({key: value}, db)

    async def delete_preference(self, key: str, db: AsyncSession) -> None:
        await db.execute(delete(Preference).where(Preference.key == key))
        await db.commit()

    async def get_all(self, db: AsyncSession) -> Dict[str, str]:
        result = await db.execute(select(Preference.key, Preference.value))
        return {key: value for key, value in result.all()}

    async def get_preferences(self, db: AsyncSession) -> AppPreferences:
        stored = await self.get_all(db)
        known = {key: value for key, value in stored.items() if key in AppPreferences.model_fields}
        return AppPreferences.model_validate(known)

    async def update_preferences(self, update: PreferencesUpdate, db: AsyncSession) -> AppPreferences:
        """Store the given preferences and return the effective set."""
        values = {key: _serialize(value) for key, value in update.model_dump(exclude_none=True).items()}
        if values:
            await self._upsert(values, db)
        return await self.get_preferences(db)

    async def _upsert(self, values: Dict[str, str], db: AsyncSession) -> None:
        now = datetime.now(UTC)
        stmt = sqlite_insert(Preference).values(
            [{"key": key, "value": value, "created_at": now, "updated_at": now} for key, value in values.items()]
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Preference.key], set_={"value": stmt.excluded.value, "updated_at": now}
        )
        await db.execute(stmt)
        await db.commit()
