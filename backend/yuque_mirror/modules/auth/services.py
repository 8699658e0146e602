"""Remote session service."""

from datetime import timedelta
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.config.settings import settings
from ...infrastructure.database.session import local_session
from ...infrastructure.logging import get_logger
from ...infrastructure.remote import RemoteCredentials
from ..common.utils.timestamps import epoch_ms_now
from .models import AuthSession
from .schemas import AuthSessionCreate

logger = get_logger()


def _session_ttl_ms() -> int:
    return int(timedelta(hours=settings.SESSION_TTL_HOURS).total_seconds() * 1000)


class AuthService:
    """Service for the stored remote session.

    Acquiring the session (login flows) happens outside this service; it only
    persists the result and enforces the validity window.
    """

    async def save_session(self, session_data: AuthSessionCreate, db: AsyncSession) -> AuthSession:
        """Replace the stored session with a new one valid for ``SESSION_TTL_HOURS``."""
        await db.execute(delete(AuthSession))
        session = AuthSession(**session_data.model_dump(), expires_at=epoch_ms_now() + _session_ttl_ms())
        db.add(session)
        await db.commit()
        await db.refresh(session)
        logger.info(f"Stored remote session for {session.login}")
        return session

    async def get_session(self, db: AsyncSession) -> Optional[AuthSession]:
        result = await db.execute(select(AuthSession).order_by(AuthSession.id.desc()).limit(1))
        return result.scalar_one_or_none()

    async def get_valid_session(self, db: AsyncSession) -> Optional[AuthSession]:
        """The stored session, or None when missing or expired.

        An expired session is removed.
        """
        session = await self.get_session(db)
        if session is None:
            return None
        if epoch_ms_now() >= session.expires_at:
            logger.info("Stored remote session expired, clearing it")
            await self.clear_session(db)
            return None
        return session

    async def is_session_valid(self, db: AsyncSession) -> bool:
        return await self.get_valid_session(db) is not None

    async def clear_session(self, db: AsyncSession) -> None:
        await db.execute(delete(AuthSession))
        await db.commit()

    async def refresh_session_expiry(self, db: AsyncSession) -> None:
        await db.execute(update(AuthSession).values(expires_at=epoch_ms_now() + _session_ttl_ms()))
        await db.commit()


async def load_credentials() -> Optional[RemoteCredentials]:
    """Credential source for the remote provider, backed by the stored session."""
    async with local_session() as db:
        session = await AuthService().get_valid_session(db)
        if session is None:
            return None
        return RemoteCredentials(login=session.login, cookies=session.cookies)
