# offline_sync/crud/delta_token_store.py
"""
Delta token store: per-query watermarks for incremental pull sync.

A missing token means "never synced" and triggers a full pull; that is
different from a token set to the epoch. The store does not enforce that
watermarks only move forward; the synchronization process decides that.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete
from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from offline_sync.core.timestamps import from_file_time, to_file_time
from offline_sync.database.engine import unit_of_work
from offline_sync.models.delta_token import DeltaToken

logger = logging.getLogger(__name__)


def delta_token_id(table_name: str, query_id: str = "default") -> str:
    """Build the token id for a table/query combination."""
    return f"dt.{table_name}.{query_id}"


class DeltaTokenStore:
    """Delta token store backed by the ``delta_tokens`` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _load(self, token_id: str) -> Optional[DeltaToken]:
        query = (
            select(DeltaToken)
            .where(DeltaToken.token_id == token_id)
            .execution_options(populate_existing=True)
        )
        return (await self.session.exec(query)).first()

    async def get(self, token_id: str) -> Optional[datetime]:
        """
        Get the watermark for a token.

        Returns:
            The stored instant as an aware UTC datetime, or None if the token
            was never set or has been cleared
        """
        entity = await self._load(token_id)
        if entity is None:
            return None
        return from_file_time(entity.timestamp)

    async def set(self, token_id: str, timestamp: datetime) -> None:
        """
        Create or overwrite the watermark for a token in a single upsert
        statement, so concurrent writers of the same token never collide.

        Raises:
            ValueError: If ``timestamp`` is naive
        """
        ticks = to_file_time(timestamp)
        dialect = self.session.get_bind().dialect.name

        async with unit_of_work(self.session):
            if dialect in ("sqlite", "postgresql"):
                insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
                stmt = (
                    insert(DeltaToken)
                    .values(token_id=token_id, timestamp=ticks)
                    .on_conflict_do_update(
                        index_elements=["token_id"],
                        set_={"timestamp": ticks},
                    )
                )
                await self.session.exec(stmt)
            else:
                await self.session.merge(DeltaToken(token_id=token_id, timestamp=ticks))

        logger.debug(f"Delta token {token_id} set to {timestamp.isoformat()}")

    async def clear(self, token_id: str) -> None:
        """Remove a token. Clearing an unknown token does nothing."""
        async with unit_of_work(self.session):
            result = await self.session.exec(delete(DeltaToken).where(DeltaToken.token_id == token_id))

        if result.rowcount:
            logger.debug(f"Delta token {token_id} cleared")

    async def clear_all(self) -> None:
        """Remove every token."""
        async with unit_of_work(self.session):
            result = await self.session.exec(delete(DeltaToken))

        if result.rowcount:
            logger.info(f"Cleared {result.rowcount} delta tokens")

    async def list_ids(self) -> List[str]:
        """Ids of every stored token, in no particular order."""
        return list((await self.session.exec(select(DeltaToken.token_id))).all())
