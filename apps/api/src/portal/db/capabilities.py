"""Schema capability detection.

Deployed databases do not all carry the optional ``is_active`` column on
the tenant tables. The schema is probed once at startup and the result is
cached as capability flags; queries and writes consult the flags to decide
whether to touch the column. If a statement still fails because the column
is unknown (the schema changed after startup), the flag is switched off and
the statement is retried once without it.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from fastapi import Request
from sqlalchemy import Column, inspect
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from portal.db.models import ACTIVE_FLAG_TABLES

logger = logging.getLogger("leo-portal-schema")

ACTIVE_COLUMN = "is_active"

T = TypeVar("T")


@dataclass
class SchemaCapabilities:
    """Which optional columns exist in the connected database."""

    active_flag: dict[str, bool] = field(
        default_factory=lambda: {table: True for table in ACTIVE_FLAG_TABLES}
    )

    def has_active_flag(self, table: str) -> bool:
        """Whether ``table`` carries the is_active column."""
        return self.active_flag.get(table, False)

    def disable_active_flag(self, table: str) -> None:
        """Record that ``table`` has no is_active column."""
        if self.active_flag.get(table):
            logger.warning(f"{ACTIVE_COLUMN} column not found in {table}, disabling it")
        self.active_flag[table] = False

    def columns(self, table: str, all_columns: list[Column]) -> list[Column]:
        """Filter a table's columns down to the ones that exist."""
        if self.has_active_flag(table):
            return list(all_columns)
        return [c for c in all_columns if c.name != ACTIVE_COLUMN]

    def values(self, table: str, values: dict) -> dict:
        """Drop is_active from a write payload when the column is missing."""
        if self.has_active_flag(table):
            return dict(values)
        return {k: v for k, v in values.items() if k != ACTIVE_COLUMN}


async def probe_schema(engine: AsyncEngine) -> SchemaCapabilities:
    """Inspect the live schema and build capability flags.

    A table that cannot be inspected keeps the optimistic default; the
    per-statement fallback covers it.
    """

    def _inspect(sync_conn) -> dict[str, bool]:
        inspector = inspect(sync_conn)
        flags = {}
        for table in ACTIVE_FLAG_TABLES:
            if not inspector.has_table(table):
                flags[table] = True
                continue
            names = {column["name"] for column in inspector.get_columns(table)}
            flags[table] = ACTIVE_COLUMN in names
        return flags

    async with engine.connect() as conn:
        flags = await conn.run_sync(_inspect)

    for table, present in flags.items():
        if not present:
            logger.info(f"{ACTIVE_COLUMN} column not found in {table}")
    return SchemaCapabilities(active_flag=flags)


def is_missing_active_column(error: DBAPIError) -> bool:
    """Whether a database error is about the is_active column."""
    return ACTIVE_COLUMN in str(error.orig or error)


async def run_with_active_fallback(
    db: AsyncSession,
    capabilities: SchemaCapabilities,
    table: str,
    operation: Callable[[], Awaitable[T]],
) -> T:
    """Run ``operation``, retrying once without is_active if the column is unknown.

    ``operation`` must consult ``capabilities`` when building its statement
    so the retry picks up the disabled flag.
    """
    try:
        return await operation()
    except DBAPIError as e:
        if not capabilities.has_active_flag(table) or not is_missing_active_column(e):
            raise
        await db.rollback()
        capabilities.disable_active_flag(table)
        return await operation()


def get_capabilities(request: Request) -> SchemaCapabilities:
    """Dependency returning the capability flags probed at startup."""
    capabilities = getattr(request.app.state, "schema_capabilities", None)
    if capabilities is None:
        capabilities = SchemaCapabilities()
        request.app.state.schema_capabilities = capabilities
    return capabilities
