"""Single-row JSON document storage.

The document is treated as an opaque JSON blob kept in row ``id = 1`` of the
``app_state`` table.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Integer,
    MetaData,
    Table,
    create_engine,
    select,
    text as sql_text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

STATE_ROW_ID = 1

metadata = MetaData()

app_state = Table(
    "app_state",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("data", JSON().with_variant(JSONB(), "postgresql"), nullable=False),
    Column("updated_at", DateTime(timezone=True)),
)


def get_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            future=True,
        )
    return create_engine(database_url, pool_pre_ping=True, future=True)


class StateStore:
    """GET/PUT of the whole document."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @classmethod
    def from_url(cls, database_url: str) -> StateStore:
        return cls(get_engine(database_url))

    def init_db(self) -> None:
        """Create the table. Errors propagate so startup can refuse to serve."""
        metadata.create_all(self.engine)
        logger.info("State table ready on %s", self.engine.url.get_backend_name())

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            conn.execute(sql_text("SELECT 1"))
        return True

    def get(self) -> Any | None:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(app_state.c.data).where(app_state.c.id == STATE_ROW_ID)
            ).first()
        return None if row is None else row[0]

    def put(self, data: Any) -> None:
        now = datetime.now(timezone.utc)
        with self.engine.begin() as conn:
            result = conn.execute(
                app_state.update()
                .where(app_state.c.id == STATE_ROW_ID)
                .values(data=data, updated_at=now)
            )
            if result.rowcount == 0:
                conn.execute(app_state.insert().values(id=STATE_ROW_ID, data=data, updated_at=now))

    def dispose(self) -> None:
        self.engine.dispose()
