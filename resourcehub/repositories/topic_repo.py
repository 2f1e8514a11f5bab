import logging
from typing import Dict, Iterable, Optional
from uuid import UUID

from psycopg import AsyncConnection
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from resourcehub.models.topic import Topic
from resourcehub.repositories.db_errors import retry_idempotent, translate_db_errors

logger = logging.getLogger(__name__)


class TopicRepository:
    """Read-only access to the topics a resource may reference."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool
        self.logger = logger

    @retry_idempotent
    async def resolve(
        self, topic_id: UUID, conn: Optional[AsyncConnection] = None
    ) -> Optional[Topic]:
        query = "SELECT id, name FROM topics WHERE id = %s;"
        async with translate_db_errors("resolve_topic"):
            if conn is not None:
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(query, (topic_id,))
                    row = await cur.fetchone()
            else:
                async with self.pool.connection() as c:
                    async with c.cursor(row_factory=dict_row) as cur:
                        await cur.execute(query, (topic_id,))
                        row = await cur.fetchone()
        return Topic.model_validate(row) if row else None

    @retry_idempotent
    async def get_names(
        self, topic_ids: Iterable[UUID], conn: Optional[AsyncConnection] = None
    ) -> Dict[UUID, str]:
        """Batch lookup of topic names. Unknown ids are simply absent from the result."""
        ids = list(topic_ids)
        if not ids:
            return {}

        query = "SELECT id, name FROM topics WHERE id = ANY(%s);"
        async with translate_db_errors("get_topic_names"):
            if conn is not None:
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(query, (ids,))
                    rows = await cur.fetchall()
            else:
                async with self.pool.connection() as c:
                    async with c.cursor(row_factory=dict_row) as cur:
                        await cur.execute(query, (ids,))
                        rows = await cur.fetchall()
        self.logger.debug(f"[get_names] Resolved {len(rows)}/{len(ids)} topic names")
        return {row["id"]: row["name"] for row in rows}
