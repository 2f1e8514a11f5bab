import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional
from uuid import UUID

from psycopg import AsyncConnection
from psycopg import errors as psycopg_errors
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from resourcehub.core.errors import ResourceConflictError, ValidationFailedError
from resourcehub.models.resource import PublishPatch, Resource, ResourceFilter
from resourcehub.repositories.db_errors import retry_idempotent, translate_db_errors

logger = logging.getLogger(__name__)

RESOURCE_COLUMNS = (
    "id, title, url, description, topic, source, accession, draft, publication"
)


class ResourceRepository:
    """
    Transactional storage for resources.

    Every method takes an optional `conn`; when given, the call joins the
    transaction opened by `transaction()` instead of borrowing its own pooled
    connection.
    """

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool
        self.logger = logger

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncConnection]:
        """Yield a connection whose work commits together or not at all."""
        async with translate_db_errors("transaction"):
            async with self.pool.connection() as conn:
                async with conn.transaction():
                    yield conn

    @asynccontextmanager
    async def _connection(
        self, conn: Optional[AsyncConnection]
    ) -> AsyncIterator[AsyncConnection]:
        if conn is not None:
            yield conn
            return
        async with self.pool.connection() as pooled:
            yield pooled

    async def create(
        self, resource: Resource, conn: Optional[AsyncConnection] = None
    ) -> Resource:
        """Insert a new resource. A duplicate url raises `ResourceConflictError`."""
        query = f"""
            INSERT INTO resources ({RESOURCE_COLUMNS})
            VALUES (%(id)s, %(title)s, %(url)s, %(description)s, %(topic)s,
                    %(source)s, %(accession)s, %(draft)s, %(publication)s)
            RETURNING {RESOURCE_COLUMNS};
        """
        try:
            async with translate_db_errors("create"):
                async with self._connection(conn) as c:
                    async with c.cursor(row_factory=dict_row) as cur:
                        await cur.execute(query, resource.model_dump())
                        row = await cur.fetchone()
        except psycopg_errors.UniqueViolation as e:
            self.logger.warning(f"Unique constraint hit inserting url '{resource.url}': {e}")
            raise ResourceConflictError(resource.url) from e
        except psycopg_errors.ForeignKeyViolation as e:
            # Topic removed between validation and insert
            self.logger.warning(f"Topic '{resource.topic}' vanished before insert: {e}")
            raise ValidationFailedError({"topic": '"topic" must exist'}) from e

        if row is None:
            raise RuntimeError("INSERT ... RETURNING produced no row")
        return Resource.model_validate(row)

    @retry_idempotent
    async def find_by_url(
        self, url: str, conn: Optional[AsyncConnection] = None
    ) -> Optional[Resource]:
        query = f"SELECT {RESOURCE_COLUMNS} FROM resources WHERE url = %s;"
        async with translate_db_errors("find_by_url"):
            async with self._connection(conn) as c:
                async with c.cursor(row_factory=dict_row) as cur:
                    await cur.execute(query, (url,))
                    row = await cur.fetchone()
        return Resource.model_validate(row) if row else None

    @retry_idempotent
    async def find_by_id(
        self,
        resource_id: UUID,
        conn: Optional[AsyncConnection] = None,
        for_update: bool = False,
    ) -> Optional[Resource]:
        """Fetch one resource; `for_update` locks the row until the transaction ends."""
        query = f"SELECT {RESOURCE_COLUMNS} FROM resources WHERE id = %s"
        if for_update:
            query += " FOR UPDATE"
        async with translate_db_errors("find_by_id"):
            async with self._connection(conn) as c:
                async with c.cursor(row_factory=dict_row) as cur:
                    await cur.execute(query, (resource_id,))
                    row = await cur.fetchone()
        return Resource.model_validate(row) if row else None

    @retry_idempotent
    async def list(
        self, resource_filter: ResourceFilter, conn: Optional[AsyncConnection] = None
    ) -> List[Resource]:
        """Drafts only or published only, oldest accession first."""
        query = f"""
            SELECT {RESOURCE_COLUMNS}
            FROM resources
            WHERE draft = %s
            ORDER BY accession ASC, id ASC;
        """
        async with translate_db_errors("list"):
            async with self._connection(conn) as c:
                async with c.cursor(row_factory=dict_row) as cur:
                    await cur.execute(query, (resource_filter.drafts,))
                    rows = await cur.fetchall()
        self.logger.debug(
            f"[list] Fetched {len(rows)} resources (drafts={resource_filter.drafts})"
        )
        return [Resource.model_validate(row) for row in rows]

    async def update(
        self,
        resource_id: UUID,
        patch: PublishPatch,
        conn: Optional[AsyncConnection] = None,
    ) -> Optional[Resource]:
        """
        Apply the publish transition.

        Only rows still in draft are touched; returns None when the id is
        unknown or the resource is already published.
        """
        query = f"""
            UPDATE resources
            SET draft = %(draft)s, publication = %(publication)s
            WHERE id = %(id)s AND draft = TRUE
            RETURNING {RESOURCE_COLUMNS};
        """
        params = {"id": resource_id, **patch.model_dump()}
        async with translate_db_errors("update"):
            async with self._connection(conn) as c:
                async with c.cursor(row_factory=dict_row) as cur:
                    await cur.execute(query, params)
                    row = await cur.fetchone()
        return Resource.model_validate(row) if row else None
