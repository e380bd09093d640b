"""PostgreSQL document store with LISTEN/NOTIFY change feed

Layout: one JSONB row per top-level document.

    hub_documents(collection, doc_id, body, updated_at)

A path "polls/abc/options/0/voteCount" addresses row (polls, abc) and the
key path options/0/voteCount inside its body. One-segment paths address a
whole collection ({doc_id: body}).

Writes below the document level run in a transaction that locks the row
(SELECT ... FOR UPDATE), applies the change with the shared path helpers
and writes the body back, so increment() is atomic across processes.
Field writes (update, increment) never insert a row: a vote that lands
after a delete fails with MissingDocumentError instead.
Every write sends pg_notify on CHANNEL; all processes LISTEN and fan out
fresh snapshots to their local subscribers.
"""

import asyncio
import copy
import json
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import asyncpg

from config import config, get_logger
from database.paths import increment_in, get_in, set_in, split_path, update_in
from database.store import DocumentStore
from exceptions import MissingDocumentError, StoreConnectionError, StoreError

logger = get_logger(__name__).bind(component="postgres_store")

CHANNEL = "hub_documents"

SCHEMA = """
CREATE TABLE IF NOT EXISTS hub_documents (
    collection TEXT NOT NULL,
    doc_id TEXT NOT NULL,
    body JSONB NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (collection, doc_id)
)
"""


class PostgresDocumentStore(DocumentStore):
    """Async PostgreSQL document store

    Usage:
        store = await PostgresDocumentStore.create()
        await store.set("polls/abc", {...})
        await store.close()
    """

    backend = "postgres"

    def __init__(self, pool: asyncpg.Pool):
        """Use PostgresDocumentStore.create() instead of direct instantiation."""
        super().__init__()
        self.pool = pool
        self._listener_conn: Optional[asyncpg.Connection] = None
        self._tasks: Set[asyncio.Task] = set()

    @classmethod
    async def create(
        cls,
        dsn: Optional[str] = None,
        min_size: int = config.POSTGRES_POOL_MIN_SIZE,
        max_size: int = config.POSTGRES_POOL_MAX_SIZE,
    ) -> "PostgresDocumentStore":
        """Create store with connection pool, schema and change listener

        Args:
            dsn: PostgreSQL connection string (defaults to config.get_postgres_dsn())
            min_size: Minimum pool size
            max_size: Maximum pool size
        """
        if dsn is None:
            dsn = config.get_postgres_dsn()

        async def init_connection(conn):
            """JSONB codec for automatic (de)serialization"""
            await conn.set_type_codec(
                "jsonb",
                encoder=json.dumps,
                decoder=json.loads,
                schema="pg_catalog",
            )

        try:
            pool = await asyncpg.create_pool(
                dsn,
                min_size=min_size,
                max_size=max_size,
                command_timeout=60,
                init=init_connection,
            )
        except (OSError, asyncpg.PostgresError) as e:
            logger.error("failed to create connection pool", error=str(e))
            raise StoreConnectionError(
                "Could not connect to PostgreSQL", {"original_error": str(e)}
            ) from e

        store = cls(pool)
        await store._ensure_schema()
        await store._start_listener()
        logger.info(
            "postgres document store ready",
            pool_size=f"{min_size}-{max_size}",
        )
        return store

    async def _ensure_schema(self) -> None:
        async with self._guard("create schema"):
            async with self.pool.acquire() as conn:
                await conn.execute(SCHEMA)

    async def _start_listener(self) -> None:
        async with self._guard("start listener"):
            self._listener_conn = await self.pool.acquire()
            await self._listener_conn.add_listener(CHANNEL, self._on_notify)

    def _on_notify(self, connection, pid, channel, payload) -> None:
        task = asyncio.get_running_loop().create_task(self._publish(payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def close(self) -> None:
        if self._listener_conn is not None:
            try:
                await self._listener_conn.remove_listener(CHANNEL, self._on_notify)
            finally:
                await self.pool.release(self._listener_conn)
                self._listener_conn = None
        await self.pool.close()
        await super().close()
        logger.info("closed postgres document store")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _guard(self, operation: str, path: Optional[str] = None):
        """Translate driver errors into StoreError"""
        try:
            yield
        except (OSError, asyncpg.exceptions.ConnectionDoesNotExistError) as e:
            logger.error("store connection failed", operation=operation, path=path, error=str(e))
            raise StoreConnectionError(
                f"Store connection failed during {operation}",
                {"path": path, "original_error": str(e)},
            ) from e
        except asyncpg.PostgresError as e:
            logger.error("store operation failed", operation=operation, path=path, error=str(e))
            raise StoreError(
                f"Store {operation} failed",
                {"path": path, "original_error": str(e)},
            ) from e

    @staticmethod
    def _locate(path: str) -> Tuple[str, Optional[str], List[str]]:
        segments = split_path(path)
        if len(segments) == 1:
            return segments[0], None, []
        return segments[0], segments[1], segments[2:]

    async def _mutate_document(
        self,
        conn: asyncpg.Connection,
        collection: str,
        doc_id: str,
        change: Callable[[Any], Tuple[Any, Any]],
        create: bool = True,
    ) -> Any:
        """Lock one document row, apply change(body) -> (new_body, result).

        Raises:
            MissingDocumentError: row is missing and create is False
        """
        row = await conn.fetchrow(
            """
            SELECT body FROM hub_documents
            WHERE collection = $1 AND doc_id = $2
            FOR UPDATE
            """,
            collection,
            doc_id,
        )
        body = row["body"] if row else None
        new_body, result = change(copy.deepcopy(body))

        if row is None and new_body is not None and not create:
            raise MissingDocumentError(
                "Document does not exist", path=f"{collection}/{doc_id}"
            )

        if new_body is None:
            if row is not None:
                await conn.execute(
                    "DELETE FROM hub_documents WHERE collection = $1 AND doc_id = $2",
                    collection,
                    doc_id,
                )
        else:
            await conn.execute(
                """
                INSERT INTO hub_documents (collection, doc_id, body, updated_at)
                VALUES ($1, $2, $3, NOW())
                ON CONFLICT (collection, doc_id) DO UPDATE SET
                    body = EXCLUDED.body,
                    updated_at = NOW()
                """,
                collection,
                doc_id,
                new_body,
            )

        await conn.execute("SELECT pg_notify($1, $2)", CHANNEL, f"{collection}/{doc_id}")
        return result

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    async def get(self, path: str) -> Any:
        collection, doc_id, rest = self._locate(path)
        async with self._guard("get", path):
            async with self.pool.acquire() as conn:
                if doc_id is None:
                    rows = await conn.fetch(
                        """
                        SELECT doc_id, body FROM hub_documents
                        WHERE collection = $1
                        ORDER BY doc_id
                        """,
                        collection,
                    )
                    return {row["doc_id"]: row["body"] for row in rows} or None

                row = await conn.fetchrow(
                    """
                    SELECT body FROM hub_documents
                    WHERE collection = $1 AND doc_id = $2
                    """,
                    collection,
                    doc_id,
                )
        if not row:
            return None
        return get_in(row["body"], rest)

    async def set(self, path: str, value: Any) -> None:
        collection, doc_id, rest = self._locate(path)
        async with self._guard("set", path):
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    if doc_id is None:
                        await self._replace_collection(conn, collection, value)
                    else:
                        await self._mutate_document(
                            conn,
                            collection,
                            doc_id,
                            lambda body: (set_in(body, rest, copy.deepcopy(value)), None),
                        )

    async def set_if_absent(self, path: str, value: Any) -> bool:
        collection, doc_id, rest = self._locate(path)
        if doc_id is None:
            raise StoreError("set_if_absent needs a document path", {"path": path})

        async with self._guard("set_if_absent", path):
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    if not rest:
                        inserted = await conn.fetchval(
                            """
                            INSERT INTO hub_documents (collection, doc_id, body, updated_at)
                            VALUES ($1, $2, $3, NOW())
                            ON CONFLICT (collection, doc_id) DO NOTHING
                            RETURNING doc_id
                            """,
                            collection,
                            doc_id,
                            value,
                        )
                        if inserted is None:
                            return False
                        await conn.execute(
                            "SELECT pg_notify($1, $2)", CHANNEL, f"{collection}/{doc_id}"
                        )
                        return True

                    def change(body):
                        if get_in(body, rest) is not None:
                            return body, False
                        return set_in(body, rest, copy.deepcopy(value)), True

                    return await self._mutate_document(conn, collection, doc_id, change)

    async def update(self, path: str, fields: Dict[str, Any]) -> None:
        if not fields:
            return
        collection, doc_id, rest = self._locate(path)
        async with self._guard("update", path):
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    if doc_id is not None:
                        await self._mutate_document(
                            conn,
                            collection,
                            doc_id,
                            lambda body: (update_in(body, rest, fields), None),
                            create=False,
                        )
                        return

                    # Collection-level merge: first key segment names the document
                    grouped: Dict[str, Dict[str, Any]] = {}
                    for key, value in fields.items():
                        key_segments = split_path(key)
                        sub_key = "/".join(key_segments[1:])
                        grouped.setdefault(key_segments[0], {})[sub_key] = value

                    for target_id, doc_fields in grouped.items():
                        # A bare document key replaces the document; None deletes it
                        replaces = "" in doc_fields
                        whole = doc_fields.pop("", None)

                        def change(body, replaces=replaces, whole=whole, doc_fields=doc_fields):
                            if replaces:
                                body = copy.deepcopy(whole)
                            return update_in(body, [], doc_fields), None

                        await self._mutate_document(
                            conn,
                            collection,
                            target_id,
                            change,
                            create=replaces and whole is not None,
                        )

    async def remove(self, path: str) -> None:
        collection, doc_id, rest = self._locate(path)
        async with self._guard("remove", path):
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    if doc_id is None:
                        await self._replace_collection(conn, collection, None)
                    elif not rest:
                        await self._mutate_document(
                            conn, collection, doc_id, lambda body: (None, None)
                        )
                    else:
                        await self._mutate_document(
                            conn,
                            collection,
                            doc_id,
                            lambda body: (set_in(body, rest, None), None),
                        )

    async def increment(
        self, path: str, deltas: Dict[str, int], floor: int = 0
    ) -> Dict[str, int]:
        if not deltas:
            return {}
        collection, doc_id, rest = self._locate(path)
        if doc_id is None:
            raise StoreError("increment needs a document path", {"path": path})

        async with self._guard("increment", path):
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    return await self._mutate_document(
                        conn,
                        collection,
                        doc_id,
                        lambda body: increment_in(body, rest, deltas, floor),
                        create=False,
                    )

    async def _replace_collection(
        self, conn: asyncpg.Connection, collection: str, value: Any
    ) -> None:
        await conn.execute("DELETE FROM hub_documents WHERE collection = $1", collection)
        if isinstance(value, dict):
            await conn.executemany(
                """
                INSERT INTO hub_documents (collection, doc_id, body, updated_at)
                VALUES ($1, $2, $3, NOW())
                """,
                [
                    (collection, doc_id, body)
                    for doc_id, body in value.items()
                    if body is not None
                ],
            )
        elif value is not None:
            raise StoreError(
                "A collection can only be set to a mapping",
                {"collection": collection},
            )
        await conn.execute("SELECT pg_notify($1, $2)", CHANNEL, collection)
