# ============================================================================
# POSTGRESQL REPOSITORIES
# ============================================================================
# STATUS: Infrastructure - PostgreSQL content and notification stores
# PURPOSE: Moderation state, index documents and notifications with
#          transactional state changes
# EXPORTS: PostgreSQLRepository, PostgreSQLContentStore, PostgreSQLNotificationStore
# INTERFACES: IContentStore, ITrendSource, INotificationStore
# DEPENDENCIES: psycopg (async), psycopg.sql, azure-identity (aio)
# ============================================================================
"""
PostgreSQL Repository Implementation - Direct Database Access

Architecture:
    PostgreSQLRepository (connection, token, transaction binding)
        ↓
    PostgreSQLContentStore (contents + index_documents, trend source)
    PostgreSQLNotificationStore (notifications)

Key Features:
- psycopg 3 async connections, dict rows
- SQL composition (psycopg.sql) for schema-qualified identifiers
- ``transaction()`` binds one connection to the running task through a
  ContextVar; every store call inside the block uses it, so the state
  change, index upsert and any side effect commit or roll back together
- ``get(lock=True)`` takes a row lock (SELECT ... FOR UPDATE)
- Password or managed identity (Entra token as password) authentication
"""

from contextlib import asynccontextmanager
from contextvars import ContextVar
import time
from typing import Any, AsyncIterator, List, Optional, Sequence

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from azure.identity.aio import DefaultAzureCredential

from config import DatabaseConfig
from core.models import Content, IndexDocument, ModerationState, NotificationEvent
from exceptions import DatabaseError, ResourceNotFoundError
from interfaces.repository import IContentStore, INotificationStore, ITrendSource
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "PostgreSQL")

POSTGRES_TOKEN_SCOPE = "https://ossrdbms-aad.database.windows.net/.default"
# Refresh the Entra token this long before it expires
TOKEN_REFRESH_MARGIN_SECONDS = 300

CONTENT_COLUMNS = (
    "task_id", "slug", "title", "body", "description", "tags",
    "author_id", "author_name", "created_at", "state", "rejection_reason",
)


# ============================================================================
# POSTGRESQL BASE REPOSITORY - Connection and transaction binding
# ============================================================================

class PostgreSQLRepository:
    """
    PostgreSQL base: connections, managed identity tokens, transactions.

    Each operation outside ``transaction()`` opens its own short-lived
    autocommit connection.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.schema = config.app_schema
        self._tx: ContextVar[Optional[psycopg.AsyncConnection]] = ContextVar(
            f"{type(self).__name__}_tx_{id(self)}", default=None
        )
        self._credential: Optional[DefaultAzureCredential] = None
        self._token: Optional[str] = None
        self._token_expires_on: float = 0.0

    def _table(self, name: str) -> sql.Identifier:
        return sql.Identifier(self.schema, name)

    async def _get_token(self) -> str:
        if self._token and time.time() < self._token_expires_on - TOKEN_REFRESH_MARGIN_SECONDS:
            return self._token
        if self._credential is None:
            self._credential = DefaultAzureCredential(
                managed_identity_client_id=self.config.managed_identity_client_id
            )
        logger.debug("🔑 Acquiring Azure Managed Identity token for PostgreSQL")
        try:
            access_token = await self._credential.get_token(POSTGRES_TOKEN_SCOPE)
        except Exception as e:
            logger.error(f"❌ Failed to acquire managed identity token: {e}")
            raise DatabaseError(f"Managed identity token acquisition failed: {e}") from e
        self._token = access_token.token
        self._token_expires_on = float(access_token.expires_on)
        return self._token

    async def _connect(self) -> psycopg.AsyncConnection:
        kwargs = {}
        if self.config.use_managed_identity:
            kwargs["password"] = await self._get_token()
            kwargs["sslmode"] = "require"
        try:
            return await psycopg.AsyncConnection.connect(
                self.config.connection_string,
                autocommit=True,
                row_factory=dict_row,
                **kwargs,
            )
        except psycopg.Error as e:
            logger.error(f"❌ PostgreSQL connection error: {e}", extra={'error_type': type(e).__name__})
            raise DatabaseError(f"Cannot connect to PostgreSQL at {self.config.host}: {e}") from e

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """
        Bind one connection to the current task for the duration of the block.

        Commits on normal exit, rolls back on any exception. Nested calls
        join the outer transaction.
        """
        if self._tx.get() is not None:
            yield
            return

        conn = await self._connect()
        token = self._tx.set(conn)
        try:
            async with conn.transaction():
                yield
        finally:
            self._tx.reset(token)
            await conn.close()

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[psycopg.AsyncConnection]:
        bound = self._tx.get()
        if bound is not None:
            yield bound
            return
        conn = await self._connect()
        try:
            yield conn
        finally:
            await conn.close()

    async def _execute(
        self,
        query: sql.Composable,
        params: Optional[Sequence[Any]] = None,
        fetch: Optional[str] = None,
    ) -> Any:
        """
        Run one statement on the bound (or a fresh) connection.

        Args:
            fetch: None, "one" or "all"
        """
        async with self._connection() as conn:
            try:
                async with conn.cursor() as cursor:
                    await cursor.execute(query, params)
                    if fetch == "one":
                        return await cursor.fetchone()
                    if fetch == "all":
                        return await cursor.fetchall()
                    return cursor.rowcount
            except psycopg.errors.ForeignKeyViolation as e:
                raise ResourceNotFoundError(f"Referenced row does not exist: {e.diag.message_detail or e}") from e
            except psycopg.Error as e:
                logger.error(f"❌ PostgreSQL error: {e}", extra={'error_type': type(e).__name__})
                raise DatabaseError(str(e)) from e

    async def close(self) -> None:
        if self._credential is not None:
            await self._credential.close()
            self._credential = None


# ============================================================================
# CONTENT STORE
# ============================================================================

class PostgreSQLContentStore(PostgreSQLRepository, IContentStore, ITrendSource):
    """Content rows, moderation state and index documents."""

    async def ensure_schema(self) -> None:
        """Create the schema and tables if they are missing."""
        statements = [
            sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(self.schema)),
            sql.SQL("""
                CREATE TABLE IF NOT EXISTS {contents} (
                    task_id          TEXT PRIMARY KEY,
                    slug             TEXT NOT NULL,
                    title            TEXT NOT NULL,
                    body             TEXT NOT NULL DEFAULT '',
                    description      TEXT,
                    tags             TEXT[] NOT NULL DEFAULT '{{}}',
                    author_id        BIGINT NOT NULL,
                    author_name      TEXT NOT NULL DEFAULT '',
                    created_at       TIMESTAMPTZ NOT NULL DEFAULT now(),
                    state            TEXT NOT NULL DEFAULT 'PENDING',
                    rejection_reason TEXT,
                    favorite_count   INTEGER NOT NULL DEFAULT 0,
                    updated_at       TIMESTAMPTZ NOT NULL DEFAULT now()
                )
            """).format(contents=self._table("contents")),
            sql.SQL("""
                CREATE TABLE IF NOT EXISTS {documents} (
                    id          TEXT PRIMARY KEY REFERENCES {contents} (task_id) ON DELETE CASCADE,
                    slug        TEXT NOT NULL,
                    title       TEXT NOT NULL,
                    description TEXT,
                    keywords    TEXT[] NOT NULL DEFAULT '{{}}',
                    tags        TEXT[] NOT NULL DEFAULT '{{}}',
                    author      TEXT NOT NULL DEFAULT '',
                    created_at  TIMESTAMPTZ NOT NULL,
                    embedding   DOUBLE PRECISION[] NOT NULL,
                    indexed_at  TIMESTAMPTZ NOT NULL DEFAULT now()
                )
            """).format(documents=self._table("index_documents"), contents=self._table("contents")),
        ]
        async with self.transaction():
            for statement in statements:
                await self._execute(statement)
        logger.info(f"✅ Content schema ready in {self.schema}")

    async def get(self, task_id: str, lock: bool = False) -> Optional[Content]:
        query = sql.SQL("SELECT {columns} FROM {contents} WHERE task_id = %s").format(
            columns=sql.SQL(", ").join(map(sql.Identifier, CONTENT_COLUMNS)),
            contents=self._table("contents"),
        )
        if lock:
            query = query + sql.SQL(" FOR UPDATE")
        row = await self._execute(query, (task_id,), fetch="one")
        if row is None:
            return None
        return Content(**row)

    async def set_state(self, task_id: str, state: ModerationState, reason: Optional[str] = None) -> None:
        query = sql.SQL(
            "UPDATE {contents} SET state = %s, rejection_reason = %s, updated_at = now() WHERE task_id = %s"
        ).format(contents=self._table("contents"))
        updated = await self._execute(query, (state.value, reason, task_id))
        if not updated:
            raise ResourceNotFoundError(f"Content {task_id} not found while setting state {state.value}")
        logger.debug(f"Content {task_id} -> {state.value}", extra={'task_id': task_id})

    async def set_index_document(self, task_id: str, document: IndexDocument) -> None:
        query = sql.SQL("""
            INSERT INTO {documents}
                (id, slug, title, description, keywords, tags, author, created_at, embedding)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (id) DO UPDATE SET
                slug = EXCLUDED.slug,
                title = EXCLUDED.title,
                description = EXCLUDED.description,
                keywords = EXCLUDED.keywords,
                tags = EXCLUDED.tags,
                author = EXCLUDED.author,
                created_at = EXCLUDED.created_at,
                embedding = EXCLUDED.embedding,
                indexed_at = now()
        """).format(documents=self._table("index_documents"))
        await self._execute(query, (
            task_id,
            document.slug,
            document.title,
            document.description,
            document.keywords,
            document.tags,
            document.author,
            document.created_at,
            document.embedding,
        ))
        logger.debug(f"Index document upserted for {task_id}", extra={'task_id': task_id})

    async def top_published_embeddings(self, limit: int) -> List[List[float]]:
        query = sql.SQL("""
            SELECT d.embedding
            FROM {documents} d
            JOIN {contents} c ON c.task_id = d.id
            WHERE c.state = %s
            ORDER BY c.favorite_count DESC, d.indexed_at DESC
            LIMIT %s
        """).format(documents=self._table("index_documents"), contents=self._table("contents"))
        rows = await self._execute(query, (ModerationState.PUBLISHED.value, limit), fetch="all")
        return [list(row["embedding"]) for row in rows if row["embedding"]]


# ============================================================================
# NOTIFICATION STORE
# ============================================================================

class PostgreSQLNotificationStore(PostgreSQLRepository, INotificationStore):
    """
    Unread notifications consumed from notification.queue.

    Users belong to the account service. With ``users_table`` configured the
    actor and target columns reference it, so saving an event for a deleted
    user raises ResourceNotFoundError and the consumer drops the event.
    Without it the ids are stored unchecked.
    """

    def users_identifier(self) -> Optional[sql.Identifier]:
        """The configured users table as an identifier, or None."""
        if not self.config.users_table:
            return None
        return sql.Identifier(*self.config.users_table.split(".", 1))

    def _user_references(self) -> sql.Composable:
        users = self.users_identifier()
        if users is None:
            return sql.SQL("")
        return sql.SQL(""",
                    FOREIGN KEY (actor_id) REFERENCES {users} (id) ON DELETE SET NULL,
                    FOREIGN KEY (target_user_id) REFERENCES {users} (id) ON DELETE CASCADE
        """).format(users=users)

    async def ensure_schema(self) -> None:
        statements = [
            sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(self.schema)),
            sql.SQL("""
                CREATE TABLE IF NOT EXISTS {notifications} (
                    id             BIGSERIAL PRIMARY KEY,
                    actor_id       BIGINT,
                    target_user_id BIGINT NOT NULL,
                    event_type     TEXT NOT NULL,
                    resource_id    TEXT,
                    resource_slug  TEXT,
                    payload        TEXT,
                    is_read        BOOLEAN NOT NULL DEFAULT FALSE,
                    created_at     TIMESTAMPTZ NOT NULL DEFAULT now(){references}
                )
            """).format(notifications=self._table("notifications"), references=self._user_references()),
            sql.SQL("CREATE INDEX IF NOT EXISTS {} ON {} (target_user_id, is_read)").format(
                sql.Identifier("idx_notifications_target_unread"),
                self._table("notifications"),
            ),
        ]
        async with self.transaction():
            for statement in statements:
                await self._execute(statement)
        logger.info(f"✅ Notification schema ready in {self.schema}")

    async def save(self, event: NotificationEvent) -> None:
        query = sql.SQL("""
            INSERT INTO {notifications}
                (actor_id, target_user_id, event_type, resource_id, resource_slug, payload)
            VALUES (%s, %s, %s, %s, %s, %s)
        """).format(notifications=self._table("notifications"))
        await self._execute(query, (
            event.actor_id,
            event.target_user_id,
            event.event_type.value,
            event.resource_id,
            event.resource_slug,
            event.payload,
        ))
