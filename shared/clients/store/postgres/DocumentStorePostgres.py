import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from shared.clients.store.DocumentStoreInterface import DocumentStoreInterface, EmbeddingColumn
from shared.clients.store.postgres.schema import build_documents_table
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.document import Document, DocumentDistance
from shared.models.errors import ProviderError


def _to_async_dsn(dsn: str) -> str:
    """Force the asyncpg driver on a plain postgres DSN."""
    for prefix in ("postgresql+asyncpg://", "postgresql://", "postgres://"):
        if dsn.startswith(prefix):
            return "postgresql+asyncpg://" + dsn[len(prefix):]
    return dsn


def _to_list(vector) -> list[float] | None:
    # pgvector returns numpy arrays
    if vector is None:
        return None
    return [float(v) for v in vector]


class DocumentStorePostgres(DocumentStoreInterface):
    def __init__(self, helper_config: HelperConfig, dimensions: int):
        super().__init__(helper_config=helper_config)
        self._dsn = _to_async_dsn(self.get_config_val("DSN", default=None))
        self._pool_size = int(self.get_config_val("POOL_SIZE", default=5, val_type="number"))
        self.dimensions = dimensions
        self._metadata = sa.MetaData()
        self._table = build_documents_table(self._metadata, dimensions)
        self._engine: AsyncEngine | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Postgres"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="DSN", val_type="string", default=None),
            EnvConfig(env_key="POOL_SIZE", val_type="number", default=5),
        ]

    def _get_engine(self) -> AsyncEngine:
        if self._engine is None:
            raise ProviderError("Document store not initialised. Call boot() before querying.")
        return self._engine

    def _row_to_document(self, row) -> Document:
        mapping = row._mapping
        return Document(
            id=mapping["id"],
            file_path=mapping["file_path"],
            title=mapping["title"],
            content=mapping["content"],
            content_hash=mapping["content_hash"],
            embedding=_to_list(mapping.get("embedding")),
            embedding_cs=_to_list(mapping.get("embedding_cs")),
            created_at=mapping.get("created_at"),
            updated_at=mapping.get("updated_at"),
        )

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        self._engine = create_async_engine(self._dsn, pool_size=self._pool_size, pool_pre_ping=True)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None

    async def do_healthcheck(self) -> bool:
        try:
            async with self._get_engine().connect() as conn:
                await conn.execute(sa.text("SELECT 1"))
            return True
        except SQLAlchemyError as exc:
            self.logging.error("Postgres healthcheck failed: %s", exc)
            return False

    async def do_create_schema(self) -> None:
        try:
            async with self._get_engine().begin() as conn:
                await conn.execute(sa.text("CREATE EXTENSION IF NOT EXISTS vector"))
                await conn.run_sync(self._metadata.create_all)
        except SQLAlchemyError as exc:
            raise ProviderError(f"Creating the documents schema failed: {exc}", category="storage") from exc
        self.logging.info("Documents schema ready (vector dimension %d).", self.dimensions)

    ##########################################
    ############### DOCUMENTS ################
    ##########################################

    async def get_by_path(self, file_path: str) -> Document | None:
        stmt = sa.select(self._table).where(self._table.c.file_path == file_path)
        try:
            async with self._get_engine().connect() as conn:
                row = (await conn.execute(stmt)).first()
        except SQLAlchemyError as exc:
            raise ProviderError(f"Loading document '{file_path}' failed: {exc}", category="storage") from exc
        return self._row_to_document(row) if row is not None else None

    async def do_add(self, document: Document) -> Document:
        stmt = (
            sa.insert(self._table)
            .values(
                file_path=document.file_path,
                title=document.title,
                content=document.content,
                content_hash=document.content_hash,
                embedding=document.embedding,
                embedding_cs=document.embedding_cs,
            )
            .returning(self._table)
        )
        try:
            async with self._get_engine().begin() as conn:
                row = (await conn.execute(stmt)).one()
        except SQLAlchemyError as exc:
            raise ProviderError(f"Inserting document '{document.file_path}' failed: {exc}", category="storage") from exc
        return self._row_to_document(row)

    async def do_update(self, document: Document) -> Document:
        stmt = (
            sa.update(self._table)
            .where(self._table.c.id == document.id)
            .values(
                title=document.title,
                content=document.content,
                content_hash=document.content_hash,
                embedding=document.embedding,
                embedding_cs=document.embedding_cs,
                updated_at=sa.func.now(),
            )
            .returning(self._table)
        )
        try:
            async with self._get_engine().begin() as conn:
                row = (await conn.execute(stmt)).first()
        except SQLAlchemyError as exc:
            raise ProviderError(f"Updating document '{document.file_path}' failed: {exc}", category="storage") from exc
        if row is None:
            raise ProviderError(f"Document id={document.id} ('{document.file_path}') vanished during update.", category="storage")
        return self._row_to_document(row)

    async def do_delete_by_path(self, file_path: str) -> bool:
        stmt = sa.delete(self._table).where(self._table.c.file_path == file_path)
        try:
            async with self._get_engine().begin() as conn:
                result = await conn.execute(stmt)
        except SQLAlchemyError as exc:
            raise ProviderError(f"Deleting document '{file_path}' failed: {exc}", category="storage") from exc
        return result.rowcount > 0

    async def do_count(self) -> int:
        stmt = sa.select(sa.func.count()).select_from(self._table)
        try:
            async with self._get_engine().connect() as conn:
                return int((await conn.execute(stmt)).scalar_one())
        except SQLAlchemyError as exc:
            raise ProviderError(f"Counting documents failed: {exc}", category="storage") from exc

    async def do_fetch_nearest(
        self,
        query_vector: list[float],
        column: EmbeddingColumn,
        limit: int,
    ) -> list[DocumentDistance]:
        vector_column = self._table.c.embedding if column == "primary" else self._table.c.embedding_cs
        distance = vector_column.cosine_distance(query_vector).label("distance")
        stmt = (
            sa.select(
                self._table.c.id,
                self._table.c.file_path,
                self._table.c.title,
                self._table.c.content,
                self._table.c.content_hash,
                self._table.c.created_at,
                self._table.c.updated_at,
                distance,
            )
            .where(vector_column.isnot(None))
            .order_by(distance)
            .limit(limit)
        )
        try:
            async with self._get_engine().connect() as conn:
                rows = (await conn.execute(stmt)).all()
        except SQLAlchemyError as exc:
            raise ProviderError(f"Nearest-neighbour query on {column} embeddings failed: {exc}", category="storage") from exc
        return [
            DocumentDistance(document=self._row_to_document(row), distance=float(row._mapping["distance"]))
            for row in rows
        ]
