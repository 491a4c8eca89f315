"""Table definition of the documents store.

The vector dimension is a runtime setting, so the table is built by a factory
instead of a declarative class with a hard-coded Vector size.
"""

import sqlalchemy as sa
from pgvector.sqlalchemy import Vector

TABLE_NAME = "documents"

# HNSW build parameters for both embedding columns
HNSW_M = 16
HNSW_EF_CONSTRUCTION = 64


def build_documents_table(metadata: sa.MetaData, dimensions: int) -> sa.Table:
    return sa.Table(
        TABLE_NAME,
        metadata,
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("file_path", sa.Text, nullable=False, unique=True),
        sa.Column("title", sa.Text, nullable=True),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("content_hash", sa.String(64), nullable=False),
        sa.Column("embedding", Vector(dimensions), nullable=True),
        sa.Column("embedding_cs", Vector(dimensions), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Index(
            "ix_documents_embedding_hnsw",
            "embedding",
            postgresql_using="hnsw",
            postgresql_with={"m": HNSW_M, "ef_construction": HNSW_EF_CONSTRUCTION},
            postgresql_ops={"embedding": "vector_cosine_ops"},
        ),
        sa.Index(
            "ix_documents_embedding_cs_hnsw",
            "embedding_cs",
            postgresql_using="hnsw",
            postgresql_with={"m": HNSW_M, "ef_construction": HNSW_EF_CONSTRUCTION},
            postgresql_ops={"embedding_cs": "vector_cosine_ops"},
        ),
    )
