"""Pydantic models for handbook documents and operation results.

Hierarchy:
  Document          — one imported markdown file, keyed by its relative path.
  DocumentDistance  — a document paired with its cosine distance to a query vector.
  ImportOutcome     — result of importing a single file.
  ImportResult      — aggregate counts of a directory import.
  TranslateResult   — aggregate counts of a directory translation.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class Document(BaseModel):
    """A markdown file stored with its primary and translated-variant embeddings.

    Attributes:
        id:           Identifier assigned by the store on insert, None before.
        file_path:    Relative path from the content root, unique across documents.
        title:        First level-1 heading of the content, if any.
        content:      Raw primary-language markdown.
        content_hash: Lowercase hex SHA-256 of the content, used for change detection.
        embedding:    Primary-language embedding.
        embedding_cs: Embedding of an in-memory translation of the content.
        created_at:   Set by the store on insert.
        updated_at:   Set by the store on every mutation.
    """

    id: int | None = None
    file_path: str
    title: str | None = None
    content: str
    content_hash: str
    embedding: list[float] | None = None
    embedding_cs: list[float] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DocumentDistance(BaseModel):
    """A candidate returned by a nearest-neighbour query against one embedding column."""

    document: Document
    distance: float


class ImportOutcome(str, Enum):
    ADDED = "added"
    UPDATED = "updated"
    SKIPPED = "skipped"


class ImportResult(BaseModel):
    """Statistics of a directory import.

    Errors are formatted as "{path}: {message}", one entry per failed file.
    """

    added: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.added + self.updated + self.skipped

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0


class TranslateResult(BaseModel):
    """Statistics of a directory translation."""

    translated: int = 0
    errors: list[str] = Field(default_factory=list)
    total: int = 0
