"""Document import service.

Walks a handbook directory for markdown files, detects changes through a
SHA-256 fingerprint of each file, generates embeddings via an EmbedClient and
persists the documents in the document store.

Two languages are supported:
  - "en" imports the primary document (content, title, hash, embedding) and
    may attach a translated-variant embedding computed from an in-memory
    translation.
  - "cs" treats the file as an already translated rendering and only attaches
    its embedding to the existing primary document with the same relative path.
"""

import asyncio
import hashlib
import os
from pathlib import Path

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.store.DocumentStoreInterface import DocumentStoreInterface
from shared.clients.translate.TranslateClientInterface import TranslateClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document, ImportOutcome, ImportResult
from shared.models.errors import NotFoundError, ValidationError

PRIMARY_LANGUAGE = "en"
TRANSLATED_LANGUAGE = "cs"
SUPPORTED_LANGUAGES = (PRIMARY_LANGUAGE, TRANSLATED_LANGUAGE)
MARKDOWN_GLOB = "*.md"


def compute_content_hash(content: str) -> str:
    """Return the lowercase hex SHA-256 digest of the UTF-8 encoded content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def extract_title(content: str) -> str | None:
    """Return the text of the first level-1 heading ("# Title"), or None."""
    for line in content.splitlines():
        if line.startswith("# "):
            return line[2:].strip()
    return None


def _read_text(path: Path) -> str:
    # newline="" keeps line endings byte-for-byte so the hash matches the file
    with open(path, "r", encoding="utf-8", newline="") as handle:
        return handle.read()


class ImportService:
    """Imports markdown files into the document store."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store: DocumentStoreInterface,
        embed_client: EmbedClientInterface,
        translate_client: TranslateClientInterface | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store
        self._embed_client = embed_client
        self._translate_client = translate_client

    ##########################################
    ############### VALIDATION ###############
    ##########################################

    def _validate_language(self, language: str) -> str:
        language = (language or "").strip().lower()
        if language not in SUPPORTED_LANGUAGES:
            raise ValidationError(
                f"Unsupported language '{language}'. Expected one of: {', '.join(SUPPORTED_LANGUAGES)}."
            )
        return language

    def _resolve_relative_path(self, file_path: Path, root_path: str | None) -> str:
        if root_path:
            relative = os.path.relpath(file_path, root_path)
        else:
            relative = file_path.name
        # stored paths always use forward slashes
        return Path(relative).as_posix()

    ##########################################
    ############### IMPORT ALL ###############
    ##########################################

    async def do_import_all(self, root_path: str, language: str = PRIMARY_LANGUAGE) -> ImportResult:
        """Import every markdown file below a directory.

        A failure on one file is recorded in ImportResult.errors and does not
        stop the remaining files.

        Args:
            root_path (str): The handbook root directory.
            language (str): "en" for primary documents, "cs" to attach translated embeddings.

        Returns:
            ImportResult: Added / updated / skipped counts and per-file errors.

        Raises:
            ValidationError: If the root path is empty or the language is unsupported.
            NotFoundError: If the root directory does not exist.
        """
        if not root_path or not root_path.strip():
            raise ValidationError("Root path must not be empty.")
        language = self._validate_language(language)
        root = Path(root_path)
        if not root.is_dir():
            raise NotFoundError(f"Handbook directory not found: {root_path}")

        files = sorted(p for p in root.rglob(MARKDOWN_GLOB) if p.is_file())
        self.logging.info("Importing %d markdown files from '%s' (language: %s)...", len(files), root_path, language)

        result = ImportResult()
        for file_path in files:
            try:
                outcome = await self.do_import_file(str(file_path), language=language, root_path=root_path)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self.logging.error("Import failed for '%s': %s", file_path, exc)
                result.errors.append(f"{file_path}: {exc}")
                continue

            if outcome == ImportOutcome.ADDED:
                result.added += 1
            elif outcome == ImportOutcome.UPDATED:
                result.updated += 1
            else:
                result.skipped += 1

        self.logging.info(
            "Import complete for '%s': %d added, %d updated, %d skipped, %d errors.",
            root_path, result.added, result.updated, result.skipped, len(result.errors),
        )
        return result

    ##########################################
    ############## IMPORT FILE ###############
    ##########################################

    async def do_import_file(
        self,
        file_path: str,
        language: str = PRIMARY_LANGUAGE,
        root_path: str | None = None,
        translate_variant: bool = False,
    ) -> ImportOutcome:
        """Import a single markdown file.

        Args:
            file_path (str): Path of the file on disk.
            language (str): "en" for the primary document, "cs" to attach a translated embedding.
            root_path (str | None): Handbook root used to compute the stored relative path;
                the bare file name is used when omitted.
            translate_variant (bool): For "en" imports, also translate the content in memory
                and store the embedding of the translation. The translated text is discarded.

        Returns:
            ImportOutcome: ADDED, UPDATED or SKIPPED (content hash unchanged).

        Raises:
            ValidationError: If the path is empty, the language is unsupported or the file
                cannot be read as UTF-8 text.
            NotFoundError: If the file does not exist, or for "cs" if no primary document exists.
            ProviderError: If embedding, translation or storage fails.
            DimensionMismatchError: If an embedding has the wrong length.
        """
        if not file_path or not file_path.strip():
            raise ValidationError("File path must not be empty.")
        language = self._validate_language(language)
        path = Path(file_path)
        if not path.is_file():
            raise NotFoundError(f"File not found: {file_path}")

        try:
            content = await asyncio.to_thread(_read_text, path)
        except UnicodeDecodeError as exc:
            raise ValidationError(f"File is not valid UTF-8: {file_path} ({exc.reason} at byte {exc.start})") from exc
        except OSError as exc:
            raise ValidationError(f"Cannot read file {file_path}: {exc}") from exc
        content_hash = compute_content_hash(content)
        relative_path = self._resolve_relative_path(path, root_path)
        existing = await self._store.get_by_path(relative_path)

        if language == TRANSLATED_LANGUAGE:
            return await self._attach_translated_embedding(existing, relative_path, content)

        if existing is not None and existing.content_hash == content_hash:
            self.logging.debug("Skipping '%s': content unchanged.", relative_path)
            return ImportOutcome.SKIPPED

        title = extract_title(content)
        embedding = await self._embed_client.do_embed(content)
        embedding_cs = await self._embed_translated_variant(content) if translate_variant else None

        if existing is not None:
            existing.content = content
            existing.content_hash = content_hash
            existing.title = title
            existing.embedding = embedding
            existing.embedding_cs = embedding_cs
            await self._store.do_update(existing)
            self.logging.info("Updated document '%s'.", relative_path)
            return ImportOutcome.UPDATED

        await self._store.do_add(
            Document(
                file_path=relative_path,
                title=title,
                content=content,
                content_hash=content_hash,
                embedding=embedding,
                embedding_cs=embedding_cs,
            )
        )
        self.logging.info("Added document '%s'.", relative_path)
        return ImportOutcome.ADDED

    async def _attach_translated_embedding(
        self,
        existing: Document | None,
        relative_path: str,
        translated_content: str,
    ) -> ImportOutcome:
        if existing is None or existing.embedding is None:
            raise NotFoundError(
                f"Cannot import Czech embedding for '{relative_path}': English document not found. "
                "Import English documents first."
            )
        existing.embedding_cs = await self._embed_client.do_embed(translated_content)
        await self._store.do_update(existing)
        self.logging.info("Attached Czech embedding to '%s'.", relative_path)
        return ImportOutcome.UPDATED

    async def _embed_translated_variant(self, content: str) -> list[float] | None:
        if self._translate_client is None:
            self.logging.warning("Translated embedding requested but no Translate client is configured. Skipping.")
            return None
        translated = await self._translate_client.do_translate(
            content, target_language=TRANSLATED_LANGUAGE, source_language=PRIMARY_LANGUAGE
        )
        return await self._embed_client.do_embed(translated)

    ##########################################
    ################ DELETE ##################
    ##########################################

    async def do_delete_document(self, relative_path: str) -> bool:
        """Delete the document stored under an exact relative path.

        Returns:
            bool: True if a document existed and was removed.

        Raises:
            ValidationError: If the path is empty.
        """
        if not relative_path or not relative_path.strip():
            raise ValidationError("Relative path must not be empty.")
        deleted = await self._store.do_delete_by_path(relative_path)
        if deleted:
            self.logging.info("Deleted document '%s'.", relative_path)
        else:
            self.logging.info("No document stored under '%s'.", relative_path)
        return deleted
