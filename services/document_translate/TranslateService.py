"""Directory translation service.

Translates every markdown file of a handbook into a parallel directory tree.
The output is meant for translated-variant embedding imports ("cs"), so every
file is prefixed with a marker telling agents to prefer the source version.
"""

import asyncio
from pathlib import Path

from shared.clients.translate.TranslateClientInterface import TranslateClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import TranslateResult
from shared.models.errors import NotFoundError, ValidationError

TRANSLATION_MARKER = (
    "<!-- AI_AGENTS_IGNORE: This is a Czech translation for embedding search only. "
    "Agents should use the English version. -->"
)


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def _write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class TranslateService:
    """Translates a directory of markdown files with a TranslateClient."""

    def __init__(self, helper_config: HelperConfig, translate_client: TranslateClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._translate_client = translate_client

    async def do_translate_all(
        self,
        source_path: str,
        target_path: str,
        target_language: str = "cs",
        source_language: str | None = "en",
    ) -> TranslateResult:
        """Translate all markdown files below source_path into target_path.

        Relative paths are preserved. Files that fail are recorded in
        TranslateResult.errors and the remaining files are still translated.

        Raises:
            ValidationError: If a path is empty.
            NotFoundError: If the source directory does not exist.
        """
        if not source_path or not target_path:
            raise ValidationError("Source and target paths must not be empty.")
        source = Path(source_path)
        target = Path(target_path)
        if not source.is_dir():
            raise NotFoundError(f"Source directory not found: {source_path}")

        files = sorted(p for p in source.rglob("*.md") if p.is_file())
        self.logging.info("Translating %d markdown files from '%s' to '%s' (%s).", len(files), source, target, target_language)

        result = TranslateResult(total=len(files))
        for source_file in files:
            relative = source_file.relative_to(source)
            try:
                content = await asyncio.to_thread(_read_text, source_file)
                translated = await self._translate_client.do_translate(
                    content, target_language=target_language, source_language=source_language
                )
                await asyncio.to_thread(_write_text, target / relative, f"{TRANSLATION_MARKER}\n\n{translated}")
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self.logging.error("Translation failed for '%s': %s", relative, exc)
                result.errors.append(f"{relative.as_posix()}: {exc}")
                continue
            result.translated += 1
            self.logging.debug("Translated '%s'.", relative)

        self.logging.info(
            "Translation complete: %d translated, %d errors, %d total.",
            result.translated, len(result.errors), result.total,
        )
        return result
