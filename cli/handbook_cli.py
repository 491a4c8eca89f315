"""HandbookSearch CLI — import markdown documents, translate them and search.

Usage:
    python -m cli.handbook_cli import-all --path ~/engineering-handbook
    python -m cli.handbook_cli import-all --path ~/engineering-handbook-cs --language cs
    python -m cli.handbook_cli search "how do we review pull requests"
"""

import asyncio
from typing import Optional

import typer

from services.document_import.ImportService import ImportService
from services.document_search.SearchService import SearchService
from services.document_translate.TranslateService import TranslateService
from services.runtime import open_runtime
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.document import ImportOutcome
from shared.models.errors import HandbookSearchError, ValidationError

app = typer.Typer(help="HandbookSearch CLI - Import markdown documents into the database and search them")


def get_config() -> HelperConfig:
    return HelperConfig(logger=setup_logging())


@app.command("import-all")
def import_all(
    path: str = typer.Option(..., "--path", help="Path to the engineering handbook directory"),
    language: str = typer.Option("en", "--language", help="Language code ('en' or 'cs')"),
):
    """Import all markdown files from a handbook directory."""
    config = get_config()
    logger = config.get_logger()
    logger.info("Starting import from: %s (Language: %s)", path, language)

    async def _run():
        async with open_runtime(config, with_translation=False) as runtime:
            service = ImportService(config, store=runtime.store, embed_client=runtime.embed_client)
            return await service.do_import_all(path, language)

    try:
        result = asyncio.run(_run())
    except HandbookSearchError as exc:
        logger.error("Import failed: %s", exc, color="red")
        typer.echo(f"\n❌ Error: {exc}")
        raise typer.Exit(code=1)

    logger.info("Import finished with %d errors.", len(result.errors), color="yellow" if result.has_errors else "green")
    typer.echo("\n✅ Import completed!")
    typer.echo(f"   Added:   {result.added}")
    typer.echo(f"   Updated: {result.updated}")
    typer.echo(f"   Skipped: {result.skipped}")
    typer.echo(f"   Total:   {result.total}")
    if result.has_errors:
        typer.echo(f"\n⚠️  Errors: {len(result.errors)}")
        for error in result.errors:
            typer.echo(f"   - {error}")


@app.command("import-files")
def import_files(
    files: str = typer.Option(..., "--files", help="Comma-separated list of file paths"),
    language: str = typer.Option("en", "--language", help="Language code ('en' or 'cs')"),
    root: Optional[str] = typer.Option(None, "--root", help="Handbook root used to compute relative paths"),
    translate_cs: bool = typer.Option(False, "--translate-cs", help="Also store an embedding of an in-memory Czech translation"),
):
    """Import specific markdown files."""
    config = get_config()
    logger = config.get_logger()
    file_paths = [f.strip() for f in files.split(",") if f.strip()]
    logger.info("Starting import of %d files (Language: %s)", len(file_paths), language)

    async def _run() -> tuple[int, int, list[str]]:
        imported, skipped, errors = 0, 0, []
        async with open_runtime(config, with_translation=translate_cs) as runtime:
            service = ImportService(
                config,
                store=runtime.store,
                embed_client=runtime.embed_client,
                translate_client=runtime.translate_client,
            )
            for file_path in file_paths:
                try:
                    outcome = await service.do_import_file(
                        file_path, language=language, root_path=root, translate_variant=translate_cs
                    )
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    errors.append(f"{file_path}: {exc}")
                    typer.echo(f"✗ {file_path}: {exc}")
                    continue
                if outcome == ImportOutcome.SKIPPED:
                    skipped += 1
                    typer.echo(f"○ {file_path} (skipped - no changes)")
                else:
                    imported += 1
                    typer.echo(f"✓ {file_path}")
        return imported, skipped, errors

    imported, skipped, errors = asyncio.run(_run())
    typer.echo("\n✅ Import completed!")
    typer.echo(f"   Imported: {imported}")
    typer.echo(f"   Skipped:  {skipped}")
    typer.echo(f"   Total:    {len(file_paths)}")
    if errors:
        typer.echo(f"\n⚠️  Errors: {len(errors)}")
        raise typer.Exit(code=1)


@app.command("delete")
def delete(path: str = typer.Option(..., "--path", help="Relative path of the document to delete")):
    """Delete a document by its relative path."""
    config = get_config()

    async def _run() -> bool:
        async with open_runtime(config, with_translation=False) as runtime:
            service = ImportService(config, store=runtime.store, embed_client=runtime.embed_client)
            return await service.do_delete_document(path)

    if asyncio.run(_run()):
        typer.echo(f"🗑️  Deleted {path}")
    else:
        typer.echo(f"○ No document stored under {path}")
        raise typer.Exit(code=1)


@app.command("search")
def search(
    query: str = typer.Argument(..., help="Free-text query"),
    limit: int = typer.Option(5, "--limit", help="Maximum number of results"),
    max_distance: Optional[float] = typer.Option(None, "--max-distance", help="Only keep results with a smaller cosine distance"),
):
    """Search documents by semantic similarity."""
    config = get_config()

    async def _run():
        async with open_runtime(config, with_translation=False) as runtime:
            service = SearchService(config, store=runtime.store, embed_client=runtime.embed_client)
            return await service.do_search(query, limit=limit, max_distance=max_distance)

    try:
        results = asyncio.run(_run())
    except HandbookSearchError as exc:
        typer.echo(f"❌ Error: {exc}")
        raise typer.Exit(code=1)

    if not results:
        typer.echo("No matching documents.")
        return
    for rank, result in enumerate(results, start=1):
        typer.echo(f"{rank}. [{result.distance:.4f}] {result.file_path} — {result.title or '(untitled)'}")


@app.command("translate-all")
def translate_all(
    source: str = typer.Option(..., "--source", help="Source handbook directory"),
    target: str = typer.Option(..., "--target", help="Target directory for translated files"),
    target_lang: str = typer.Option("cs", "--target-lang", help="Target language code"),
):
    """Translate all markdown files of a handbook into a parallel directory."""
    config = get_config()

    async def _run():
        async with open_runtime(config, with_translation=True) as runtime:
            if runtime.translate_client is None:
                raise ValidationError("TRANSLATE_ENGINE is not configured.")
            service = TranslateService(config, translate_client=runtime.translate_client)
            return await service.do_translate_all(source, target, target_language=target_lang)

    try:
        result = asyncio.run(_run())
    except HandbookSearchError as exc:
        typer.echo(f"❌ Error: {exc}")
        raise typer.Exit(code=1)

    typer.echo("\n✅ Translation completed!")
    typer.echo(f"   Translated: {result.translated}")
    typer.echo(f"   Errors:     {len(result.errors)}")
    typer.echo(f"   Total:      {result.total}")
    if result.errors:
        typer.echo("\n⚠️  Errors:")
        for error in result.errors:
            typer.echo(f"   - {error}")
        raise typer.Exit(code=1)


@app.command("init-db")
def init_db():
    """Create the vector extension, the documents table and its HNSW indexes."""
    config = get_config()

    async def _run():
        async with open_runtime(config, with_translation=False) as runtime:
            await runtime.store.do_create_schema()

    asyncio.run(_run())
    typer.echo("✅ Database schema ready.")


if __name__ == "__main__":
    app()
