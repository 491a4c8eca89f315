from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest
from typer.testing import CliRunner

from cli import handbook_cli
from services.runtime import Runtime
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger

runner = CliRunner()


@pytest.fixture
def runtime(helper_config, store) -> Runtime:
    embed_client = AsyncMock()
    embed_client.do_embed.return_value = [1.0, 0.0, 0.0]
    return Runtime(config=helper_config, embed_client=embed_client, store=store)


@pytest.fixture(autouse=True)
def patched_runtime(monkeypatch, logger, env, runtime):
    # the CLI always runs with the colour-aware logger returned by setup_logging
    cli_config = HelperConfig(logger=ColorLogger(logger), env=env)

    @asynccontextmanager
    async def fake_open_runtime(config, with_translation=True):
        yield runtime

    monkeypatch.setattr(handbook_cli, "get_config", lambda: cli_config)
    monkeypatch.setattr(handbook_cli, "open_runtime", fake_open_runtime)
    return runtime


class TestImportCommands:
    def test_import_all_prints_summary(self, tmp_path):
        (tmp_path / "a.md").write_text("# A\none", encoding="utf-8")
        (tmp_path / "b.md").write_text("# B\ntwo", encoding="utf-8")

        result = runner.invoke(handbook_cli.app, ["import-all", "--path", str(tmp_path)])

        assert result.exit_code == 0
        assert "Added:   2" in result.output
        assert "Total:   2" in result.output

    def test_import_all_missing_directory_exits_1(self, tmp_path):
        result = runner.invoke(handbook_cli.app, ["import-all", "--path", str(tmp_path / "nope")])

        assert result.exit_code == 1
        assert "Handbook directory not found" in result.output

    def test_import_files_marks_each_file(self, tmp_path, store):
        page = tmp_path / "page.md"
        page.write_text("# Page\ntext", encoding="utf-8")
        files = f"{page},{page},{tmp_path / 'missing.md'}"

        result = runner.invoke(handbook_cli.app, ["import-files", "--files", files, "--root", str(tmp_path)])

        assert result.exit_code == 1
        assert f"✓ {page}" in result.output
        assert f"○ {page} (skipped - no changes)" in result.output
        assert "✗" in result.output
        assert "page.md" in store.documents

    def test_import_files_continues_after_undecodable_file(self, tmp_path, store):
        bad = tmp_path / "bad.md"
        bad.write_bytes(b"# Bad\n\xff\xfe broken")
        good = tmp_path / "good.md"
        good.write_text("# Good\ntext", encoding="utf-8")

        result = runner.invoke(handbook_cli.app, ["import-files", "--files", f"{bad},{good}", "--root", str(tmp_path)])

        assert result.exit_code == 1
        assert f"✗ {bad}: File is not valid UTF-8" in result.output
        assert f"✓ {good}" in result.output
        assert list(store.documents) == ["good.md"]

    def test_import_files_reports_unexpected_errors_per_file(self, tmp_path, store, runtime):
        first = tmp_path / "first.md"
        first.write_text("boom", encoding="utf-8")
        second = tmp_path / "second.md"
        second.write_text("fine", encoding="utf-8")

        async def embed(text: str) -> list[float]:
            if text == "boom":
                raise RuntimeError("unexpected failure")
            return [1.0, 0.0, 0.0]

        runtime.embed_client.do_embed.side_effect = embed

        result = runner.invoke(handbook_cli.app, ["import-files", "--files", f"{first},{second}", "--root", str(tmp_path)])

        assert result.exit_code == 1
        assert f"✗ {first}: unexpected failure" in result.output
        assert f"✓ {second}" in result.output
        assert list(store.documents) == ["second.md"]


class TestOtherCommands:
    def test_delete_unknown_path_exits_1(self):
        result = runner.invoke(handbook_cli.app, ["delete", "--path", "missing.md"])

        assert result.exit_code == 1

    def test_search_prints_ranked_lines(self, tmp_path):
        (tmp_path / "page.md").write_text("# Page\ntext", encoding="utf-8")
        runner.invoke(handbook_cli.app, ["import-all", "--path", str(tmp_path)])

        result = runner.invoke(handbook_cli.app, ["search", "page", "--limit", "3"])

        assert result.exit_code == 0
        assert "1. [0.0000] page.md" in result.output

    def test_search_rejects_invalid_limit(self):
        result = runner.invoke(handbook_cli.app, ["search", "page", "--limit", "0"])

        assert result.exit_code == 1

    def test_translate_all_requires_translate_engine(self, tmp_path):
        result = runner.invoke(handbook_cli.app, ["translate-all", "--source", str(tmp_path), "--target", str(tmp_path / "cs")])

        assert result.exit_code == 1
        assert "TRANSLATE_ENGINE is not configured" in result.output

    def test_init_db_creates_schema(self, store):
        result = runner.invoke(handbook_cli.app, ["init-db"])

        assert result.exit_code == 0
        assert store.schema_created
