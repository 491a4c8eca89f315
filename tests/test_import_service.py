from unittest.mock import AsyncMock

import pytest

from services.document_import.ImportService import ImportService, compute_content_hash, extract_title
from shared.models.document import ImportOutcome
from shared.models.errors import NotFoundError, ProviderError, ValidationError

pytestmark = pytest.mark.anyio


@pytest.fixture
def embed_client() -> AsyncMock:
    client = AsyncMock()
    client.do_embed.return_value = [0.1, 0.2, 0.3]
    return client


@pytest.fixture
def translate_client() -> AsyncMock:
    client = AsyncMock()
    client.do_translate.return_value = "# Titulek\ntělo"
    return client


@pytest.fixture
def service(helper_config, store, embed_client, translate_client) -> ImportService:
    return ImportService(helper_config, store=store, embed_client=embed_client, translate_client=translate_client)


def write(root, relative: str, content: str):
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class TestHelpers:
    def test_extract_title_uses_first_level_one_heading(self):
        assert extract_title("intro\n## Sub\n#  Real Title  \n# Second") == "Real Title"

    def test_extract_title_without_heading(self):
        assert extract_title("no heading\n##not one") is None

    def test_content_hash_is_lowercase_sha256(self):
        assert compute_content_hash("") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        assert compute_content_hash("same") == compute_content_hash("same")
        assert compute_content_hash("a") != compute_content_hash("b")


class TestImportFile:
    async def test_new_file_is_added_with_title_and_embedding(self, service, store, embed_client, tmp_path):
        path = write(tmp_path, "guides/review.md", "# Title\nbody")

        outcome = await service.do_import_file(str(path), root_path=str(tmp_path))

        assert outcome == ImportOutcome.ADDED
        document = await store.get_by_path("guides/review.md")
        assert document.title == "Title"
        assert document.content == "# Title\nbody"
        assert document.content_hash == compute_content_hash("# Title\nbody")
        assert document.embedding == [0.1, 0.2, 0.3]
        assert document.embedding_cs is None
        embed_client.do_embed.assert_awaited_once_with("# Title\nbody")

    async def test_without_root_the_file_name_is_stored(self, service, store, tmp_path):
        path = write(tmp_path, "nested/deep/page.md", "text")

        await service.do_import_file(str(path))

        assert await store.get_by_path("page.md") is not None

    async def test_unchanged_file_is_skipped_without_embedding(self, service, store, embed_client, tmp_path):
        path = write(tmp_path, "page.md", "# Page\ncontent")
        await service.do_import_file(str(path), root_path=str(tmp_path))
        embed_client.do_embed.reset_mock()

        outcome = await service.do_import_file(str(path), root_path=str(tmp_path))

        assert outcome == ImportOutcome.SKIPPED
        embed_client.do_embed.assert_not_awaited()
        assert await store.do_count() == 1

    async def test_changed_file_is_updated_in_place(self, service, store, tmp_path):
        path = write(tmp_path, "page.md", "# Old\ncontent")
        await service.do_import_file(str(path), root_path=str(tmp_path))
        first = await store.get_by_path("page.md")

        path.write_text("# New\ncontent", encoding="utf-8")
        outcome = await service.do_import_file(str(path), root_path=str(tmp_path))

        assert outcome == ImportOutcome.UPDATED
        second = await store.get_by_path("page.md")
        assert second.id == first.id
        assert second.title == "New"
        assert second.content_hash == compute_content_hash("# New\ncontent")
        assert await store.do_count() == 1

    async def test_translated_variant_embeds_in_memory_translation(
        self, service, store, embed_client, translate_client, tmp_path
    ):
        embed_client.do_embed.side_effect = [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]]
        path = write(tmp_path, "page.md", "# Title\nbody")

        await service.do_import_file(str(path), root_path=str(tmp_path), translate_variant=True)

        translate_client.do_translate.assert_awaited_once_with("# Title\nbody", target_language="cs", source_language="en")
        document = await store.get_by_path("page.md")
        assert document.embedding == [1.0, 0.0, 0.0]
        assert document.embedding_cs == [0.0, 1.0, 0.0]
        # the translation itself is never persisted
        assert document.content == "# Title\nbody"
        assert not (tmp_path / "cs").exists()

    async def test_translated_variant_without_translate_client(self, helper_config, store, embed_client, tmp_path):
        service = ImportService(helper_config, store=store, embed_client=embed_client)
        path = write(tmp_path, "page.md", "text")

        outcome = await service.do_import_file(str(path), root_path=str(tmp_path), translate_variant=True)

        assert outcome == ImportOutcome.ADDED
        assert (await store.get_by_path("page.md")).embedding_cs is None

    async def test_czech_import_attaches_embedding_to_existing_document(self, service, store, embed_client, tmp_path):
        en_root, cs_root = tmp_path / "en", tmp_path / "cs"
        en_path = write(en_root, "guides/page.md", "# Page\nEnglish")
        cs_path = write(cs_root, "guides/page.md", "# Stránka\nČesky")
        await service.do_import_file(str(en_path), root_path=str(en_root))
        embed_client.do_embed.return_value = [0.9, 0.8, 0.7]

        outcome = await service.do_import_file(str(cs_path), language="cs", root_path=str(cs_root))

        assert outcome == ImportOutcome.UPDATED
        document = await store.get_by_path("guides/page.md")
        assert document.embedding_cs == [0.9, 0.8, 0.7]
        assert document.embedding == [0.1, 0.2, 0.3]
        assert document.content == "# Page\nEnglish"
        assert document.title == "Page"

    async def test_czech_import_requires_english_document(self, service, embed_client, tmp_path):
        path = write(tmp_path, "page.md", "Česky")

        with pytest.raises(NotFoundError):
            await service.do_import_file(str(path), language="cs", root_path=str(tmp_path))

        embed_client.do_embed.assert_not_awaited()

    async def test_missing_file(self, service, tmp_path):
        with pytest.raises(NotFoundError):
            await service.do_import_file(str(tmp_path / "missing.md"))

    async def test_undecodable_file_is_a_validation_error(self, service, store, embed_client, tmp_path):
        path = tmp_path / "latin1.md"
        path.write_bytes(b"# Caf\xe9\n")

        with pytest.raises(ValidationError, match="not valid UTF-8"):
            await service.do_import_file(str(path), root_path=str(tmp_path))

        embed_client.do_embed.assert_not_awaited()
        assert await store.do_count() == 0

    async def test_unsupported_language(self, service, tmp_path):
        path = write(tmp_path, "page.md", "text")

        with pytest.raises(ValidationError):
            await service.do_import_file(str(path), language="de")

    async def test_embedding_failure_propagates(self, service, store, embed_client, tmp_path):
        embed_client.do_embed.side_effect = ProviderError("ollama down", status_code=503)
        path = write(tmp_path, "page.md", "text")

        with pytest.raises(ProviderError):
            await service.do_import_file(str(path), root_path=str(tmp_path))

        assert await store.do_count() == 0


class TestImportAll:
    async def test_walks_markdown_files_recursively(self, service, store, tmp_path):
        write(tmp_path, "a.md", "# A\none")
        write(tmp_path, "team/b.md", "# B\ntwo")
        write(tmp_path, "team/notes.txt", "ignored")

        result = await service.do_import_all(str(tmp_path))

        assert (result.added, result.updated, result.skipped) == (2, 0, 0)
        assert result.total == 2
        assert not result.has_errors
        assert sorted(store.documents) == ["a.md", "team/b.md"]

    async def test_second_run_skips_everything(self, service, tmp_path):
        write(tmp_path, "a.md", "one")
        write(tmp_path, "b.md", "two")
        await service.do_import_all(str(tmp_path))

        result = await service.do_import_all(str(tmp_path))

        assert (result.added, result.updated, result.skipped) == (0, 0, 2)

    async def test_per_file_errors_are_collected(self, service, store, embed_client, tmp_path):
        write(tmp_path, "a.md", "good")
        write(tmp_path, "b.md", "bad")
        write(tmp_path, "c.md", "good too")

        async def embed(text: str) -> list[float]:
            if text == "bad":
                raise ProviderError("embedding failed")
            return [0.1, 0.2, 0.3]

        embed_client.do_embed.side_effect = embed

        result = await service.do_import_all(str(tmp_path))

        assert result.added == 2
        assert len(result.errors) == 1
        assert result.errors[0].endswith("b.md: embedding failed")
        assert sorted(store.documents) == ["a.md", "c.md"]

    async def test_undecodable_file_does_not_stop_the_batch(self, service, store, tmp_path):
        (tmp_path / "a.md").write_bytes(b"\xff\xfe")
        write(tmp_path, "b.md", "# B\nfine")

        result = await service.do_import_all(str(tmp_path))

        assert result.added == 1
        assert len(result.errors) == 1
        assert "a.md: File is not valid UTF-8" in result.errors[0]
        assert list(store.documents) == ["b.md"]

    async def test_czech_batch_counts_updates(self, service, tmp_path):
        write(tmp_path / "en", "page.md", "English")
        write(tmp_path / "cs", "page.md", "Česky")
        write(tmp_path / "cs", "orphan.md", "Sirotek")
        await service.do_import_all(str(tmp_path / "en"))

        result = await service.do_import_all(str(tmp_path / "cs"), language="cs")

        assert result.updated == 1
        assert len(result.errors) == 1
        assert "orphan.md" in result.errors[0]

    async def test_missing_directory(self, service, tmp_path):
        with pytest.raises(NotFoundError):
            await service.do_import_all(str(tmp_path / "nope"))

    async def test_empty_path(self, service):
        with pytest.raises(ValidationError):
            await service.do_import_all("")


class TestDelete:
    async def test_delete_existing_document(self, service, store, tmp_path):
        write(tmp_path, "page.md", "text")
        await service.do_import_all(str(tmp_path))

        assert await service.do_delete_document("page.md") is True
        assert await store.do_count() == 0

    async def test_delete_unknown_document(self, service):
        assert await service.do_delete_document("missing.md") is False

    async def test_delete_requires_path(self, service):
        with pytest.raises(ValidationError):
            await service.do_delete_document(" ")
