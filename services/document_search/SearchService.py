"""Search service — bilingual semantic search over the document store.

Embed the query once → nearest neighbours on the primary and on the
translated-variant embedding column → per-pool distance cutoff → merge by
document with the best (minimum) distance → ascending sort → top-K.
"""

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.store.DocumentStoreInterface import DocumentStoreInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import DocumentDistance
from shared.models.errors import ValidationError
from shared.models.search import SearchResult

SNIPPET_LENGTH = 200


def get_snippet(content: str, max_length: int = SNIPPET_LENGTH) -> str:
    """Return the first max_length characters of content, suffixed with "..." if truncated."""
    if not content:
        return ""
    if len(content) <= max_length:
        return content
    return content[:max_length] + "..."


def merge_candidates(
    primary: list[DocumentDistance],
    translated: list[DocumentDistance],
    limit: int,
    max_distance: float | None = None,
) -> list[DocumentDistance]:
    """Merge two candidate pools into a single ranking.

    Candidates whose distance is not strictly below max_distance are dropped
    from each pool independently. A document found in both pools keeps the
    smaller of its two distances and appears once. Equal distances keep the
    order in which the pools returned them.
    """
    best: dict[int, DocumentDistance] = {}
    for candidate in [*primary, *translated]:
        if max_distance is not None and not candidate.distance < max_distance:
            continue
        doc_id = candidate.document.id
        current = best.get(doc_id)
        if current is None or candidate.distance < current.distance:
            best[doc_id] = candidate

    ranked = sorted(best.values(), key=lambda c: c.distance)
    return ranked[:limit]


class SearchService:
    """Orchestrates query embedding, nearest-neighbour retrieval and result merging."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store: DocumentStoreInterface,
        embed_client: EmbedClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store
        self._embed = embed_client

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_search(self, query: str, limit: int = 5, max_distance: float | None = None) -> list[SearchResult]:
        """Search documents semantically similar to a free-text query.

        Both embedding columns are queried for the top `limit` candidates; a
        document in the merged top `limit` is always among the top `limit` of
        the pool that gave its best distance, so this is exact.

        Args:
            query (str): The free-text query.
            limit (int): Maximum number of results, at least 1.
            max_distance (float | None): Optional cutoff; only distances strictly below it are kept.

        Returns:
            list[SearchResult]: Ranked results, best match first.

        Raises:
            ValidationError: If the query is empty or the limit is not positive.
            ProviderError: If embedding generation or the distance query fails.
            DimensionMismatchError: If the query embedding has the wrong length.
        """
        if not query or not query.strip():
            raise ValidationError("Query must not be empty.")
        if limit <= 0:
            raise ValidationError("Limit must be greater than 0.")

        self.logging.info("Executing search — query=%r limit=%d max_distance=%s", query[:80], limit, max_distance)

        vector = await self._embed.do_embed(query)
        primary = await self._store.do_fetch_nearest(vector, column="primary", limit=limit)
        translated = await self._store.do_fetch_nearest(vector, column="translated", limit=limit)

        merged = merge_candidates(primary, translated, limit=limit, max_distance=max_distance)
        results = [
            SearchResult(
                document_id=candidate.document.id,
                file_path=candidate.document.file_path,
                title=candidate.document.title,
                content_snippet=get_snippet(candidate.document.content),
                distance=candidate.distance,
            )
            for candidate in merged
        ]

        self.logging.info(
            "Search complete — %d primary and %d translated candidates, %d results.",
            len(primary), len(translated), len(results),
        )
        return results
