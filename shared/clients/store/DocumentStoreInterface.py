from abc import ABC, abstractmethod
from typing import Any, Literal

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.document import Document, DocumentDistance

EmbeddingColumn = Literal["primary", "translated"]


class DocumentStoreInterface(ABC):
    """Persistence of documents and nearest-neighbour queries on their embeddings.

    Implementations delegate distance computation and indexing to the storage
    engine; callers only see Document and DocumentDistance models.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Validates that all required configuration values for the store are set.

        Raises:
            ValueError: If any required configuration value is missing.
        """
        for config in self._get_required_config():
            _ = self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_engine_name(self) -> str:
        """
        Returns the name of the storage engine in lowercase. E.g. "postgres"
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        pass

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Retrieves a store setting, prefixed as STORE_<ENGINE>_<KEY>.
        """
        key = f"STORE_{self.get_engine_name().upper()}_{raw_key.upper()}"
        if val_type == "number":
            return self._helper_config.get_number_val(key, default=default)
        if val_type == "bool":
            return self._helper_config.get_bool_val(key, default=default)
        return self._helper_config.get_string_val(key, default=default)

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    @abstractmethod
    async def boot(self) -> None:
        """Open the connection pool."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Dispose of the connection pool."""
        pass

    @abstractmethod
    async def do_healthcheck(self) -> bool:
        """Return True if the store is reachable."""
        pass

    @abstractmethod
    async def do_create_schema(self) -> None:
        """Create the vector extension, the documents table and its indexes if missing."""
        pass

    ##########################################
    ############### DOCUMENTS ################
    ##########################################

    @abstractmethod
    async def get_by_path(self, file_path: str) -> Document | None:
        """Return the document stored under a relative path, or None."""
        pass

    @abstractmethod
    async def do_add(self, document: Document) -> Document:
        """Insert a new document and return it with id and timestamps set."""
        pass

    @abstractmethod
    async def do_update(self, document: Document) -> Document:
        """Overwrite the mutable fields of an existing document (matched by id)."""
        pass

    @abstractmethod
    async def do_delete_by_path(self, file_path: str) -> bool:
        """Delete the document stored under a relative path. Returns whether a row existed."""
        pass

    @abstractmethod
    async def do_count(self) -> int:
        """Return the number of stored documents."""
        pass

    @abstractmethod
    async def do_fetch_nearest(
        self,
        query_vector: list[float],
        column: EmbeddingColumn,
        limit: int,
    ) -> list[DocumentDistance]:
        """Return the documents closest to a query vector on one embedding column.

        Rows whose embedding in that column is null are skipped. Results are
        ordered by ascending cosine distance.

        Args:
            query_vector (list[float]): The query embedding.
            column (EmbeddingColumn): "primary" for embedding, "translated" for embedding_cs.
            limit (int): Maximum number of candidates.
        """
        pass
