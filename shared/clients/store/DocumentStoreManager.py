from shared.helper.HelperConfig import HelperConfig
from shared.clients.store.DocumentStoreInterface import DocumentStoreInterface


class DocumentStoreManager:
    """
    Manager class to instantiate the document store selected by STORE_ENGINE (default "postgres").
    """

    def __init__(self, helper_config: HelperConfig, dimensions: int):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.dimensions = dimensions
        self.store = self._initialize_store()

    def _initialize_store(self) -> DocumentStoreInterface:
        """
        Imports shared.clients.store.<engine>.DocumentStore<Engine> and instantiates it.

        Raises:
            ValueError: If the engine is not supported.
        """
        engine = self.helper_config.get_string_val("STORE_ENGINE", default="postgres").strip().lower().capitalize()
        class_name = f"DocumentStore{engine}"
        try:
            module = __import__(
                f"shared.clients.store.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            store_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported store engine specified: '{engine}'. Error: {e}")

        store = store_class(helper_config=self.helper_config, dimensions=self.dimensions)
        self.logging.debug("Instantiated document store for engine: %s", engine)
        return store

    def get_store(self) -> DocumentStoreInterface:
        return self.store
