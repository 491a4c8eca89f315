from shared.helper.HelperConfig import HelperConfig
from shared.clients.translate.TranslateClientInterface import TranslateClientInterface


class TranslateClientManager:
    """
    Manager class to instantiate the optional Translate client selected by TRANSLATE_ENGINE.

    Translation is only needed for translated-variant embeddings and the bulk
    directory translation, so an unset engine is not an error: get_client()
    then returns None.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str | None:
        engine = self.helper_config.get_string_val("TRANSLATE_ENGINE", default="")
        if not engine:
            return None
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> TranslateClientInterface | None:
        """
        Imports shared.clients.translate.<engine>.TranslateClient<Engine> and instantiates it.

        Raises:
            ValueError: If the engine is not supported.
        """
        engine = self._get_engine_from_env()
        if engine is None:
            self.logging.debug("No Translate engine configured. Translation is disabled.")
            return None

        class_name = f"TranslateClient{engine}"
        try:
            module = __import__(
                f"shared.clients.translate.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported Translate engine specified: '{engine}'. Error: {e}")

        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated Translate client for engine: %s", engine)
        return client

    def get_client(self) -> TranslateClientInterface | None:
        """
        Returns the instantiated Translate client, or None if translation is disabled.
        """
        return self.client
