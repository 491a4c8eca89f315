"""Client wiring shared by the CLI and the API server.

Builds the embed client, the optional translate client and the document store
from configuration, boots them, and closes them again on exit.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.store.DocumentStoreInterface import DocumentStoreInterface
from shared.clients.store.DocumentStoreManager import DocumentStoreManager
from shared.clients.translate.TranslateClientInterface import TranslateClientInterface
from shared.clients.translate.TranslateClientManager import TranslateClientManager
from shared.helper.HelperConfig import HelperConfig


@dataclass
class Runtime:
    config: HelperConfig
    embed_client: EmbedClientInterface
    store: DocumentStoreInterface
    translate_client: TranslateClientInterface | None = None


@asynccontextmanager
async def open_runtime(config: HelperConfig, with_translation: bool = True) -> AsyncIterator[Runtime]:
    """Boot all configured clients and close them when the block exits.

    Args:
        config (HelperConfig): The configuration to build the clients from.
        with_translation (bool): Also build the translate client if TRANSLATE_ENGINE is set.
    """
    logger = config.get_logger()
    embed_client = EmbedClientManager(helper_config=config).get_client()
    store = DocumentStoreManager(helper_config=config, dimensions=embed_client.get_dimensions()).get_store()
    translate_client = TranslateClientManager(helper_config=config).get_client() if with_translation else None

    try:
        await embed_client.boot()
        await store.boot()
        if translate_client is not None:
            await translate_client.boot()
        logger.debug("All clients booted.")
        yield Runtime(config=config, embed_client=embed_client, store=store, translate_client=translate_client)
    finally:
        await embed_client.close()
        await store.close()
        if translate_client is not None:
            await translate_client.close()
        logger.debug("All clients closed.")
