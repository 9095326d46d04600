"""Indexer runner entry point.

Keeps Typesense and Qdrant in sync with MongoDB by watching the change feed
of every configured partition until interrupted.

Usage:
    python -m services.search_index.indexer_runner
"""

import asyncio
import signal

from services.search_index.IndexerService import IndexerService
from services.search_index.IndexingService import IndexingService
from shared.clients.ClientBundle import ClientBundle
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging


async def main() -> None:
    """Run the change-capture indexer until SIGINT or SIGTERM."""
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    clients = ClientBundle(helper_config=config)

    try:
        # engines are required, without them there is nothing to index into
        try:
            await clients.boot()
        except Exception as e:
            logger.error("Error booting clients: %s. Aborting.", e)
            return

        indexing_service = IndexingService(
            helper_config=config,
            search_client=clients.search_client,
            rag_client=clients.rag_client,
            embed_manager=clients.embed_manager,
            config_loader=clients.config_loader,
        )
        indexer = IndexerService(
            helper_config=config,
            store_client=clients.store_client,
            config_loader=clients.config_loader,
            indexing_service=indexing_service,
        )

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop_event.set)

        await indexer.start()
        await stop_event.wait()
        await indexer.stop()
    finally:
        await clients.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
