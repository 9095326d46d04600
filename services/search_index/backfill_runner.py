"""Backfill runner entry point.

Re-indexes every stored record into Typesense and Qdrant once. Pass a tenant
id to restrict the run.

Usage:
    python -m services.search_index.backfill_runner [tenant_id]
"""

import asyncio
import sys

from services.search_index.BackfillService import BackfillService
from services.search_index.IndexingService import IndexingService
from shared.clients.ClientBundle import ClientBundle
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging


async def main(tenant_id: str | None = None) -> int:
    """Run the backfill. Returns the process exit code."""
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    clients = ClientBundle(helper_config=config)

    try:
        try:
            await clients.boot()
        except Exception as e:
            logger.error("Error booting clients: %s. Aborting.", e)
            return 1

        indexing_service = IndexingService(
            helper_config=config,
            search_client=clients.search_client,
            rag_client=clients.rag_client,
            embed_manager=clients.embed_manager,
            config_loader=clients.config_loader,
        )
        backfill = BackfillService(
            helper_config=config,
            store_client=clients.store_client,
            config_loader=clients.config_loader,
            indexing_service=indexing_service,
        )
        report = await backfill.do_backfill(tenant_id=tenant_id)
        logger.info("Backfill summary: %s", report.summary())
        return 0
    finally:
        await clients.close()


def run() -> None:
    sys.exit(asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None)))


if __name__ == "__main__":
    run()
