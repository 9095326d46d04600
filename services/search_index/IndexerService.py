"""Change-capture indexer.

Watches the primary-store collection of every (tenant, unit, entity)
partition and mirrors each change into the full-text and vector engines.
Tenant-scoped entities share one collection across units and are watched
once per (tenant, entity).
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum

from services.search_index.IndexingService import IndexingService
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.config.ConfigLoaderInterface import ConfigLoaderInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.collection_naming import partition_collection_name
from shared.helper.entity_helper import is_tenant_scoped
from shared.models.document import ChangeEvent
from shared.models.entity import EntityDefinition
from shared.models.tenant import TenantContext

DEFAULT_SETTLE_DELAY_MS = 100


class PartitionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    WATCHING = "watching"
    ERROR = "error"
    STOPPED = "stopped"


@dataclass
class Partition:
    ctx: TenantContext
    entity_def: EntityDefinition
    collection: str
    state: PartitionState = PartitionState.UNINITIALIZED
    task: asyncio.Task | None = field(default=None, repr=False)
    processed: int = 0
    failed: int = 0


class IndexerService:
    """Runs one change feed task per partition on the current event loop."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store_client: StoreClientInterface,
        config_loader: ConfigLoaderInterface,
        indexing_service: IndexingService,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store_client
        self._config_loader = config_loader
        self._indexing = indexing_service
        self._settle_delay = helper_config.get_number_val("INDEXER_SETTLE_DELAY_MS", default=DEFAULT_SETTLE_DELAY_MS) / 1000
        self.partitions: dict[str, Partition] = {}
        self._running = False

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def start(self) -> None:
        """Open a change feed for every configured partition.

        A partition whose setup fails is logged and left STOPPED, and a tenant whose
        units or entities cannot be loaded is skipped; the others keep running.
        """
        if self._running:
            self.logging.warning("Indexer already running.")
            return
        self._running = True
        self.logging.info("Starting indexer...")

        tenants = await self._config_loader.get_tenants()
        self.logging.info("Found %d tenant(s).", len(tenants))
        for tenant in tenants:
            try:
                units = await self._config_loader.get_units(tenant.tenant_id)
                entities = await self._config_loader.get_entities(tenant.tenant_id)
            except Exception as e:
                self.logging.error("Skipping tenant '%s', loading its configuration failed: %s", tenant.tenant_id, e)
                continue
            self.logging.info("Tenant '%s': %d unit(s), %d entities.", tenant.tenant_id, len(units), len(entities))

            for unit in units:
                for entity_def in entities:
                    ctx = TenantContext.build(tenant.tenant_id, None if is_tenant_scoped(entity_def) else unit.unit_id)
                    await self.start_partition(ctx, entity_def)

        watching = sum(1 for p in self.partitions.values() if p.state == PartitionState.WATCHING)
        self.logging.info("Indexer started, monitoring %d collection(s).", watching, color="green")

    async def start_partition(self, ctx: TenantContext, entity_def: EntityDefinition) -> Partition:
        """Ensure both engine schemas for a partition and spawn its change feed task.

        Returns the already known partition for tenant-scoped entities watched before.
        """
        collection = partition_collection_name(ctx, entity_def)
        if collection in self.partitions:
            return self.partitions[collection]

        partition = Partition(ctx=ctx, entity_def=entity_def, collection=collection)
        self.partitions[collection] = partition
        try:
            await self._indexing.ensure_partition(ctx, entity_def)
        except Exception as e:
            partition.state = PartitionState.STOPPED
            self.logging.error("Failed to set up partition '%s': %s", collection, e)
            return partition

        partition.state = PartitionState.WATCHING
        partition.task = asyncio.create_task(self._run_feed(partition), name=f"indexer:{collection}")
        self.logging.info("Monitoring '%s'.", collection)
        return partition

    async def stop(self) -> None:
        """Cancel every change feed, then close the store connection."""
        self.logging.info("Stopping indexer...")
        tasks = [p.task for p in self.partitions.values() if p.task is not None and not p.task.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        for partition in self.partitions.values():
            partition.state = PartitionState.STOPPED
            partition.task = None

        await self._store.close()
        self._running = False
        self.logging.info("Indexer stopped.")

    ##########################################
    ############### CHANGE FEED ##############
    ##########################################

    async def _run_feed(self, partition: Partition) -> None:
        try:
            async for event in self._store.watch(partition.collection):
                try:
                    await self.handle_change(partition, event)
                    partition.processed += 1
                    partition.state = PartitionState.WATCHING
                except Exception as e:
                    partition.failed += 1
                    partition.state = PartitionState.ERROR
                    self.logging.error(
                        "Failed to process %s for %s/%s: %s",
                        event.operation_type,
                        partition.collection,
                        event.doc_id,
                        e,
                    )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logging.error("Change feed for '%s' failed: %s", partition.collection, e)
        partition.state = PartitionState.STOPPED

    async def handle_change(self, partition: Partition, event: ChangeEvent) -> None:
        """Apply a single change event to both engines.

        Deletes remove the record. Inserts trust the attached document. Updates
        and replaces wait the settle delay and re-fetch the record, skipping it
        if it is gone by then.
        """
        ctx, entity_def = partition.ctx, partition.entity_def
        doc_id = event.doc_id

        if event.operation_type == "delete":
            await self._indexing.remove_document(ctx, entity_def, doc_id)
            self.logging.info("Deleted %s/%s.", entity_def.name, doc_id)
            return

        doc = event.full_document
        if event.operation_type in ("update", "replace"):
            await asyncio.sleep(self._settle_delay)
            doc = await self._store.find_by_id(partition.collection, event.raw_id)
            if doc is None:
                self.logging.warning("Document %s/%s not found after %s, skipping.", entity_def.name, doc_id, event.operation_type)
                return

        if not doc:
            self.logging.warning("No document attached to %s event for %s/%s, skipping.", event.operation_type, entity_def.name, doc_id)
            return

        await self._indexing.index_document(ctx, entity_def, doc, doc_id=doc_id)
        self.logging.info("Indexed %s/%s (%s).", entity_def.name, doc_id, event.operation_type)

    ##########################################
    ################ STATUS ##################
    ##########################################

    def get_status(self) -> dict[str, str]:
        return {name: p.state.value for name, p in self.partitions.items()}
