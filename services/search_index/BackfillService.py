"""Backfill service.

Re-indexes every existing record of every configured partition once. It is
the reconciliation entry point for drift between the primary store and the
two engines.
"""

from services.search_index.IndexingService import IndexingService
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.config.ConfigLoaderInterface import ConfigLoaderInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.collection_naming import partition_collection_name
from shared.helper.document_projector import INTERNAL_ID_FIELD
from shared.helper.entity_helper import is_tenant_scoped
from shared.models.entity import EntityDefinition
from shared.models.indexing import BackfillEntityReport, BackfillReport
from shared.models.tenant import TenantContext


class BackfillService:
    """Walks tenants, units and entities and dual-writes every stored record."""

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
        self._batch_size = int(helper_config.get_number_val("BACKFILL_BATCH_SIZE", default=100))

    async def do_backfill(self, tenant_id: str | None = None) -> BackfillReport:
        """Backfill all tenants, or only the given one.

        Per-record failures are counted and never abort the run. A partition
        whose schema setup fails is logged and skipped.

        Args:
            tenant_id (str | None): Restrict the run to one tenant.

        Returns:
            BackfillReport: Per-partition counts.
        """
        self.logging.info("Starting backfill...")
        report = BackfillReport()
        seen: set[str] = set()

        tenants = await self._config_loader.get_tenants()
        for tenant in tenants:
            if tenant_id and tenant.tenant_id != tenant_id:
                continue
            try:
                units = await self._config_loader.get_units(tenant.tenant_id)
                entities = await self._config_loader.get_entities(tenant.tenant_id)
            except Exception as e:
                self.logging.error("Skipping backfill of tenant '%s', loading its configuration failed: %s", tenant.tenant_id, e)
                report.failed_tenants.append(tenant.tenant_id)
                continue
            self.logging.info("Tenant '%s': %d unit(s).", tenant.tenant_id, len(units))

            for unit in units:
                for entity_def in entities:
                    ctx = TenantContext.build(tenant.tenant_id, None if is_tenant_scoped(entity_def) else unit.unit_id)
                    collection = partition_collection_name(ctx, entity_def)
                    # tenant-scoped collections are shared by all units
                    if collection in seen:
                        continue
                    seen.add(collection)
                    report.partitions.append(await self.do_backfill_partition(ctx, entity_def))

        self.logging.info(
            "Backfill complete: %d indexed, %d failed.",
            report.total_indexed,
            report.total_failed,
            color="green",
        )
        return report

    async def do_backfill_partition(self, ctx: TenantContext, entity_def: EntityDefinition) -> BackfillEntityReport:
        collection = partition_collection_name(ctx, entity_def)
        result = BackfillEntityReport(
            tenant_id=ctx.tenant_id,
            unit_id=ctx.unit_id,
            entity=entity_def.name,
            collection=collection,
        )

        try:
            await self._indexing.ensure_partition(ctx, entity_def)
        except Exception as e:
            self.logging.error("Skipping backfill of '%s', schema setup failed: %s", collection, e)
            result.skipped = True
            result.error = str(e)
            return result

        async for doc in self._store.iter_documents(collection, batch_size=self._batch_size):
            doc_id = str(doc.get(INTERNAL_ID_FIELD))
            try:
                await self._indexing.index_document(ctx, entity_def, doc, doc_id=doc_id)
                result.indexed += 1
            except Exception as e:
                result.failed += 1
                self.logging.error("Failed to index %s/%s: %s", entity_def.name, doc_id, e)

        self.logging.info("  %s: %d indexed, %d failed.", collection, result.indexed, result.failed)
        return result
