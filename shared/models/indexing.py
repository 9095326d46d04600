from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class BackfillEntityReport(BaseModel):
    """Outcome of backfilling one (tenant, unit, entity) partition.

    Attributes:
        collection: Primary-store collection that was read.
        indexed:    Records written to the engines.
        failed:     Records whose indexing raised.
        skipped:    True if the partition was not backfilled because schema setup failed.
        error:      The setup error message for skipped partitions.
    """

    tenant_id: str
    unit_id: str
    entity: str
    collection: str
    indexed: int = 0
    failed: int = 0
    skipped: bool = False
    error: str | None = None


class BackfillReport(BaseModel):
    """Per-partition counts, plus the tenants whose configuration could not be loaded."""

    partitions: list[BackfillEntityReport] = []
    failed_tenants: list[str] = []

    @property
    def total_indexed(self) -> int:
        return sum(p.indexed for p in self.partitions)

    @property
    def total_failed(self) -> int:
        return sum(p.failed for p in self.partitions)

    def summary(self) -> dict:
        return {
            "partitions": len(self.partitions),
            "skipped": sum(1 for p in self.partitions if p.skipped),
            "failed_tenants": len(self.failed_tenants),
            "indexed": self.total_indexed,
            "failed": self.total_failed,
        }


CollectionScope = Literal["global", "local", "unknown"]


class CollectionStats(BaseModel):
    """A text engine collection as listed by the engine.

    Attributes:
        created_at / updated_at: Epoch seconds, if the engine reports them.
    """

    name: str
    num_documents: int = 0
    created_at: int | None = None
    updated_at: int | None = None


class IndexedCollectionDetail(BaseModel):
    """An expected (or unexpected) collection of a tenant and whether it exists in the text engine.

    Attributes:
        scope:   "global" for tenant-scoped entities, "local" for unit-scoped ones,
                 "unknown" for existing collections no configured entity maps to.
        entity:  The entity the collection belongs to; None for unknown collections.
        indexed: True if the collection exists in the text engine.
    """

    name: str
    entity: str | None = None
    scope: CollectionScope
    unit_id: str | None = None
    indexed: bool = False
    num_documents: int = 0
    created_at: int | None = None
    updated_at: int | None = None


class ScopeMetrics(BaseModel):
    expected: int | None = None
    indexed: int = 0
    documents: int = 0

    @classmethod
    def of(cls, collections: list[IndexedCollectionDetail], with_expected: bool = True) -> "ScopeMetrics":
        return cls(
            expected=len(collections) if with_expected else None,
            indexed=sum(1 for c in collections if c.indexed),
            documents=sum(c.num_documents for c in collections),
        )


class IndexingMetricsSummary(BaseModel):
    total_collections: int
    total_documents: int
    global_: ScopeMetrics = Field(alias="global")
    local: ScopeMetrics
    unknown: ScopeMetrics

    model_config = ConfigDict(populate_by_name=True)


class IndexingMetrics(BaseModel):
    """Drift report of one tenant: expected collections against what the text engine holds.

    The counterpart of the backfill. A configured collection that is not
    indexed, or an unknown collection, points at drift.
    """

    tenant_id: str
    summary: IndexingMetricsSummary
    global_collections: list[IndexedCollectionDetail] = []
    local_collections: list[IndexedCollectionDetail] = []
    unknown_collections: list[IndexedCollectionDetail] = []
