from pydantic import BaseModel, ConfigDict

# unit id used for tenant-scoped (cross-unit) work
GLOBAL_UNIT_ID = "global"


class TenantContext(BaseModel):
    """Isolation boundary passed through every search and indexing operation."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str
    unit_id: str

    @classmethod
    def build(cls, tenant_id: str, unit_id: str | None) -> "TenantContext":
        """Build a context, mapping a missing unit to the global sentinel."""
        return cls(tenant_id=tenant_id, unit_id=unit_id if unit_id is not None else GLOBAL_UNIT_ID)
