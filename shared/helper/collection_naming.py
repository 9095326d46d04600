"""Collection naming for the text engine, the vector engine and the primary store.

Every component that reads or writes a partition resolves its collection
name here; writer and reader must never compute it independently.
"""

import re

from shared.helper.entity_helper import is_tenant_scoped
from shared.models.entity import EntityDefinition
from shared.models.tenant import TenantContext

_FORBIDDEN_CHARS = re.compile(r"[^a-z0-9_]")


def sanitize(value: str) -> str:
    """Lowercase and replace every character outside [a-z0-9_] with an underscore."""
    return _FORBIDDEN_CHARS.sub("_", value.lower())


def collection_name(tenant_id: str, unit_id: str | None, entity: str, is_global: bool = False) -> str:
    """Name of the collection holding one (tenant, unit, entity) partition.

    Args:
        tenant_id (str): Tenant identifier.
        unit_id (str | None): Unit identifier. None means tenant-wide.
        entity (str): Entity name.
        is_global (bool): True for tenant-scoped entities, which share one collection across units.

    Returns:
        str: The sanitized collection name, e.g. "demo_sales_contact" or "demo_product".
    """
    if is_global or unit_id is None:
        return sanitize(f"{tenant_id}_{entity}")
    return sanitize(f"{tenant_id}_{unit_id}_{entity}")


def vector_collection_name(tenant_id: str, entity: str) -> str:
    """Name of the vector collection of a (tenant, entity).

    Vector collections are always tenant-wide; unit isolation happens through
    the payload filter at query time.
    """
    return sanitize(f"{tenant_id}_{entity}_vectors")


def partition_collection_name(ctx: TenantContext, entity_def: EntityDefinition) -> str:
    """Collection name for an entity within a tenant context, honouring the entity's scope."""
    return collection_name(ctx.tenant_id, ctx.unit_id, entity_def.name, is_global=is_tenant_scoped(entity_def))
