from typing import Any

from shared.models.entity import EMBEDDABLE_FIELD_TYPES, EntityDefinition


def is_tenant_scoped(entity_def: EntityDefinition | None) -> bool:
    """True if the entity is stored once per tenant and shared by all units."""
    return entity_def is not None and entity_def.scope == "tenant"


def get_embeddable_fields(entity_def: EntityDefinition) -> list[str]:
    """Names of the fields contributing to the embedding, in declaration order.

    A field qualifies when it is flagged embeddable and typed string or text.
    """
    return [f.name for f in entity_def.fields if f.embeddable and f.type in EMBEDDABLE_FIELD_TYPES]


def concat_fields(doc: dict[str, Any], fields: list[str]) -> str:
    """Join the truthy values of the given fields with a single space.

    Missing, empty and None values are skipped.
    """
    values = [str(doc.get(field) or "") for field in fields]
    return " ".join(value for value in values if value)
