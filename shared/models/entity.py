"""Entity and field definitions: the configurable record types of a tenant."""

from typing import Any, Literal

from pydantic import BaseModel

FieldType = Literal[
    "string",
    "number",
    "boolean",
    "date",
    "datetime",
    "email",
    "url",
    "text",
    "json",
    "reference",
]

# only these field types contribute text to the embedding
EMBEDDABLE_FIELD_TYPES: tuple[str, ...] = ("string", "text")


class FieldDefinition(BaseModel):
    """A single declared field of an entity.

    Attributes:
        name:             Field name as stored in the primary store.
        type:             Declared field type.
        required:         Whether the field must be present on every record.
        indexed:          Include the field in the full-text collection schema.
        searchable:       Include the field and mark it as queryable.
        embeddable:       Contribute the field's text to the vector embedding.
                          Only honoured for string and text fields.
        reference_entity: Target entity name for reference fields.
    """

    name: str
    type: FieldType
    required: bool = False
    indexed: bool = False
    searchable: bool = False
    embeddable: bool = False
    reference_entity: str | None = None
    default: Any = None


class EntityDefinition(BaseModel):
    """A configurable record type (e.g. contact, product) with its field schema.

    Attributes:
        name:   Entity name, used in collection names.
        scope:  "tenant" stores the entity once per tenant, shared by all units.
                Any other value (or None) partitions it per unit.
        fields: Declared fields, in declaration order.
    """

    name: str
    scope: str | None = None
    fields: list[FieldDefinition] = []
