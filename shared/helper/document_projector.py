"""Projection of primary-store records into the text and vector engine write shapes."""

from datetime import date, datetime, timezone
from typing import Any

from shared.helper.entity_helper import is_tenant_scoped
from shared.models.document import ProjectedDocument
from shared.models.entity import EntityDefinition

INTERNAL_ID_FIELD = "_id"


def _to_epoch_seconds(value: Any) -> Any:
    if isinstance(value, datetime):
        # the MongoDB driver hands out naive datetimes in UTC
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    if isinstance(value, date):
        return int(datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp())
    return value


def normalize_document(raw_doc: dict[str, Any]) -> dict[str, Any]:
    """Flatten a primary-store record for indexing.

    Drops the internal identifier field and converts dates (top-level or
    inside lists) to integer epoch seconds. Everything else is kept as is,
    in the original key order.

    Args:
        raw_doc (dict[str, Any]): The record as read from the primary store.

    Returns:
        dict[str, Any]: The flattened record.
    """
    normalized: dict[str, Any] = {}
    for key, value in raw_doc.items():
        if key == INTERNAL_ID_FIELD:
            continue
        if isinstance(value, list):
            normalized[key] = [_to_epoch_seconds(item) for item in value]
        else:
            normalized[key] = _to_epoch_seconds(value)
    return normalized


def build_search_document(
    normalized_doc: dict[str, Any],
    doc_id: str,
    tenant_id: str,
    unit_id: str | None,
    entity_def: EntityDefinition,
) -> dict[str, Any]:
    """Build the full-text engine document: id first, then fields, then scoping."""
    search_doc: dict[str, Any] = {"id": doc_id, **normalized_doc, "tenant_id": tenant_id}
    if is_tenant_scoped(entity_def):
        search_doc.pop("unit_id", None)
    else:
        search_doc["unit_id"] = unit_id
    search_doc.pop(INTERNAL_ID_FIELD, None)
    return search_doc


def build_vector_payload(
    normalized_doc: dict[str, Any],
    tenant_id: str,
    unit_id: str | None,
    entity_def: EntityDefinition,
) -> dict[str, Any]:
    """Build the vector engine payload. The identifier travels as the point id, not in here."""
    payload: dict[str, Any] = {"tenant_id": tenant_id, **normalized_doc}
    if is_tenant_scoped(entity_def):
        payload.pop("unit_id", None)
    else:
        payload["unit_id"] = unit_id
    payload.pop("id", None)
    payload.pop(INTERNAL_ID_FIELD, None)
    return payload


def project(
    normalized_doc: dict[str, Any],
    doc_id: str,
    tenant_id: str,
    unit_id: str | None,
    entity_def: EntityDefinition,
) -> ProjectedDocument:
    """Project a normalized record into both engine write shapes."""
    return ProjectedDocument(
        text=build_search_document(normalized_doc, doc_id, tenant_id, unit_id, entity_def),
        vector=build_vector_payload(normalized_doc, tenant_id, unit_id, entity_def),
    )
