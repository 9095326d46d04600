"""VectorPoint model: a single point written to the vector engine."""

import uuid
from typing import Any

from pydantic import BaseModel

# payload key carrying the primary-store identifier of the point
RECORD_ID_KEY = "record_id"


def make_point_id(doc_id: str) -> str | int:
    """Map a primary-store identifier to a valid vector engine point id.

    Qdrant only accepts unsigned integers and UUIDs. Numeric identifiers and
    UUIDs are used as they are; anything else (e.g. a MongoDB ObjectId) maps
    to a deterministic UUID5, so re-indexing overwrites instead of duplicating.

    Args:
        doc_id (str): The identifier as a string.

    Returns:
        str | int: The point id.
    """
    if doc_id.isdigit():
        return int(doc_id)
    try:
        return str(uuid.UUID(doc_id))
    except ValueError:
        return str(uuid.uuid5(uuid.NAMESPACE_OID, doc_id))


class VectorPoint(BaseModel):
    """A point in a (tenant, entity) vector collection.

    Attributes:
        id:      Point id derived from the record identifier via make_point_id().
        vector:  Embedding; its length must match the collection's dimension.
        payload: Flattened record fields plus tenant_id / unit_id scoping and
                 the original record identifier under RECORD_ID_KEY.
    """

    id: str | int
    vector: list[float]
    payload: dict[str, Any]

    @classmethod
    def build(cls, doc_id: str, vector: list[float], payload: dict[str, Any]) -> "VectorPoint":
        return cls(id=make_point_id(doc_id), vector=vector, payload={**payload, RECORD_ID_KEY: doc_id})

    @staticmethod
    def record_id_of(point_id: str | int, payload: dict[str, Any]) -> str:
        """Recover the primary-store identifier of a search hit."""
        return str(payload.get(RECORD_ID_KEY, point_id))
