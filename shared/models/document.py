"""Pydantic models for primary-store records on their way into the search engines.

Hierarchy:
  ChangeEvent       : a single mutation event from the primary store's change feed.
  ProjectedDocument : one record projected into both engine write shapes.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

OperationType = Literal["insert", "update", "replace", "delete"]


class ChangeEvent(BaseModel):
    """Mutation event delivered by the primary store's change feed.

    Field names follow the MongoDB change stream document, so raw events can
    be validated directly. Unknown operation types (drop, invalidate, ...)
    fail validation and are skipped by the indexer.

    Attributes:
        operation_type: insert, update, replace or delete.
        full_document:  Post-change document, if the feed attached one.
        document_key:   Identifier of the changed record ({"_id": ...}).
        ns:             Namespace ({"db": ..., "coll": ...}).
    """

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    operation_type: OperationType = Field(alias="operationType")
    full_document: dict[str, Any] | None = Field(default=None, alias="fullDocument")
    document_key: dict[str, Any] = Field(alias="documentKey")
    ns: dict[str, Any] = {}

    @property
    def raw_id(self) -> Any:
        """The identifier as stored in the primary store (e.g. an ObjectId)."""
        return self.document_key.get("_id")

    @property
    def doc_id(self) -> str:
        """The identifier as a string, as used by both search engines."""
        return str(self.raw_id)


class ProjectedDocument(BaseModel):
    """A primary-store record projected into the text and vector write shapes.

    Attributes:
        text:   Full-text engine document: id, flattened fields, tenant_id, unit_id for unit-scoped entities.
        vector: Vector engine payload: flattened fields plus scoping, without an "id" key.
    """

    text: dict[str, Any]
    vector: dict[str, Any]
