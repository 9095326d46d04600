from typing import Any

from shared.clients.search.SearchClientInterface import SearchClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.entity_helper import is_tenant_scoped
from shared.models.config import EnvConfig
from shared.models.entity import EntityDefinition
from shared.models.indexing import CollectionStats
from shared.models.search import TextSearchQuery, TextSearchResult
from shared.models.tenant import TenantContext

# entity field type -> typesense field type; dates are stored as epoch seconds
_TYPE_MAP: dict[str, str] = {
    "string": "string",
    "email": "string",
    "url": "string",
    "text": "string",
    "number": "int32",
    "boolean": "bool",
    "date": "int64",
    "datetime": "int64",
}
_NUMERIC_TYPES = ("int32", "int64", "float")
_SORT_PREFERENCE = ("created_at", "updated_at")


def map_field_type(field_type: str) -> str:
    return _TYPE_MAP.get(field_type, "string")


def render_filter_value(value: Any) -> str:
    """Render a filter value: numbers and booleans bare, everything else backtick-quoted."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    escaped = str(value).replace("\\", "\\\\").replace("`", "\\`")
    return f"`{escaped}`"


class SearchClientTypesense(SearchClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="http://localhost:8108", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Typesense"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="http://localhost:8108"),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"X-TYPESENSE-API-KEY": self._api_key}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/health"

    def _get_endpoint_collections(self) -> str:
        return "/collections"

    def _get_endpoint_collection(self, collection: str) -> str:
        return f"/collections/{collection}"

    def _get_endpoint_documents(self, collection: str) -> str:
        return f"/collections/{collection}/documents"

    def _get_endpoint_document(self, collection: str, doc_id: str) -> str:
        return f"/collections/{collection}/documents/{doc_id}"

    def _get_endpoint_search(self, collection: str) -> str:
        return f"/collections/{collection}/documents/search"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_collection_schema(self, entity_def: EntityDefinition, name: str) -> dict:
        fields: list[dict[str, Any]] = [
            {"name": "id", "type": "string"},
            {"name": "tenant_id", "type": "string", "facet": True, "optional": True},
        ]
        if not is_tenant_scoped(entity_def):
            fields.append({"name": "unit_id", "type": "string", "facet": True, "optional": True})

        for field in entity_def.fields:
            if not (field.indexed or field.searchable):
                continue
            ts_field: dict[str, Any] = {
                "name": field.name,
                "type": map_field_type(field.type),
                "optional": not field.required,
            }
            if field.searchable:
                ts_field["index"] = True
            if ts_field["type"] == "string":
                ts_field["facet"] = True
            fields.append(ts_field)

        schema: dict[str, Any] = {"name": name, "fields": fields}
        default_sort = self._pick_default_sorting_field(fields)
        if default_sort:
            schema["default_sorting_field"] = default_sort
        return schema

    def _pick_default_sorting_field(self, fields: list[dict[str, Any]]) -> str | None:
        # typesense requires the default sorting field to be numeric and not optional
        required_numeric = [f for f in fields if f["type"] in _NUMERIC_TYPES and not f.get("optional") and f["name"] != "id"]
        for f in required_numeric:
            if f["type"] == "int64" and f["name"] in _SORT_PREFERENCE:
                return f["name"]
        return required_numeric[0]["name"] if required_numeric else None

    def get_filter(self, ctx: TenantContext, filters: dict[str, Any] | None, tenant_scoped: bool) -> str:
        parts = [f"tenant_id:={render_filter_value(ctx.tenant_id)}"]
        if not tenant_scoped:
            parts.append(f"unit_id:={render_filter_value(ctx.unit_id)}")

        for key, value in (filters or {}).items():
            if value is None:
                continue
            if isinstance(value, (list, tuple, set)):
                rendered = ",".join(render_filter_value(v) for v in value)
                parts.append(f"{key}:=[{rendered}]")
            else:
                parts.append(f"{key}:={render_filter_value(value)}")
        return " && ".join(parts)

    def get_search_params(self, ctx: TenantContext, query: TextSearchQuery, entity_def: EntityDefinition | None = None) -> dict:
        params: dict[str, Any] = {
            "q": query.q,
            "query_by": query.query_by or "*",
            "filter_by": self.get_filter(ctx, query.filters, is_tenant_scoped(entity_def)),
            "per_page": query.per_page or 10,
            "page": query.page or 1,
        }
        if query.facets:
            params["facet_by"] = ",".join(query.facets)
        return params

    def get_upsert_params(self) -> dict:
        return {"action": "upsert", "dirty_values": "coerce_or_drop"}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_search_result(self, raw_response: dict) -> TextSearchResult:
        hits = [
            hit["document"] if isinstance(hit, dict) and isinstance(hit.get("document"), dict) else hit
            for hit in raw_response.get("hits") or []
        ]
        return TextSearchResult(
            hits=hits,
            found=raw_response.get("found") or 0,
            page=raw_response.get("page") or 1,
        )

    def extract_collection_stats(self, raw_response: list) -> list[CollectionStats]:
        return [
            CollectionStats(
                name=collection["name"],
                num_documents=collection.get("num_documents") or 0,
                created_at=collection.get("created_at"),
                updated_at=collection.get("updated_at"),
            )
            for collection in raw_response or []
            if isinstance(collection, dict) and collection.get("name")
        ]
