"""Helper functions for the OpenAPI builder."""
from typing import Any, Dict


def schema_minimal(id_type: str = "integer") -> Dict[str, Any]:
    return {"type": "object", "properties": {"id": {"type": id_type}}, "required": ["id"]}


def caching_headers() -> Dict[str, Any]:
    return {
        "ETag": {"schema": {"type": "string"}},
        "Last-Modified": {"schema": {"type": "string"}},
        "X-Last-Modified-ISO": {"schema": {"type": "string"}},
    }


def path_param(name: str, kind: str = "integer") -> Dict[str, Any]:
    return {"name": name, "in": "path", "required": True, "schema": {"type": kind}}


def json_body(schema_ref: str = None) -> Dict[str, Any]:
    schema = {"$ref": f"#/components/schemas/{schema_ref}"} if schema_ref else {"type": "object"}
    return {"required": True, "content": {"application/json": {"schema": schema}}}


def multipart_body(*fields: str) -> Dict[str, Any]:
    props = {f: {"type": "string"} for f in fields}
    props["file"] = {"type": "string", "format": "binary"}
    return {"required": True, "content": {"multipart/form-data": {"schema": {"type": "object", "properties": props, "required": ["file"]}}}}


__all__ = ["schema_minimal", "caching_headers", "path_param", "json_body", "multipart_body"]
