"""Deterministic OpenAPI spec builder.

Scope:
- Auth, public catalog, shopper orders and currency endpoints (static table)
- For each back-office entity: list + single GET/HEAD with caching headers,
  then its write endpoints from ``ACTION_REGISTRY``
- Reusable params: limit, offset, page, pageSize, per-entity sort
"""
from typing import Any, Dict, List
from .models.order import Order, Payment
from .openapi_parts.constants import ENTITIES, ACTION_REGISTRY, SORT_DETAILS, NO_SINGLE_GET
from .openapi_parts.helpers import schema_minimal, caching_headers, path_param, json_body, multipart_body

__all__ = ["build_openapi_spec"]

LOCALE = path_param("locale", "string")
OK = {"200": {"description": "OK"}}


def _public_paths() -> Dict[str, Any]:
    page_params = [
        {"$ref": "#/components/parameters/PageParam"},
        {"$ref": "#/components/parameters/PageSizeParam"},
        {"$ref": "#/components/parameters/SortPublicItemsParam"},
        {"name": "currency", "in": "query", "schema": {"type": "string", "enum": ["EUR", "PLN", "UAH"]}},
    ]
    return {
        "/auth/register": {"post": {"summary": "Register", "requestBody": json_body(), "responses": {"201": {"description": "User created, JWT issued"}, "409": {"description": "Email taken"}}}},
        "/auth/login": {"post": {"summary": "Login", "requestBody": json_body(), "responses": {"200": {"description": "JWT issued"}, "401": {"description": "Invalid credentials"}}}},
        "/auth/me": {"get": {"summary": "Current user", "responses": OK}},
        "/public/items/{locale}": {"get": {"summary": "Displayed items with resolved prices", "parameters": [LOCALE] + page_params, "responses": {"200": {"description": "OK", "headers": caching_headers()}}}},
        "/public/items/{locale}/{slug}": {"get": {"summary": "Item page with per-warehouse availability", "parameters": [LOCALE, path_param("slug", "string")], "responses": {"200": {"description": "OK"}, "404": {"$ref": "#/components/responses/NotFound"}}}},
        "/public/categories/{locale}": {"get": {"summary": "Visible categories with subcategories", "parameters": [LOCALE], "responses": OK}},
        "/public/category/{locale}/{slug}": {"get": {"summary": "Category header and its items", "parameters": [LOCALE, path_param("slug", "string")] + page_params, "responses": OK}},
        "/public/brands": {"get": {"summary": "Visible brands", "responses": OK}},
        "/public/search": {"get": {"summary": "Search items, categories and subcategories", "parameters": [{"name": "q", "in": "query", "schema": {"type": "string"}}], "responses": OK}},
        "/public/pages/{locale}/{slug}": {"get": {"summary": "Published page for one locale", "parameters": [LOCALE, path_param("slug", "string")], "responses": {"200": {"description": "OK"}, "404": {"$ref": "#/components/responses/NotFound"}}}},
        "/public/banners": {"get": {"summary": "Active banners by position, device and locale", "parameters": [{"name": n, "in": "query", "schema": {"type": "string"}} for n in ("position", "device", "locale")], "responses": {"200": {"description": "OK", "headers": caching_headers()}}}},
        "/public/uploads/{path}": {"get": {"summary": "Serve uploaded image", "parameters": [path_param("path", "string")], "responses": {"200": {"description": "Image bytes"}, "404": {"$ref": "#/components/responses/NotFound"}}}},
        "/currency-exchange": {
            "get": {"summary": "Exchange rates", "responses": OK},
            "put": {"summary": "Set exchange rate", "requestBody": json_body(), "responses": OK, "x-required-permissions": ["CUR.MANAGE"]},
        },
        "/orders/cart": {
            "get": {"summary": "Pending cart", "responses": OK, "x-required-permissions": ["ORDER.CREATE"]},
            "post": {"summary": "Add cart item", "requestBody": json_body(), "responses": {"201": {"description": "Created"}}, "x-required-permissions": ["ORDER.CREATE"]},
        },
        "/orders/cart/{cart_item_id}": {"delete": {"summary": "Remove cart item", "parameters": [path_param("cart_item_id")], "responses": OK, "x-required-permissions": ["ORDER.CREATE"]}},
        "/orders/checkout": {"post": {"summary": "Checkout", "requestBody": json_body(), "responses": {"201": {"description": "Order created"}, "400": {"$ref": "#/components/responses/BadRequest"}}, "x-required-permissions": ["ORDER.CREATE"]}},
        "/orders/price-request": {"post": {"summary": "Ask for price", "requestBody": json_body(), "responses": {"201": {"description": "Order created"}}, "x-required-permissions": ["ORDER.CREATE"]}},
        "/orders": {"get": {"summary": "My orders", "parameters": [{"$ref": "#/components/parameters/LimitParam"}, {"$ref": "#/components/parameters/OffsetParam"}], "responses": OK, "x-required-permissions": ["ORDER.READ_OWN"]}},
        "/orders/{order_id}": {"get": {"summary": "My order", "parameters": [path_param("order_id")], "responses": OK, "x-required-permissions": ["ORDER.READ_OWN"]}},
        "/admin/dashboard/stats": {"get": {"summary": "Totals and month-over-month growth", "responses": OK, "x-required-permissions": ["ADMIN.DASHBOARD.READ"]}},
        "/admin/dashboard/recent-orders": {"get": {"summary": "Five newest orders", "responses": OK, "x-required-permissions": ["ADMIN.DASHBOARD.READ"]}},
        "/admin/warehouses/{warehouse_id}/stock/{article_id}/adjust": {"put": {"summary": "Adjust stock quantity", "parameters": [path_param("warehouse_id"), path_param("article_id", "string")], "requestBody": json_body(), "responses": OK, "x-required-permissions": ["WH.MANAGE"]}},
    }


def _list_op(schema_name: str, coll: str, sort_param) -> Dict[str, Any]:
    params: List[Dict[str, Any]] = [
        {"$ref": "#/components/parameters/LimitParam"},
        {"$ref": "#/components/parameters/OffsetParam"},
    ]
    if sort_param:
        params.append({"$ref": f"#/components/parameters/{sort_param}"})
    return {
        "get": {
            "summary": f"List {coll.rsplit('/', 1)[-1].replace('-', ' ')}",
            "parameters": params,
            "responses": {
                "200": {
                    "description": "OK",
                    "headers": caching_headers(),
                    "content": {
                        "application/json": {
                            "schema": {
                                "type": "object",
                                "properties": {
                                    "data": {"type": "array", "items": {"$ref": f"#/components/schemas/{schema_name}"}},
                                    "pagination": {"$ref": "#/components/schemas/Pagination"},
                                },
                            }
                        }
                    },
                },
                "304": {"description": "Not Modified"},
                "400": {"$ref": "#/components/responses/BadRequest"},
            },
        },
        "head": {
            "summary": f"{schema_name} list validators",
            "responses": {
                "200": {"description": "Headers only", "headers": caching_headers()},
                "304": {"description": "Not Modified"},
            },
        },
    }


def _single_get(schema_name: str, id_param: str, id_type: str) -> Dict[str, Any]:
    return {
        "get": {
            "summary": f"Get {schema_name}",
            "parameters": [path_param(id_param, id_type)],
            "responses": {
                "200": {"description": "OK", "content": {"application/json": {"schema": {"$ref": f"#/components/schemas/{schema_name}"}}}},
                "404": {"$ref": "#/components/responses/NotFound"},
            },
        },
    }


def _action_op(schema_name: str, spec: Dict[str, str], id_param, id_type: str) -> Dict[str, Any]:
    op: Dict[str, Any] = {
        "summary": spec["summary"],
        "responses": {
            "200": {"description": "OK"},
            "400": {"$ref": "#/components/responses/BadRequest"},
            "404": {"$ref": "#/components/responses/NotFound"},
        },
        "x-required-permissions": [spec["permission"]],
    }
    if spec["on"] == "single":
        op["parameters"] = [path_param(id_param, id_type)]
    if spec["suffix"] == "/bulk-upload":
        op["requestBody"] = multipart_body("locale")
    elif schema_name == "UploadedImage" and spec["method"] == "post":
        op["requestBody"] = multipart_body("path", "file_name")
    elif spec["method"] in ("post", "put", "patch"):
        op["requestBody"] = json_body()
    if spec["method"] == "post" and spec["suffix"] == "" and spec["on"] == "collection":
        op["responses"]["201"] = {"description": "Created", "content": {"application/json": {"schema": {"$ref": f"#/components/schemas/{schema_name}"}}}}
        op["responses"]["409"] = {"description": "Conflict"}
    return op


def build_openapi_spec() -> Dict[str, Any]:
    schemas: Dict[str, Any] = {name: schema_minimal() for name, *_ in ENTITIES}
    schemas["Order"]["x-transitions"] = list(Order.ALL_STATUSES)
    schemas["Payment"]["x-transitions"] = list(Payment.ALL_STATUSES)

    components: Dict[str, Any] = {
        "schemas": schemas
        | {
            "Pagination": {
                "type": "object",
                "properties": {
                    "total": {"type": "integer"},
                    "limit": {"type": "integer"},
                    "offset": {"type": "integer"},
                    "returned": {"type": "integer"},
                },
                "required": ["total", "limit", "offset", "returned"],
            },
            "Error": {"type": "object", "properties": {"error": {"type": "string"}}, "required": ["error"]},
        },
        "responses": {"NotFound": {"description": "Not Found"}, "BadRequest": {"description": "Bad Request"}},
        "securitySchemes": {"BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}},
        "parameters": {
            "LimitParam": {"name": "limit", "in": "query", "schema": {"type": "integer", "default": 50}},
            "OffsetParam": {"name": "offset", "in": "query", "schema": {"type": "integer", "default": 0}},
            "PageParam": {"name": "page", "in": "query", "schema": {"type": "integer", "default": 1}},
            "PageSizeParam": {"name": "pageSize", "in": "query", "schema": {"type": "integer", "default": 24}},
        },
    }
    for pname, desc in SORT_DETAILS.items():
        components["parameters"][pname] = {"name": "sort", "in": "query", "schema": {"type": "string"}, "description": desc}

    paths: Dict[str, Any] = _public_paths()

    for schema_name, coll, id_param, id_type, read_perm, sort_param in ENTITIES:
        list_ops = _list_op(schema_name, coll, sort_param)
        for op in list_ops.values():
            op["x-required-permissions"] = [read_perm]
        paths.setdefault(coll, {}).update(list_ops)
        single_path = f"{coll}/{{{id_param}}}" if id_param else None
        if single_path and schema_name not in NO_SINGLE_GET:
            single = _single_get(schema_name, id_param, id_type)
            single["get"]["x-required-permissions"] = [read_perm]
            paths.setdefault(single_path, {}).update(single)
        for spec in ACTION_REGISTRY.get(schema_name, []):
            base = single_path if spec["on"] == "single" else coll
            paths.setdefault(f"{base}{spec['suffix']}", {})[spec["method"]] = _action_op(schema_name, spec, id_param, id_type)

    # operationIds & tags
    tag_desc: Dict[str, str] = {}
    for path, ops in paths.items():
        parts = [p for p in path.strip("/").split("/") if not p.startswith("{")]
        tag = (parts[1] if parts[0] == "admin" and len(parts) > 1 else parts[0]).replace("-", " ").capitalize()
        for method, od in ops.items():
            rid = path.strip("/").replace("/", "_").replace("{", "").replace("}", "").replace("-", "_")
            od["operationId"] = f"auto_{method}_{rid}"
            od["tags"] = [tag]
        tag_desc[tag] = f"{tag} endpoints"

    return {
        "openapi": "3.0.3",
        "info": {"title": "Storefront API", "version": "0.1.0"},
        "paths": paths,
        "components": components,
        "security": [{"BearerAuth": []}],
        "tags": [{"name": n, "description": d} for n, d in sorted(tag_desc.items())],
    }
