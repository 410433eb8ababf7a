"""Centralized constants for the OpenAPI spec builder.

Kept apart from `openapi.py` so the builder stays short; ordering here
is the ordering of the generated document.
"""
from typing import Dict, List, Tuple

# Back-office entity registry:
# (SchemaName, collection path, id param or None, id type, read permission, sort param or None)
ENTITIES: List[Tuple[str, str, object, str, str, object]] = [
    ("Item", "/admin/items", "article_id", "string", "ITEM.READ", "SortItemsParam"),
    ("Category", "/admin/categories", "slug", "string", "CAT.READ", None),
    ("Subcategory", "/admin/subcategories", "slug", "string", "CAT.READ", None),
    ("Brand", "/admin/brands", "alias", "string", "CAT.READ", None),
    ("Warehouse", "/admin/warehouses", "warehouse_id", "integer", "WH.READ", None),
    ("WarehouseCountry", "/admin/warehouse-countries", "slug", "string", "WH.READ", None),
    ("Order", "/admin/orders", "order_id", "integer", "ORDER.READ", "SortOrdersParam"),
    ("Payment", "/admin/payments", "payment_id", "integer", "PAY.READ", None),
    ("UploadedImage", "/admin/uploads", "image_id", "integer", "UPLOAD.READ", None),
    ("User", "/admin/users", "user_id", "integer", "ADMIN.USER.MANAGE", None),
    ("Page", "/admin/pages", "page_id", "integer", "CONTENT.READ", None),
    ("Banner", "/admin/banners", "banner_id", "integer", "CONTENT.READ", None),
    ("DiscountLevel", "/admin/discount-levels", "level_id", "integer", "DISC.READ", None),
]

# Write endpoints per entity: method, suffix appended to the collection or
# single-resource path ("" = the path itself), summary, permission.
ACTION_REGISTRY: Dict[str, List[Dict[str, str]]] = {
    "Item": [
        {"method": "post", "on": "collection", "suffix": "", "summary": "Create item with details and prices", "permission": "ITEM.CREATE"},
        {"method": "put", "on": "single", "suffix": "", "summary": "Update item", "permission": "ITEM.MANAGE"},
        {"method": "delete", "on": "single", "suffix": "", "summary": "Delete item", "permission": "ITEM.DELETE"},
        {"method": "post", "on": "single", "suffix": "/set-visible", "summary": "Toggle item visibility", "permission": "ITEM.MANAGE"},
        {"method": "get", "on": "single", "suffix": "/price-history", "summary": "Archived prices", "permission": "ITEM.READ"},
        {"method": "post", "on": "collection", "suffix": "/batch-delete", "summary": "Delete several items", "permission": "ITEM.DELETE"},
        {"method": "post", "on": "collection", "suffix": "/batch-update", "summary": "Update visibility, category or brand of several items", "permission": "ITEM.MANAGE"},
        {"method": "post", "on": "collection", "suffix": "/bulk-update-prices", "summary": "Reconcile warehouse prices", "permission": "ITEM.BULK"},
        {"method": "post", "on": "collection", "suffix": "/bulk-upload", "summary": "Import a CSV, XLSX or JSON catalog file", "permission": "ITEM.BULK"},
        {"method": "get", "on": "collection", "suffix": "/export", "summary": "Export items as CSV", "permission": "ITEM.EXPORT"},
    ],
    "Category": [
        {"method": "post", "on": "collection", "suffix": "", "summary": "Create category", "permission": "CAT.MANAGE"},
        {"method": "put", "on": "single", "suffix": "", "summary": "Update category", "permission": "CAT.MANAGE"},
        {"method": "delete", "on": "single", "suffix": "", "summary": "Delete category", "permission": "CAT.MANAGE"},
    ],
    "Subcategory": [
        {"method": "post", "on": "collection", "suffix": "", "summary": "Create subcategory", "permission": "CAT.MANAGE"},
        {"method": "put", "on": "single", "suffix": "", "summary": "Update subcategory", "permission": "CAT.MANAGE"},
        {"method": "delete", "on": "single", "suffix": "", "summary": "Delete subcategory", "permission": "CAT.MANAGE"},
    ],
    "Brand": [
        {"method": "post", "on": "collection", "suffix": "", "summary": "Create brand", "permission": "CAT.MANAGE"},
        {"method": "put", "on": "single", "suffix": "", "summary": "Update brand", "permission": "CAT.MANAGE"},
        {"method": "delete", "on": "single", "suffix": "", "summary": "Delete brand", "permission": "CAT.MANAGE"},
    ],
    "Warehouse": [
        {"method": "post", "on": "collection", "suffix": "", "summary": "Create warehouse", "permission": "WH.MANAGE"},
        {"method": "put", "on": "single", "suffix": "", "summary": "Update warehouse", "permission": "WH.MANAGE"},
        {"method": "delete", "on": "single", "suffix": "", "summary": "Delete warehouse", "permission": "WH.MANAGE"},
        {"method": "get", "on": "single", "suffix": "/stock", "summary": "Warehouse stock", "permission": "WH.READ"},
    ],
    "WarehouseCountry": [
        {"method": "post", "on": "collection", "suffix": "", "summary": "Create warehouse country", "permission": "WH.MANAGE"},
        {"method": "put", "on": "single", "suffix": "", "summary": "Update warehouse country", "permission": "WH.MANAGE"},
        {"method": "delete", "on": "single", "suffix": "", "summary": "Delete warehouse country", "permission": "WH.MANAGE"},
    ],
    "Order": [
        {"method": "patch", "on": "single", "suffix": "/status", "summary": "Move order along its lifecycle", "permission": "ORDER.MANAGE"},
    ],
    "Payment": [
        {"method": "patch", "on": "single", "suffix": "/status", "summary": "Record payment outcome", "permission": "PAY.MANAGE"},
        {"method": "post", "on": "single", "suffix": "/refund", "summary": "Refund payment", "permission": "PAY.REFUND"},
    ],
    "User": [
        {"method": "put", "on": "single", "suffix": "/role", "summary": "Change user role", "permission": "ADMIN.USER.MANAGE"},
        {"method": "put", "on": "single", "suffix": "/discount-level", "summary": "Assign or clear discount level", "permission": "ADMIN.USER.MANAGE"},
    ],
    "Page": [
        {"method": "post", "on": "collection", "suffix": "", "summary": "Create page for one locale", "permission": "CONTENT.MANAGE"},
        {"method": "put", "on": "single", "suffix": "", "summary": "Update page title, content or publication", "permission": "CONTENT.MANAGE"},
        {"method": "delete", "on": "single", "suffix": "", "summary": "Delete page", "permission": "CONTENT.MANAGE"},
    ],
    "Banner": [
        {"method": "post", "on": "collection", "suffix": "", "summary": "Create banner", "permission": "CONTENT.MANAGE"},
        {"method": "put", "on": "single", "suffix": "", "summary": "Update banner", "permission": "CONTENT.MANAGE"},
        {"method": "delete", "on": "single", "suffix": "", "summary": "Delete banner", "permission": "CONTENT.MANAGE"},
    ],
    "DiscountLevel": [
        {"method": "post", "on": "collection", "suffix": "", "summary": "Create discount level", "permission": "DISC.MANAGE"},
        {"method": "put", "on": "single", "suffix": "", "summary": "Update discount level", "permission": "DISC.MANAGE"},
        {"method": "delete", "on": "single", "suffix": "", "summary": "Delete discount level", "permission": "DISC.MANAGE"},
    ],
    "UploadedImage": [
        {"method": "post", "on": "collection", "suffix": "", "summary": "Upload image", "permission": "UPLOAD.MANAGE"},
        {"method": "delete", "on": "single", "suffix": "", "summary": "Delete image", "permission": "UPLOAD.MANAGE"},
    ],
}

# Entities whose single-resource path only carries write actions
NO_SINGLE_GET = {"WarehouseCountry", "UploadedImage", "User"}

SORT_DETAILS = {
    "SortItemsParam": "Multi-field sort (article_id,sell_counter,created_at,updated_at,id). Prefix - for desc",
    "SortOrdersParam": "Multi-field sort (created_at,status,total,id). Prefix - for desc",
    "SortPublicItemsParam": "Multi-field sort (price,popularity,created_at,article_id,id). Prefix - for desc",
}

__all__ = [
    "ENTITIES",
    "ACTION_REGISTRY",
    "SORT_DETAILS",
    "NO_SINGLE_GET",
]
