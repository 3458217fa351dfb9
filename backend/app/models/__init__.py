from app.models.audit_log import AuditLog
from app.models.catalog_item import CatalogItem
from app.models.item_code import ItemCode

__all__ = [
    "AuditLog",
    "CatalogItem",
    "ItemCode",
]
