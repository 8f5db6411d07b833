from .factory import create_catalog_adapter
from .memory import MemoryCatalogAdapter
from .shopify import ShopifyCatalogAdapter

__all__ = ["MemoryCatalogAdapter", "ShopifyCatalogAdapter", "create_catalog_adapter"]
