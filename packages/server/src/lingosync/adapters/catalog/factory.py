# packages/server/src/lingosync/adapters/catalog/factory.py
from __future__ import annotations

import structlog

from lingosync.config import LingoSyncConfig
from lingosync_core.interfaces import CatalogSyncAdapter

from .memory import MemoryCatalogAdapter
from .shopify import ShopifyCatalogAdapter

logger = structlog.get_logger(__name__)


def create_catalog_adapter(config: LingoSyncConfig) -> CatalogSyncAdapter:
    """按 `catalog.provider` 创建目录同步适配器。"""
    provider = config.catalog.provider
    logger.info("目录同步适配器已创建", provider=provider)
    if provider == "shopify":
        return ShopifyCatalogAdapter(config.shopify)
    return MemoryCatalogAdapter()
