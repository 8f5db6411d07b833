# packages/server/src/lingosync/infrastructure/persistence/settings_store.py
"""基于 `tenants.settings_json` 的租户设置存储。"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from lingosync.domain.settings import TenantSettings, merge_settings

if TYPE_CHECKING:
    from lingosync.infrastructure.uow import UowFactory

logger = structlog.get_logger(__name__)


class SqlAlchemySettingsStore:
    def __init__(self, uow_factory: "UowFactory", defaults: TenantSettings | None = None):
        self._uow_factory = uow_factory
        self._defaults = defaults or TenantSettings()

    @property
    def defaults(self) -> TenantSettings:
        return self._defaults

    async def get(self, tenant_id: str) -> TenantSettings:
        """读取租户设置并与默认值合并。租户不存在时抛出 TenantNotFoundError。"""
        async with self._uow_factory() as uow:
            tenant = await uow.tenants.get(tenant_id)
        return merge_settings(tenant.settings_json, self._defaults)

    async def update(self, tenant_id: str, changes: dict[str, Any]) -> TenantSettings:
        """合并并校验变更后整体写回；非法值抛出 ValidationError，不做任何写入。"""
        async with self._uow_factory() as uow:
            tenant = await uow.tenants.get(tenant_id)
            stored = dict(tenant.settings_json)
            stored.update(changes)
            merged = merge_settings(stored, self._defaults)
            await uow.tenants.update_settings(
                tenant_id, merged.model_dump(mode="json", by_alias=True)
            )
        logger.info("租户设置已更新", tenant_id=tenant_id, keys=sorted(changes))
        return merged
