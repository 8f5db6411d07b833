# packages/server/src/lingosync/adapters/catalog/memory.py
"""进程内目录，用于开发环境与测试。"""

from __future__ import annotations

from collections import defaultdict
from typing import Any

from lingosync_core.types import PushResult, ResourceType, Tenant


class MemoryCatalogAdapter:
    def __init__(self) -> None:
        self._resources: dict[tuple[str, ResourceType], list[dict[str, Any]]] = defaultdict(list)
        self.pushed: list[dict[str, Any]] = []
        self.failing: set[str] = set()
        self.rejected_fields: set[str] = set()

    def add_resource(
        self, shop_domain: str, resource_type: ResourceType, resource: dict[str, Any]
    ) -> None:
        item = dict(resource)
        item["id"] = str(item["id"])
        self._resources[(shop_domain, ResourceType(resource_type))].append(item)

    def fail_for(self, resource_id: str) -> None:
        """令指定资源的推送失败。"""
        self.failing.add(str(resource_id))

    def reject_field(self, field: str) -> None:
        """令平台不接受指定字段的译文。"""
        self.rejected_fields.add(field)

    async def fetch_resources(
        self, tenant: Tenant, resource_type: ResourceType, limit: int
    ) -> list[dict[str, Any]]:
        return [dict(r) for r in self._resources[(tenant.shop_domain, resource_type)][:limit]]

    async def push_translations(
        self,
        tenant: Tenant,
        resource_type: ResourceType,
        resource_id: str,
        translations: dict[str, dict[str, str]],
    ) -> PushResult:
        if resource_id in self.failing:
            return PushResult(ok=False, error=f"simulated push failure for {resource_id}")
        accepted: dict[str, dict[str, str]] = {}
        skipped: set[tuple[str, str]] = set()
        for lang, fields in translations.items():
            for field, text in fields.items():
                if field in self.rejected_fields:
                    skipped.add((lang, field))
                else:
                    accepted.setdefault(lang, {})[field] = text
        if accepted:
            self.pushed.append(
                {
                    "tenant_id": tenant.id,
                    "resource_type": resource_type.value,
                    "resource_id": resource_id,
                    "translations": accepted,
                }
            )
        return PushResult(ok=True, skipped=skipped)

    async def close(self) -> None:
        return None
