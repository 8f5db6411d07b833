# packages/server/src/lingosync/infrastructure/persistence/repositories/_tenant_repo.py
"""租户仓库的 SQLAlchemy 实现。"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from lingosync.infrastructure.db._schema import LsTenant, utcnow
from lingosync_core.exceptions import DuplicateRecordError, TenantNotFoundError
from lingosync_core.types import Tenant

from ._base_repo import BaseRepository


def normalize_domain(shop_domain: str) -> str:
    return shop_domain.strip().lower()


class SqlAlchemyTenantRepository(BaseRepository):
    """租户仓库实现。"""

    async def _get_row(self, tenant_id: str) -> LsTenant:
        row = await self._session.get(LsTenant, tenant_id)
        if row is None:
            raise TenantNotFoundError(f"租户未找到: {tenant_id}")
        return row

    async def get(self, tenant_id: str) -> Tenant:
        return Tenant.from_orm_model(await self._get_row(tenant_id))

    async def find_by_domain(self, shop_domain: str) -> Tenant | None:
        stmt = select(LsTenant).where(
            LsTenant.shop_domain == normalize_domain(shop_domain)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return Tenant.from_orm_model(row) if row else None

    async def add(
        self,
        shop_domain: str,
        access_token: str | None = None,
        settings: dict[str, Any] | None = None,
    ) -> Tenant:
        row = LsTenant(
            shop_domain=normalize_domain(shop_domain),
            access_token=access_token,
            settings_json=dict(settings or {}),
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError as e:
            raise DuplicateRecordError(f"店铺域名已注册: {shop_domain}") from e
        return Tenant.from_orm_model(row)

    async def update_settings(self, tenant_id: str, settings: dict[str, Any]) -> Tenant:
        row = await self._get_row(tenant_id)
        # 赋新对象，确保 JSON 列被标记为已修改
        row.settings_json = dict(settings)
        row.updated_at = utcnow()
        await self._session.flush()
        return Tenant.from_orm_model(row)

    async def set_active(self, tenant_id: str, is_active: bool) -> Tenant:
        row = await self._get_row(tenant_id)
        row.is_active = is_active
        row.updated_at = utcnow()
        await self._session.flush()
        return Tenant.from_orm_model(row)

    async def list_active(self) -> list[Tenant]:
        stmt = (
            select(LsTenant)
            .where(LsTenant.is_active.is_(True))
            .order_by(LsTenant.shop_domain)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [Tenant.from_orm_model(r) for r in rows]
