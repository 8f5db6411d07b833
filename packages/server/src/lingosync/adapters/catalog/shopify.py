# packages/server/src/lingosync/adapters/catalog/shopify.py
"""
Shopify Admin API 目录同步适配器（httpx 实现）。

- 拉取：REST `GET /admin/api/{version}/{resources}.json`
- 推送：GraphQL 先查询 `translatableResource` 取得内容摘要，
  再按语言调用 `translationsRegister`。
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from lingosync.config import ShopifySettings
from lingosync_core.exceptions import SyncError, ValidationError
from lingosync_core.types import PushResult, ResourceType, Tenant

logger = structlog.get_logger(__name__)

_REST_COLLECTIONS: dict[ResourceType, str] = {
    ResourceType.PRODUCT: "products",
    ResourceType.PAGE: "pages",
    ResourceType.BLOG: "blogs",
    ResourceType.COLLECTION: "custom_collections",
}

_GID_TYPES: dict[ResourceType, str] = {
    ResourceType.PRODUCT: "Product",
    ResourceType.PAGE: "Page",
    ResourceType.BLOG: "Blog",
    ResourceType.ARTICLE: "Article",
    ResourceType.COLLECTION: "Collection",
    ResourceType.THEME: "OnlineStoreThemeJsonTemplate",
}


TRANSLATABLE_CONTENT_QUERY = """
query translatableContent($resourceId: ID!) {
  translatableResource(resourceId: $resourceId) {
    resourceId
    translatableContent { key value digest locale }
  }
}
"""

TRANSLATIONS_REGISTER_MUTATION = """
mutation translationsRegister($resourceId: ID!, $translations: [TranslationInput!]!) {
  translationsRegister(resourceId: $resourceId, translations: $translations) {
    userErrors { field message }
    translations { key locale }
  }
}
"""


def to_gid(resource_type: ResourceType, resource_id: str) -> str:
    if resource_id.startswith("gid://"):
        return resource_id
    return f"gid://shopify/{_GID_TYPES[resource_type]}/{resource_id}"


class ShopifyCatalogAdapter:
    def __init__(self, settings: ShopifySettings, client: httpx.AsyncClient | None = None):
        self._settings = settings
        self._client = client or httpx.AsyncClient(timeout=settings.timeout)

    def _base_url(self, tenant: Tenant) -> str:
        return f"https://{tenant.shop_domain}/admin/api/{self._settings.api_version}"

    def _headers(self, tenant: Tenant) -> dict[str, str]:
        if not tenant.access_token:
            raise SyncError(f"租户缺少平台访问凭据: {tenant.shop_domain}")
        return {
            "X-Shopify-Access-Token": tenant.access_token,
            "Content-Type": "application/json",
        }

    async def _get(self, tenant: Tenant, path: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._client.get(
                f"{self._base_url(tenant)}/{path}",
                params=params,
                headers=self._headers(tenant),
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise SyncError(f"Shopify REST 请求失败 ({path}): {e}") from e

    async def _graphql(
        self, tenant: Tenant, query: str, variables: dict[str, Any]
    ) -> dict[str, Any]:
        try:
            response = await self._client.post(
                f"{self._base_url(tenant)}/graphql.json",
                json={"query": query, "variables": variables},
                headers=self._headers(tenant),
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            raise SyncError(f"Shopify GraphQL 请求失败: {e}") from e
        if body.get("errors"):
            raise SyncError(f"Shopify GraphQL 返回错误: {body['errors']}")
        return body.get("data") or {}

    async def fetch_resources(
        self, tenant: Tenant, resource_type: ResourceType, limit: int
    ) -> list[dict[str, Any]]:
        if resource_type is ResourceType.ARTICLE:
            return await self._fetch_articles(tenant, limit)
        collection = _REST_COLLECTIONS.get(resource_type)
        if collection is None:
            raise ValidationError(f"不支持从平台拉取该资源类型: {resource_type.value}")
        data = await self._get(tenant, f"{collection}.json", {"limit": limit})
        return [_normalize(item) for item in data.get(collection, [])][:limit]

    async def _fetch_articles(self, tenant: Tenant, limit: int) -> list[dict[str, Any]]:
        # 文章挂在博客之下
        blogs = await self._get(tenant, "blogs.json", {"limit": limit})
        articles: list[dict[str, Any]] = []
        for blog in blogs.get("blogs", []):
            if len(articles) >= limit:
                break
            data = await self._get(
                tenant,
                f"blogs/{blog['id']}/articles.json",
                {"limit": limit - len(articles)},
            )
            articles.extend(_normalize(item) for item in data.get("articles", []))
        return articles[:limit]

    async def push_translations(
        self,
        tenant: Tenant,
        resource_type: ResourceType,
        resource_id: str,
        translations: dict[str, dict[str, str]],
    ) -> PushResult:
        gid = to_gid(resource_type, resource_id)
        log = logger.bind(tenant_id=tenant.id, resource=gid)
        try:
            data = await self._graphql(tenant, TRANSLATABLE_CONTENT_QUERY, {"resourceId": gid})
            resource = data.get("translatableResource")
            if not resource:
                return PushResult(ok=False, error=f"平台上不存在可翻译资源: {gid}")
            digests = {c["key"]: c["digest"] for c in resource["translatableContent"]}

            skipped: set[tuple[str, str]] = set()
            for lang, fields in translations.items():
                inputs = []
                for field, text in fields.items():
                    if field not in digests:
                        log.warning("平台不接受该字段的译文，已跳过", field=field, lang=lang)
                        skipped.add((lang, field))
                        continue
                    inputs.append(
                        {
                            "locale": lang,
                            "key": field,
                            "value": text,
                            "translatableContentDigest": digests[field],
                        }
                    )
                if not inputs:
                    continue
                result = await self._graphql(
                    tenant,
                    TRANSLATIONS_REGISTER_MUTATION,
                    {"resourceId": gid, "translations": inputs},
                )
                user_errors = (result.get("translationsRegister") or {}).get("userErrors") or []
                if user_errors:
                    messages = "; ".join(e.get("message", "") for e in user_errors)
                    return PushResult(ok=False, error=f"[{lang}] {messages}")
        except SyncError as e:
            log.warning("推送译文失败", error=str(e))
            return PushResult(ok=False, error=str(e))
        return PushResult(ok=True, skipped=skipped)

    async def close(self) -> None:
        await self._client.aclose()


def _normalize(item: dict[str, Any]) -> dict[str, Any]:
    resource = dict(item)
    resource["id"] = str(item.get("id"))
    return resource
