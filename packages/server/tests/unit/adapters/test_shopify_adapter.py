# packages/server/tests/unit/adapters/test_shopify_adapter.py
"""Shopify 目录适配器的单元测试，使用 httpx.MockTransport 模拟 Admin API。"""

import json

import httpx
import pytest

from lingosync.adapters.catalog.shopify import ShopifyCatalogAdapter, to_gid
from lingosync.config import ShopifySettings
from lingosync_core.exceptions import ValidationError
from lingosync_core.types import ResourceType, Tenant

TENANT = Tenant(id="t-1", shop_domain="demo.myshopify.com", access_token="shpat_test")


def _adapter(handler) -> ShopifyCatalogAdapter:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ShopifyCatalogAdapter(ShopifySettings(api_version="2024-10"), client=client)


def _content(*keys: str) -> dict:
    return {
        "data": {
            "translatableResource": {
                "resourceId": "gid://shopify/Product/1001",
                "translatableContent": [
                    {"key": k, "value": "x", "digest": f"digest-{k}", "locale": "en"}
                    for k in keys
                ],
            }
        }
    }


def _register(user_errors=None) -> dict:
    return {
        "data": {
            "translationsRegister": {"userErrors": user_errors or [], "translations": []}
        }
    }


def test_to_gid():
    assert to_gid(ResourceType.PRODUCT, "1001") == "gid://shopify/Product/1001"
    assert to_gid(ResourceType.PAGE, "gid://shopify/Page/7") == "gid://shopify/Page/7"


class TestFetchResources:
    @pytest.mark.asyncio
    async def test_fetches_products_over_rest(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            seen["token"] = request.headers.get("X-Shopify-Access-Token")
            return httpx.Response(
                200, json={"products": [{"id": 1001, "title": "Red Shoes"}, {"id": 1002}]}
            )

        adapter = _adapter(handler)
        resources = await adapter.fetch_resources(TENANT, ResourceType.PRODUCT, 1)

        assert resources == [{"id": "1001", "title": "Red Shoes"}]
        assert seen["url"].path == "/admin/api/2024-10/products.json"
        assert seen["url"].params["limit"] == "1"
        assert seen["token"] == "shpat_test"
        await adapter.close()

    @pytest.mark.asyncio
    async def test_articles_are_collected_across_blogs(self):
        def handler(request: httpx.Request) -> httpx.Response:
            path = request.url.path
            if path.endswith("/blogs.json"):
                return httpx.Response(200, json={"blogs": [{"id": 1}, {"id": 2}]})
            blog_id = path.split("/")[-2]
            return httpx.Response(
                200, json={"articles": [{"id": int(blog_id) * 10, "title": "A"}]}
            )

        resources = await _adapter(handler).fetch_resources(TENANT, ResourceType.ARTICLE, 5)
        assert [r["id"] for r in resources] == ["10", "20"]

    @pytest.mark.asyncio
    async def test_theme_is_not_fetchable(self):
        adapter = _adapter(lambda request: httpx.Response(200, json={}))
        with pytest.raises(ValidationError):
            await adapter.fetch_resources(TENANT, ResourceType.THEME, 10)


class TestPushTranslations:
    @pytest.mark.asyncio
    async def test_registers_translations_with_digests(self):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            bodies.append(body)
            if "translatableResource" in body["query"]:
                return httpx.Response(200, json=_content("title", "body_html"))
            return httpx.Response(200, json=_register())

        result = await _adapter(handler).push_translations(
            TENANT,
            ResourceType.PRODUCT,
            "1001",
            {"es": {"title": "Zapatos Rojos"}, "fr": {"title": "Chaussures Rouges"}},
        )

        assert result.ok is True
        assert len(bodies) == 3
        es_inputs = bodies[1]["variables"]["translations"]
        assert es_inputs == [
            {
                "locale": "es",
                "key": "title",
                "value": "Zapatos Rojos",
                "translatableContentDigest": "digest-title",
            }
        ]
        assert bodies[1]["variables"]["resourceId"] == "gid://shopify/Product/1001"

    @pytest.mark.asyncio
    async def test_fields_without_digest_are_skipped(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=_content("title"))

        result = await _adapter(handler).push_translations(
            TENANT, ResourceType.PRODUCT, "1001", {"es": {"vendor": "Acme"}}
        )
        assert result.ok is True
        assert result.skipped == {("es", "vendor")}
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_user_errors_fail_the_group(self):
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            if "translatableResource" in body["query"]:
                return httpx.Response(200, json=_content("title"))
            return httpx.Response(
                200, json=_register([{"field": ["locale"], "message": "Locale not enabled"}])
            )

        result = await _adapter(handler).push_translations(
            TENANT, ResourceType.PRODUCT, "1001", {"de": {"title": "Rote Schuhe"}}
        )
        assert result.ok is False
        assert "Locale not enabled" in result.error
        assert "[de]" in result.error

    @pytest.mark.asyncio
    async def test_missing_resource(self):
        adapter = _adapter(
            lambda request: httpx.Response(200, json={"data": {"translatableResource": None}})
        )
        result = await adapter.push_translations(
            TENANT, ResourceType.PRODUCT, "404", {"es": {"title": "x"}}
        )
        assert result.ok is False

    @pytest.mark.asyncio
    async def test_http_failure_is_reported_not_raised(self):
        adapter = _adapter(lambda request: httpx.Response(503, text="unavailable"))
        result = await adapter.push_translations(
            TENANT, ResourceType.PRODUCT, "1001", {"es": {"title": "x"}}
        )
        assert result.ok is False
        assert "GraphQL" in result.error

    @pytest.mark.asyncio
    async def test_graphql_errors_are_reported(self):
        adapter = _adapter(
            lambda request: httpx.Response(200, json={"errors": [{"message": "Throttled"}]})
        )
        result = await adapter.push_translations(
            TENANT, ResourceType.PRODUCT, "1001", {"es": {"title": "x"}}
        )
        assert result.ok is False
        assert "Throttled" in result.error

    @pytest.mark.asyncio
    async def test_tenant_without_token_fails_group(self):
        tenant = TENANT.model_copy(update={"access_token": None})
        adapter = _adapter(lambda request: httpx.Response(200, json=_content("title")))
        result = await adapter.push_translations(
            tenant, ResourceType.PRODUCT, "1001", {"es": {"title": "x"}}
        )
        assert result.ok is False
