# packages/server/src/lingosync/domain/resources.py
"""目录资源的可翻译字段映射与 Webhook 主题解析。"""

from __future__ import annotations

from typing import Any, Mapping

from lingosync_core.exceptions import ValidationError
from lingosync_core.types import ResourceType

_BASE_FIELDS = ("title", "body_html", "meta_title", "meta_description")

TRANSLATABLE_FIELDS: dict[ResourceType, tuple[str, ...]] = {
    ResourceType.PRODUCT: (*_BASE_FIELDS, "vendor", "product_type"),
    ResourceType.PAGE: _BASE_FIELDS,
    ResourceType.BLOG: _BASE_FIELDS,
    ResourceType.ARTICLE: (*_BASE_FIELDS, "author"),
    ResourceType.COLLECTION: _BASE_FIELDS,
    ResourceType.THEME: _BASE_FIELDS,
}

# 平台 payload 中的 SEO 字段别名
_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "meta_title": ("metafields_global_title_tag",),
    "meta_description": ("metafields_global_description_tag",),
}

# Webhook 主题使用复数形式，如 "products/update"
_TOPIC_TYPES: dict[str, ResourceType] = {
    "products": ResourceType.PRODUCT,
    "pages": ResourceType.PAGE,
    "blogs": ResourceType.BLOG,
    "articles": ResourceType.ARTICLE,
    "collections": ResourceType.COLLECTION,
    "themes": ResourceType.THEME,
}

WEBHOOK_ACTIONS = frozenset({"create", "update", "delete"})


def normalize_resource_type(value: str | ResourceType) -> ResourceType:
    """接受单数、复数或枚举值，返回 ResourceType。"""
    if isinstance(value, ResourceType):
        return value
    key = str(value).strip().lower()
    if key in _TOPIC_TYPES:
        return _TOPIC_TYPES[key]
    if key == "theme-text":
        return ResourceType.THEME
    try:
        return ResourceType(key)
    except ValueError:
        raise ValidationError(f"不支持的资源类型: {value!r}") from None


def parse_topic(topic: str) -> tuple[ResourceType, str]:
    """将 "<type>/<action>" 主题拆分为 (资源类型, 动作)。"""
    parts = (topic or "").strip().lower().split("/")
    if len(parts) != 2 or not all(parts):
        raise ValidationError(f"无法解析的 Webhook 主题: {topic!r}")
    return normalize_resource_type(parts[0]), parts[1]


def extract_translatable_fields(
    resource_type: ResourceType, resource: Mapping[str, Any]
) -> dict[str, str]:
    """
    按静态字段表提取资源中非空的可翻译文本。
    空提取结果不是错误。
    """
    fields: dict[str, str] = {}
    for field in TRANSLATABLE_FIELDS[resource_type]:
        value = resource.get(field)
        if value in (None, ""):
            for alias in _FIELD_ALIASES.get(field, ()):
                value = resource.get(alias)
                if value not in (None, ""):
                    break
        if isinstance(value, str) and value.strip():
            fields[field] = value
    return fields


def resource_ref(resource_type: ResourceType, resource_id: str) -> str:
    return f"{resource_type.value}:{resource_id}"
