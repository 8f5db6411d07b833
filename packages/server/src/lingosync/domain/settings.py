# packages/server/src/lingosync/domain/settings.py
"""
租户设置模型与确定性的默认值合并。

存储在 `tenants.settings_json` 中的文档可能来自旧版前端（camelCase 键），
也可能缺失部分字段。`merge_settings` 以默认值为底，逐字段用存储值覆盖，
`automation_rules` 逐键合并，未知键忽略。
"""

from __future__ import annotations

from typing import Any, Mapping

import langcodes
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from lingosync_core.exceptions import ValidationError
from lingosync_core.types import ResourceType


def normalize_language_code(code: str) -> str:
    """校验并标准化 BCP-47 语言代码，如 'pt_br' → 'pt-BR'。"""
    if not isinstance(code, str) or not code.strip():
        raise ValidationError(f"非法语言代码: {code!r}")
    candidate = code.strip().replace("_", "-")
    if not langcodes.tag_is_valid(candidate):
        raise ValidationError(f"非法语言代码: {code!r}")
    return langcodes.standardize_tag(candidate)


def _standardize_or_value_error(code: str) -> str:
    try:
        return normalize_language_code(code)
    except ValidationError as e:
        raise ValueError(str(e)) from e


class AutomationRules(BaseModel):
    """按内容类型控制 Webhook 触发的自动翻译。"""

    model_config = ConfigDict(populate_by_name=True)

    product_titles: bool = Field(default=True, alias="productTitles")
    product_descriptions: bool = Field(default=True, alias="productDescriptions")
    product_tags: bool = Field(default=False, alias="productTags")
    page_titles: bool = Field(default=True, alias="pageTitles")
    page_content: bool = Field(default=True, alias="pageContent")
    meta_descriptions: bool = Field(default=False, alias="metaDescriptions")

    def allows(self, resource_type: ResourceType, field: str) -> bool:
        """判断某资源字段是否允许自动翻译；未被规则覆盖的字段默认允许。"""
        if field in ("meta_title", "meta_description"):
            return self.meta_descriptions
        rule = _RULE_FIELDS.get((resource_type, field))
        return getattr(self, rule) if rule else True


_RULE_FIELDS: dict[tuple[ResourceType, str], str] = {
    (ResourceType.PRODUCT, "title"): "product_titles",
    (ResourceType.PRODUCT, "body_html"): "product_descriptions",
    (ResourceType.PRODUCT, "tags"): "product_tags",
    (ResourceType.PAGE, "title"): "page_titles",
    (ResourceType.PAGE, "body_html"): "page_content",
}


class GlossaryTerm(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    term: str
    translation: str | None = None
    language: str | None = None
    case_sensitive: bool = Field(default=False, alias="caseSensitive")


class TenantSettings(BaseModel):
    """租户设置（带文档化默认值）。"""

    model_config = ConfigDict(populate_by_name=True)

    languages: list[str] = Field(default_factory=lambda: ["es", "fr", "de"])
    source_language: str = Field(default="en", alias="sourceLanguage")
    auto_translate: bool = Field(default=True, alias="autoTranslate")
    sync_to_platform: bool = Field(default=True, alias="syncToShopify")
    do_not_translate: list[str] = Field(default_factory=list, alias="doNotTranslate")
    glossary: list[GlossaryTerm] = Field(default_factory=list)
    automation_rules: AutomationRules = Field(
        default_factory=AutomationRules, alias="automationRules"
    )

    @field_validator("languages")
    @classmethod
    def _validate_languages(cls, v: list[str]) -> list[str]:
        seen: list[str] = []
        for code in v:
            std = _standardize_or_value_error(code)
            if std not in seen:
                seen.append(std)
        return seen

    @field_validator("source_language")
    @classmethod
    def _validate_source(cls, v: str) -> str:
        return _standardize_or_value_error(v)

    def target_languages(self) -> list[str]:
        """除源语言之外的目标语言。"""
        return [lang for lang in self.languages if lang != self.source_language]


def _field_names_by_key(model: type[BaseModel]) -> dict[str, str]:
    lookup: dict[str, str] = {}
    for name, info in model.model_fields.items():
        lookup[name] = name
        if info.alias:
            lookup[info.alias] = name
    return lookup


def _normalize_keys(data: Mapping[str, Any], model: type[BaseModel]) -> dict[str, Any]:
    lookup = _field_names_by_key(model)
    return {lookup[k]: v for k, v in data.items() if k in lookup}


def merge_settings(
    stored: Mapping[str, Any] | None,
    defaults: TenantSettings | None = None,
) -> TenantSettings:
    """以默认值为底，逐字段用存储值覆盖，得到最终设置。"""
    merged = (defaults or TenantSettings()).model_dump()
    for name, value in _normalize_keys(stored or {}, TenantSettings).items():
        if name == "automation_rules" and isinstance(value, Mapping):
            rules = dict(merged["automation_rules"])
            rules.update(_normalize_keys(value, AutomationRules))
            merged["automation_rules"] = rules
        elif value is not None:
            merged[name] = value
    try:
        return TenantSettings.model_validate(merged)
    except PydanticValidationError as e:
        raise ValidationError(f"租户设置无效: {e}") from e
