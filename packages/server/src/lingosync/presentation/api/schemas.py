# packages/server/src/lingosync/presentation/api/schemas.py
"""HTTP 请求体模型。"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class RecordCreate(BaseModel):
    resource_type: str
    resource_id: str
    field: str
    target_lang: str
    source_text: str = Field(min_length=1)


class TranslationEdit(BaseModel):
    translated_text: str = Field(min_length=1)


class BulkTranslateRequest(BaseModel):
    limit: int | None = Field(default=None, ge=1, le=1000)
    status: Literal["pending", "failed"] = "pending"


class ImportRequest(BaseModel):
    resource_type: str
    limit: int | None = Field(default=None, ge=1, le=250)
