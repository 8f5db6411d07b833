# packages/server/src/lingosync/infrastructure/db/_schema.py
"""
LingoSync 的 SQLAlchemy ORM 模型。

数据类字段顺序约束：无默认值的字段必须在前，`init=False` 字段放在最后。
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from lingosync_core.types import RecordStatus, ResourceType

from .base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


record_status_enum = Enum(
    *(s.value for s in RecordStatus), name="record_status", native_enum=False
)
resource_type_enum = Enum(
    *(t.value for t in ResourceType), name="resource_type", native_enum=False
)


class LsTenant(Base):
    __tablename__ = "tenants"

    shop_domain: Mapped[str] = mapped_column(Text, unique=True)
    access_token: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    settings_json: Mapped[dict[str, Any]] = mapped_column(JSON, default_factory=dict)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    id: Mapped[str] = mapped_column(Text, primary_key=True, default_factory=_new_id)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default_factory=utcnow, init=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default_factory=utcnow, onupdate=utcnow, init=False
    )


class LsTranslationRecord(Base):
    __tablename__ = "translation_records"

    tenant_id: Mapped[str] = mapped_column(
        Text, ForeignKey("tenants.id", ondelete="CASCADE")
    )
    resource_type: Mapped[str] = mapped_column(resource_type_enum)
    resource_id: Mapped[str] = mapped_column(Text)
    field: Mapped[str] = mapped_column(Text)
    target_lang: Mapped[str] = mapped_column(Text)
    source_text: Mapped[str] = mapped_column(Text)
    status: Mapped[str] = mapped_column(
        record_status_enum, default=RecordStatus.PENDING.value
    )
    translated_text: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    confidence: Mapped[float | None] = mapped_column(Float, nullable=True, default=None)
    auto_translated: Mapped[bool] = mapped_column(Boolean, default=False)
    synced: Mapped[bool] = mapped_column(Boolean, default=False)
    synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    attempt_count: Mapped[int] = mapped_column(Integer, default=0)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    retry_after: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    id: Mapped[str] = mapped_column(Text, primary_key=True, default_factory=_new_id)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default_factory=utcnow, init=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default_factory=utcnow, onupdate=utcnow, init=False
    )

    __table_args__ = (
        UniqueConstraint(
            "tenant_id",
            "resource_type",
            "resource_id",
            "field",
            "target_lang",
            name="uq_translation_unit",
        ),
        Index("ix_records_tenant_status", "tenant_id", "status"),
        Index("ix_records_tenant_resource", "tenant_id", "resource_type", "resource_id"),
    )
