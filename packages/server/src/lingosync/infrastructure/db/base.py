# packages/server/src/lingosync/infrastructure/db/base.py
"""
定义了 SQLAlchemy 的元数据 (MetaData) 和声明式基类 (DeclarativeBase)。

所有 ORM 模型都通过 `Base` 与模块级的单一 `metadata` 实例关联，
`db init` 命令与测试夹具都基于它执行 `create_all`。
"""

from __future__ import annotations

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase, MappedAsDataclass

# 统一的约束命名，保证在 SQLite 与 PostgreSQL 上生成相同的约束名
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=NAMING_CONVENTION)


class Base(MappedAsDataclass, DeclarativeBase):
    """项目统一的声明式基类（数据类风格）。"""

    __abstract__ = True
    metadata = metadata
