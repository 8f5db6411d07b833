"""持久化层：仓库实现与租户设置存储。"""

from .settings_store import SqlAlchemySettingsStore

__all__ = ["SqlAlchemySettingsStore"]
