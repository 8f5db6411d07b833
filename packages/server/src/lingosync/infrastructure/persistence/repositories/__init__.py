from ._record_repo import SqlAlchemyTranslationRecordRepository
from ._tenant_repo import SqlAlchemyTenantRepository

__all__ = [
    "SqlAlchemyTranslationRecordRepository",
    "SqlAlchemyTenantRepository",
]
