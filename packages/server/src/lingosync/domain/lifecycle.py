# packages/server/src/lingosync/domain/lifecycle.py
"""
翻译记录的状态机。

    pending ──► completed ──► synced
       │  ▲         ▲  │         │
       ▼  │         │  ▼         ▼
     failed ────────┘ deleted ◄──┘

- `completed → completed` 与 `synced → completed` 是人工编辑译文。
- `failed → pending` 是人工重新排队。
- `deleted` 为终态（软删除），之后不再参与任何处理。
- 源文本变化时 upsert 强制回到 `pending`，该覆盖规则不经过本表。
"""

from __future__ import annotations

from lingosync_core.exceptions import InvalidTransitionError, ValidationError
from lingosync_core.types import RecordStatus

_S = RecordStatus

ALLOWED_TRANSITIONS: dict[RecordStatus, frozenset[RecordStatus]] = {
    _S.PENDING: frozenset({_S.COMPLETED, _S.FAILED, _S.DELETED}),
    _S.FAILED: frozenset({_S.COMPLETED, _S.FAILED, _S.PENDING, _S.DELETED}),
    _S.COMPLETED: frozenset({_S.COMPLETED, _S.SYNCED, _S.DELETED}),
    _S.SYNCED: frozenset({_S.COMPLETED, _S.DELETED}),
    _S.DELETED: frozenset(),
}

# 可被翻译流程拾取的状态
TRANSLATABLE_STATUSES = frozenset({_S.PENDING, _S.FAILED})


def can_transition(current: RecordStatus, target: RecordStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[RecordStatus(current)]


def ensure_transition(current: RecordStatus, target: RecordStatus) -> None:
    """校验状态迁移，非法时抛出 InvalidTransitionError。"""
    current, target = RecordStatus(current), RecordStatus(target)
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"非法的状态迁移: {current.value} → {target.value}"
        )


def parse_status(value: str | RecordStatus) -> RecordStatus:
    """将外部输入解析为 RecordStatus，非法值抛出 ValidationError。"""
    if isinstance(value, RecordStatus):
        return value
    try:
        return RecordStatus(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"未知的记录状态: {value!r}") from None
