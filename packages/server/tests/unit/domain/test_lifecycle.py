# packages/server/tests/unit/domain/test_lifecycle.py
"""翻译记录状态机的单元测试。"""

import pytest

from lingosync.domain.lifecycle import (
    ALLOWED_TRANSITIONS,
    can_transition,
    ensure_transition,
    parse_status,
)
from lingosync_core.exceptions import InvalidTransitionError, ValidationError
from lingosync_core.types import RecordStatus as S


@pytest.mark.parametrize(
    "current,target",
    [
        (S.PENDING, S.COMPLETED),
        (S.PENDING, S.FAILED),
        (S.FAILED, S.COMPLETED),
        (S.FAILED, S.PENDING),
        (S.COMPLETED, S.SYNCED),
        (S.COMPLETED, S.COMPLETED),
        (S.SYNCED, S.COMPLETED),
        (S.SYNCED, S.DELETED),
    ],
)
def test_allowed_transitions(current, target):
    assert can_transition(current, target)
    ensure_transition(current, target)


@pytest.mark.parametrize(
    "current,target",
    [
        (S.PENDING, S.SYNCED),
        (S.FAILED, S.SYNCED),
        (S.SYNCED, S.PENDING),
        (S.DELETED, S.PENDING),
        (S.DELETED, S.COMPLETED),
    ],
)
def test_forbidden_transitions_raise(current, target):
    assert not can_transition(current, target)
    with pytest.raises(InvalidTransitionError):
        ensure_transition(current, target)


def test_deleted_is_terminal():
    assert ALLOWED_TRANSITIONS[S.DELETED] == frozenset()


def test_invalid_transition_is_a_non_retryable_validation_error():
    with pytest.raises(ValidationError) as exc_info:
        ensure_transition(S.DELETED, S.COMPLETED)
    assert exc_info.value.retryable is False


def test_parse_status_accepts_strings_and_enums():
    assert parse_status(" Pending ") is S.PENDING
    assert parse_status(S.SYNCED) is S.SYNCED


def test_parse_status_rejects_unknown_value():
    with pytest.raises(ValidationError):
        parse_status("archived")
