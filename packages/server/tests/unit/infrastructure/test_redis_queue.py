# packages/server/tests/unit/infrastructure/test_redis_queue.py
"""
RedisJobQueue 的单元测试（模拟的 redis.asyncio 客户端）。
"""

import json
import time
from unittest.mock import AsyncMock, Mock

import pytest
import redis.asyncio as aioredis

from lingosync.config import QueueSettings
from lingosync.infrastructure.queue import JobDispatcher
from lingosync.infrastructure.redis.queue import RedisJobQueue
from lingosync_core.exceptions import ProviderError, ValidationError
from lingosync_core.types import Job, JobKind, Lane

STREAM = "ls:queue:translation"


@pytest.fixture
def mock_redis_client():
    """创建模拟的 Redis 客户端。"""
    client = Mock()
    for name in (
        "xadd",
        "hincrby",
        "xack",
        "xdel",
        "zadd",
        "lpush",
        "xreadgroup",
        "xautoclaim",
        "zrangebyscore",
        "lindex",
        "lrem",
        "hgetall",
        "hget",
        "hset",
        "lrange",
        "xgroup_create",
    ):
        setattr(client, name, AsyncMock())
    client.zrangebyscore.return_value = []
    # 延迟提升与死信恢复走 Lua 脚本
    client.promote_script = AsyncMock(return_value=1)
    client.revive_script = AsyncMock(return_value=1)
    client.register_script = Mock(
        side_effect=lambda script: (
            client.promote_script if "ZREM" in script else client.revive_script
        )
    )
    return client


@pytest.fixture
def dispatcher():
    return JobDispatcher()


@pytest.fixture
def queue(mock_redis_client, dispatcher):
    settings = QueueSettings(
        prefix="ls:queue:", max_attempts=3, backoff_base=2.0, job_timeout=5, block_ms=0
    )
    return RedisJobQueue(mock_redis_client, dispatcher, settings, consumer_name="test-consumer")


def _entry(job: Job) -> dict[str, str]:
    return {"job": job.model_dump_json()}


def _hincrby_calls(client) -> list[tuple]:
    return [c.args for c in client.hincrby.call_args_list]


class TestEnqueue:
    @pytest.mark.asyncio
    async def test_enqueue_adds_to_lane_stream(self, queue, mock_redis_client):
        receipt = await queue.enqueue(JobKind.AUTO_TRANSLATE, {"record_id": "r1"})

        assert receipt.mode == "redis"
        assert receipt.lane is Lane.TRANSLATION
        stream, fields = mock_redis_client.xadd.call_args.args
        assert stream == STREAM
        job = Job.model_validate_json(fields["job"])
        assert job.id == receipt.job_id
        assert job.payload == {"record_id": "r1"}
        assert job.max_attempts == 3
        mock_redis_client.hincrby.assert_awaited_once_with(f"{STREAM}:stats", "waiting", 1)

    @pytest.mark.asyncio
    async def test_lanes_use_separate_streams(self, queue, mock_redis_client):
        await queue.enqueue(JobKind.SYNC_TO_PLATFORM, {})
        await queue.enqueue(JobKind.PROCESS_WEBHOOK, {})
        streams = [c.args[0] for c in mock_redis_client.xadd.call_args_list]
        assert streams == ["ls:queue:sync", "ls:queue:webhook"]


class TestHandleEntry:
    @pytest.mark.asyncio
    async def test_success_acks_and_counts(self, queue, dispatcher, mock_redis_client):
        handler = AsyncMock(return_value={"ok": True})
        dispatcher.register(JobKind.AUTO_TRANSLATE, handler)
        job = Job(kind=JobKind.AUTO_TRANSLATE, payload={"record_id": "r1"})

        await queue._handle_entry(Lane.TRANSLATION, "1-0", _entry(job))

        handler.assert_awaited_once_with({"record_id": "r1"})
        mock_redis_client.xack.assert_awaited_once_with(STREAM, "lingosync", "1-0")
        mock_redis_client.xdel.assert_awaited_once_with(STREAM, "1-0")
        calls = _hincrby_calls(mock_redis_client)
        assert (f"{STREAM}:stats", "completed", 1) in calls
        assert (f"{STREAM}:stats", "waiting", -1) in calls
        mock_redis_client.zadd.assert_not_awaited()
        mock_redis_client.lpush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retryable_failure_is_scheduled_with_backoff(
        self, queue, dispatcher, mock_redis_client
    ):
        dispatcher.register(
            JobKind.AUTO_TRANSLATE, AsyncMock(side_effect=ProviderError("rate limited"))
        )
        job = Job(kind=JobKind.AUTO_TRANSLATE, payload={}, backoff_base=2.0, max_attempts=3)

        before = time.time()
        await queue._handle_entry(Lane.TRANSLATION, "1-0", _entry(job))

        key, mapping = mock_redis_client.zadd.call_args.args
        assert key == f"{STREAM}:delayed"
        ((raw, score),) = mapping.items()
        assert Job.model_validate_json(raw).attempts == 1
        # 第一次失败后的退避为 base * 2^0
        assert before + 2.0 <= score <= time.time() + 2.0
        mock_redis_client.lpush.assert_not_awaited()
        mock_redis_client.xack.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_non_retryable_failure_goes_to_dead_letter(
        self, queue, dispatcher, mock_redis_client
    ):
        dispatcher.register(JobKind.AUTO_TRANSLATE, AsyncMock(side_effect=ValidationError("bad")))
        job = Job(kind=JobKind.AUTO_TRANSLATE, payload={"record_id": "r1"})

        await queue._handle_entry(Lane.TRANSLATION, "1-0", _entry(job))

        mock_redis_client.zadd.assert_not_awaited()
        key, raw = mock_redis_client.lpush.call_args.args
        assert key == f"{STREAM}:dead"
        dead = json.loads(raw)
        assert dead["error"] == "bad"
        assert dead["job"]["payload"] == {"record_id": "r1"}
        assert (f"{STREAM}:stats", "failed", 1) in _hincrby_calls(mock_redis_client)

    @pytest.mark.asyncio
    async def test_exhausted_job_goes_to_dead_letter(self, queue, dispatcher, mock_redis_client):
        dispatcher.register(JobKind.AUTO_TRANSLATE, AsyncMock(side_effect=ProviderError("down")))
        job = Job(kind=JobKind.AUTO_TRANSLATE, attempts=2, max_attempts=3)

        await queue._handle_entry(Lane.TRANSLATION, "1-0", _entry(job))

        mock_redis_client.zadd.assert_not_awaited()
        dead = json.loads(mock_redis_client.lpush.call_args.args[1])
        assert dead["job"]["attempts"] == 3

    @pytest.mark.asyncio
    async def test_entry_stays_pending_when_retry_cannot_be_scheduled(
        self, queue, dispatcher, mock_redis_client
    ):
        dispatcher.register(
            JobKind.AUTO_TRANSLATE, AsyncMock(side_effect=ProviderError("rate limited"))
        )
        mock_redis_client.zadd.side_effect = aioredis.ConnectionError("lost")
        job = Job(kind=JobKind.AUTO_TRANSLATE)

        with pytest.raises(aioredis.ConnectionError):
            await queue._handle_entry(Lane.TRANSLATION, "1-0", _entry(job))

        mock_redis_client.xack.assert_not_awaited()
        mock_redis_client.xdel.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_entry_stays_pending_when_dead_letter_write_fails(
        self, queue, dispatcher, mock_redis_client
    ):
        dispatcher.register(JobKind.AUTO_TRANSLATE, AsyncMock(side_effect=ValidationError("bad")))
        mock_redis_client.lpush.side_effect = aioredis.ConnectionError("lost")
        job = Job(kind=JobKind.AUTO_TRANSLATE)

        with pytest.raises(aioredis.ConnectionError):
            await queue._handle_entry(Lane.TRANSLATION, "1-0", _entry(job))

        mock_redis_client.xack.assert_not_awaited()
        mock_redis_client.xdel.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unparseable_entry_is_dead_lettered_and_acked(self, queue, mock_redis_client):
        await queue._handle_entry(Lane.TRANSLATION, "1-0", {"job": "{not json"})

        mock_redis_client.lpush.assert_awaited_once()
        mock_redis_client.xack.assert_awaited_once_with(STREAM, "lingosync", "1-0")
        calls = _hincrby_calls(mock_redis_client)
        assert (f"{STREAM}:stats", "waiting", -1) in calls
        assert (f"{STREAM}:stats", "failed", 1) in calls

    @pytest.mark.asyncio
    async def test_reclaimed_entry_does_not_touch_waiting(
        self, queue, dispatcher, mock_redis_client
    ):
        dispatcher.register(JobKind.AUTO_TRANSLATE, AsyncMock(return_value=None))
        job = Job(kind=JobKind.AUTO_TRANSLATE)

        await queue._handle_entry(Lane.TRANSLATION, "1-0", _entry(job), reclaimed=True)

        assert (f"{STREAM}:stats", "waiting", -1) not in _hincrby_calls(mock_redis_client)


class TestConsume:
    @pytest.mark.asyncio
    async def test_drain_once_reads_and_handles_entries(
        self, queue, dispatcher, mock_redis_client
    ):
        handler = AsyncMock(return_value=None)
        dispatcher.register(JobKind.AUTO_TRANSLATE, handler)
        jobs = [Job(kind=JobKind.AUTO_TRANSLATE, payload={"n": i}) for i in range(2)]
        mock_redis_client.xreadgroup.return_value = [
            [STREAM, [("1-0", _entry(jobs[0])), ("2-0", _entry(jobs[1]))]]
        ]

        processed = await queue.drain_once(Lane.TRANSLATION, 4)

        assert processed == 2
        assert handler.await_count == 2
        kwargs = mock_redis_client.xreadgroup.call_args.kwargs
        assert kwargs["count"] == 4
        assert kwargs["block"] is None
        assert mock_redis_client.xack.await_count == 2

    @pytest.mark.asyncio
    async def test_drain_once_with_empty_stream(self, queue, mock_redis_client):
        mock_redis_client.xreadgroup.return_value = []
        assert await queue.drain_once(Lane.SYNC, 2) == 0

    @pytest.mark.asyncio
    async def test_promote_due_moves_retries_back_to_stream(self, queue, mock_redis_client):
        raw = Job(kind=JobKind.AUTO_TRANSLATE).model_dump_json()
        mock_redis_client.zrangebyscore.return_value = [raw]

        assert await queue.promote_due(Lane.TRANSLATION) == 1
        # ZREM 与 XADD 在同一个脚本中执行
        mock_redis_client.promote_script.assert_awaited_once_with(
            keys=[f"{STREAM}:delayed", STREAM], args=[raw]
        )
        mock_redis_client.xadd.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_promote_due_skips_entries_taken_by_another_worker(
        self, queue, mock_redis_client
    ):
        mock_redis_client.zrangebyscore.return_value = ["{}"]
        mock_redis_client.promote_script.return_value = 0

        assert await queue.promote_due(Lane.TRANSLATION) == 0

    @pytest.mark.asyncio
    async def test_reclaim_stale_handles_claimed_entries(
        self, queue, dispatcher, mock_redis_client
    ):
        handler = AsyncMock(return_value=None)
        dispatcher.register(JobKind.AUTO_TRANSLATE, handler)
        job = Job(kind=JobKind.AUTO_TRANSLATE)
        mock_redis_client.xautoclaim.return_value = [
            "0-0",
            [("1-0", _entry(job)), ("2-0", None)],
            [],
        ]

        assert await queue.reclaim_stale(Lane.TRANSLATION) == 1
        handler.assert_awaited_once()
        kwargs = mock_redis_client.xautoclaim.call_args.kwargs
        assert kwargs["min_idle_time"] == queue._settings.claim_idle_ms


class TestOperations:
    @pytest.mark.asyncio
    async def test_ensure_groups_ignores_existing_groups(self, queue, mock_redis_client):
        mock_redis_client.xgroup_create.side_effect = aioredis.ResponseError(
            "BUSYGROUP Consumer Group name already exists"
        )
        await queue.ensure_groups()
        assert mock_redis_client.xgroup_create.await_count == len(Lane)

    @pytest.mark.asyncio
    async def test_ensure_groups_propagates_other_errors(self, queue, mock_redis_client):
        mock_redis_client.xgroup_create.side_effect = aioredis.ResponseError("WRONGTYPE")
        with pytest.raises(aioredis.ResponseError):
            await queue.ensure_groups()

    @pytest.mark.asyncio
    async def test_stats_clamps_negative_counters(self, queue, mock_redis_client):
        mock_redis_client.hgetall.return_value = {"waiting": "-1", "completed": "5"}
        stats = await queue.stats()
        assert set(stats) == {"translation", "sync", "webhook"}
        assert stats["translation"].waiting == 0
        assert stats["translation"].completed == 5

    @pytest.mark.asyncio
    async def test_requeue_dead_resets_attempts(self, queue, mock_redis_client):
        job = Job(kind=JobKind.AUTO_TRANSLATE, attempts=3)
        dead = json.dumps({"job": job.model_dump(mode="json"), "error": "down"})
        mock_redis_client.lindex.side_effect = [dead, None]

        revived = await queue.requeue_dead(Lane.TRANSLATION)

        assert [j.id for j in revived] == [job.id]
        kwargs = mock_redis_client.revive_script.call_args.kwargs
        assert kwargs["keys"] == [f"{STREAM}:dead", STREAM]
        original, requeued = kwargs["args"]
        assert original == dead
        assert Job.model_validate_json(requeued).attempts == 0
        mock_redis_client.xadd.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_requeue_dead_drops_unrecoverable_entries(self, queue, mock_redis_client):
        mock_redis_client.lindex.side_effect = ["garbage", None]

        assert await queue.requeue_dead(Lane.TRANSLATION) == []
        mock_redis_client.lrem.assert_awaited_once_with(f"{STREAM}:dead", -1, "garbage")
        mock_redis_client.revive_script.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_dead_jobs_decodes_entries(self, queue, mock_redis_client):
        mock_redis_client.lrange.return_value = [json.dumps({"job": {}, "error": "x"}), "garbage"]
        entries = await queue.dead_jobs(Lane.TRANSLATION, limit=10)
        assert entries[0]["error"] == "x"
        assert entries[1]["job"] == "garbage"
        mock_redis_client.lrange.assert_awaited_once_with(f"{STREAM}:dead", 0, 9)

    @pytest.mark.asyncio
    async def test_clean_completed_sums_counters(self, queue, mock_redis_client):
        mock_redis_client.hget.side_effect = ["3", None, "2"]
        assert await queue.clean_completed() == 5
        assert mock_redis_client.hset.await_count == len(Lane)
