"""Tests for RetryPolicy and the in-memory checkpoint store."""

import pytest

from orchestrator.checkpoint.base import Checkpoint, ExecutionStatus
from orchestrator.checkpoint.memory import InMemoryCheckpointStore
from orchestrator.engine.retry import RetryPolicy, call_with_retry
from orchestrator.errors import CheckpointConflictError, NodeExecutionError


class TestRetryPolicy:

    def test_defaults_from_empty_config(self):
        policy = RetryPolicy.from_config({})
        assert policy.max_attempts == 1
        assert policy.timeout is None

    def test_from_config(self):
        policy = RetryPolicy.from_config({
            "timeout": 30,
            "retry": {"max_attempts": 4, "backoff_seconds": 0.5, "retry_on": ["LLMClientError"]},
        })
        assert policy.max_attempts == 4
        assert policy.backoff_seconds == 0.5
        assert policy.retry_on == ("LLMClientError",)
        assert policy.timeout == 30.0

    def test_invalid_attempts(self):
        with pytest.raises(ValueError, match="max_attempts"):
            RetryPolicy(max_attempts=0)

    def test_retry_must_be_mapping(self):
        with pytest.raises(ValueError, match="retry must be a mapping"):
            RetryPolicy.from_config({"retry": 3})

    def test_wrong_value_types(self):
        with pytest.raises(ValueError):
            RetryPolicy.from_config({"retry": {"max_attempts": "three"}})
        with pytest.raises(ValueError, match="invalid retry/timeout config"):
            RetryPolicy.from_config({"retry": {"backoff_seconds": [1]}})
        with pytest.raises(ValueError, match="timeout must be positive"):
            RetryPolicy.from_config({"timeout": -1})

    def test_single_retry_on_name(self):
        policy = RetryPolicy.from_config({"retry": {"retry_on": "TimeoutError"}})
        assert policy.retry_on == ("TimeoutError",)

    def test_should_retry_matches_base_classes(self):
        policy = RetryPolicy(retry_on=("OSError",))
        assert policy.should_retry(ConnectionError("x"))
        assert not policy.should_retry(ValueError("x"))

    def test_should_retry_any_exception_when_unfiltered(self):
        assert RetryPolicy().should_retry(ValueError("x"))

    def test_delay_without_jitter(self):
        policy = RetryPolicy(backoff_seconds=1.0, backoff_multiplier=2.0, jitter=0)
        assert [policy.delay_for(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]

    def test_delay_with_jitter_in_bounds(self):
        policy = RetryPolicy(backoff_seconds=1.0, jitter=0.25)
        for _ in range(20):
            assert 0.75 <= policy.delay_for(1) <= 1.25

    @pytest.mark.asyncio
    async def test_call_with_retry_raises_node_error(self):
        async def call(attempt):
            raise RuntimeError(f"attempt {attempt}")

        policy = RetryPolicy(max_attempts=2, backoff_seconds=0, jitter=0)
        with pytest.raises(NodeExecutionError) as exc_info:
            await call_with_retry(call, policy, "node")
        assert exc_info.value.attempts == 2
        assert exc_info.value.node_name == "node"
        assert isinstance(exc_info.value.cause, RuntimeError)


class TestInMemoryCheckpointStore:

    @pytest.mark.asyncio
    async def test_load_missing(self):
        assert await InMemoryCheckpointStore().load("nope") is None

    @pytest.mark.asyncio
    async def test_save_increments_version(self):
        store = InMemoryCheckpointStore()
        saved = await store.save(Checkpoint(thread_id="t1", graph_type="g", values={"a": 1}))
        assert saved.version == 1

        saved.values["a"] = 2
        saved = await store.save(saved)
        assert saved.version == 2
        assert (await store.load("t1")).values == {"a": 2}

    @pytest.mark.asyncio
    async def test_stale_version_conflicts(self):
        store = InMemoryCheckpointStore()
        first = await store.save(Checkpoint(thread_id="t1", graph_type="g"))
        await store.save(first)

        with pytest.raises(CheckpointConflictError) as exc_info:
            await store.save(first)
        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2

    @pytest.mark.asyncio
    async def test_create_twice_conflicts(self):
        store = InMemoryCheckpointStore()
        await store.save(Checkpoint(thread_id="t1", graph_type="g"))
        with pytest.raises(CheckpointConflictError):
            await store.save(Checkpoint(thread_id="t1", graph_type="g"))

    @pytest.mark.asyncio
    async def test_loaded_copy_is_isolated(self):
        store = InMemoryCheckpointStore()
        await store.save(Checkpoint(thread_id="t1", graph_type="g", values={"steps": ["A"]}))
        loaded = await store.load("t1")
        loaded.values["steps"].append("B")
        assert (await store.load("t1")).values == {"steps": ["A"]}

    @pytest.mark.asyncio
    async def test_created_at_preserved(self):
        store = InMemoryCheckpointStore()
        first = await store.save(Checkpoint(thread_id="t1", graph_type="g"))
        first.status = ExecutionStatus.COMPLETED
        second = await store.save(first)
        assert second.created_at == first.created_at
        assert second.updated_at >= first.updated_at
        assert store.thread_ids() == ["t1"]

    def test_to_dict(self):
        data = Checkpoint(thread_id="t1", graph_type="g", status=ExecutionStatus.SUSPENDED,
                          pending_interrupt={"prompt": "?"}).to_dict()
        assert data["status"] == "suspended"
        assert data["pending_interrupt"] == {"prompt": "?"}
        assert data["version"] == 0
