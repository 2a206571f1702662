# -*- coding: utf-8 -*-
"""
@Time    : 2025/11/3 14:02
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    : Tests for the context pool, admission gate and pooled generation lane
"""
import asyncio
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
import pytest_asyncio

from conftest import FakeContext
from inference.context_pool import AdmissionGate, ContextPool, PooledGenerationLane
from inference.errors import AdmissionTimeout, GenerationDecodeFailure, ResourceStateCorrupted

CAPACITY = 2


class BrokenResetContext(FakeContext):
    def reset(self) -> None:
        raise RuntimeError("llama_kv_cache_clear failed")


async def wait_until(predicate, timeout: float = 5.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


class TestContextPool:
    def test_take_resets_context_first(self):
        ctx = FakeContext()
        ctx.n_past = 42
        pool = ContextPool([ctx])

        taken = pool.take()
        assert taken is ctx
        assert ctx.reset_count == 1
        assert ctx.n_past == 0
        assert pool.available == 0

    def test_take_from_empty_pool_is_an_invariant_violation(self):
        pool = ContextPool([FakeContext()])
        pool.take()
        with pytest.raises(ResourceStateCorrupted):
            pool.take()

    def test_release_more_than_owned(self):
        pool = ContextPool([FakeContext()])
        with pytest.raises(ResourceStateCorrupted):
            pool.release(FakeContext())

    def test_lease_returns_context_on_error(self):
        pool = ContextPool([FakeContext(), FakeContext()])
        with pytest.raises(RuntimeError):
            with pool.lease():
                assert pool.available == 1
                raise RuntimeError("boom")
        assert pool.available == 2

    def test_failed_reset_returns_context(self):
        pool = ContextPool([BrokenResetContext(), FakeContext()])

        with pytest.raises(RuntimeError):
            with pool.lease():
                pass

        assert pool.available == pool.capacity

    def test_needs_contexts(self):
        with pytest.raises(ValueError):
            ContextPool([])

    def test_close_frees_every_context(self):
        contexts = [FakeContext(), FakeContext()]
        pool = ContextPool(contexts)
        pool.close()
        assert all(ctx.closed for ctx in contexts)


class TestAdmissionGate:
    def test_needs_permits(self):
        with pytest.raises(ValueError):
            AdmissionGate(0)

    @pytest.mark.asyncio
    async def test_acquire_and_release(self):
        gate = AdmissionGate(2)
        await gate.acquire()
        assert gate.available == 1
        gate.release()
        assert gate.available == 2

    @pytest.mark.asyncio
    async def test_release_without_acquire(self):
        with pytest.raises(ResourceStateCorrupted):
            AdmissionGate(1).release()

    @pytest.mark.asyncio
    async def test_timeout(self):
        gate = AdmissionGate(1, timeout=0.05)
        await gate.acquire()
        with pytest.raises(AdmissionTimeout) as exc_info:
            await gate.acquire()
        assert gate.available == 0
        assert exc_info.value.__cause__ is None
        assert exc_info.value.__suppress_context__

    @pytest.mark.asyncio
    async def test_cancelled_acquire_keeps_state(self):
        gate = AdmissionGate(1)
        await gate.acquire()

        waiter = asyncio.create_task(gate.acquire())
        await asyncio.sleep(0.01)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        gate.release()
        assert gate.available == 1
        await gate.acquire()
        assert gate.available == 0


class TestPooledGenerationLane:
    @pytest_asyncio.fixture
    async def executor(self):
        executor = ThreadPoolExecutor(max_workers=CAPACITY + 1)
        yield executor
        executor.shutdown(wait=True)

    @pytest_asyncio.fixture
    async def contexts(self):
        return [FakeContext(name=f"ctx-{i}") for i in range(CAPACITY)]

    @pytest_asyncio.fixture
    async def lane(self, contexts, executor):
        return PooledGenerationLane(ContextPool(contexts), AdmissionGate(CAPACITY), executor)

    def assert_restored(self, lane):
        assert lane.pool.available == lane.pool.capacity
        assert lane.gate.available == lane.gate.permits

    @pytest.mark.asyncio
    async def test_permits_above_capacity_are_rejected(self, contexts, executor):
        with pytest.raises(ResourceStateCorrupted):
            PooledGenerationLane(ContextPool(contexts), AdmissionGate(CAPACITY + 1), executor)

    @pytest.mark.asyncio
    async def test_job_runs_on_exclusive_context(self, lane):
        result = await lane.run(lambda ctx: ctx.name)
        assert result.startswith("ctx-")
        self.assert_restored(lane)

    @pytest.mark.asyncio
    async def test_failure_returns_context(self, lane):
        def job(ctx):
            raise GenerationDecodeFailure("decode failed")

        for _ in range(CAPACITY * 2):
            with pytest.raises(GenerationDecodeFailure):
                await lane.run(job)

        self.assert_restored(lane)

    @pytest.mark.asyncio
    async def test_excess_requests_wait_and_all_complete(self, lane):
        in_use = set()
        peak = 0
        guard = threading.Lock()

        def job(ctx):
            nonlocal peak
            with guard:
                # 同一个上下文不会同时被两个请求持有
                assert id(ctx) not in in_use
                in_use.add(id(ctx))
                peak = max(peak, len(in_use))
            time.sleep(0.02)
            with guard:
                in_use.discard(id(ctx))
            return ctx.name

        results = await asyncio.gather(*[lane.run(job) for _ in range(CAPACITY * 5)])

        assert len(results) == CAPACITY * 5
        assert peak <= CAPACITY
        self.assert_restored(lane)

    @pytest.mark.asyncio
    async def test_mixed_success_and_failure_restore_pool(self, lane):
        def job(index):
            def run(ctx):
                if index % 3 == 0:
                    raise GenerationDecodeFailure("boom")
                time.sleep(0.01)
                return index

            return run

        results = await asyncio.gather(
            *[lane.run(job(i)) for i in range(9)], return_exceptions=True
        )

        assert sum(isinstance(r, GenerationDecodeFailure) for r in results) == 3
        self.assert_restored(lane)

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_leak(self, lane):
        started = threading.Event()
        finish = threading.Event()

        def job(ctx):
            started.set()
            finish.wait(timeout=5)
            return "late"

        task = asyncio.create_task(lane.run(job))
        await wait_until(started.is_set)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        # 工作线程还在用上下文，许可也还没有归还
        assert lane.pool.available == CAPACITY - 1
        assert lane.gate.available == CAPACITY - 1

        finish.set()
        await wait_until(lambda: lane.gate.available == CAPACITY)
        self.assert_restored(lane)

        # 被取消的请求不会让后续请求失败
        assert await lane.run(lambda ctx: "ok") == "ok"
