# -*- coding: utf-8 -*-
"""
@Time    : 2025/11/4 11:05
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    : Tests for background handler tasks and graceful shutdown
"""
import asyncio

import pytest

from transbot import task_manager
from transbot.task_manager import non_blocking_handler, wait_for_all_tasks


class TestTaskManager:
    @pytest.mark.asyncio
    async def test_shutdown_waits_for_running_translations(self):
        release = asyncio.Event()
        finished = []

        @non_blocking_handler("slow_translation")
        async def handler(update, context):
            await release.wait()
            finished.append(update)

        task = await handler("update", None)
        assert not task.done()

        asyncio.get_running_loop().call_later(0.01, release.set)
        assert await wait_for_all_tasks(timeout=5)

        assert finished == ["update"]
        assert task not in task_manager._active_tasks

    @pytest.mark.asyncio
    async def test_shutdown_timeout(self):
        @non_blocking_handler("stuck_translation")
        async def handler(update, context):
            await asyncio.sleep(10)

        task = await handler("update", None)

        assert not await wait_for_all_tasks(timeout=0.01)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_handler_errors_are_logged_not_raised(self):
        @non_blocking_handler("broken_translation")
        async def handler(update, context):
            raise RuntimeError("boom")

        task = await handler("update", None)
        await task

        assert task.exception() is None
        assert task not in task_manager._active_tasks
