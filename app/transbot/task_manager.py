# -*- coding: utf-8 -*-
"""
Centralized task management for non-blocking translation handlers
"""
import asyncio
import functools
from typing import Set, Callable

from loguru import logger

# Global task registry for all bot operations
_active_tasks: Set[asyncio.Task] = set()


def cleanup_completed_tasks():
    """Clean up completed tasks from the active tasks set"""
    completed_tasks = [task for task in _active_tasks if task.done()]
    for task in completed_tasks:
        _active_tasks.discard(task)
        if not task.cancelled() and task.exception():
            logger.error(f"Background task failed: {task.exception()}")


def non_blocking_handler(handler_name: str = "unknown"):
    """
    Run a bot handler as a background task, so a slow translation never holds up
    the update dispatcher.

    Usage:
        @non_blocking_handler("handle_message")
        async def handle_message(update, context):
            ...
    """

    def decorator(handler_func: Callable):
        @functools.wraps(handler_func)
        async def wrapper(update, context):
            cleanup_completed_tasks()

            task = asyncio.create_task(
                _execute_handler_task(handler_func, update, context, handler_name)
            )
            # Keep a strong reference until the task is done
            _active_tasks.add(task)

            logger.debug(
                f"Started non-blocking {handler_name} task (Active tasks: {len(_active_tasks)})"
            )
            return task

        return wrapper

    return decorator


async def _execute_handler_task(handler_func: Callable, update, context, handler_name: str):
    """Execute handler function as a background task with proper cleanup"""
    current_task = asyncio.current_task()
    try:
        await handler_func(update, context)
        logger.debug(f"Completed {handler_name} task")
    except Exception as e:
        # 自动翻译是被动功能，出错时只记录日志，不打扰群聊
        logger.exception(f"Error in {handler_name} handler: {e}")
    finally:
        if current_task:
            _active_tasks.discard(current_task)


async def wait_for_all_tasks(timeout: float = 30.0) -> bool:
    """
    Wait for all active tasks to complete, with timeout.
    Useful for graceful shutdown.

    Returns:
        True if all tasks completed, False if timeout occurred
    """
    if not _active_tasks:
        return True

    logger.info(f"Waiting for {len(_active_tasks)} active tasks to complete...")

    try:
        await asyncio.wait_for(
            asyncio.gather(*_active_tasks, return_exceptions=True), timeout=timeout
        )
        logger.info("All tasks completed successfully")
        return True
    except asyncio.TimeoutError:
        logger.warning(
            f"Timeout waiting for tasks to complete, {len(_active_tasks)} tasks still running"
        )
        return False
