# -*- coding: utf-8 -*-
"""
@Time    : 2025/11/2 18:40
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    : 生成上下文池、准入闸门与阻塞工作通道
"""
import asyncio
import threading
from collections import deque
from concurrent.futures import Executor
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Protocol, Sequence, TypeVar

import numpy as np
from loguru import logger

from inference.errors import AdmissionTimeout, ContextCreationFailure, ResourceStateCorrupted

T = TypeVar("T")


class GenerationContext(Protocol):
    """绑定在已加载模型上的有状态计算上下文（含 KV cache）"""

    n_ctx: int
    token_eos: int

    def reset(self) -> None: ...

    def is_eog(self, token: int) -> bool: ...

    def tokenize(self, text: str) -> List[int]: ...

    def evaluate(self, tokens: Sequence[int]) -> None: ...

    def logits(self) -> np.ndarray: ...

    def token_to_bytes(self, token: int) -> bytes: ...

    def close(self) -> None: ...


def load_llama_model(model_path: Path, *, n_gpu_layers: int = 0):
    """
    加载 GGUF 权重，整个进程只加载一次。

    返回 llama_cpp 的 LlamaModel，所有生成上下文共享这一份权重，由 RefinerModel 负责关闭。
    """
    import llama_cpp
    from llama_cpp._internals import LlamaModel

    llama_cpp.llama_backend_init()

    params = llama_cpp.llama_model_default_params()
    params.n_gpu_layers = n_gpu_layers

    try:
        return LlamaModel(path_model=str(model_path), params=params, verbose=False)
    except (ValueError, OSError, RuntimeError) as err:
        raise ContextCreationFailure(f"Failed to load llama model: {err}") from err


class LlamaGenerationContext:
    """
    绑定在共享 LlamaModel 上的一个 llama.cpp 上下文，只在工作通道线程中使用。

    每个上下文只持有自己的 KV cache 和 batch，不复制模型权重。
    """

    def __init__(self, model, *, n_ctx: int, n_batch: int, n_threads: int):
        import llama_cpp
        from llama_cpp._internals import LlamaBatch, LlamaContext

        params = llama_cpp.llama_context_default_params()
        params.n_ctx = n_ctx
        params.n_batch = n_batch
        params.n_threads = n_threads
        params.n_threads_batch = n_threads

        try:
            self._ctx = LlamaContext(model=model, params=params, verbose=False)
        except (ValueError, OSError, RuntimeError) as err:
            raise ContextCreationFailure(f"Failed to create llama context: {err}") from err

        try:
            self._batch = LlamaBatch(n_tokens=n_batch, embd=0, n_seq_max=1, verbose=False)
        except (ValueError, OSError, RuntimeError) as err:
            self._ctx.close()
            raise ContextCreationFailure(f"Failed to allocate llama batch: {err}") from err

        self._model = model
        self._vocab = llama_cpp.llama_model_get_vocab(model.model)
        self._n_batch = n_batch
        self._n_past = 0
        self._last_logits_index = 0

        self.n_ctx = self._ctx.n_ctx()
        self.token_eos = model.token_eos()
        self._n_vocab = model.n_vocab()

    def reset(self) -> None:
        self._ctx.kv_cache_clear()
        self._n_past = 0
        self._last_logits_index = 0

    def is_eog(self, token: int) -> bool:
        import llama_cpp

        return bool(llama_cpp.llama_vocab_is_eog(self._vocab, token))

    def tokenize(self, text: str) -> List[int]:
        return self._model.tokenize(text.encode("utf-8"), add_bos=True, special=True)

    def evaluate(self, tokens: Sequence[int]) -> None:
        # 按 n_batch 分块喂入，只取最后一个 token 的 logits
        for start in range(0, len(tokens), self._n_batch):
            chunk = tokens[start : start + self._n_batch]
            self._batch.set_batch(batch=chunk, n_past=self._n_past, logits_all=False)
            self._ctx.decode(self._batch)
            self._n_past += len(chunk)
            self._last_logits_index = len(chunk) - 1

    def logits(self) -> np.ndarray:
        import llama_cpp

        pointer = llama_cpp.llama_get_logits_ith(self._ctx.ctx, self._last_logits_index)
        return np.ctypeslib.as_array(pointer, shape=(self._n_vocab,))

    def token_to_bytes(self, token: int) -> bytes:
        return self._model.token_to_piece(token, special=True)

    def close(self) -> None:
        self._batch.close()
        self._ctx.close()


class ContextPool:
    """
    固定容量的生成上下文池。

    take/release 是阻塞操作，只允许在工作通道中调用；事件循环只等待准入闸门，
    从不直接竞争这里的锁。
    """

    def __init__(self, contexts: Iterable[GenerationContext]):
        self._idle = deque(contexts)
        self._capacity = len(self._idle)
        self._lock = threading.Lock()

        if not self._capacity:
            raise ValueError("ContextPool needs at least one context")

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def available(self) -> int:
        with self._lock:
            return len(self._idle)

    def take(self) -> GenerationContext:
        with self._lock:
            if not self._idle:
                raise ResourceStateCorrupted(
                    "ContextPool is empty although an admission permit is held"
                )
            ctx = self._idle.popleft()

        # 上一个请求残留的 KV cache 不能泄漏到新的生成中
        try:
            ctx.reset()
        except BaseException:
            # 重置失败也要归还上下文
            with self._lock:
                self._idle.appendleft(ctx)
            raise
        return ctx

    def release(self, ctx: GenerationContext) -> None:
        with self._lock:
            if len(self._idle) >= self._capacity:
                raise ResourceStateCorrupted("ContextPool received more contexts than it owns")
            self._idle.append(ctx)

    @contextmanager
    def lease(self) -> Iterator[GenerationContext]:
        ctx = self.take()
        try:
            yield ctx
        finally:
            self.release(ctx)

    def close(self) -> None:
        with self._lock:
            while self._idle:
                self._idle.popleft().close()


class AdmissionGate:
    """计数信号量，限制同时持有生成上下文的请求数"""

    def __init__(self, permits: int, *, timeout: float | None = None):
        if permits < 1:
            raise ValueError("AdmissionGate needs at least one permit")

        self.permits = permits
        self.timeout = timeout
        self._semaphore = asyncio.Semaphore(permits)
        self._in_use = 0

    @property
    def available(self) -> int:
        return self.permits - self._in_use

    async def acquire(self) -> None:
        if self.timeout is None:
            await self._semaphore.acquire()
        else:
            try:
                await asyncio.wait_for(self._semaphore.acquire(), timeout=self.timeout)
            except asyncio.TimeoutError:
                raise AdmissionTimeout(self.timeout) from None
        self._in_use += 1

    def release(self) -> None:
        if self._in_use <= 0:
            raise ResourceStateCorrupted("AdmissionGate released more permits than issued")
        self._in_use -= 1
        self._semaphore.release()


class PooledGenerationLane:
    """
    准入闸门 + 上下文池 + 阻塞工作通道。

    每个任务在持有许可期间，于工作线程中 take -> 使用 -> release 一个上下文。
    等待方被取消时，已提交的工作仍会跑完并归还上下文，许可在工作结束后才释放，
    因此池子容量不会因取消而缩水。
    """

    def __init__(self, pool: ContextPool, gate: AdmissionGate, executor: Executor):
        if gate.permits > pool.capacity:
            raise ResourceStateCorrupted(
                f"AdmissionGate permits ({gate.permits}) exceed ContextPool capacity ({pool.capacity})"
            )

        self.pool = pool
        self.gate = gate
        self._executor = executor

    def _run_with_context(self, job: Callable[[GenerationContext], T]) -> T:
        with self.pool.lease() as ctx:
            return job(ctx)

    def _release_after(self, future: asyncio.Future) -> None:
        self.gate.release()
        if not future.cancelled() and future.exception() is not None:
            logger.warning(f"Abandoned generation finished with error: {future.exception()}")

    async def run(self, job: Callable[[GenerationContext], T]) -> T:
        await self.gate.acquire()

        try:
            loop = asyncio.get_running_loop()
            future = loop.run_in_executor(self._executor, self._run_with_context, job)
        except BaseException:
            self.gate.release()
            raise

        try:
            return await asyncio.shield(future)
        finally:
            if future.done():
                self.gate.release()
            else:
                logger.debug("Generation caller went away, context returns when the job finishes")
                future.add_done_callback(self._release_after)
