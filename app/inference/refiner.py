# -*- coding: utf-8 -*-
"""
@Time    : 2025/11/2 19:25
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    : 本地大模型精修：手动驱动的自回归解码循环与输出清洗
"""
from concurrent.futures import Executor
from pathlib import Path

import numpy as np
from loguru import logger

from inference.context_pool import (
    AdmissionGate,
    ContextPool,
    GenerationContext,
    LlamaGenerationContext,
    PooledGenerationLane,
    load_llama_model,
)
from inference.errors import ContextCreationFailure, GenerationDecodeFailure, TokenizationFailure
from prompts import REFINEMENT_PROMPT_TEMPLATE

IGNORE_MARKER = "<@>"
THINK_OPEN = "<think>"
THINK_CLOSE = "</think>"

# 推理过程被 token 预算截断时的哨兵结果（非异常）
REASONING_TRUNCATED = "[reasoning truncated]"


def clean_response(raw: str) -> str:
    """
    从模型原始输出中提取可见答案。

    宁可返回空串，也不泄漏模型的推理过程：
    1. 出现忽略标记 `<@>` -> ""
    2. 出现 `</think>` -> 取其后的内容（可能为空）
    3. 只有 `<think>` 没有闭合 -> REASONING_TRUNCATED
    4. 没有任何标签 -> ""

    调用方约定：空串表示“没有可用的精修结果”，见 TranslationPipeline。
    """
    if IGNORE_MARKER in raw:
        return ""

    if THINK_CLOSE in raw:
        return raw.split(THINK_CLOSE, 1)[1].strip()

    if THINK_OPEN in raw:
        return REASONING_TRUNCATED

    return ""


class RefinementEngine:
    """在一个独占的生成上下文上执行贪心解码"""

    def __init__(self, max_new_tokens: int = 512, prompt_template: str = REFINEMENT_PROMPT_TEMPLATE):
        if max_new_tokens < 1:
            raise ValueError("max_new_tokens must be positive")

        self.max_new_tokens = max_new_tokens
        self.prompt_template = prompt_template

    def build_prompt(self, language: str, text: str) -> str:
        return self.prompt_template.format(language=language, text=text)

    def decode(self, ctx: GenerationContext, prompt: str) -> str:
        """
        Prompt-Ingest -> Decode-Step* -> Stopped

        停止条件：生成结束 token（EOS、<|im_end|> 等）；达到 max_new_tokens；
        再喂入一个 token 会超出上下文窗口。
        输出按字节累积，单个 token 不一定是合法的 UTF-8 片段。
        """
        try:
            tokens = ctx.tokenize(prompt)
        except (RuntimeError, ValueError) as err:
            raise TokenizationFailure(f"Failed to tokenize prompt: {err}") from err

        if not tokens:
            raise TokenizationFailure("Prompt produced no tokens")
        if len(tokens) >= ctx.n_ctx:
            raise TokenizationFailure(
                f"Prompt has {len(tokens)} tokens, context window is {ctx.n_ctx}"
            )

        output = bytearray()
        n_past = 0
        n_generated = 0

        try:
            ctx.evaluate(tokens)
            n_past = len(tokens)

            while True:
                token = int(np.argmax(ctx.logits()))
                if ctx.is_eog(token):
                    break

                output += ctx.token_to_bytes(token)
                n_generated += 1

                if n_generated >= self.max_new_tokens or n_past >= ctx.n_ctx:
                    break

                ctx.evaluate([token])
                n_past += 1
        except RuntimeError as err:
            raise GenerationDecodeFailure(f"LLM decode failed after {n_generated} tokens: {err}") from err

        logger.debug(f"Decode stopped: prompt={len(tokens)} generated={n_generated} n_past={n_past}")
        return output.decode("utf-8", errors="ignore")

    def refine(self, ctx: GenerationContext, language: str, text: str) -> str:
        raw = self.decode(ctx, self.build_prompt(language, text))
        logger.trace(f"LLM raw output: {raw!r}")
        return clean_response(raw)


class RefinerModel:
    """
    本地精修模型及其全部生成上下文的唯一所有者。

    模型权重在启动时加载一次，所有上下文共享它；close() 先释放上下文，再释放模型。
    """

    def __init__(self, lane: PooledGenerationLane, engine: RefinementEngine, model=None):
        self.lane = lane
        self.engine = engine
        self.model = model

    @classmethod
    def load(
        cls,
        model_path: Path,
        *,
        executor: Executor,
        pool_size: int = 2,
        max_concurrency: int = 2,
        n_ctx: int = 2048,
        n_batch: int = 512,
        n_threads: int = 4,
        n_gpu_layers: int = 0,
        max_new_tokens: int = 512,
        acquire_timeout: float | None = None,
    ) -> "RefinerModel":
        model_path = Path(model_path)
        if not model_path.is_file():
            raise ContextCreationFailure(f"Refiner model not found: {model_path}")

        model = load_llama_model(model_path, n_gpu_layers=n_gpu_layers)

        contexts = []
        try:
            for i in range(pool_size):
                contexts.append(
                    LlamaGenerationContext(
                        model, n_ctx=n_ctx, n_batch=n_batch, n_threads=n_threads
                    )
                )
                logger.debug(f"Created generation context {i + 1}/{pool_size}")
        except ContextCreationFailure:
            for ctx in contexts:
                ctx.close()
            model.close()
            raise

        pool = ContextPool(contexts)
        gate = AdmissionGate(max_concurrency, timeout=acquire_timeout)
        lane = PooledGenerationLane(pool, gate, executor)
        logger.success(
            f"Refiner model loaded: {model_path.name} (contexts={pool_size}, permits={max_concurrency}, n_ctx={n_ctx})"
        )
        return cls(lane, RefinementEngine(max_new_tokens=max_new_tokens), model=model)

    async def refine(self, language: str, text: str) -> str:
        return await self.lane.run(lambda ctx: self.engine.refine(ctx, language, text))

    def close(self) -> None:
        self.lane.pool.close()
        if self.model is not None:
            self.model.close()
            self.model = None
