# -*- coding: utf-8 -*-
"""
@Time    : 2025/7/14 00:45
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    : 自动翻译功能的核心业务逻辑
"""
import asyncio
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Iterable, Optional, Protocol

from loguru import logger

from inference.errors import UnknownLanguage, UnsupportedLanguageMapping
from inference.refiner import REASONING_TRUNCATED, RefinerModel
from models import Language, TranslationResponse
from triggers.auto_translation.language_detector import LanguageDetector
from triggers.auto_translation.slang import SlangNormalizer, is_universal_slang

DEFAULT_TRANSLATABLE = frozenset(
    {Language.FRENCH, Language.JAPANESE, Language.CHINESE, Language.SPANISH}
)


class LiteralTranslator(Protocol):
    def translate(self, text: str, source_language: Language) -> str: ...


class Refiner(Protocol):
    async def refine(self, language: str, text: str) -> str: ...

    def close(self) -> None: ...


class TranslationPipeline:
    """
    translate(text) -> TranslationResponse

    通用感叹词快速通道 -> 语言检测 -> 英文短路 -> 可翻译性检查 -> 俚语规范化
    -> [M2M100 直译] -> [本地大模型精修]

    两个模型阶段至少启用一个。直译阶段由引擎内部的锁串行化，
    精修阶段由准入闸门与上下文池约束并发，均在工作线程中执行。
    """

    def __init__(
        self,
        detector: LanguageDetector,
        normalizer: SlangNormalizer,
        *,
        translator: Optional[LiteralTranslator] = None,
        refiner: Optional[Refiner] = None,
        translatable: Iterable[Language] = DEFAULT_TRANSLATABLE,
        executor: Optional[Executor] = None,
    ):
        if translator is None and refiner is None:
            raise ValueError("TranslationPipeline needs a literal translator, a refiner, or both")

        self.detector = detector
        self.normalizer = normalizer
        self.translator = translator
        self.refiner = refiner
        self.translatable = frozenset(translatable)
        self._executor = executor

    @classmethod
    def from_settings(cls, settings) -> "TranslationPipeline":
        """按配置加载模型。任何加载失败都直接抛出，由调用方终止启动"""
        detector = LanguageDetector(
            Language.parse_codes(settings.DETECTOR_LANGUAGES),
            min_confidence=settings.DETECTOR_MIN_CONFIDENCE,
        )
        normalizer = SlangNormalizer()
        translatable = Language.parse_codes(settings.TRANSLATABLE_LANGUAGES)

        executor = ThreadPoolExecutor(
            max_workers=settings.REFINER_POOL_SIZE + 1, thread_name_prefix="inference"
        )

        translator = None
        refiner = None
        try:
            if settings.ENABLE_LITERAL_TRANSLATION:
                from inference.translator import M2M100TranslationEngine

                translator = M2M100TranslationEngine(
                    settings.M2M100_MODEL_PATH,
                    device=settings.M2M100_DEVICE,
                    max_length=settings.M2M100_MAX_LENGTH,
                    supported_languages=translatable,
                )

            if settings.ENABLE_REFINEMENT:
                refiner = RefinerModel.load(
                    settings.REFINER_MODEL_PATH,
                    executor=executor,
                    pool_size=settings.REFINER_POOL_SIZE,
                    max_concurrency=settings.REFINER_MAX_CONCURRENCY,
                    n_ctx=settings.REFINER_N_CTX,
                    n_batch=settings.REFINER_N_BATCH,
                    n_threads=settings.REFINER_N_THREADS,
                    n_gpu_layers=settings.REFINER_N_GPU_LAYERS,
                    max_new_tokens=settings.REFINER_MAX_NEW_TOKENS,
                    acquire_timeout=settings.REFINER_ACQUIRE_TIMEOUT,
                )
        except Exception:
            executor.shutdown(wait=False)
            raise

        return cls(
            detector,
            normalizer,
            translator=translator,
            refiner=refiner,
            translatable=translatable,
            executor=executor,
        )

    async def _literal_translate(self, text: str, language: Language) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor, self.translator.translate, text, language
        )

    async def translate(self, text: str) -> TranslationResponse:
        english = Language.ENGLISH.label

        # 1. 快速通道：整句都是通用感叹词，不做检测也不调用模型
        if is_universal_slang(text):
            logger.debug(f"Universal slang fast path: {text!r}")
            return TranslationResponse(language=english, translation=text)

        # 2. 语言检测
        language = self.detector.detect(text)
        if language is None:
            raise UnknownLanguage()

        # 3. 英文原样返回
        if language == Language.ENGLISH:
            return TranslationResponse(language=english, translation=text)

        # 4. 可检测但不可翻译的语言，在任何模型调用之前拒绝
        if language not in self.translatable:
            raise UnsupportedLanguageMapping(language.label)

        # 5. 俚语规范化
        normalized = self.normalizer.normalize(language, text)
        if normalized != text:
            logger.debug(f"Slang normalized: {text!r} -> {normalized!r}")

        # 6. 直译
        literal = None
        if self.translator is not None:
            literal = await self._literal_translate(normalized, language)
            logger.debug(f"Literal translation [{language.label}]: {literal!r}")

        if self.refiner is None:
            return TranslationResponse(language=language.label, translation=literal)

        # 7. 精修
        refined = await self.refiner.refine(
            language.label, literal if literal is not None else normalized
        )

        if refined == REASONING_TRUNCATED:
            if literal is not None:
                logger.warning("Refinement reasoning truncated, keeping the literal translation")
                return TranslationResponse(language=language.label, translation=literal)
            return TranslationResponse(language=language.label, translation=REASONING_TRUNCATED)

        if not refined:
            # 空的精修结果：有直译时保留直译；否则返回空串，由调用方决定不回复
            return TranslationResponse(
                language=language.label, translation=literal if literal is not None else ""
            )

        return TranslationResponse(language=language.label, translation=refined)

    def close(self) -> None:
        if self.refiner is not None:
            self.refiner.close()
        if self._executor is not None:
            self._executor.shutdown(wait=False)
        logger.info("Translation pipeline closed")
