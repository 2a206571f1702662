# -*- coding: utf-8 -*-
"""
@Time    : 2025/11/2 17:05
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    : M2M100 直译引擎
"""
import threading
from typing import Iterable

import torch
from loguru import logger
from transformers import M2M100ForConditionalGeneration, M2M100Tokenizer

from inference.errors import EmptyEngineOutput, UnsupportedLanguageMapping
from models import Language

SUPPORTED_SOURCE_LANGUAGES = frozenset(
    {Language.FRENCH, Language.JAPANESE, Language.CHINESE, Language.SPANISH}
)


def resolve_device(device: str) -> str:
    dev = (device or "auto").strip().lower()
    if dev == "auto":
        return "cuda" if torch.cuda.is_available() else "cpu"
    if dev in {"cpu", "cuda"}:
        if dev == "cuda" and not torch.cuda.is_available():
            logger.warning("CUDA is not available, falling back to CPU")
            return "cpu"
        return dev
    raise ValueError("M2M100_DEVICE must be one of: auto | cpu | cuda")


class M2M100TranslationEngine:
    """
    facebook/m2m100 的薄封装：(源语言, 文本) -> 英文。

    单个模型实例，调用由锁串行化，且只在工作通道线程中执行。
    """

    def __init__(
        self,
        model_name_or_path: str = "facebook/m2m100_418M",
        *,
        device: str = "auto",
        max_length: int = 256,
        supported_languages: Iterable[Language] = SUPPORTED_SOURCE_LANGUAGES,
    ):
        self.model_name_or_path = model_name_or_path
        self.max_length = max_length
        self.device = resolve_device(device)
        self.supported_languages = frozenset(supported_languages)

        self.tokenizer = M2M100Tokenizer.from_pretrained(model_name_or_path)
        self.model = M2M100ForConditionalGeneration.from_pretrained(model_name_or_path).to(
            self.device
        )
        self.model.eval()
        self._lock = threading.Lock()

        logger.success(f"M2M100 model loaded: {model_name_or_path} ({self.device})")

    def translate(
        self, text: str, source_language: Language, target_language: Language = Language.ENGLISH
    ) -> str:
        if source_language not in self.supported_languages:
            raise UnsupportedLanguageMapping(source_language.label)

        with self._lock:
            self.tokenizer.src_lang = source_language.value
            encoded = self.tokenizer(
                text, return_tensors="pt", truncation=True, max_length=512
            ).to(self.device)

            with torch.no_grad():
                generated = self.model.generate(
                    **encoded,
                    forced_bos_token_id=self.tokenizer.get_lang_id(target_language.value),
                    max_length=self.max_length,
                    num_return_sequences=1,
                )
            outputs = self.tokenizer.batch_decode(generated, skip_special_tokens=True)

        if not outputs:
            raise EmptyEngineOutput()

        return outputs[0].strip()
