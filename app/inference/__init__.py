# -*- coding: utf-8 -*-
"""
@Time    : 2025/11/2 14:02
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    : 本地模型推理：直译引擎、精修引擎与生成上下文池
"""

from .errors import (
    TranslationError,
    UnknownLanguage,
    UnsupportedLanguageMapping,
    EmptyEngineOutput,
    TokenizationFailure,
    GenerationDecodeFailure,
    AdmissionTimeout,
    ContextCreationFailure,
    ResourceStateCorrupted,
)

__all__ = [
    "TranslationError",
    "UnknownLanguage",
    "UnsupportedLanguageMapping",
    "EmptyEngineOutput",
    "TokenizationFailure",
    "GenerationDecodeFailure",
    "AdmissionTimeout",
    "ContextCreationFailure",
    "ResourceStateCorrupted",
]
