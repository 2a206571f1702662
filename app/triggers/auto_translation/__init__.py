# -*- coding: utf-8 -*-
"""
@Time    : 2025/7/14 00:45
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    : 自动翻译功能模块
"""

from .language_detector import LanguageDetector
from .node import TranslationPipeline
from .slang import SlangNormalizer, is_universal_slang

__all__ = ["LanguageDetector", "TranslationPipeline", "SlangNormalizer", "is_universal_slang"]
