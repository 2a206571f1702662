# -*- coding: utf-8 -*-
"""
@Time    : 2025/7/14 00:15
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    : 语言检测模块
"""

import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from langdetect.detector_factory import DetectorFactory, PROFILES_DIRECTORY
from langdetect.lang_detect_exception import LangDetectException
from loguru import logger

from models import Language

# langdetect 的语言档案名 -> 语言
PROFILE_CODES: Dict[Language, List[str]] = {
    Language.ENGLISH: ["en"],
    Language.FRENCH: ["fr"],
    Language.JAPANESE: ["ja"],
    Language.CHINESE: ["zh-cn", "zh-tw"],
    Language.SPANISH: ["es"],
    Language.GERMAN: ["de"],
}

DEFAULT_LANGUAGES = [
    Language.ENGLISH,
    Language.FRENCH,
    Language.JAPANESE,
    Language.CHINESE,
    Language.SPANISH,
]


def clean_text_for_detection(text: str) -> str:
    """清理文本以便进行语言检测"""
    if not text:
        return ""

    # 移除 URL
    text = re.sub(r'https?://[^\s]+', '', text)

    # 移除邮箱地址
    text = re.sub(r'\S+@\S+', '', text)

    # 移除用户名提及（@username）
    text = re.sub(r'@\w+', '', text)

    # 移除 hashtag
    text = re.sub(r'#\w+', '', text)

    # 移除数字和特殊字符，保留字母、假名、汉字和基本标点
    text = re.sub(
        r'[^\w\s\.,!?;:\'\"()\-\u3040-\u30ff\u4e00-\u9fff\u00c0-\u017f]|\d', '', text
    )

    # 移除多余的空格
    text = re.sub(r'\s+', ' ', text).strip()

    return text


class LanguageDetector:
    """
    在固定的小范围候选语言中检测文本语言。

    构建时只加载候选语言的档案，检测结果不会落在候选集合之外。
    范围越小，短文本的准确率越高，速度越快。
    """

    def __init__(
        self,
        languages: Iterable[Language] = None,
        *,
        min_confidence: float = 0.6,
        min_length: int = 3,
        seed: int = 0,
    ):
        self.languages = frozenset(languages or DEFAULT_LANGUAGES)
        self.min_confidence = min_confidence
        self.min_length = min_length

        if len(self.languages) < 2:
            raise ValueError("LanguageDetector needs at least two candidate languages")

        self._profile_to_language: Dict[str, Language] = {}
        json_profiles = []
        for language in sorted(self.languages, key=lambda lang: lang.value):
            for profile in PROFILE_CODES[language]:
                profile_path = Path(PROFILES_DIRECTORY, profile)
                json_profiles.append(profile_path.read_text(encoding="utf-8"))
                self._profile_to_language[profile] = language

        # 设置随机种子以确保检测结果的一致性
        self._factory = DetectorFactory()
        self._factory.seed = seed
        self._factory.load_json_profile(json_profiles)

        names = ", ".join(lang.label for lang in sorted(self.languages, key=lambda l: l.value))
        logger.debug(f"语言检测器已加载候选语言: {names}")

    def detect(self, text: str) -> Optional[Language]:
        """检测文本的主要语言

        Returns:
            Language 或 None（文本过短、没有可用特征或置信度不足）
        """
        if not text or len(text.strip()) < self.min_length:
            return None

        cleaned_text = clean_text_for_detection(text)
        if not cleaned_text or len(cleaned_text.replace(" ", "")) < self.min_length:
            return None

        try:
            detector = self._factory.create()
            detector.append(cleaned_text)
            lang_probs = detector.get_probabilities()
        except LangDetectException as e:
            logger.debug(f"语言检测失败: {e}")
            return None

        if not lang_probs:
            logger.debug("语言检测未返回结果")
            return None

        # 简体与繁体中文是两份档案，合并后再比较置信度
        scores: Dict[Language, float] = {}
        for lang_prob in lang_probs:
            language = self._profile_to_language.get(lang_prob.lang)
            if language is not None:
                scores[language] = scores.get(language, 0.0) + lang_prob.prob

        if not scores:
            return None

        detected, prob = max(scores.items(), key=lambda item: item[1])
        if prob < self.min_confidence:
            logger.debug(f"置信度不足: {detected.label} ({prob:.3f}) (原文: {text[:30]}...)")
            return None

        logger.debug(f"检测到语言: {detected.label} (置信度: {prob:.3f}) (原文: {text[:30]}...)")
        return detected
