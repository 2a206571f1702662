# -*- coding: utf-8 -*-
"""
@Time    : 2025/11/2 15:02
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    : 俚语规范化

把网络俚语、方言和缩写替换成正式的规范写法，降低下游翻译模型的幻觉。
"""
import re
from types import MappingProxyType
from typing import Dict, Mapping, Sequence, Tuple

from loguru import logger

from models import Language
from .matcher import SlangMatcher
from .slang_fr import FRENCH_SLANG
from .slang_ja import JAPANESE_SLANG
from .slang_zh import CHINESE_SLANG

DEFAULT_DICTIONARIES: Mapping[Language, Sequence[Tuple[str, str]]] = MappingProxyType(
    {
        Language.FRENCH: FRENCH_SLANG,
        Language.JAPANESE: JAPANESE_SLANG,
        Language.CHINESE: CHINESE_SLANG,
    }
)

# 跨语言通用的感叹词与笑声，整句都由它们构成时直接视为英文
UNIVERSAL_SLANG = frozenset(
    {
        "lol",
        "lool",
        "lmao",
        "lmfao",
        "rofl",
        "bruh",
        "xd",
        "xdd",
        "pog",
        "poggers",
        "pogchamp",
        "kek",
        "kekw",
        "lul",
        "omegalul",
        "gg",
        "ggwp",
        "ez",
        "omg",
        "wtf",
        "haha",
        "hahaha",
        "hehe",
        "rip",
        "o7",
        "uwu",
        "owo",
    }
)

_NON_ALNUM = re.compile(r"[\W_]+")


def is_universal_slang(text: str) -> bool:
    """
    整句仅由通用感叹词组成时返回 True。

    每个空白分隔的 token 去掉非字母数字字符并转小写后必须落在 UNIVERSAL_SLANG 中。
    只剩标点或表情的 token 不参与判断，但至少要有一个有效 token，空文本不算俚语。
    """
    tokens = [_NON_ALNUM.sub("", token).lower() for token in text.split()]
    tokens = [token for token in tokens if token]
    if not tokens:
        return False
    return all(token in UNIVERSAL_SLANG for token in tokens)


class SlangNormalizer:
    """按语言划分的俚语规范化器，启动时构建一次，之后只读共享"""

    def __init__(self, dictionaries: Mapping[Language, Sequence[Tuple[str, str]]] = None):
        if dictionaries is None:
            dictionaries = DEFAULT_DICTIONARIES

        matchers: Dict[Language, SlangMatcher] = {}
        for language, entries in dictionaries.items():
            matchers[language] = SlangMatcher(entries)
            logger.debug(f"俚语自动机已构建: {language.label} ({len(matchers[language])} 条)")

        self._matchers = MappingProxyType(matchers)

    @property
    def languages(self) -> frozenset:
        return frozenset(self._matchers)

    def normalize(self, language: Language, text: str) -> str:
        if language == Language.ENGLISH:
            return text

        matcher = self._matchers.get(language)
        if matcher is None:
            return text

        return matcher.replace_all(text)
