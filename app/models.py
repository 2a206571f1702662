# -*- coding: utf-8 -*-
"""
@Time    : 2025/11/2 12:34
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    :
"""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class Language(str, Enum):
    ENGLISH = "en"
    FRENCH = "fr"
    JAPANESE = "ja"
    CHINESE = "zh"
    SPANISH = "es"
    GERMAN = "de"
    """
    可被检测但默认不在翻译支持范围内
    """

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse_codes(cls, codes: str) -> List["Language"]:
        """解析逗号分隔的语言编码，如 `en,fr,ja`"""
        return [cls(code.strip().lower()) for code in codes.split(",") if code.strip()]


class TranslationResponse(BaseModel):
    language: str = Field(description="检测到的语言名称", examples=["French"])
    translation: str = Field(description="翻译结果，英文输入时为原文")

    @property
    def is_english(self) -> bool:
        return self.language == Language.ENGLISH.label


class ChatLogPayload(BaseModel):
    user: str
    message: str
    timestamp: str
