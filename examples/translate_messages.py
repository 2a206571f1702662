# -*- coding: utf-8 -*-
"""
@Time    : 2025/11/3 21:10
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    : 不经过 Telegram，直接用本地模型翻译几条聊天消息

Usage:
    cd app && python ../examples/translate_messages.py "c'est trop le seum" "草生える"
"""
import asyncio
import sys

from loguru import logger

from inference.errors import TranslationError
from prompts import COMMAND_REPLY_TEMPLATE
from settings import settings
from triggers.auto_translation import TranslationPipeline

SAMPLES = [
    "lol xd",
    "Good game everyone",
    "wsh frère, c'est chaud ce truc de ouf",
    "草生える、マジで神ゲー",
    "这波操作太秀了，yyds",
    "¿Qué onda, güey?",
]


async def main():
    messages = sys.argv[1:] or SAMPLES

    pipeline = TranslationPipeline.from_settings(settings)
    try:
        results = await asyncio.gather(
            *[pipeline.translate(text) for text in messages], return_exceptions=True
        )
        for text, result in zip(messages, results):
            if isinstance(result, TranslationError):
                logger.warning(f"{text} -> Translation Error: {result}")
            elif isinstance(result, BaseException):
                raise result
            else:
                reply = COMMAND_REPLY_TEMPLATE.format(
                    language=result.language, translation=result.translation
                )
                logger.success(f"{text} -> {reply}")
    finally:
        pipeline.close()


if __name__ == "__main__":
    asyncio.run(main())
