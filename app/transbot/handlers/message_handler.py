# -*- coding: utf-8 -*-
"""
@Time    : 2025/7/12 10:00
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    : 群聊消息自动翻译
"""
from loguru import logger
from telegram import Update
from telegram.ext import ContextTypes

from inference.errors import TranslationError
from inference.refiner import REASONING_TRUNCATED
from models import ChatLogPayload
from prompts import TRANSLATION_REPLY_TEMPLATE
from settings import settings
from transbot.task_manager import non_blocking_handler


def get_sender_name(update: Update) -> str:
    user = update.effective_user
    if not user:
        return "Anonymous"
    return user.full_name or user.username or str(user.id)


def should_reply(original: str, language_is_english: bool, translation: str) -> bool:
    """英文、空结果、推理截断、与原文相同的结果都不回复"""
    if language_is_english or not translation:
        return False
    if translation == REASONING_TRUNCATED:
        return False
    return translation.strip() != original.strip()


@non_blocking_handler("handle_message")
async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    翻译群聊中的每一条非英文文本消息，并以回复的形式发出译文。
    """
    message = update.effective_message
    if not message or not message.text:
        return

    chat_id = update.effective_chat.id
    if settings.whitelist and chat_id not in settings.whitelist:
        return

    if message.from_user and message.from_user.is_bot:
        return

    text = message.text.strip()
    if not text or text.startswith("/"):
        return

    sender = get_sender_name(update)
    payload = ChatLogPayload(
        user=sender, message=text, timestamp=message.date.isoformat() if message.date else ""
    )
    logger.bind(chat_log=True).info(payload.model_dump_json())

    pipeline = context.bot_data["pipeline"]
    try:
        result = await pipeline.translate(text)
    except TranslationError as err:
        logger.debug(f"Skip auto translation: {err} - {sender}: {text[:50]}")
        return

    if not should_reply(text, result.is_english, result.translation):
        logger.info(f"Ignored [{result.language}] {sender}: {text[:50]}")
        return

    logger.info(f"Translated [{result.language}] {sender}: {text[:50]} -> {result.translation[:80]}")
    await message.reply_text(
        TRANSLATION_REPLY_TEMPLATE.format(sender=sender, translation=result.translation)
    )
