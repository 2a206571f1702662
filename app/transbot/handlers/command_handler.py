# -*- coding: utf-8 -*-
"""
@Time    : 2025/7/9 00:44
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    : 指令处理器
"""
from loguru import logger
from telegram import Update
from telegram.ext import ContextTypes

from inference.errors import TranslationError
from prompts import COMMAND_REPLY_TEMPLATE, WELCOME_MESSAGE
from settings import settings
from transbot.task_manager import non_blocking_handler

USAGE_MESSAGE = "Usage: /translate <text>, or reply to a message with /translate"


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Send a message when the command /start is issued."""
    await update.message.reply_text(WELCOME_MESSAGE)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Send a message when the command /help is issued."""
    await update.message.reply_text(f"{WELCOME_MESSAGE}\n\n{USAGE_MESSAGE}")


def _extract_command_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> str:
    """优先使用指令参数，没有参数时翻译被回复的那条消息"""
    if context.args:
        return " ".join(context.args).strip()

    reply_to = update.message.reply_to_message
    if reply_to and (reply_to.text or reply_to.caption):
        return (reply_to.text or reply_to.caption).strip()

    return ""


@non_blocking_handler("translate_command")
async def translate_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/translate <text>：总是回复检测到的语言与译文，或错误信息"""
    chat_id = update.effective_chat.id
    if settings.whitelist and chat_id not in settings.whitelist:
        logger.debug(f"Reject /translate from chat {chat_id}")
        return

    text = _extract_command_text(update, context)
    if not text:
        await update.message.reply_text(USAGE_MESSAGE)
        return

    pipeline = context.bot_data["pipeline"]
    try:
        result = await pipeline.translate(text)
    except TranslationError as err:
        logger.warning(f"/translate failed: {err}")
        await update.message.reply_text(f"Translation Error: {err}")
        return

    await update.message.reply_text(
        COMMAND_REPLY_TEMPLATE.format(language=result.language, translation=result.translation)
    )
