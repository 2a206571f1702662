# -*- coding: utf-8 -*-
"""
@Time    : 2025/7/7 05:40
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    :
"""
import json
import signal
import sys

from loguru import logger
from telegram import Update, BotCommand
from telegram.ext import Application, CommandHandler, MessageHandler, filters

from inference.errors import ContextCreationFailure
from settings import settings, LOG_DIR
from transbot.handlers import start_command, help_command, translate_command, handle_message
from transbot.task_manager import wait_for_all_tasks
from triggers.auto_translation import TranslationPipeline
from utils import init_log

init_log(
    runtime=LOG_DIR.joinpath("runtime.log"),
    error=LOG_DIR.joinpath("error.log"),
    serialize=LOG_DIR.joinpath("serialize.log"),
    chat=LOG_DIR.joinpath("chat.jsonl"),
)


async def setup_bot_commands(application: Application):
    """设置机器人的命令菜单"""
    commands = [
        BotCommand("translate", "Translate a message into English"),
        BotCommand("help", "How to use this bot"),
    ]

    try:
        await application.bot.set_my_commands(commands)
        logger.success(f"已设置机器人命令菜单: {[f'/{cmd.command}' for cmd in commands]}")
    except Exception as e:
        logger.error(f"设置机器人命令菜单失败: {e}")


async def shutdown_pipeline(application: Application):
    """等待进行中的翻译任务结束，再释放模型与生成上下文"""
    await wait_for_all_tasks(timeout=30)

    pipeline = application.bot_data.get("pipeline")
    if pipeline is not None:
        pipeline.close()


def main() -> None:
    """Start the bot."""
    sp = settings.model_dump(mode='json', exclude={"TELEGRAM_BOT_API_TOKEN"})

    s = json.dumps(sp, indent=2, ensure_ascii=False)
    logger.success(f"Loading settings: {s}")

    # 模型在启动时加载一次，失败则不接受任何请求
    try:
        pipeline = TranslationPipeline.from_settings(settings)
    except ContextCreationFailure as err:
        logger.critical(f"Failed to create refiner contexts: {err}")
        sys.exit(1)
    except Exception as err:
        logger.exception(f"Failed to load translation models: {err}")
        sys.exit(1)

    # Create the Application and pass it your bot's token.
    application = settings.get_default_application()
    application.bot_data["pipeline"] = pipeline

    application.post_init = setup_bot_commands
    application.post_shutdown = shutdown_pipeline

    application.add_handler(CommandHandler("start", start_command))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CommandHandler("translate", translate_command))

    # 非指令的文本消息走自动翻译
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))

    # Setting up a graceful shutdown
    def shutdown_handler(signum, frame):
        logger.info("Receiving a shutdown signal, stopping the bot...")
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown_handler)
    signal.signal(signal.SIGTERM, shutdown_handler)

    application.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()
