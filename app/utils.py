# -*- coding: utf-8 -*-
# Time       : 2025/11/2 12:20
# Author     : QIN2DIM
# GitHub     : https://github.com/QIN2DIM
# Description: 日志初始化
from __future__ import annotations

import os
import sys
from zoneinfo import ZoneInfo

from loguru import logger

# 日志时区，默认东八区
LOG_TIMEZONE = ZoneInfo(os.getenv("LOG_TIMEZONE", "Asia/Shanghai"))


def timezone_filter(record):
    record["time"] = record["time"].astimezone(LOG_TIMEZONE)
    return record


def chat_log_filter(record):
    """只保留通过 logger.bind(chat_log=True) 写入的聊天记录"""
    return bool(record["extra"].get("chat_log")) and timezone_filter(record)


def init_log(**sink_channel):
    """
    sink_channel:
        runtime: 全量运行日志
        error: ERROR 及以上
        serialize: JSON 序列化日志
        chat: 收到的聊天消息与翻译结果（JSON lines）
    """
    log_level = os.getenv("LOG_LEVEL", "DEBUG").upper()

    persistent_format = (
        "<g>{time:YYYY-MM-DD HH:mm:ss}</g> | "
        "<lvl>{level}</lvl>    | "
        "<c><u>{name}</u></c>:{function}:{line} | "
        "{message} - "
        "{extra}"
    )
    stdout_format = (
        "<g>{time:YYYY-MM-DD HH:mm:ss}</g> | "
        "<lvl>{level:<8}</lvl>    | "
        "<c>{name}</c>:<c>{function}</c>:<c>{line}</c> | "
        "<n>{message}</n>"
    )

    logger.remove()
    logger.add(
        sink=sys.stdout,
        colorize=True,
        level=log_level,
        format=stdout_format,
        diagnose=False,
        filter=timezone_filter,
    )

    if sink_channel.get("error"):
        logger.add(
            sink=sink_channel.get("error"),
            level="ERROR",
            rotation="5 MB",
            retention="7 days",
            encoding="utf8",
            diagnose=False,
            filter=timezone_filter,
        )
    if sink_channel.get("runtime"):
        logger.add(
            sink=sink_channel.get("runtime"),
            level="TRACE",
            rotation="5 MB",
            retention="7 days",
            encoding="utf8",
            diagnose=False,
            filter=timezone_filter,
        )
    if sink_channel.get("serialize"):
        logger.add(
            sink=sink_channel.get("serialize"),
            level="DEBUG",
            format=persistent_format,
            encoding="utf8",
            diagnose=False,
            serialize=True,
            filter=timezone_filter,
        )
    if sink_channel.get("chat"):
        logger.add(
            sink=sink_channel.get("chat"),
            level="INFO",
            format="{message}",
            rotation="20 MB",
            retention="30 days",
            encoding="utf8",
            diagnose=False,
            filter=chat_log_filter,
        )
    return logger
