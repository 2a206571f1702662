# -*- coding: utf-8 -*-
"""
@Time    : 2025/11/2 17:38
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    : 提示词模板
"""

# 精修模型（Qwen3 ChatML 格式）的提示词模板
# 模型输出 `<@>` 表示这条消息不需要翻译
REFINEMENT_PROMPT_TEMPLATE = """<|im_start|>system
You are a live-chat translator. You receive one chat message that was written in {language}, or a literal machine translation of it.
Rewrite it as the natural, casual English a native speaker would type in chat.
Keep the tone, slang intensity and insults of the original. Do not explain, do not add quotes, do not answer the message.
If the message is already English, is only names, emotes, links or spam, reply with exactly <@>.<|im_end|>
<|im_start|>user
{text} /no_think<|im_end|>
<|im_start|>assistant
"""

# 机器人回复模板
TRANSLATION_REPLY_TEMPLATE = "(translation) {sender}: {translation}"

# /translate 指令的回复模板
COMMAND_REPLY_TEMPLATE = "[{language}] {translation}"

WELCOME_MESSAGE = (
    "This is not a LLM! It only translates!\n"
    "Paste your message, or use /translate <text>."
)
