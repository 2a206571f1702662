# -*- coding: utf-8 -*-
"""
@Time    : 2025/11/2 12:00
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    :

**本地部署的聊天翻译机器人**

把群聊里的法语、日语、中文、西班牙语消息翻译成自然的英文，全部推理在本机完成。

Pipeline
--------
1. 通用感叹词快速通道：`lol`、`xd`、`gg` 之类的消息直接视为英文
2. 在固定的候选语言范围内检测语言，英文原样返回
3. 俚语规范化：Aho-Corasick 自动机把网络俚语、方言和缩写替换成规范写法
4. M2M100 直译
5. 本地大模型（GGUF via llama.cpp）精修为地道的英文口语

Run
---
    cd app && python main.py
"""
