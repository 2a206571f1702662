# -*- coding: utf-8 -*-
"""
@Time    : 2025/11/3 12:05
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    : 测试用的假生成上下文，不需要任何模型权重
"""
from typing import Dict, List, Sequence

import numpy as np

EOS = 0
VOCAB = 64


class FakeContext:
    """
    按脚本逐个吐出 token 的生成上下文。

    script 耗尽后一直输出 filler；tokenize 把 prompt 的每个字符当作一个 token。
    """

    def __init__(
        self,
        script: Sequence[int] = (),
        *,
        pieces: Dict[int, bytes] = None,
        n_ctx: int = 256,
        filler: int = EOS,
        eog_tokens: Sequence[int] = (),
        name: str = "ctx",
    ):
        self.name = name
        self.n_ctx = n_ctx
        self.token_eos = EOS
        self.script = list(script)
        self.pieces = pieces or {}
        self.filler = filler
        self.eog_tokens = set(eog_tokens)

        self.reset_count = 0
        self.closed = False
        self.n_past = 0
        self.max_n_past = 0
        self.evaluated: List[List[int]] = []
        self.fail_on_eval = None
        self._cursor = 0

    def reset(self) -> None:
        self.reset_count += 1
        self.n_past = 0
        self._cursor = 0

    def is_eog(self, token: int) -> bool:
        return token == self.token_eos or token in self.eog_tokens

    def tokenize(self, text: str) -> List[int]:
        return [1 + (ord(ch) % (VOCAB - 1)) for ch in text]

    def evaluate(self, tokens: Sequence[int]) -> None:
        if self.fail_on_eval is not None and len(self.evaluated) >= self.fail_on_eval:
            raise RuntimeError("llama_decode returned -1")
        self.evaluated.append(list(tokens))
        self.n_past += len(tokens)
        self.max_n_past = max(self.max_n_past, self.n_past)

    def logits(self) -> np.ndarray:
        if self._cursor < len(self.script):
            token = self.script[self._cursor]
        else:
            token = self.filler
        self._cursor += 1

        logits = np.zeros(max(VOCAB, token + 1), dtype=np.float32)
        logits[token] = 10.0
        return logits

    def token_to_bytes(self, token: int) -> bytes:
        return self.pieces.get(token, b"x")

    def close(self) -> None:
        self.closed = True


def script_for(text: str, *, eos: bool = True):
    """把一段文本拆成逐字节的 token 脚本，token id 从 2 开始编号"""
    pieces: Dict[int, bytes] = {}
    script: List[int] = []
    for byte in text.encode("utf-8"):
        token = 2 + len(pieces)
        pieces[token] = bytes([byte])
        script.append(token)
    if eos:
        script.append(EOS)
    return script, pieces

