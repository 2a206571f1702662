# -*- coding: utf-8 -*-
"""
@Time    : 2025/11/2 15:20
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    : 基于 Aho-Corasick 自动机的多模式替换器（leftmost-longest）
"""
import re
from typing import Iterable, List, Sequence, Tuple

import ahocorasick
from loguru import logger

# 拉丁字母、数字及常见带重音字母。此类字符组成的模式需要落在词边界上
_WORD_CHAR = re.compile(r"[0-9A-Za-z\u00c0-\u024f]")

# 规范化替换值时的最大迭代轮数
_MAX_CANONICAL_ROUNDS = 4


def _is_word_char(ch: str) -> bool:
    return bool(_WORD_CHAR.match(ch))


class SlangMatcher:
    """
    不可变的多模式替换器。

    构建后只读，可被任意数量的并发请求共享。扫描一次文本即可完成全部替换，
    耗时与文本长度线性相关，与词典规模无关。

    匹配规则：
    - 同一起点上，最长的模式胜出（`这波操作` 优先于 `这波`）；
    - 以拉丁字母/数字开头或结尾的模式，必须落在词边界上（`con` 不会命中 `content`）；
    - 重复的模式以第一次出现的为准。
    """

    def __init__(self, entries: Iterable[Tuple[str, str]]):
        automaton = ahocorasick.Automaton()
        replacements: List[str] = []

        for pattern, replacement in entries:
            if not pattern:
                continue
            if pattern in automaton:
                logger.trace(f"跳过重复的俚语条目: {pattern!r}")
                continue
            automaton.add_word(pattern, (len(replacements), len(pattern)))
            replacements.append(replacement)

        self._size = len(replacements)
        self._automaton = automaton
        if self._size:
            automaton.make_automaton()

        self._replacements: Tuple[str, ...] = tuple(replacements)
        self._replacements = tuple(self._canonicalize(replacements))
        self._protect_canonical_forms()

    def __len__(self) -> int:
        return self._size

    def _canonicalize(self, replacements: Sequence[str]) -> List[str]:
        """
        将替换值本身也收敛到规范形式，例如 `tabarnak -> putain -> mince`。

        无法在有限轮数内收敛的条目（替换值包含自身模式，如 `水 -> 灌水/敷衍`）
        保留原始替换值，由 _protect_canonical_forms 保证其不被再次改写。
        """
        resolved = []
        for replacement in replacements:
            current = replacement
            for _ in range(_MAX_CANONICAL_ROUNDS):
                following = self.replace_all(current)
                if following == current:
                    break
                current = following
            else:
                logger.trace(f"俚语替换值无法收敛，保留原值: {replacement!r}")
                current = replacement
            resolved.append(current)
        return resolved

    def _protect_canonical_forms(self) -> None:
        """
        规范写法里含有更短的模式时（`あり -> ありがとう`、`亲 -> 顾客/亲爱的`），
        把规范写法登记为恒等模式。

        leftmost-longest 会整体命中 `ありがとう`，已经是正式写法的文本不再被改写。
        `/` 分隔的每个候选写法单独登记。恒等模式不计入词典条目数。
        """
        replacements = list(self._replacements)
        protected: List[str] = []
        for replacement in self._replacements:
            for form in [replacement, *replacement.split("/")]:
                form = form.strip()
                if not form or form in protected or form in self._automaton:
                    continue
                if self.replace_all(form) != form:
                    protected.append(form)

        if not protected:
            return

        for form in protected:
            self._automaton.add_word(form, (len(replacements), len(form)))
            replacements.append(form)
        self._automaton.make_automaton()
        self._replacements = tuple(replacements)
        logger.trace(f"登记 {len(protected)} 个恒等模式: {protected}")

    def _on_boundary(self, text: str, start: int, end: int) -> bool:
        if _is_word_char(text[start]) and start > 0 and _is_word_char(text[start - 1]):
            return False
        if _is_word_char(text[end - 1]) and end < len(text) and _is_word_char(text[end]):
            return False
        return True

    def find_all(self, text: str) -> List[Tuple[int, int, str]]:
        """
        返回 leftmost-longest 的不重叠命中列表 `[(start, end, replacement), ...]`

        自动机给出全部（可能重叠的）命中，这里记录每个起点上最长的合法命中，
        然后从左到右跳跃选取。
        """
        if not self._size or not text:
            return []

        longest = {}
        for end_index, (index, length) in self._automaton.iter(text):
            start = end_index - length + 1
            if not self._on_boundary(text, start, end_index + 1):
                continue
            current = longest.get(start)
            if current is None or length > current[1]:
                longest[start] = (index, length)

        matches = []
        cursor = 0
        while cursor < len(text):
            hit = longest.get(cursor)
            if hit is None:
                cursor += 1
                continue
            index, length = hit
            matches.append((cursor, cursor + length, self._replacements[index]))
            cursor += length
        return matches

    def replace_all(self, text: str) -> str:
        matches = self.find_all(text)
        if not matches:
            return text

        parts = []
        cursor = 0
        for start, end, replacement in matches:
            parts.append(text[cursor:start])
            parts.append(replacement)
            cursor = end
        parts.append(text[cursor:])
        return "".join(parts)
