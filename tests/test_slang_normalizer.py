# -*- coding: utf-8 -*-
"""
@Time    : 2025/11/3 10:12
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    : Tests for slang matching and normalization
"""
import pytest

from models import Language
from triggers.auto_translation.slang import DEFAULT_DICTIONARIES, SlangNormalizer, is_universal_slang
from triggers.auto_translation.slang.matcher import SlangMatcher


@pytest.fixture(scope="module")
def normalizer():
    return SlangNormalizer()


class TestSlangMatcher:
    def test_longest_match_wins_at_same_start(self):
        matcher = SlangMatcher([("ab", "X"), ("abc", "Y")])
        assert matcher.replace_all("abc ab") == "Y X"

    def test_longest_match_independent_of_entry_order(self):
        matcher = SlangMatcher([("草生える", "面白い"), ("草", "笑")])
        assert matcher.replace_all("草生える") == "面白い"
        assert matcher.replace_all("草だ") == "笑だ"

    def test_non_matching_spans_pass_through(self):
        matcher = SlangMatcher([("水", "W")])
        assert matcher.replace_all("山と水と空") == "山とWと空"

    def test_latin_pattern_respects_word_boundary(self):
        matcher = SlangMatcher([("con", "idiot")])
        assert matcher.replace_all("le contenu est content") == "le contenu est content"
        assert matcher.replace_all("t'es con!") == "t'es idiot!"
        assert matcher.replace_all("con") == "idiot"

    def test_latin_pattern_next_to_cjk_still_matches(self):
        matcher = SlangMatcher([("yyds", "永远的神")])
        assert matcher.replace_all("太秀了yyds") == "太秀了永远的神"

    def test_first_duplicate_wins(self):
        matcher = SlangMatcher([("md", "A"), ("md", "B")])
        assert len(matcher) == 1
        assert matcher.replace_all("md") == "A"

    def test_replacements_are_canonicalized(self):
        matcher = SlangMatcher([("tabarnak", "putain"), ("putain", "mince")])
        assert matcher.replace_all("tabarnak") == "mince"

    def test_non_converging_replacement_keeps_raw_value(self):
        matcher = SlangMatcher([("水", "灌水")])
        assert matcher.replace_all("水") == "灌水"
        assert matcher.replace_all("灌水") == "灌水"

    def test_canonical_form_containing_its_pattern_is_kept(self):
        matcher = SlangMatcher([("あり", "ありがとう"), ("亲", "顾客/亲爱的")])
        assert len(matcher) == 2
        assert matcher.replace_all("あり") == "ありがとう"
        assert matcher.replace_all("ありがとう") == "ありがとう"
        assert matcher.replace_all("亲") == "顾客/亲爱的"
        assert matcher.replace_all("亲爱的朋友") == "亲爱的朋友"

    def test_empty_matcher(self):
        matcher = SlangMatcher([])
        assert len(matcher) == 0
        assert matcher.replace_all("anything") == "anything"
        assert matcher.find_all("anything") == []

    def test_find_all_returns_spans(self):
        matcher = SlangMatcher([("mdr", "mort de rire"), ("tkt", "ne t'inquiète pas")])
        assert matcher.find_all("mdr tkt") == [
            (0, 3, "mort de rire"),
            (4, 7, "ne t'inquiète pas"),
        ]


class TestSlangNormalizer:
    def test_french_idiom_replaced_as_a_whole(self, normalizer):
        assert normalizer.normalize(Language.FRENCH, "c'est un truc de ouf") == "c'est un incroyable"
        assert normalizer.normalize(Language.FRENCH, "il est ouf") == "il est fou"

    def test_french_chain_resolves_to_final_form(self, normalizer):
        assert normalizer.normalize(Language.FRENCH, "tabarnak") == "mince"
        assert normalizer.normalize(Language.FRENCH, "osti de marde") == "zut de zut"

    def test_japanese_longest_idiom(self, normalizer):
        assert normalizer.normalize(Language.JAPANESE, "マジ草生える") == "マジ面白い"
        assert normalizer.normalize(Language.JAPANESE, "草www") == "面白い大爆笑"

    def test_chinese_longest_idiom(self, normalizer):
        assert normalizer.normalize(Language.CHINESE, "我被种草了") == "我被推荐了"
        assert normalizer.normalize(Language.CHINESE, "这波操作太秀了，yyds") == "这波操作太秀了，永远的神"

    def test_english_bypasses(self, normalizer):
        assert normalizer.normalize(Language.ENGLISH, "mdr tkt") == "mdr tkt"

    def test_language_without_dictionary_passes_through(self, normalizer):
        assert Language.SPANISH not in normalizer.languages
        assert normalizer.normalize(Language.SPANISH, "qué onda güey") == "qué onda güey"

    @pytest.mark.parametrize(
        "language, text",
        [
            (Language.FRENCH, "mdr t'es con, tabarnak"),
            (Language.FRENCH, "wesh la meuf, tkt c'est un truc de ouf"),
            (Language.JAPANESE, "草生える、それな"),
            (Language.CHINESE, "xswl，这就触及到我的知识盲区了"),
        ],
    )
    def test_normalization_is_idempotent(self, normalizer, language, text):
        once = normalizer.normalize(language, text)
        assert once != text
        assert normalizer.normalize(language, once) == once


    @pytest.mark.parametrize("language", [Language.FRENCH, Language.JAPANESE, Language.CHINESE])
    def test_every_dictionary_pattern_is_idempotent(self, normalizer, language):
        for pattern, _ in DEFAULT_DICTIONARIES[language]:
            once = normalizer.normalize(language, pattern)
            assert normalizer.normalize(language, once) == once, pattern

    @pytest.mark.parametrize(
        "language, text",
        [
            (Language.JAPANESE, "本当にありがとう"),
            (Language.JAPANESE, "よろしくお願いします"),
            (Language.JAPANESE, "誕生日おめでとう"),
            (Language.JAPANESE, "キルレートが高い"),
            (Language.CHINESE, "亲爱的朋友"),
            (Language.CHINESE, "我是他的粉丝"),
        ],
    )
    def test_formal_words_are_left_alone(self, normalizer, language, text):
        assert normalizer.normalize(language, text) == text


class TestUniversalSlang:
    @pytest.mark.parametrize("text", ["lol", "LOL xd", "bruh!!", "lmao 😂", "o7"])
    def test_universal_tokens(self, text):
        assert is_universal_slang(text)

    @pytest.mark.parametrize("text", ["", "   ", "😂😂", "gg wp", "lol c'est drôle", "草"])
    def test_not_universal(self, text):
        assert not is_universal_slang(text)
