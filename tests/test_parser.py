"""
Tests for parser.py - end-to-end word identity resolution.
"""

import pytest

from musubi.diagnostics import ParserDiagnostics
from musubi.errors import TokenizerError
from musubi.output import reconstruct_segments
from musubi.parser import Parser, ResolvedWord, parse_text

from conftest import SCRIPTS, FakeTokenizer


def identity(words, surface):
    [word] = [w for w in words if w.original_text == surface]
    return word.word_id, word.reading_index


class TestScenarios:
    """Reference sentences with known identities."""

    def test_mama_katakana(self, parser):
        assert parser.parse("ママ") == [ResolvedWord("ママ", 1129240, 0)]

    def test_mama_hiragana(self, parser):
        assert parser.parse("まま") == [ResolvedWord("まま", 1585410, 2)]

    def test_ore_katakana(self, parser):
        assert parser.parse("オレ") == [ResolvedWord("オレ", 1576870, 3)]

    def test_omote(self, parser):
        words = parser.parse("表へ出る")
        assert [w.original_text for w in words] == ["表", "へ", "出る"]
        assert identity(words, "表") == (1489340, 0)

    def test_hyou(self, parser):
        words = parser.parse("メニュー表を見る")
        assert identity(words, "表") == (1489350, 0)
        assert identity(words, "見る") == (1259290, 0)

    def test_tsuitachi(self, parser):
        assert identity(parser.parse("七月一日に生まれた"), "一日") == (2225040, 1)

    def test_ichinichi(self, parser):
        words = parser.parse("一日でこれだけやれば")
        assert identity(words, "一日") == (1576260, 0)
        assert identity(words, "で") == (2028940, 0)

    def test_full_width_day(self, parser):
        assert identity(parser.parse("忘れられない１日が"), "１日") == (1576260, 1)

    def test_yoku_suru(self, parser):
        words = parser.parse("私はある２つのことをよくしています")
        assert identity(words, "よくしています") == (2257610, 3)

    def test_omote_ni_motion_verb(self, parser):
        assert identity(parser.parse("表に出る"), "表") == (1489340, 0)

    def test_hyou_ni_other_verb(self, parser):
        assert identity(parser.parse("表に書く"), "表") == (1489350, 0)


class TestSpecialCaseResolution:

    def test_samuke(self, parser):
        assert identity(parser.parse("寒気がする"), "寒気") == (1210410, 0)

    def test_kanki(self, parser):
        assert identity(parser.parse("寒気"), "寒気") == (2866134, 0)

    def test_ato(self, parser):
        assert identity(parser.parse("後三日"), "後") == (1269320, 0)

    def test_wazawai(self, parser):
        assert identity(parser.parse("禍"), "禍") == (1295080, 1)

    def test_ka_suffix(self, parser):
        assert identity(parser.parse("コロナ禍"), "禍") == (2844158, 0)

    def test_kara(self, parser):
        assert identity(parser.parse("空の箱"), "空") == (1245280, 0)

    def test_ano_hesitation(self, parser):
        words = parser.parse("あの、すみません")
        assert [w.original_text for w in words] == ["あの", "すみません"]
        assert identity(words, "あの") == (1000430, 0)
        assert identity(words, "すみません") == (1005930, 1)

    def test_ano_demonstrative(self, parser):
        assert identity(parser.parse("あの人"), "あの") == (1000420, 1)

    def test_hajimemashite(self, parser):
        assert parser.parse("初めまして。") == [ResolvedWord("初めまして", 1625780, 0)]

    def test_darou(self, parser):
        assert parser.parse("だろう") == [ResolvedWord("だろう", 1928670, 0)]

    def test_conjugated_verb(self, parser):
        assert identity(parser.parse("ドアが開いた"), "開いた") == (1586270, 1)

    def test_te_iru(self, parser):
        words = parser.parse("テレビを見ている")
        assert [w.original_text for w in words] == ["テレビ", "を", "見ている"]
        assert identity(words, "見ている") == (1259290, 0)


class TestEdgeCases:

    @pytest.mark.parametrize("text", ["", "   ", "\n\t", "　"])
    def test_blank_input(self, store, text):
        tokenizer = FakeTokenizer()
        assert Parser(tokenizer, store).parse(text) == []
        assert tokenizer.calls == []

    def test_unknown_words_dropped(self, parser):
        words = parser.parse("七月一日に生まれた")
        assert [w.original_text for w in words] == ["一日", "に"]

    def test_whitespace_skipped(self, parser):
        words = parser.parse("パパ と ママ")
        assert [w.original_text for w in words] == ["パパ", "と", "ママ"]

    def test_tokenizer_error_propagates(self, parser):
        with pytest.raises(TokenizerError):
            parser.parse("未知の文")

    def test_custom_special_cases(self, tokenizer, store):
        parser = Parser(tokenizer, store, special_cases=())
        assert [w.original_text for w in parser.parse("一日でこれだけやれば")][:1] == ["で"]

    def test_custom_compound_splits(self, tokenizer, store):
        parser = Parser(tokenizer, store, compound_splits=())
        assert "表" not in [w.original_text for w in parser.parse("メニュー表を見る")]

    def test_parse_text(self, tokenizer, store):
        assert parse_text("ママ", tokenizer, store) == [ResolvedWord("ママ", 1129240, 0)]


class TestProperties:

    @pytest.mark.parametrize("text", sorted(SCRIPTS))
    def test_reading_index_valid(self, parser, store, text):
        for word in parser.parse(text):
            assert 0 <= word.reading_index < store.reading_count(word.word_id)

    @pytest.mark.parametrize("text", sorted(SCRIPTS))
    def test_deterministic(self, parser, text):
        first = parser.parse(text)
        for _ in range(3):
            assert parser.parse(text) == first

    @pytest.mark.parametrize("text", sorted(SCRIPTS))
    def test_spans_ordered_and_reconstructable(self, parser, text):
        words = parser.parse(text)
        segments = reconstruct_segments(text, words)
        assert "".join(s.text for s in segments) == text
        starts = [s.start for s in segments]
        assert starts == sorted(starts)
        assert [s.text for s in segments if s.is_word] == [w.original_text for w in words]

    def test_stores_agree(self, tokenizer, memory_store, sql_store):
        for text in sorted(SCRIPTS):
            assert (Parser(tokenizer, memory_store).parse(text)
                    == Parser(tokenizer, sql_store).parse(text))


class TestDiagnosticsDoNotChangeResult:

    @pytest.mark.parametrize("text", ["表へ出る", "メニュー表を見る", "七月一日に生まれた", "ドアが開いた"])
    def test_same_result(self, parser, text):
        diagnostics = ParserDiagnostics()
        assert parser.parse(text, diagnostics) == parser.parse(text)

    def test_stages_recorded(self, parser):
        diagnostics = ParserDiagnostics()
        parser.parse("表へ出る", diagnostics)
        assert diagnostics.input_text == "表へ出る"
        assert diagnostics.tokenizer.surfaces == ["表", "へ", "出る"]
        assert [s.stage_name for s in diagnostics.token_stages] == [
            "compound-splits", "special-cases", "inflections", "reading-overrides",
        ]
        assert all(s.output_token_count == 3 for s in diagnostics.token_stages)
        assert [r.word_id for r in diagnostics.resolutions] == [1489340, 1582300, 1338240]
        assert diagnostics.resolutions[0].candidate_count == 2

    def test_merge_counts(self, parser):
        diagnostics = ParserDiagnostics()
        parser.parse("七月一日に生まれた", diagnostics)
        splits, special, inflections, _ = diagnostics.token_stages
        assert (splits.input_token_count, splits.output_token_count) == (7, 7)
        assert (special.input_token_count, special.output_token_count) == (7, 6)
        assert special.merges[0].output_token == "一日"
        assert inflections.merges[0].output_token == "生まれた"
        # the numeral is recorded as unresolved
        assert diagnostics.resolutions[0].word_id is None

    def test_split_counts(self, parser):
        diagnostics = ParserDiagnostics()
        parser.parse("メニュー表を見る", diagnostics)
        splits = diagnostics.token_stages[0]
        assert (splits.input_token_count, splits.output_token_count) == (3, 4)
        assert [m.output_token for m in splits.modifications] == ["メニュー", "表"]
