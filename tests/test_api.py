"""
Tests for the top-level musubi API.
"""

from unittest.mock import patch

import pytest

import musubi
from musubi.diagnostics import ParserDiagnostics
from musubi.lookup import SqlDictionaryStore
from musubi.parser import Parser, ResolvedWord

from conftest import NOUN, SCRIPTS, FakeTokenizer

WARM_UP_SCRIPTS = dict(SCRIPTS, 準備=[("準備", NOUN, "ジュンビ", "準備")])


@pytest.fixture
def fake_default_tokenizer():
    tokenizer = FakeTokenizer(WARM_UP_SCRIPTS)
    with patch('musubi.default_tokenizer', return_value=tokenizer):
        yield tokenizer


class TestGetParser:

    def test_uses_sql_store(self, sql_session, fake_default_tokenizer):
        parser = musubi.get_parser(sql_session)
        assert isinstance(parser, Parser)
        assert isinstance(parser.store, SqlDictionaryStore)
        assert parser.tokenizer is fake_default_tokenizer

    def test_explicit_tokenizer(self, sql_session):
        tokenizer = FakeTokenizer()
        assert musubi.get_parser(sql_session, tokenizer).tokenizer is tokenizer


class TestParse:

    def test_parse(self, sql_session, fake_default_tokenizer):
        assert musubi.parse("オレ", session=sql_session) == [ResolvedWord("オレ", 1576870, 3)]

    def test_parse_with_diagnostics(self, sql_session, fake_default_tokenizer):
        diagnostics = ParserDiagnostics()
        musubi.parse("寒気がする", session=sql_session, diagnostics=diagnostics)
        assert diagnostics.input_text == "寒気がする"
        assert len(diagnostics.resolutions) == 3


class TestWarmUp:

    def test_timings(self, sql_session, fake_default_tokenizer):
        total, timings = musubi.warm_up(session=sql_session)
        assert total >= 0
        assert set(timings) == {'session', 'dictionary', 'tokenizer', 'total'}
        assert fake_default_tokenizer.calls == ["準備"]

    def test_verbose(self, sql_session, fake_default_tokenizer, capsys):
        musubi.warm_up(verbose=True, session=sql_session)
        out = capsys.readouterr().out
        assert "Warming up musubi caches..." in out
        assert "Total warm-up:" in out
