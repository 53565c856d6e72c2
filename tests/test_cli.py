"""
Tests for cli.py - Command line interface.
"""

import json
from unittest.mock import patch

import pytest
from sqlalchemy import select

from musubi import settings
from musubi.cli import main
from musubi.db import connection
from musubi.db.models import KanjiText
from musubi.errors import DictionaryStoreError
from musubi.parser import Parser

from conftest import DATA_DIR, DICTIONARY_PATH, FakeTokenizer


@pytest.fixture
def db_file(tmp_path):
    """An existing database path; the parser itself is patched."""
    path = tmp_path / "musubi.db"
    path.touch()
    return str(path)


@pytest.fixture
def fake_parser(memory_store):
    parser = Parser(FakeTokenizer(), memory_store)
    with patch('musubi.cli.make_parser', return_value=parser):
        yield parser


class TestCLIBasics:
    """Tests for basic CLI functionality."""

    def test_version(self, capsys):
        assert main(['--version']) == 0
        captured = capsys.readouterr()
        assert captured.out.strip() == 'musubi 0.1.0'

    def test_help(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(['--help'])
        assert exc_info.value.code == 0
        assert 'Japanese' in capsys.readouterr().out

    def test_no_args(self):
        assert main([]) == 1

    def test_missing_database(self, tmp_path, capsys):
        assert main(['-d', str(tmp_path / 'missing.db'), '表へ出る']) == 1
        assert 'dictionary database not found' in capsys.readouterr().err

    def test_input_too_long(self, capsys):
        text = 'あ' * (settings.MAX_INPUT_LENGTH + 1)
        assert main([text]) == 1
        assert 'limit is' in capsys.readouterr().err


class TestCLIParse:

    def test_default_output(self, db_file, fake_parser, capsys):
        assert main(['-d', db_file, '表へ出る']) == 0
        assert capsys.readouterr().out.splitlines() == [
            '表\t1489340\t0', 'へ\t1582300\t0', '出る\t1338240\t0',
        ]

    def test_words_joined(self, db_file, fake_parser, capsys):
        assert main(['-d', db_file, 'パパ', 'と', 'ママ']) == 0
        assert len(capsys.readouterr().out.splitlines()) == 3

    def test_full_json(self, db_file, fake_parser, capsys):
        assert main(['-f', '-d', db_file, 'あの、すみません']) == 0
        data = json.loads(capsys.readouterr().out)
        assert data['text'] == 'あの、すみません'
        assert [(w['word_id'], w['reading_index']) for w in data['words']] == [
            (1000430, 0), (1005930, 1),
        ]
        assert len(data['segments']) == 3

    def test_segments(self, db_file, fake_parser, capsys):
        assert main(['-s', '-d', db_file, '七月一日に生まれた']) == 0
        assert capsys.readouterr().out.splitlines() == [
            '七月\t-', '一日\t2225040\t1', 'に\t2028990\t0', '生まれた\t-',
        ]

    def test_diagnostics(self, db_file, fake_parser, capsys):
        assert main(['--diagnostics', '-d', db_file, '表へ出る']) == 0
        out = capsys.readouterr().out
        assert 'Input: 表へ出る' in out
        assert 'omote-directional' in out

    def test_tokenizer_error(self, db_file, fake_parser, capsys):
        assert main(['-d', db_file, '未知の文']) == 1
        assert 'Error processing text' in capsys.readouterr().err

    def test_store_error(self, db_file, capsys):
        with patch('musubi.cli.make_parser') as make_parser:
            make_parser.return_value.parse.side_effect = DictionaryStoreError('disk I/O error')
            assert main(['-d', db_file, '表']) == 1
        assert 'disk I/O error' in capsys.readouterr().err


class TestLoadCommand:

    def test_load(self, tmp_path, capsys):
        path = tmp_path / 'dict.db'
        try:
            assert main(['load', str(DICTIONARY_PATH), '-d', str(path), '--replace']) == 0
            assert path.exists()
            assert 'Loaded' in capsys.readouterr().out
            # loading twice replaces entries instead of failing
            assert main(['load', str(DICTIONARY_PATH), '-d', str(path)]) == 0
        finally:
            connection.close()

    def test_load_with_errata(self, tmp_path, capsys):
        path = tmp_path / 'dict.db'
        try:
            assert main(['load', str(DICTIONARY_PATH), '-d', str(path),
                         '--errata', str(DATA_DIR / 'errata.json')]) == 0
            assert 'Applied 3 corrections' in capsys.readouterr().out
            kanji = connection.get_session(path).execute(
                select(KanjiText).where(KanjiText.seq == 1489340)
            ).scalar_one()
            assert kanji.common == 30
        finally:
            connection.close()

    def test_missing_errata(self, tmp_path, capsys):
        args = ['load', str(DICTIONARY_PATH), '-d', str(tmp_path / 'x.db'),
                '--errata', str(tmp_path / 'none.json')]
        assert main(args) == 1
        assert 'errata file not found' in capsys.readouterr().err

    def test_missing_snapshot(self, tmp_path, capsys):
        assert main(['load', str(tmp_path / 'none.json'), '-d', str(tmp_path / 'x.db')]) == 1
        assert 'snapshot not found' in capsys.readouterr().err

    def test_bad_snapshot(self, tmp_path, capsys):
        snapshot = tmp_path / 'bad.json'
        snapshot.write_text('{}', encoding='utf-8')
        try:
            assert main(['load', str(snapshot), '-d', str(tmp_path / 'x.db')]) == 1
        finally:
            connection.close()
        assert 'Error loading snapshot' in capsys.readouterr().err


class TestRegressionCommands:

    def test_forms_pass(self, db_file, fake_parser, capsys):
        assert main(['forms', str(DATA_DIR / 'forms.json'), '-d', db_file]) == 0
        assert capsys.readouterr().out.startswith('8/8 passed, 0 failed')

    def test_diagnose_reports_failure(self, db_file, fake_parser, capsys):
        assert main(['diagnose', str(DATA_DIR / 'segmentation.json'), '-d', db_file]) == 1
        out = capsys.readouterr().out
        assert out.startswith('4/5 passed, 1 failed')
        assert 'FAIL パパとママ [OverSegmentation]' in out

    def test_json_summary(self, db_file, fake_parser, capsys):
        main(['diagnose', str(DATA_DIR / 'segmentation.json'), '-d', db_file, '--json'])
        data = json.loads(capsys.readouterr().out)
        assert data['total'] == 5
        assert data['failures'][0]['type'] == 'OverSegmentation'

    def test_missing_corpus(self, db_file, fake_parser, tmp_path, capsys):
        assert main(['forms', str(tmp_path / 'none.json'), '-d', db_file]) == 1
        assert 'Error reading corpus' in capsys.readouterr().err

    def test_missing_database(self, tmp_path, capsys):
        assert main(['forms', str(DATA_DIR / 'forms.json'), '-d', str(tmp_path / 'none.db')]) == 1
