"""
Shared fixtures for musubi tests.

FakeTokenizer replays analyses modelled on SudachiPy split mode C with the
core dictionary (一日 as numeral + 日, メニュー表 as one noun, 初めまして and
だろう as single tokens), so the pipeline can be exercised without loading
the Sudachi dictionary. tests/test_tokenizer.py checks the same sentences
against the real tokenizer when it is installed.
"""

from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from musubi.db.models import Base
from musubi.errors import TokenizerError
from musubi.loading.entries import entries_from_snapshot, load_entries, read_snapshot
from musubi.lookup import InMemoryDictionaryStore, SqlDictionaryStore
from musubi.parser import Parser
from musubi.tokenizer import Token, Tokenizer, check_coverage, map_part_of_speech

DATA_DIR = Path(__file__).parent / "data"
DICTIONARY_PATH = DATA_DIR / "dictionary.json"

NOUN = ("名詞", "普通名詞", "一般")
NOUN_ADVERBIAL = ("名詞", "普通名詞", "副詞可能")
NOUN_COUNTABLE = ("名詞", "普通名詞", "助数詞可能")
NUMERAL = ("名詞", "数詞")
PRONOUN = ("代名詞",)
COUNTER = ("接尾辞", "名詞的", "助数詞")
NOUN_SUFFIX = ("接尾辞", "名詞的", "一般")
VERB = ("動詞", "一般")
VERB_AUX = ("動詞", "非自立可能")
AUX = ("助動詞",)
CASE = ("助詞", "格助詞")
BINDING = ("助詞", "係助詞")
ADVERBIAL_PARTICLE = ("助詞", "副助詞")
CONJUNCTIVE = ("助詞", "接続助詞")
PRENOUN = ("連体詞",)
FILLER = ("感動詞", "フィラー")
INTERJECTION = ("感動詞", "一般")
ADVERB = ("副詞",)
NA_ADJ = ("形状詞", "一般")
COMMA = ("補助記号", "読点")
PERIOD = ("補助記号", "句点")

# text -> [(surface, pos, reading, dictionary form)]
SCRIPTS = {
    "ママ": [("ママ", NOUN, "ママ", "ママ")],
    "まま": [("まま", NOUN_ADVERBIAL, "ママ", "まま")],
    "オレ": [("オレ", PRONOUN, "オレ", "オレ")],
    "表へ出る": [
        ("表", NOUN, "ヒョウ", "表"), ("へ", CASE, "ヘ", "へ"), ("出る", VERB, "デル", "出る"),
    ],
    "表に出る": [
        ("表", NOUN, "ヒョウ", "表"), ("に", CASE, "ニ", "に"), ("出る", VERB, "デル", "出る"),
    ],
    "表に書く": [
        ("表", NOUN, "ヒョウ", "表"), ("に", CASE, "ニ", "に"), ("書く", VERB, "カク", "書く"),
    ],
    "メニュー表を見る": [
        ("メニュー表", NOUN, "メニューヒョウ", "メニュー表"),
        ("を", CASE, "ヲ", "を"), ("見る", VERB_AUX, "ミル", "見る"),
    ],
    "七月一日に生まれた": [
        ("七", NUMERAL, "ナナ", "七"), ("月", COUNTER, "ガツ", "月"),
        ("一", NUMERAL, "イチ", "一"), ("日", NOUN_COUNTABLE, "ニチ", "日"),
        ("に", CASE, "ニ", "に"), ("生まれ", VERB, "ウマレ", "生まれる"), ("た", AUX, "タ", "た"),
    ],
    "一日でこれだけやれば": [
        ("一", NUMERAL, "イチ", "一"), ("日", NOUN_COUNTABLE, "ニチ", "日"),
        ("で", CASE, "デ", "で"), ("これ", PRONOUN, "コレ", "これ"),
        ("だけ", ADVERBIAL_PARTICLE, "ダケ", "だけ"),
        ("やれ", VERB_AUX, "ヤレ", "やる"), ("ば", CONJUNCTIVE, "バ", "ば"),
    ],
    "忘れられない１日が": [
        ("忘れ", VERB, "ワスレ", "忘れる"), ("られ", AUX, "ラレ", "られる"), ("ない", AUX, "ナイ", "ない"),
        ("１", NUMERAL, "イチ", "１"), ("日", NOUN_COUNTABLE, "ニチ", "日"), ("が", CASE, "ガ", "が"),
    ],
    "十一日": [
        ("十", NUMERAL, "ジュウ", "十"), ("一", NUMERAL, "イチ", "一"), ("日", NOUN_COUNTABLE, "ニチ", "日"),
    ],
    "寒気がする": [
        ("寒気", NOUN, "カンキ", "寒気"), ("が", CASE, "ガ", "が"), ("する", VERB_AUX, "スル", "する"),
    ],
    "寒気": [("寒気", NOUN, "カンキ", "寒気")],
    "後三日": [
        ("後", NOUN_ADVERBIAL, "ゴ", "後"), ("三", NUMERAL, "サン", "三"), ("日", COUNTER, "ニチ", "日"),
    ],
    "禍": [("禍", NOUN, "カ", "禍")],
    "コロナ禍": [("コロナ", NOUN, "コロナ", "コロナ"), ("禍", NOUN_SUFFIX, "カ", "禍")],
    "空の箱": [("空", NA_ADJ, "クウ", "空"), ("の", CASE, "ノ", "の"), ("箱", NOUN, "ハコ", "箱")],
    "あの、すみません": [
        ("あの", FILLER, "アノ", "あの"), ("、", COMMA, "、", "、"),
        ("すみません", INTERJECTION, "スミマセン", "すみません"),
    ],
    "あの人": [("あの", PRENOUN, "アノ", "あの"), ("人", NOUN, "ヒト", "人")],
    "初めまして。": [
        ("初めまして", INTERJECTION, "ハジメマシテ", "初めまして"), ("。", PERIOD, "。", "。"),
    ],
    "だろう": [("だろう", AUX, "ダロウ", "だ")],
    "ありがとうございます": [
        ("ありがとう", INTERJECTION, "アリガトウ", "ありがとう"),
        ("ござい", VERB_AUX, "ゴザイ", "ござる"), ("ます", AUX, "マス", "ます"),
    ],
    "私はある２つのことをよくしています": [
        ("私", PRONOUN, "ワタシ", "私"), ("は", BINDING, "ハ", "は"), ("ある", PRENOUN, "アル", "ある"),
        ("２", NUMERAL, "ニ", "２"), ("つ", COUNTER, "ツ", "つ"), ("の", CASE, "ノ", "の"),
        ("こと", NOUN, "コト", "こと"), ("を", CASE, "ヲ", "を"), ("よく", ADVERB, "ヨク", "よく"),
        ("し", VERB_AUX, "シ", "する"), ("て", CONJUNCTIVE, "テ", "て"),
        ("い", VERB_AUX, "イ", "いる"), ("ます", AUX, "マス", "ます"),
    ],
    "ドアが開いた": [
        ("ドア", NOUN, "ドア", "ドア"), ("が", CASE, "ガ", "が"),
        ("開い", VERB, "アイ", "開く"), ("た", AUX, "タ", "た"),
    ],
    "テレビを見ている": [
        ("テレビ", NOUN, "テレビ", "テレビ"), ("を", CASE, "ヲ", "を"),
        ("見", VERB_AUX, "ミ", "見る"), ("て", CONJUNCTIVE, "テ", "て"), ("いる", VERB_AUX, "イル", "いる"),
    ],
    "パパとママ": [
        ("パパ", NOUN, "パパ", "パパ"), ("と", CASE, "ト", "と"), ("ママ", NOUN, "ママ", "ママ"),
    ],
    "パパ と ママ": [
        ("パパ", NOUN, "パパ", "パパ"), (" ", ("空白",), " ", " "), ("と", CASE, "ト", "と"),
        (" ", ("空白",), " ", " "), ("ママ", NOUN, "ママ", "ママ"),
    ],
}


def make_tokens(script):
    tokens = []
    offset = 0
    for surface, pos, reading, dictionary_form in script:
        tokens.append(Token(
            surface=surface,
            offset=offset,
            pos=map_part_of_speech(pos),
            reading=reading,
            dictionary_form=dictionary_form,
            pos_detail=pos,
        ))
        offset += len(surface)
    return tokens


class FakeTokenizer(Tokenizer):
    """Replays scripted analyses; unknown inputs raise TokenizerError."""

    def __init__(self, scripts=None):
        self.scripts = SCRIPTS if scripts is None else scripts
        self.calls = []

    def tokenize(self, text):
        self.calls.append(text)
        if not text:
            return []
        if text not in self.scripts:
            raise TokenizerError(f"no scripted analysis for {text!r}")
        tokens = make_tokens(self.scripts[text])
        check_coverage(text, tokens)
        return tokens


@pytest.fixture
def tokenizer():
    return FakeTokenizer()


@pytest.fixture(scope="session")
def snapshot():
    return read_snapshot(DICTIONARY_PATH)


@pytest.fixture(scope="session")
def memory_store(snapshot):
    return InMemoryDictionaryStore(entries_from_snapshot(snapshot))


@pytest.fixture(scope="session")
def sql_session(snapshot):
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    session = Session(engine)
    load_entries(session, snapshot)
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def sql_store(sql_session):
    return SqlDictionaryStore(sql_session)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Both store implementations over the same snapshot."""
    if request.param == "memory":
        return request.getfixturevalue("memory_store")
    return request.getfixturevalue("sql_store")


@pytest.fixture
def parser(tokenizer, store):
    return Parser(tokenizer, store)
