# Copyright (c) 2025 Trae AI. All rights reserved.

import pytest
from pathlib import Path
from videoshelf.core.models import VideoItem
from videoshelf.core.searcher import (
    QueryToken,
    Searcher,
    Stemmer,
    TokenType,
    normalize_text,
    parse_query,
)


def make_video(title, upload_date=None, filename=None):
    filename = filename or f"{title}.mp4"
    return VideoItem(
        filename=filename,
        title=title,
        path=Path("/lib") / filename,
        upload_date=upload_date,
    )


@pytest.fixture
def searcher():
    return Searcher()


def scores(searcher, videos, query):
    stemmer = Stemmer()
    tokens = parse_query(query, stemmer)
    return {v.title: searcher.score(v, tokens, stemmer) for v in videos}


def test_normalize_text_strips_case_and_accents():
    assert normalize_text("  Café CRÈME ") == "cafe creme"
    assert normalize_text(None) == ""


def test_parse_query_grammar():
    tokens = parse_query('+"Exact Phrase" word +Must')

    assert tokens[0] == QueryToken("exact phrase", TokenType.PHRASE, True)
    assert tokens[1].value == "word"
    assert tokens[1].type == TokenType.WORD
    assert not tokens[1].required
    assert tokens[1].stem == "word"
    assert tokens[2].value == "must"
    assert tokens[2].required


def test_empty_query_yields_nothing(searcher):
    videos = [make_video("Anything")]
    assert searcher.search(videos, "") == []
    assert searcher.search(videos, "   ") == []


def test_bare_word_ties_break_alphabetically(searcher):
    videos = [
        make_video("Intro to Go", "20240101"),
        make_video("Go Basics", "20240101"),
        make_video("Advanced Go", "20240101"),
    ]

    assert set(scores(searcher, videos, "Go").values()) == {50}
    results = searcher.search(videos, "Go")
    assert [v.title for v in results] == ["Advanced Go", "Go Basics", "Intro to Go"]


def test_required_missing_word_empties_results(searcher):
    videos = [make_video("Python Basics"), make_video("Go Basics")]
    assert searcher.search(videos, "+missingword") == []
    assert searcher.search(videos, "basics +missingword") == []


def test_optional_missing_word_does_not_disqualify(searcher):
    videos = [make_video("Python Basics"), make_video("Cooking")]
    results = searcher.search(videos, "python missingword")
    assert [v.title for v in results] == ["Python Basics"]


def test_word_scoring_tiers(searcher):
    videos = [
        make_video("Running Fast"),
        make_video("Python Tutorial"),
        make_video("Runs Daily"),
    ]

    assert scores(searcher, videos, "runs") == {
        "Running Fast": 30,    # stem "run"
        "Python Tutorial": 0,
        "Runs Daily": 50,      # exact word
    }
    assert scores(searcher, videos, "pyth")["Python Tutorial"] == 10


def test_phrase_scores_only_verbatim(searcher):
    videos = [make_video("Data Science with Python"), make_video("Science of Data")]
    assert scores(searcher, videos, '"data science"') == {
        "Data Science with Python": 100,
        "Science of Data": 0,
    }


def test_scores_accumulate(searcher):
    videos = [make_video("Data Science with Python")]
    assert scores(searcher, videos, '"data science" python') == {"Data Science with Python": 150}


def test_required_phrase(searcher):
    videos = [make_video("Data Science with Python"), make_video("Python for Data")]
    results = searcher.search(videos, '+"data science" python')
    assert [v.title for v in results] == ["Data Science with Python"]


def test_accent_insensitive_match(searcher):
    videos = [make_video("Café Culture")]
    assert searcher.search(videos, "cafe") == videos
    assert searcher.search(videos, "CAFÉ") == videos


def test_russian_stemming(searcher):
    videos = [make_video("Собеседование по Python")]
    assert scores(searcher, videos, "собеседования") == {"Собеседование по Python": 30}
    assert scores(searcher, videos, "собес") == {"Собеседование по Python": 10}


def test_rank_by_score_then_date_then_title(searcher):
    videos = [
        make_video("Go Basics", None),
        make_video("Go Basics Part 2", "20230101"),
        make_video("Intro to Go", "20240101"),
        make_video("Going Further", "20250101"),
    ]

    results = searcher.search(videos, "go")
    assert [v.title for v in results] == [
        "Intro to Go",        # 50, newest of the exact matches
        "Go Basics Part 2",   # 50, 2023
        "Go Basics",          # 50, no date
        "Going Further",      # stem match only
    ]


def test_falls_back_to_filename(searcher):
    video = make_video("", filename="lecture about rust.mp4")
    assert searcher.search([video], "rust") == [video]
