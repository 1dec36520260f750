"""Tests for lexical similarity helpers."""

from veritas.knowledge.similarity import (
    score_aspect,
    select_top_aspects,
    select_top_by_similarity,
    tokenize,
)


def test_tokenize_keeps_words_of_three_or_more():
    assert tokenize("RPO <= 4h, backups RUN at 02:00") == {"rpo", "backups", "run"}
    assert tokenize(None) == set()


def test_rule_bonus_breaks_ties():
    aspects = [
        {"id": "f1", "type": "fact", "content": "quarterly access review performed"},
        {"id": "r1", "type": "rule", "content": "quarterly access review"},
    ]
    reference = tokenize("quarterly access review")

    assert score_aspect(reference, aspects[0]) == 3
    assert score_aspect(reference, aspects[1]) == 3.5
    assert [a["id"] for a in select_top_aspects("quarterly access review", aspects)] == ["r1", "f1"]


def test_equal_scores_keep_original_order():
    aspects = [
        {"id": "a", "type": "fact", "content": "alpha beta"},
        {"id": "b", "type": "fact", "content": "alpha gamma"},
        {"id": "c", "type": "fact", "content": "unrelated words"},
    ]
    assert [a["id"] for a in select_top_aspects("alpha", aspects, limit=2)] == ["a", "b"]


def test_tags_count_as_tokens():
    aspect = {"type": "fact", "content": "nightly job", "tags": ["Backups"]}
    assert score_aspect(tokenize("backups nightly"), aspect) == 2


def test_similarity_ranking_falls_back_to_all_records():
    records = [{"content": "apples and pears"}, {"content": "bananas"}]

    ranked = select_top_by_similarity("bananas smoothie", records, "content", limit=5)
    assert ranked[0]["content"] == "bananas"
    assert len(ranked) == 1

    unrelated = select_top_by_similarity("zzz qqq", records, "content", limit=5)
    assert unrelated == records
