"""Tests for upstream response normalization."""

import pytest

from helps_bridge.config import FilterConfig
from helps_bridge.filters import filter_book_chapter_notes
from helps_bridge.normalizer import (
    NO_NOTES,
    NO_RESPONSE,
    NO_SCRIPTURE,
    AggregateShape,
    EmptyShape,
    NotesShape,
    PassthroughShape,
    QuestionsShape,
    RawFallback,
    ScriptureShape,
    WordsShape,
    classify,
    join_text,
    normalize,
)


def text_of(payload):
    blocks = normalize(payload)
    assert len(blocks) == 1
    assert blocks[0]["type"] == "text"
    return blocks[0]["text"]


class TestClassification:
    """Shape matching happens in a fixed priority order."""

    def test_passthrough_wins_over_everything(self):
        payload = {"content": [{"type": "text", "text": "hi"}], "scripture": []}
        assert isinstance(classify(payload), PassthroughShape)

    def test_empty_content_list_is_not_passthrough(self):
        assert isinstance(classify({"content": []}), RawFallback)

    def test_aggregate_before_scripture(self):
        payload = {"scripture": [{"text": "a"}], "translationNotes": []}
        shape = classify(payload)
        assert isinstance(shape, AggregateShape)
        assert isinstance(shape.scripture, ScriptureShape)

    def test_items_are_sniffed_by_first_entry(self):
        assert isinstance(classify({"items": [{"Question": "q"}]}), QuestionsShape)
        assert isinstance(classify({"items": [{"term": "t"}]}), WordsShape)
        assert isinstance(classify({"items": [{"Note": "n"}]}), NotesShape)
        assert isinstance(classify({"items": []}), NotesShape)

    def test_none_and_non_objects(self):
        assert isinstance(classify(None), EmptyShape)
        assert isinstance(classify([1, 2]), RawFallback)


class TestScripture:
    def test_translation_suffix_and_blank_line_join(self):
        payload = {"scripture": [{"text": "In the beginning", "translation": "KJV"}, {"text": "God created"}]}
        assert text_of(payload) == "In the beginning (KJV)\n\nGod created"

    def test_empty_scripture(self):
        assert text_of({"scripture": []}) == NO_SCRIPTURE


class TestNotes:
    def test_numbered_notes_without_reference(self):
        payload = {"items": [{"Note": "first"}, {"note": "second"}, {"text": "third"}]}
        assert text_of(payload) == "1. first\n\n2. second\n\n3. third"

    def test_header_when_reference_present(self):
        payload = {"reference": "John 3:16", "items": [{"Note": "loved"}]}
        assert text_of(payload) == "Translation Notes for John 3:16:\n\n1. loved"

    def test_entry_without_known_field_is_json(self):
        assert text_of({"items": [{"Reference": "3:16"}]}) == '1. {"Reference": "3:16"}'

    def test_empty_items(self):
        assert text_of({"items": []}) == NO_NOTES

    def test_legacy_verse_notes(self):
        assert text_of({"verseNotes": [{"note": "x"}]}) == "1. x"

    def test_intro_notes_removed_before_rendering(self):
        payload = {"items": [{"Reference": "front:intro", "Note": "x"}, {"Reference": "3:16", "Note": "y"}]}
        filtered = filter_book_chapter_notes(payload, FilterConfig(filter_book_chapter_notes=True))
        assert text_of(filtered) == "1. y"


class TestWordsAndQuestions:
    def test_words(self):
        payload = {"words": [{"term": "love", "definition": "agape"}, {"name": "grace", "content": "favor"}]}
        assert text_of(payload) == "**love**\nagape\n\n**grace**\nfavor"

    def test_single_word(self):
        assert text_of({"term": "faith", "definition": "trust"}) == "**faith**\ntrust"

    def test_questions_answer_fallbacks(self):
        payload = {
            "items": [
                {"Question": "Who?", "Response": "God"},
                {"question": "What?", "answer": "The world"},
                {"question": "Why?"},
            ]
        }
        assert text_of(payload) == "Q1: Who?\nA: God\n\nQ2: What?\nA: The world\n\nQ3: Why?\nA: No answer"


class TestAggregateAndFallbacks:
    def test_aggregate_sections(self):
        payload = {
            "scripture": [{"text": "For God so loved"}],
            "translationNotes": [{"Note": "n"}],
            "translationQuestions": {"items": [{"Question": "q", "Response": "r"}]},
        }
        assert text_of(payload) == (
            "## Scripture\n\nFor God so loved\n\n"
            "## Translation Notes\n\n1. n\n\n"
            "## Translation Questions\n\nQ1: q\nA: r"
        )

    def test_result_string_and_object(self):
        assert text_of({"result": "done"}) == "done"
        assert text_of({"result": {"a": 1}}) == '{\n  "a": 1\n}'

    def test_scripture_non_string_text(self):
        assert text_of({"scripture": [{"text": 5, "translation": "KJV"}]}) == "5 (KJV)"
        assert text_of({"scripture": [{"text": {"v": "x"}}]}) == '{"v": "x"}'

    def test_empty_body(self):
        assert text_of(None) == NO_RESPONSE

    def test_passthrough_keeps_blocks(self):
        blocks = normalize({"content": [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]})
        assert blocks == [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]
        assert join_text(blocks) == "a\n\nb"

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"unexpected": True},
            {"metadata": {"totalCount": 0}},
            {"items": [None]},
            {"scripture": [None]},
            {"scripture": [{"text": 5, "translation": "KJV"}]},
            {"scripture": [{"text": 5}]},
            {"scripture": [{"text": {"v": "x"}}]},
        ],
    )
    def test_normalize_is_total(self, payload):
        blocks = normalize(payload)
        assert blocks
        assert all(block["text"] for block in blocks)
