"""
Reduction of upstream JSON payloads to canonical text content.

Normalization is two steps. `classify` tries structural matchers in a fixed
priority order and returns the first shape that fits. `render` turns that
shape into a list of ``{"type": "text", "text": ...}`` blocks. Neither step
raises on well-formed JSON: unknown payloads end up as pretty-printed JSON.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Final, Optional, Union

from helps_bridge.types import TextContent, text_block

__all__ = [
    "PassthroughShape",
    "AggregateShape",
    "ScriptureShape",
    "NotesShape",
    "WordsShape",
    "QuestionsShape",
    "SingleWordShape",
    "ResultShape",
    "EmptyShape",
    "RawFallback",
    "Shape",
    "classify",
    "render",
    "normalize",
    "join_text",
]

NO_RESPONSE: Final = "No response from upstream server"
NO_SCRIPTURE: Final = "No scripture text found"
NO_NOTES: Final = "No translation notes found for this reference."
NO_WORDS: Final = "No translation words found for this reference."
NO_QUESTIONS: Final = "No translation questions found for this reference."


# --- shapes ----------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PassthroughShape:
    blocks: list[Any]


@dataclass(frozen=True, slots=True)
class ScriptureShape:
    entries: list[Any]


@dataclass(frozen=True, slots=True)
class NotesShape:
    entries: list[Any]
    reference: Optional[str] = None


@dataclass(frozen=True, slots=True)
class WordsShape:
    entries: list[Any]
    reference: Optional[str] = None


@dataclass(frozen=True, slots=True)
class QuestionsShape:
    entries: list[Any]
    reference: Optional[str] = None


@dataclass(frozen=True, slots=True)
class AggregateShape:
    scripture: Optional[ScriptureShape]
    sections: list[tuple[str, Union[NotesShape, WordsShape, QuestionsShape, "RawFallback"]]]


@dataclass(frozen=True, slots=True)
class SingleWordShape:
    term: Any
    definition: Any


@dataclass(frozen=True, slots=True)
class ResultShape:
    result: Any


@dataclass(frozen=True, slots=True)
class EmptyShape:
    """No payload at all (empty upstream body)."""


@dataclass(frozen=True, slots=True)
class RawFallback:
    payload: Any


Shape = Union[
    PassthroughShape,
    AggregateShape,
    ScriptureShape,
    NotesShape,
    WordsShape,
    QuestionsShape,
    SingleWordShape,
    ResultShape,
    EmptyShape,
    RawFallback,
]


# --- classification --------------------------------------------------------

_AGGREGATE_FIELDS: Final = (
    ("translationNotes", "Translation Notes"),
    ("translationWords", "Translation Words"),
    ("translationQuestions", "Translation Questions"),
)


def _reference(payload: dict[str, Any]) -> Optional[str]:
    ref = payload.get("reference")
    return ref if isinstance(ref, str) and ref else None


def _is_text_block(item: Any) -> bool:
    return isinstance(item, dict) and "type" in item


def _match_passthrough(payload: dict[str, Any]) -> Optional[Shape]:
    content = payload.get("content")
    if isinstance(content, list) and content and all(_is_text_block(item) for item in content):
        return PassthroughShape(content)
    return None


def _entries_of(value: Any) -> Optional[list[Any]]:
    """Accept either a bare list or an object wrapping an ``items`` list."""
    if isinstance(value, list):
        return value
    if isinstance(value, dict) and isinstance(value.get("items"), list):
        return value["items"]
    return None


def _match_aggregate(payload: dict[str, Any]) -> Optional[Shape]:
    present = [(key, label) for key, label in _AGGREGATE_FIELDS if key in payload]
    if not present:
        return None

    sections: list[tuple[str, Any]] = []
    for key, label in present:
        entries = _entries_of(payload[key])
        if entries is None:
            sections.append((label, RawFallback(payload[key])))
        elif key == "translationNotes":
            sections.append((label, NotesShape(entries)))
        elif key == "translationWords":
            sections.append((label, WordsShape(entries)))
        else:
            sections.append((label, QuestionsShape(entries)))

    scripture = payload.get("scripture")
    leading = ScriptureShape(scripture) if isinstance(scripture, list) else None
    return AggregateShape(scripture=leading, sections=sections)


def _match_scripture(payload: dict[str, Any]) -> Optional[Shape]:
    scripture = payload.get("scripture")
    if isinstance(scripture, list):
        return ScriptureShape(scripture)
    return None


def _match_items(payload: dict[str, Any]) -> Optional[Shape]:
    items = payload.get("items")
    if not isinstance(items, list):
        return None
    ref = _reference(payload)
    first = items[0] if items else None
    if isinstance(first, dict):
        if "question" in first or "Question" in first:
            return QuestionsShape(items, ref)
        if "term" in first or "definition" in first:
            return WordsShape(items, ref)
    return NotesShape(items, ref)


def _match_legacy_lists(payload: dict[str, Any]) -> Optional[Shape]:
    ref = _reference(payload)
    for key in ("notes", "verseNotes"):
        if isinstance(payload.get(key), list):
            return NotesShape(payload[key], ref)
    if isinstance(payload.get("words"), list):
        return WordsShape(payload["words"], ref)
    if isinstance(payload.get("questions"), list):
        return QuestionsShape(payload["questions"], ref)
    return None


def _match_single_word(payload: dict[str, Any]) -> Optional[Shape]:
    if "term" in payload and "definition" in payload:
        return SingleWordShape(payload["term"], payload["definition"])
    return None


def _match_result(payload: dict[str, Any]) -> Optional[Shape]:
    if "result" in payload:
        return ResultShape(payload["result"])
    return None


# Priority order: first match wins.
MATCHERS: Final[tuple[Callable[[dict[str, Any]], Optional[Shape]], ...]] = (
    _match_passthrough,
    _match_aggregate,
    _match_scripture,
    _match_items,
    _match_legacy_lists,
    _match_single_word,
    _match_result,
)


def classify(payload: Any) -> Shape:
    """Return the first shape in `MATCHERS` order that fits *payload*."""
    if payload is None:
        return EmptyShape()
    if not isinstance(payload, dict):
        return RawFallback(payload)
    for matcher in MATCHERS:
        shape = matcher(payload)
        if shape is not None:
            return shape
    return RawFallback(payload)


# --- rendering -------------------------------------------------------------


def _pretty(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


def _first(entry: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = entry.get(key)
        if value:
            return value
    return None


def _with_header(title: str, reference: Optional[str], body: str) -> str:
    if reference:
        return f"{title} for {reference}:\n\n{body}"
    return body


def _scripture_text(shape: ScriptureShape) -> str:
    if not shape.entries:
        return NO_SCRIPTURE
    parts = []
    for entry in shape.entries:
        if not isinstance(entry, dict):
            parts.append(str(entry))
            continue
        text = entry.get("text")
        if text is None:
            text = ""
        elif not isinstance(text, str):
            text = json.dumps(text, ensure_ascii=False)
        if entry.get("translation"):
            text += f" ({entry['translation']})"
        parts.append(text)
    return "\n\n".join(parts)


def _note_content(entry: Any) -> str:
    if isinstance(entry, dict):
        content = _first(entry, "Note", "note", "text", "content")
        if content is not None:
            return str(content)
        return json.dumps(entry, ensure_ascii=False)
    if isinstance(entry, str):
        return entry
    return json.dumps(entry, ensure_ascii=False)


def _notes_text(shape: NotesShape) -> str:
    if not shape.entries:
        return NO_NOTES
    body = "\n\n".join(f"{i}. {_note_content(entry)}" for i, entry in enumerate(shape.entries, start=1))
    return _with_header("Translation Notes", shape.reference, body)


def _word_text(entry: Any) -> str:
    if not isinstance(entry, dict):
        return str(entry)
    term = _first(entry, "term", "name") or "Unknown Term"
    definition = _first(entry, "definition", "content") or "No definition available"
    return f"**{term}**\n{definition}"


def _words_text(shape: WordsShape) -> str:
    if not shape.entries:
        return NO_WORDS
    body = "\n\n".join(_word_text(entry) for entry in shape.entries)
    return _with_header("Translation Words", shape.reference, body)


def _question_text(index: int, entry: Any) -> str:
    if not isinstance(entry, dict):
        return f"Q{index}: {entry}\nA: No answer"
    question = _first(entry, "question", "Question") or "No question"
    answer = _first(entry, "Response", "Answer", "answer") or "No answer"
    return f"Q{index}: {question}\nA: {answer}"


def _questions_text(shape: QuestionsShape) -> str:
    if not shape.entries:
        return NO_QUESTIONS
    body = "\n\n".join(_question_text(i, entry) for i, entry in enumerate(shape.entries, start=1))
    return _with_header("Translation Questions", shape.reference, body)


def _section_text(shape: Any) -> str:
    if isinstance(shape, NotesShape):
        return _notes_text(shape)
    if isinstance(shape, WordsShape):
        return _words_text(shape)
    if isinstance(shape, QuestionsShape):
        return _questions_text(shape)
    return _pretty(shape.payload)


def _render_passthrough(shape: PassthroughShape) -> list[TextContent]:
    blocks = []
    for item in shape.blocks:
        if item.get("type") == "text" and isinstance(item.get("text"), str):
            blocks.append(text_block(item["text"]))
        else:
            blocks.append(text_block(json.dumps(item, ensure_ascii=False)))
    return blocks


def _render_aggregate(shape: AggregateShape) -> list[TextContent]:
    parts = []
    if shape.scripture is not None:
        parts.append(f"## Scripture\n\n{_scripture_text(shape.scripture)}")
    for label, section in shape.sections:
        parts.append(f"## {label}\n\n{_section_text(section)}")
    return [text_block("\n\n".join(parts))]


def _render_result(shape: ResultShape) -> list[TextContent]:
    if isinstance(shape.result, str):
        return [text_block(shape.result)]
    return [text_block(_pretty(shape.result))]


_RENDERERS: Final[dict[type, Callable[[Any], list[TextContent]]]] = {
    PassthroughShape: _render_passthrough,
    AggregateShape: _render_aggregate,
    ScriptureShape: lambda s: [text_block(_scripture_text(s))],
    NotesShape: lambda s: [text_block(_notes_text(s))],
    WordsShape: lambda s: [text_block(_words_text(s))],
    QuestionsShape: lambda s: [text_block(_questions_text(s))],
    SingleWordShape: lambda s: [text_block(f"**{s.term}**\n{s.definition}")],
    ResultShape: _render_result,
    EmptyShape: lambda s: [text_block(NO_RESPONSE)],
    RawFallback: lambda s: [text_block(_pretty(s.payload))],
}


def render(shape: Shape) -> list[TextContent]:
    """Render a classified shape into canonical text blocks."""
    return _RENDERERS[type(shape)](shape)


def normalize(payload: Any) -> list[TextContent]:
    """Classify and render an upstream payload."""
    return render(classify(payload))


def join_text(content: list[TextContent]) -> str:
    """Collapse canonical content into one string, blocks separated by a blank line."""
    return "\n\n".join(block["text"] for block in content)
