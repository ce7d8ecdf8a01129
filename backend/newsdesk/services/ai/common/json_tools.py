"""Robust JSON extraction from LLM responses.

Generated text is *supposed* to be one JSON object but regularly arrives
wrapped in markdown fences, followed by commentary, with trailing commas,
with unescaped quotes inside values, or cut off mid-string.  Recovery is a
ladder, least invasive first:

1. parse the whole text;
2. strip a fence that wraps the whole text and parse the body;
3. parse the first brace-balanced ``{...}`` span (string-aware scan);
4. drop trailing commas;
5. escape interior double quotes inside string values;
6. close an unterminated string (and any open containers) at end of input.

Steps 4-6 are cumulative, run on the same span, and only ever rewrite
punctuation; none of them guesses at content.  Later spans are tried only
when the first one cannot be recovered.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Iterator
from typing import Any

from .errors import ExtractionError

logger = logging.getLogger(__name__)

SNIPPET_CHARS = 800

_FENCE_RE = re.compile(r"^```(?:json)?[ \t]*\r?\n?(.*?)\s*```$", re.DOTALL | re.IGNORECASE)
_OPEN_FENCE_RE = re.compile(r"^```(?:json)?[ \t]*\r?\n?", re.IGNORECASE)
_RAW_CONTROL = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}
_LITERALS = ("true", "false", "null")


def strip_code_fence(text: str) -> str:
    """Return the body of a fence wrapping all of *text*, or *text* trimmed.

    Backticks inside the body (for example in a string value) are kept.
    """
    s = text.strip()
    match = _FENCE_RE.match(s)
    if match:
        return match.group(1).strip()
    # Truncated output can open a fence and never close it.
    if s.startswith("```"):
        return _OPEN_FENCE_RE.sub("", s, count=1).strip()
    return s


def _loads_object(text: str) -> dict[str, Any]:
    value = json.loads(text)
    if not isinstance(value, dict):
        msg = f"expected a JSON object, got {type(value).__name__}"
        raise ValueError(msg)
    return value


def _match_brace(text: str, start: int) -> int | None:
    """Index of the ``}`` closing the ``{`` at *start*, ignoring braces in strings."""
    depth = 0
    in_string = False
    escape = False

    for i in range(start, len(text)):
        ch = text[i]

        if escape:
            escape = False
            continue

        if ch == "\\":
            if in_string:
                escape = True
            continue

        if ch == '"':
            in_string = not in_string
            continue

        if in_string:
            continue

        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i

    return None


def iter_object_spans(text: str) -> Iterator[tuple[str, bool]]:
    """Yield top-level ``{...}`` candidates as ``(span, closed)``.

    Scanning resumes *after* each closed span, so objects nested inside a
    candidate are never offered on their own.  An unclosed candidate runs
    to the end of *text* and ends the scan.
    """
    pos = text.find("{")
    while pos != -1:
        end = _match_brace(text, pos)
        if end is None:
            yield text[pos:], False
            return
        yield text[pos : end + 1], True
        pos = text.find("{", end + 1)


def find_balanced_object(text: str) -> str | None:
    """Return the first brace-balanced ``{...}`` span in *text*."""
    for span, closed in iter_object_spans(text):
        if closed:
            return span
    return None


def _skip_ws(text: str, i: int) -> int:
    while i < len(text) and text[i].isspace():
        i += 1
    return i


def remove_trailing_commas(text: str) -> str:
    """Drop commas that directly precede ``}`` or ``]`` outside strings."""
    out: list[str] = []
    in_string = False
    escape = False

    for i, ch in enumerate(text):
        if in_string:
            out.append(ch)
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == ",":
            j = _skip_ws(text, i + 1)
            if j < len(text) and text[j] in "}]":
                continue
        out.append(ch)

    return "".join(out)


def _closes_string(text: str, i: int) -> bool:
    """Would a quote just before index *i* plausibly terminate a string?"""
    k = _skip_ws(text, i)
    if k >= len(text):
        return True
    ch = text[k]
    if ch in ":}]":
        return True
    if ch != ",":
        return False
    m = _skip_ws(text, k + 1)
    if m >= len(text):
        return True
    nxt = text[m]
    return nxt in '"{[]}-' or nxt.isdigit() or text.startswith(_LITERALS, m)


def escape_inner_quotes(text: str) -> str:
    """Escape ``"`` characters that sit inside a string value.

    A quote inside a string counts as the terminator only when what follows
    it looks like JSON structure (``:``, ``}``, ``]``, or a comma followed
    by the start of another value); anything else is re-escaped.
    """
    out: list[str] = []
    in_string = False
    escape = False

    for i, ch in enumerate(text):
        if not in_string:
            if ch == '"':
                in_string = True
            out.append(ch)
            continue

        if escape:
            escape = False
            out.append(ch)
        elif ch == "\\":
            escape = True
            out.append(ch)
        elif ch == '"':
            if _closes_string(text, i + 1):
                in_string = False
                out.append(ch)
            else:
                out.append('\\"')
        else:
            out.append(ch)

    return "".join(out)


def _last_significant(chars: list[str]) -> str:
    for ch in reversed(chars):
        if not ch.isspace():
            return ch
    return ""


def close_truncated(text: str) -> str:
    """Close a string cut off at end of input, then any open containers.

    Raw newlines and tabs inside strings are escaped on the way.  A dangling
    object key (no value yet) is dropped, a dangling ``:`` gets ``null``.
    """
    out: list[str] = []
    closers: list[str] = []
    in_string = False
    escape = False
    key_start: int | None = None

    for ch in text:
        if in_string:
            if escape:
                escape = False
                out.append(ch)
            elif ch == "\\":
                escape = True
                out.append(ch)
            elif ch == '"':
                in_string = False
                out.append(ch)
            else:
                out.append(_RAW_CONTROL.get(ch, ch))
            continue

        if ch == '"':
            if closers and closers[-1] == "}" and _last_significant(out) in ("{", ","):
                key_start = len(out)
            in_string = True
        elif ch in "{[":
            closers.append("}" if ch == "{" else "]")
        elif ch in "}]":
            if closers and closers[-1] == ch:
                closers.pop()
        elif ch == ":":
            key_start = None
        out.append(ch)

    if escape:
        out.pop()
    if in_string:
        out.append('"')
    if key_start is not None:
        del out[key_start:]

    repaired = "".join(out).rstrip()
    while repaired.endswith(","):
        repaired = repaired[:-1].rstrip()
    if repaired.endswith(":"):
        repaired += " null"
    return repaired + "".join(reversed(closers))


REPAIRS: tuple[tuple[str, Callable[[str], str]], ...] = (
    ("trailing_commas", remove_trailing_commas),
    ("inner_quotes", escape_inner_quotes),
    ("unterminated_string", close_truncated),
)


def _failure(error: Exception, text: str, snippet_chars: int) -> ExtractionError:
    if isinstance(error, json.JSONDecodeError):
        return ExtractionError(error.msg, text.strip()[:snippet_chars], offset=error.pos)
    return ExtractionError(str(error), text.strip()[:snippet_chars])


def extract_json(text: str, *, snippet_chars: int = SNIPPET_CHARS) -> dict[str, Any]:
    """Recover the JSON object contained in *text*.

    Raises ``ExtractionError`` with the first parse failure, its offset and
    a bounded snippet of *text* when every attempt fails.
    """
    if not text or not text.strip():
        raise ExtractionError("empty response", "")

    try:
        return _loads_object(text.strip())
    except ValueError as exc:
        first_error: Exception = exc

    stripped = strip_code_fence(text)
    if stripped != text.strip():
        try:
            return _loads_object(stripped)
        except ValueError:
            pass

    for span, closed in iter_object_spans(stripped):
        value = _recover_span(span, closed)
        if value is not None:
            return value

    raise _failure(first_error, text, snippet_chars)


def _recover_span(span: str, closed: bool) -> dict[str, Any] | None:
    """Parse *span*, then apply the repairs to it cumulatively."""
    if closed:
        try:
            return _loads_object(span)
        except ValueError:
            pass

    repaired = span
    for name, repair in REPAIRS:
        repaired = repair(repaired)
        try:
            value = _loads_object(repaired)
        except ValueError:
            continue
        logger.info("Recovered JSON after %s repair", name)
        return value
    return None
