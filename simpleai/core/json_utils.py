"""
JSON Utilities — Robust JSON extraction from LLM output.

Provides multi-strategy JSON extraction for parsing structured data
from LLM responses that may contain markdown, explanatory text, or
other non-JSON content wrapping the actual JSON payload.

Every function here is pure: no shared state, safe to call from any
number of concurrent chat pipelines.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Iterator

FENCE = "```"
JSON_FENCE = "```json"

# Leading / trailing noise LLMs commonly wrap around a payload, tried in order
NOISE_PREFIXES = ("```json", "```", "Here's the JSON:", "JSON:", "{", "[")
NOISE_SUFFIXES = ("```",)

_OPENERS = "{["
_CLOSERS = "}]"
_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}

PREVIEW_LIMIT = 200


@dataclass(frozen=True)
class ExtractionCandidate:
    """A substring of the model output that validated as JSON."""

    text: str
    strategy: str


# ── Primitives ───────────────────────────────────────────────────────


def scan_json_text(text: str) -> Iterator[tuple[int, str, bool, bool]]:
    """
    Walk ``text`` tracking string-literal and escape state.

    Yields ``(index, char, in_string, escaped)`` where both flags describe
    the state in effect when ``char`` is read: an opening quote is reported
    outside the string, its closing quote inside it.

    A backslash that is not itself escaped escapes exactly the next
    character. An unescaped double quote toggles string state.
    """
    in_string = False
    escaped = False
    for i, char in enumerate(text):
        yield i, char, in_string, escaped
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            in_string = not in_string


def is_valid_json(text: str) -> bool:
    """True if ``text`` parses as a JSON document."""
    if not text:
        return False
    try:
        json.loads(text)
    except ValueError:
        return False
    return True


def truncate_preview(text: str, limit: int = PREVIEW_LIMIT) -> str:
    """Cap ``text`` at ``limit`` characters for logs and error messages."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


# ── Repair ───────────────────────────────────────────────────────────


def repair_json(text: str) -> str:
    """
    Escape literal newlines, carriage returns and tabs inside JSON strings.

    Characters outside string literals are left untouched, so running the
    repair twice yields the same text as running it once.
    """
    out = []
    for _, char, in_string, escaped in scan_json_text(text):
        if in_string and not escaped and char in _CONTROL_ESCAPES:
            out.append(_CONTROL_ESCAPES[char])
        else:
            out.append(char)
    return "".join(out)


# ── Extraction strategies ────────────────────────────────────────────


def extract_from_fence(text: str, marker: str = JSON_FENCE) -> str | None:
    """Return the JSON between ``marker`` and the next closing fence, if valid."""
    start = text.find(marker)
    if start == -1:
        return None

    body = text[start + len(marker):]
    end = body.find(FENCE)
    if end == -1:
        return None

    candidate = body[:end].strip()
    return candidate if is_valid_json(candidate) else None


def extract_balanced(text: str) -> str | None:
    """
    Return the first balanced ``{...}`` / ``[...]`` span that is valid JSON.

    Brackets inside string literals are ignored. A balanced span that fails
    validation is skipped and scanning continues after it.
    """
    start = -1
    depth = 0
    for i, char, in_string, escaped in scan_json_text(text):
        if in_string or escaped:
            continue
        if char in _OPENERS:
            if start == -1:
                start = i
            depth += 1
        elif char in _CLOSERS and start != -1:
            depth -= 1
            if depth == 0:
                candidate = text[start:i + 1]
                if is_valid_json(candidate):
                    return candidate
                start = -1
    return None


def strip_noise(text: str) -> str:
    """Remove at most one known leading and one known trailing noise marker."""
    cleaned = text.strip()
    for prefix in NOISE_PREFIXES:
        if cleaned.startswith(prefix):
            cleaned = cleaned[len(prefix):].strip()
            break
    for suffix in NOISE_SUFFIXES:
        if cleaned.endswith(suffix):
            cleaned = cleaned[: -len(suffix)].strip()
            break
    return cleaned


def extract_with_cleanup(text: str) -> str | None:
    """Strip common LLM noise, then validate directly or by balanced span."""
    cleaned = strip_noise(text)
    if is_valid_json(cleaned):
        return cleaned
    return extract_balanced(cleaned)


# ── Pipeline ─────────────────────────────────────────────────────────


def find_json_candidate(text: str) -> ExtractionCandidate | None:
    """
    Locate a JSON payload in LLM output with multiple fallback strategies.

    Tries, in order:
      1. The trimmed response as-is
      2. The trimmed response after repairing unescaped control characters
      3. Markdown ```json ... ``` code block
      4. Markdown ``` ... ``` code block
      5. First balanced {...} / [...] span in the raw response
      6. Balanced span after stripping common prefixes/suffixes

    Returns None when nothing validates. That is an expected outcome, not
    an error: the caller decides whether to retry.
    """
    trimmed = text.strip()
    if is_valid_json(trimmed):
        return ExtractionCandidate(trimmed, "direct")

    repaired = repair_json(trimmed)
    if repaired != trimmed and is_valid_json(repaired):
        return ExtractionCandidate(repaired, "repaired")

    if JSON_FENCE in text:
        candidate = extract_from_fence(text, JSON_FENCE)
        if candidate is not None:
            return ExtractionCandidate(candidate, "json_fence")

    if FENCE in text:
        candidate = extract_from_fence(text, FENCE)
        if candidate is not None:
            return ExtractionCandidate(candidate, "fence")

    candidate = extract_balanced(text)
    if candidate is not None:
        return ExtractionCandidate(candidate, "balanced")

    candidate = extract_with_cleanup(text)
    if candidate is not None:
        return ExtractionCandidate(candidate, "cleanup")

    return None


def extract_json(text: str) -> str | None:
    """Return the first valid JSON payload found in ``text``, or None."""
    candidate = find_json_candidate(text)
    return candidate.text if candidate is not None else None
