"""
Core — Structured-response pipeline.

  - json_utils: Multi-strategy JSON extraction and repair for LLM output
  - chat: Retry-driven chat orchestration with decoding into a target shape
"""

from simpleai.core.chat import chat_with_retry
from simpleai.core.json_utils import (
    ExtractionCandidate,
    extract_json,
    find_json_candidate,
    is_valid_json,
    repair_json,
)

__all__ = [
    "chat_with_retry",
    "ExtractionCandidate",
    "extract_json",
    "find_json_candidate",
    "is_valid_json",
    "repair_json",
]
