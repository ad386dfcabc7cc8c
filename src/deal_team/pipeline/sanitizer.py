"""
Response sanitizer: turns raw model text into a parsed JSON value.

Handles the usual ways model output arrives broken:
- Markdown code fences around the payload
- Prose before the payload ("Here is the JSON:") or after it
- Truncation at the end of the response (dangling comma, unterminated
  string, unclosed objects and arrays)

Limitation: repair only closes what is left open at the END of the text.
Interior corruption (a ``]`` where ``}`` was expected, a missing value in the
middle) is left as-is and the parse fails with JSONParseError. This is not a
general JSON recovery algorithm.
"""

import json
import re
from typing import Any

import structlog

from ..errors import JSONParseError

logger = structlog.get_logger(__name__)

_FENCE_RE = re.compile(r'```[\w+-]*')
_CLOSERS = {'{': '}', '[': ']'}
_DECODER = json.JSONDecoder()


def strip_code_fences(text: str) -> str:
    """Remove every ``` marker, with its optional language tag."""
    return _FENCE_RE.sub('', text)


def locate_payload(text: str) -> str:
    """Cut everything before the first ``{`` or ``[``, whichever comes first."""
    starts = [i for i in (text.find('{'), text.find('[')) if i != -1]
    if not starts:
        return text.strip()
    return text[min(starts):].strip()


def _parse(text: str) -> Any:
    # raw_decode stops at the end of the first complete value, so trailing
    # prose after a well-formed payload does not fail the parse.
    value, _ = _DECODER.raw_decode(text)
    return value


def _count_unescaped_quotes(text: str) -> int:
    count = 0
    escaped = False
    for char in text:
        if escaped:
            escaped = False
        elif char == '\\':
            escaped = True
        elif char == '"':
            count += 1
    return count


def _missing_closers(text: str) -> list[str]:
    """Closers still expected at the end of ``text``, innermost last."""
    stack: list[str] = []
    inside_string = False
    escaped = False

    for char in text:
        if inside_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                inside_string = False
            continue

        if char == '"':
            inside_string = True
        elif char in _CLOSERS:
            stack.append(_CLOSERS[char])
        elif char in '}]':
            # Mismatched closers are left alone.
            if stack and stack[-1] == char:
                stack.pop()

    return stack


def repair_json(text: str) -> str:
    """
    Close a JSON document that was cut off at the end.

    Steps:
    1. Drop a trailing comma
    2. Close a dangling string (odd number of unescaped quotes)
    3. Append the closers of every still-open object/array, innermost first
    """
    repaired = text.strip()

    if repaired.endswith(','):
        repaired = repaired[:-1]

    if _count_unescaped_quotes(repaired) % 2:
        repaired += '"'

    closers = _missing_closers(repaired)
    return repaired + ''.join(reversed(closers))


def extract_json(text: str) -> Any:
    """
    Parse the JSON payload out of raw model output.

    Args:
        text: Raw response text from the model

    Returns:
        The parsed JSON value (dict, list, or scalar)

    Raises:
        JSONParseError: When the payload cannot be parsed even after repair
    """
    payload = locate_payload(strip_code_fences(text))

    try:
        return _parse(payload)
    except json.JSONDecodeError as exc:
        parse_error = exc

    original_error = str(parse_error)
    repaired = repair_json(payload)
    try:
        value = _parse(repaired)
    except json.JSONDecodeError:
        logger.error(
            'sanitizer.repair_failed',
            original_error=original_error,
            raw_length=len(payload),
            repaired_tail=repaired[-200:],
        )
        raise JSONParseError(
            f'JSON Parse Failed: {original_error}',
            original_error=original_error,
            raw_text=payload,
            repaired_text=repaired,
        ) from parse_error

    logger.info(
        'sanitizer.repaired',
        original_error=original_error,
        raw_length=len(payload),
        repaired_length=len(repaired),
    )
    return value
