"""Structured reply parser.

Splits a model reply into human-readable prose and the vendor array embedded
in its last fenced ```json block.
"""

import json
import re
from dataclasses import dataclass, field
from enum import Enum

import structlog

logger = structlog.get_logger(__name__)

_FENCED_JSON = re.compile(r"```json[ \t]*\r?\n(.*?)\r?\n?[ \t]*```", re.DOTALL | re.IGNORECASE)


class BlockStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    MALFORMED = "malformed"


@dataclass
class ParsedReply:
    """Result of parsing a model reply.

    Attributes:
        prose: Reply text with the vendor block removed, trimmed.
        vendors: Decoded vendor objects, passed through as plain dicts.
        status: Whether a block was found, missing, or undecodable.
        error: Decoder message when status is MALFORMED.
    """
    prose: str
    vendors: list[dict] = field(default_factory=list)
    status: BlockStatus = BlockStatus.NOT_FOUND
    error: str = ""


def find_last_block(text: str) -> re.Match | None:
    """Return the match for the last fenced json block, or None."""
    last = None
    for match in _FENCED_JSON.finditer(text):
        last = match
    return last


def parse(raw_text: str) -> ParsedReply:
    """Extract the vendor array and the surrounding prose from a reply.

    Malformed JSON is not an error for the caller: the block is still
    stripped from the prose and the vendor list is empty.

    Args:
        raw_text: Reply text exactly as returned by the model.

    Returns:
        ParsedReply with prose, vendors and the block status.
    """
    text = raw_text or ""
    match = find_last_block(text)
    if match is None:
        return ParsedReply(prose=text.strip())

    prose = (text[:match.start()] + text[match.end():]).strip()

    try:
        decoded = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        logger.warning("parser.malformed_json", error=str(e), block_len=len(match.group(1)))
        return ParsedReply(prose=prose, status=BlockStatus.MALFORMED, error=str(e))

    if not isinstance(decoded, list):
        logger.warning("parser.not_an_array", type=type(decoded).__name__)
        return ParsedReply(prose=prose, status=BlockStatus.MALFORMED,
                           error=f"Expected a JSON array, got {type(decoded).__name__}")

    logger.debug("parser.block_found", vendors=len(decoded))
    return ParsedReply(prose=prose, vendors=decoded, status=BlockStatus.FOUND)
