"""One sourcing turn: gateway call, reply parsing, upstream fallback.

Upstream failures never leave this module as exceptions; they become the
canned apology with no vendors, which callers treat as final for the turn.
"""

from dataclasses import dataclass, field

import structlog

from backend.api.schemas import MessageRecord
from backend.core.llm_gateway import LLMError, LLMUnavailableError, ModelGateway
from backend.core.reply_parser import BlockStatus, parse

logger = structlog.get_logger(__name__)

FALLBACK_MESSAGE = "I'm having trouble connecting to the sourcing network right now. Please try again."
VENDORS_ONLY_MESSAGE = "Here are the suppliers I found for your requirement."
EMPTY_REPLY_MESSAGE = "I couldn't put together an answer that time. Could you rephrase or add more detail?"


@dataclass
class TurnResult:
    """Outcome of one model turn.

    Attributes:
        text: Prose to show the user (or the fallback apology).
        vendors: Raw vendor objects decoded from the reply.
        fallback: True if the upstream call failed.
        block_status: What the parser found in the reply.
    """
    text: str
    vendors: list[dict] = field(default_factory=list)
    fallback: bool = False
    block_status: BlockStatus = BlockStatus.NOT_FOUND


class SourcingAgent:
    """Runs turns against the model gateway."""

    def __init__(self, gateway: ModelGateway):
        self.gateway = gateway

    def ask(self, history: list[MessageRecord]) -> TurnResult:
        """Send the bounded history and parse the reply.

        Args:
            history: Conversation so far, newest message last.

        Returns:
            TurnResult; `fallback` is set instead of raising on upstream errors.
        """
        try:
            raw = self.gateway.complete(history)
        except (LLMError, LLMUnavailableError) as e:
            logger.error("agent.upstream_failed", error=str(e))
            return TurnResult(text=FALLBACK_MESSAGE, fallback=True)

        parsed = parse(raw)
        logger.info("agent.turn_parsed", status=parsed.status.value, vendors=len(parsed.vendors))

        text = parsed.prose
        if not text:
            # Reply was only the vendor block (or nothing usable)
            text = VENDORS_ONLY_MESSAGE if parsed.vendors else EMPTY_REPLY_MESSAGE
        return TurnResult(text=text, vendors=parsed.vendors, block_status=parsed.status)
