"""Model gateway for the OpenAI-compatible chat-completion endpoint.

Wraps a single completion call with the fixed sourcing system prompt.
DeepSeek is the default provider. The gateway performs no history trimming
and no retries: one call, one answer or one error.
"""

import os

import httpx
import openai
import structlog
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from backend.agent.prompts import SYSTEM_PROMPT
from backend.api.schemas import MessageRecord

logger = structlog.get_logger(__name__)


class LLMError(Exception):
    """Upstream rejected the request (4xx)."""
    pass


class LLMUnavailableError(Exception):
    """Upstream unreachable, timed out, or answered with a 5xx."""
    pass


_MESSAGE_TYPES = {
    "user": HumanMessage,
    "assistant": AIMessage,
    "system": SystemMessage,
}


def to_langchain_messages(history: list[MessageRecord]) -> list[BaseMessage]:
    """Convert role-tagged records into LangChain message objects."""
    return [_MESSAGE_TYPES[msg.role](content=msg.content) for msg in history]


class ModelGateway:
    """Single-endpoint chat-completion client with a fixed system prompt."""

    def __init__(self, http_client: httpx.Client | None = None):
        self.api_key = os.environ.get("LLM_API_KEY", "")
        self.base_url = os.environ.get("LLM_BASE_URL", "https://api.deepseek.com")
        self.model_name = os.environ.get("LLM_MODEL", "deepseek-chat")
        self.temperature = float(os.environ.get("LLM_TEMPERATURE", "0.7"))
        timeout = os.environ.get("LLM_TIMEOUT")
        self.timeout = float(timeout) if timeout else None

        self.llm = ChatOpenAI(
            api_key=self.api_key or "unset",
            base_url=self.base_url,
            model=self.model_name,
            temperature=self.temperature,
            timeout=self.timeout,
            max_retries=0,
            http_client=http_client,
        )

    def is_healthy(self) -> bool:
        """True if an API key is configured."""
        return bool(self.api_key)

    def build_messages(self, history: list[MessageRecord]) -> list[BaseMessage]:
        """Prepend the system prompt to the (already bounded) history."""
        return [SystemMessage(content=SYSTEM_PROMPT), *to_langchain_messages(history)]

    def complete(self, history: list[MessageRecord]) -> str:
        """Send the conversation to the model and return its raw reply text.

        Args:
            history: Ordered, already truncated conversation history.

        Returns:
            The model's reply content.

        Raises:
            LLMError: If the endpoint rejected the request (4xx).
            LLMUnavailableError: On transport failure, timeout, 5xx or an unusable body.
        """
        messages = self.build_messages(history)
        logger.debug("gateway.invoke", model=self.model_name, messages=len(messages))

        try:
            response = self.llm.invoke(messages)

        except openai.APIStatusError as e:
            if 400 <= e.status_code < 500:
                logger.error("gateway.4xx", status=e.status_code)
                raise LLMError(f"Model endpoint rejected request ({e.status_code}): {e}") from e
            logger.error("gateway.5xx", status=e.status_code)
            raise LLMUnavailableError(f"Model endpoint failed ({e.status_code}): {e}") from e

        except openai.APIConnectionError as e:
            logger.error("gateway.unreachable", error=str(e))
            raise LLMUnavailableError(f"Model endpoint unreachable: {e}") from e

        except (openai.APIError, ValueError, TypeError) as e:
            # 2xx whose body is not a chat completion (proxy page, error object)
            logger.error("gateway.bad_response", error=str(e))
            raise LLMUnavailableError(f"Model endpoint returned an unusable response: {e}") from e

        content = response.content if isinstance(response.content, str) else str(response.content)
        logger.info("gateway.ok", chars=len(content))
        return content
