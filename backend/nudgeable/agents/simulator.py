"""Support Agent Simulator - Plays the customer-support agent under test."""
import logging
from typing import Optional, Sequence
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from nudgeable.models import Message, MessageRole
from .llm import build_simulation_llm, classify_model_error

logger = logging.getLogger(__name__)


def message_text(message: BaseMessage) -> str:
    """Plain text of a chat model reply."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def build_chat_messages(
    compiled_prompt: str,
    history: Sequence[Message],
    user_message: str,
) -> list[BaseMessage]:
    """System instruction, prior turns in stored order, then the new message."""
    messages: list[BaseMessage] = [SystemMessage(content=compiled_prompt)]
    for msg in history:
        if msg.role == MessageRole.ASSISTANT.value:
            messages.append(AIMessage(content=msg.content))
        else:
            messages.append(HumanMessage(content=msg.content))
    messages.append(HumanMessage(content=user_message))
    return messages


class SupportAgentSimulator:
    """Runs one chat turn against the user's compiled prompt."""

    def __init__(self, llm: Optional[BaseChatModel] = None):
        self._llm = llm

    @property
    def llm(self) -> BaseChatModel:
        if self._llm is None:
            self._llm = build_simulation_llm()
        return self._llm

    async def reply(
        self,
        compiled_prompt: str,
        history: Sequence[Message],
        user_message: str,
    ) -> str:
        """
        Send ``user_message`` with the prior ``history`` and return the reply.

        Provider failures are raised as classified model errors.
        """
        messages = build_chat_messages(compiled_prompt, history, user_message)
        try:
            response = await self.llm.ainvoke(messages)
        except Exception as exc:
            error = classify_model_error(exc)
            logger.warning("Simulation turn failed (%s): %s", error.code, exc)
            raise error from exc

        reply = message_text(response)
        logger.info("Simulation turn complete: %d prior messages, reply %d chars", len(history), len(reply))
        return reply
