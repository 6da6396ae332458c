"""
Automated reply collaborator backed by Amazon Bedrock.

Entirely optional: every failure is absorbed into a fallback apology string.
"""

from typing import Any, Dict, List, Optional

from ..models.core import Conversation
from ..utils.bedrock_llm import BedrockLLM
from ..utils.config import config
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

SYSTEM_PROMPT = ('You are a helpful and friendly chat bot. The user is chatting with you as if you are another person. '
                 'Keep your responses concise and conversational.')


def build_history(conversation: Conversation, owner_uid: str, new_message: str) -> List[Dict[str, Any]]:
    """Convert the text messages of a conversation into Bedrock chat turns.

    The owner's messages become ``user`` turns and the counterpart's become
    ``assistant`` turns. Consecutive turns of the same role are merged and the
    history always starts with a user turn and ends with new_message.
    """
    history = list(conversation.messages)
    # The outbound message is normally already the newest ledger entry.
    if history and history[-1].sender_uid == owner_uid and history[-1].text == new_message:
        history = history[:-1]

    entries = [(m.text, 'user' if m.sender_uid == owner_uid else 'assistant') for m in history if m.text]
    entries.append((new_message, 'user'))

    turns: List[Dict[str, Any]] = []
    for text, role in entries:
        if not turns and role == 'assistant':
            continue
        if turns and turns[-1]['role'] == role:
            turns[-1]['content'][0]['text'] += '\n' + text
        else:
            turns.append({'role': role, 'content': [{'text': text}]})
    return turns


class ReplyService:
    """Produce an automated reply string for a conversation."""

    def __init__(self, llm: Optional[BedrockLLM] = None, fallback_text: Optional[str] = None):
        self._llm = llm
        self.fallback_text = fallback_text or config.reply.fallback_text

    @property
    def llm(self) -> BedrockLLM:
        if self._llm is None:
            self._llm = BedrockLLM(config.bedrock_llm)
        return self._llm

    def get_reply(self, conversation: Conversation, owner_uid: str, new_message: str) -> str:
        try:
            messages = build_history(conversation, owner_uid, new_message)
            reply = self.llm.generate_response(messages=messages, system_prompt=SYSTEM_PROMPT)
            if not reply.strip():
                logger.warning('Empty reply from Bedrock, using fallback')
                return self.fallback_text
            return reply.strip()
        except Exception as e:
            logger.error(f'Error getting automated reply for conversation {conversation.id}: {e}')
            return self.fallback_text
