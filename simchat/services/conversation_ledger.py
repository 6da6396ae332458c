"""
Conversation Ledger: one partition per account holding all of its conversations.
"""

from typing import List, Optional

from ..models.core import Conversation, Message, MessageType
from ..utils.logging_config import get_logger
from ..utils.partition_store import PartitionStore

logger = get_logger(__name__)

NEW_CONVERSATION_PREVIEW = 'Say hi to start the conversation!'

PREVIEW_LABELS = {
    MessageType.IMAGE: 'Image',
    MessageType.VIDEO: 'Video',
    MessageType.AUDIO: 'Audio',
    MessageType.DOCUMENT: 'Document',
}


def ledger_key(owner_uid: str) -> str:
    return f'ledger.{owner_uid}'


def preview_for(message: Message) -> str:
    """Sidebar preview text for a message."""
    if message.type == MessageType.TEXT:
        return message.text or ''
    return PREVIEW_LABELS.get(message.type, '...')


class ConversationLedger:
    """Read-modify-write access to ``ledger.<uid>`` partitions."""

    def __init__(self, store: PartitionStore):
        self.store = store

    def load(self, owner_uid: str) -> List[Conversation]:
        raw = self.store.read(ledger_key(owner_uid))
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning(f'Ledger for {owner_uid} has unexpected shape, treating as empty')
            return []
        return [Conversation.from_dict(item) for item in raw if isinstance(item, dict)]

    def save(self, owner_uid: str, conversations: List[Conversation]) -> None:
        self.store.write(ledger_key(owner_uid), [c.to_dict() for c in conversations])

    def get(self, owner_uid: str, counterpart_uid: str) -> Optional[Conversation]:
        for conversation in self.load(owner_uid):
            if conversation.id == counterpart_uid:
                return conversation
        return None

    def ensure_conversation(self, owner_uid: str, counterpart_uid: str) -> Conversation:
        """Create an empty conversation with counterpart_uid if the owner has none."""
        conversations = self.load(owner_uid)
        for conversation in conversations:
            if conversation.id == counterpart_uid:
                return conversation

        conversation = Conversation(id=counterpart_uid, last_message=NEW_CONVERSATION_PREVIEW)
        conversations.append(conversation)
        self.save(owner_uid, conversations)
        logger.debug(f'Opened conversation {owner_uid} -> {counterpart_uid}')
        return conversation

    def append_message(self, owner_uid: str, counterpart_uid: str, message: Message) -> Conversation:
        """Append message to the owner's conversation with counterpart_uid, creating it if absent."""
        conversations = self.load(owner_uid)
        conversation = next((c for c in conversations if c.id == counterpart_uid), None)
        if conversation is None:
            conversation = Conversation(id=counterpart_uid)
            conversations.append(conversation)

        conversation.messages.append(message)
        conversation.last_message = preview_for(message)
        conversation.last_message_timestamp = message.timestamp
        self.save(owner_uid, conversations)

        logger.debug(f'Appended message {message.id} to {owner_uid} -> {counterpart_uid}')
        return conversation
