"""
Delivery Orchestrator: simulate message delivery by writing into both participants' ledgers.
"""

import asyncio
import base64
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..models.core import Message, MessageType
from ..utils.logging_config import get_logger
from ..utils.partition_store import PartitionStoreError
from ..utils.timestamp_utils import next_sequence_id, to_display_time
from .account_directory import is_valid_uid
from .conversation_ledger import ConversationLedger
from .errors import ValidationError

logger = get_logger(__name__)


@dataclass
class DeliveryReceipt:
    """Which of the two ledger writes completed.

    The writes are not atomic across partitions: the sender's side is written
    first, and a failure on the recipient's side leaves only the sender updated.
    """
    message: Message
    sender_written: bool
    recipient_written: bool

    @property
    def complete(self) -> bool:
        return self.sender_written and self.recipient_written

    def to_dict(self):
        return {'message': self.message.to_dict(), 'sender_written': self.sender_written, 'recipient_written': self.recipient_written}


def message_type_for(mime_type: str) -> MessageType:
    if mime_type.startswith('image/'):
        return MessageType.IMAGE
    if mime_type.startswith('video/'):
        return MessageType.VIDEO
    if mime_type.startswith('audio/'):
        return MessageType.AUDIO
    return MessageType.DOCUMENT


def format_file_size(num_bytes: int) -> str:
    return f'{num_bytes / 1024:.2f} KB'


def to_data_uri(data: bytes, mime_type: str) -> str:
    return f'data:{mime_type};base64,{base64.b64encode(data).decode("ascii")}'


def build_text_message(sender_uid: str, text: str) -> Message:
    return Message(id=next_sequence_id(), sender_uid=sender_uid, type=MessageType.TEXT, timestamp=to_display_time(), text=text)


async def build_file_message(sender_uid: str,
                             path: Union[str, Path],
                             mime_type: Optional[str] = None,
                             file_name: Optional[str] = None) -> Message:
    """Read the whole file and wrap it as a self-contained data-URI message.

    The read is the single suspension point; the message exists only once the
    full file content is in memory.
    """
    path = Path(path)
    data = await asyncio.to_thread(path.read_bytes)
    file_name = file_name or path.name
    if not mime_type:
        mime_type = mimetypes.guess_type(file_name)[0] or 'application/octet-stream'

    logger.debug(f'Read {len(data)} bytes from {file_name} ({mime_type})')
    return Message(id=next_sequence_id(),
                   sender_uid=sender_uid,
                   type=message_type_for(mime_type),
                   timestamp=to_display_time(),
                   file_url=to_data_uri(data, mime_type),
                   file_name=file_name,
                   file_size=format_file_size(len(data)))


class DeliveryOrchestrator:
    """Append a message to the sender's and the recipient's ledgers."""

    def __init__(self, ledger: ConversationLedger):
        self.ledger = ledger

    def send(self, sender_uid: str, recipient_uid: str, message: Message) -> DeliveryReceipt:
        """Deliver message from sender_uid to recipient_uid.

        Touches exactly the two ledger partitions. A storage failure on the
        sender's side propagates; one on the recipient's side is logged and
        reported through the receipt.

        Raises:
            ValidationError: If recipient_uid is malformed or equals sender_uid
        """
        if not is_valid_uid(recipient_uid):
            raise ValidationError('Invalid UID. Must be 8 digits.')
        if recipient_uid == sender_uid:
            raise ValidationError('You cannot message yourself.')

        self.ledger.append_message(sender_uid, recipient_uid, message)

        try:
            self.ledger.append_message(recipient_uid, sender_uid, message)
        except PartitionStoreError as e:
            logger.error(f'Delivered {message.id} to sender ledger only; recipient {recipient_uid} write failed: {e}')
            return DeliveryReceipt(message=message, sender_written=True, recipient_written=False)

        logger.debug(f'Delivered message {message.id} {sender_uid} -> {recipient_uid}')
        return DeliveryReceipt(message=message, sender_written=True, recipient_written=True)
