"""
Core data models for the simulated messaging backend.

Records round-trip through the partition store as plain dicts. ``from_dict``
constructors are tolerant of missing or wrongly-typed fields so that a damaged
partition degrades to defaults instead of raising.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


def _as_str(value: Any, default: str = '') -> str:
    return value if isinstance(value, str) else default


def _as_opt_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


class MessageType(str, Enum):
    """Kind of message payload."""
    TEXT = 'text'
    IMAGE = 'image'
    VIDEO = 'video'
    AUDIO = 'audio'
    DOCUMENT = 'document'


@dataclass
class Contact:
    """Cached snapshot of another account's name and avatar.

    A cache, not a source of truth: it is refreshed by push propagation
    whenever the referenced account changes its name or avatar.
    """
    uid: str
    name: str
    avatar_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Contact':
        return cls(uid=_as_str(data.get('uid')), name=_as_str(data.get('name')), avatar_url=_as_opt_str(data.get('avatar_url')))


@dataclass
class Account:
    """Directory entry for one account."""
    uid: str  # 8 decimal digits, immutable
    name: str
    avatar_url: Optional[str] = None
    contacts: List[Contact] = field(default_factory=list)

    def find_contact(self, uid: str) -> Optional[Contact]:
        for contact in self.contacts:
            if contact.uid == uid:
                return contact
        return None

    def to_profile(self) -> Dict[str, Any]:
        """Profile record as stored in ``accounts.profiles`` (keyed by uid, so uid is omitted)."""
        return {'name': self.name, 'avatar_url': self.avatar_url, 'contacts': [c.to_dict() for c in self.contacts]}

    @classmethod
    def from_profile(cls, uid: str, data: Dict[str, Any]) -> 'Account':
        contacts = [Contact.from_dict(c) for c in _as_list(data.get('contacts')) if isinstance(c, dict)]
        return cls(uid=uid, name=_as_str(data.get('name')), avatar_url=_as_opt_str(data.get('avatar_url')), contacts=contacts)

    def to_dict(self) -> Dict[str, Any]:
        return {'uid': self.uid, **self.to_profile()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Account':
        return cls.from_profile(_as_str(data.get('uid')), data)


@dataclass
class Message:
    """Immutable message; the same record is appended to both participants' ledgers."""
    id: str
    sender_uid: str
    type: MessageType
    timestamp: str  # display time, HH:MM
    text: Optional[str] = None
    file_url: Optional[str] = None  # data URI
    file_name: Optional[str] = None
    file_size: Optional[str] = None  # e.g. '12.50 KB'

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['type'] = self.type.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Message':
        try:
            kind = MessageType(data.get('type'))
        except ValueError:
            kind = MessageType.TEXT
        return cls(id=_as_str(data.get('id')),
                   sender_uid=_as_str(data.get('sender_uid')),
                   type=kind,
                   timestamp=_as_str(data.get('timestamp')),
                   text=_as_opt_str(data.get('text')),
                   file_url=_as_opt_str(data.get('file_url')),
                   file_name=_as_opt_str(data.get('file_name')),
                   file_size=_as_opt_str(data.get('file_size')))


@dataclass
class Conversation:
    """One account's view of its exchange with a single counterpart."""
    id: str  # counterpart uid
    last_message: str = ''
    last_message_timestamp: str = ''
    messages: List[Message] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'last_message': self.last_message,
            'last_message_timestamp': self.last_message_timestamp,
            'messages': [m.to_dict() for m in self.messages]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Conversation':
        return cls(id=_as_str(data.get('id')),
                   last_message=_as_str(data.get('last_message')),
                   last_message_timestamp=_as_str(data.get('last_message_timestamp')),
                   messages=[Message.from_dict(m) for m in _as_list(data.get('messages')) if isinstance(m, dict)])


@dataclass
class Story:
    """Ephemeral image post with an owner snapshot taken at post time."""
    id: str
    user_id: str
    user_name: str
    image_url: str
    timestamp: int  # creation instant, ms since epoch
    user_avatar_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Story':
        timestamp = data.get('timestamp')
        return cls(id=_as_str(data.get('id')),
                   user_id=_as_str(data.get('user_id')),
                   user_name=_as_str(data.get('user_name')),
                   image_url=_as_str(data.get('image_url')),
                   timestamp=int(timestamp) if isinstance(timestamp, (int, float)) else 0,
                   user_avatar_url=_as_opt_str(data.get('user_avatar_url')))


@dataclass
class Result:
    """Discriminated outcome handed to the presentation layer."""
    success: bool
    value: Any = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @classmethod
    def ok(cls, value: Any = None) -> 'Result':
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, exc: Exception) -> 'Result':
        return cls(success=False, error=str(exc), error_type=type(exc).__name__)

    def to_dict(self) -> Dict[str, Any]:
        return {'success': self.success, 'value': _plain(self.value), 'error': self.error, 'error_type': self.error_type}


def _plain(value: Any) -> Any:
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value
