"""
Session Manager: the presentation layer's entry point into the simulated backend.

Tracks the current account for this client instance and turns every
recoverable failure into a ``Result`` instead of an exception.
"""

import inspect
from functools import wraps
from pathlib import Path
from typing import List, Optional, Union

from ..models.core import Account, Conversation, Result, Story
from ..utils.config import config
from ..utils.logging_config import get_logger
from ..utils.partition_store import PartitionStore, PartitionStoreError, create_store
from .account_directory import AccountDirectory, AccountRepository
from .conversation_ledger import ConversationLedger
from .delivery import DeliveryOrchestrator, DeliveryReceipt, build_file_message, build_text_message
from .errors import AuthError, SimChatError, ValidationError
from .reply_service import ReplyService
from .story_feed import StoryFeed, StoryPlayback, StoryRepository

logger = get_logger(__name__)

SESSION_KEY = 'session.current'


def returns_result(func):
    """Decorator wrapping a session operation's return value, SimChatError or storage failure in a Result."""

    if inspect.iscoroutinefunction(func):

        @wraps(func)
        async def async_wrapper(self, *args, **kwargs):
            try:
                return Result.ok(await func(self, *args, **kwargs))
            except (SimChatError, PartitionStoreError) as e:
                logger.warning(f'{func.__name__} failed: {type(e).__name__}: {e}')
                return Result.fail(e)

        return async_wrapper

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return Result.ok(func(self, *args, **kwargs))
        except (SimChatError, PartitionStoreError) as e:
            logger.warning(f'{func.__name__} failed: {type(e).__name__}: {e}')
            return Result.fail(e)

    return wrapper


class SessionManager:
    """Sign-up, login, profile edits, contacts, messaging and stories for the current account."""

    def __init__(self,
                 store: PartitionStore,
                 directory: AccountDirectory,
                 ledger: ConversationLedger,
                 delivery: DeliveryOrchestrator,
                 feed: StoryFeed,
                 reply_service: Optional[ReplyService] = None):
        self.store = store
        self.directory = directory
        self.ledger = ledger
        self.delivery = delivery
        self.feed = feed
        self.reply_service = reply_service
        self.current: Optional[Account] = None
        self.stories: List[Story] = []

    @classmethod
    def from_store(cls, store: PartitionStore, reply_service: Optional[ReplyService] = None) -> 'SessionManager':
        """Wire every component over a single partition store."""
        story_repository = StoryRepository(store)
        ledger = ConversationLedger(store)
        return cls(store=store,
                   directory=AccountDirectory(AccountRepository(store), stories=story_repository),
                   ledger=ledger,
                   delivery=DeliveryOrchestrator(ledger),
                   feed=StoryFeed(story_repository),
                   reply_service=reply_service)

    @classmethod
    def from_config(cls) -> 'SessionManager':
        reply_service = ReplyService() if config.reply.enabled else None
        return cls.from_store(create_store(config.store), reply_service=reply_service)

    # Session lifecycle

    def start(self) -> Optional[Account]:
        """Restore the saved session, if any, and load the active story feed.

        Stories past the activity window are purged from storage here.
        """
        snapshot = self.store.read(SESSION_KEY)
        if isinstance(snapshot, dict) and snapshot.get('uid'):
            self.current = Account.from_dict(snapshot)
            live = self.directory.get_account(self.current.uid)
            if live is not None:
                try:
                    self._set_current(live)
                except PartitionStoreError as e:
                    logger.warning(f'Could not save refreshed session: {e}')
            logger.info(f'Restored session for {self.current.uid}')
        else:
            self.current = None

        try:
            self.stories = self.feed.purge_expired()
        except PartitionStoreError as e:
            logger.warning(f'Could not purge expired stories: {e}')
            self.stories = self.feed.active_stories()
        return self.current

    def _set_current(self, account: Account) -> Account:
        self.current = account
        self.store.write(SESSION_KEY, account.to_dict())
        return account

    def _require_user(self) -> Account:
        if self.current is None:
            raise AuthError('No user logged in.')
        return self.current

    @returns_result
    def sign_up(self, name: str, secret: str) -> Account:
        account = self.directory.create_account(name, secret)
        return self._set_current(account)

    @returns_result
    def log_in(self, uid: str, secret: str) -> Account:
        account = self.directory.authenticate((uid or '').strip(), secret)
        logger.info(f'Logged in {account.uid}')
        return self._set_current(account)

    def log_out(self) -> None:
        if self.current is not None:
            logger.info(f'Logged out {self.current.uid}')
        self.current = None
        try:
            self.store.erase(SESSION_KEY)
        except PartitionStoreError as e:
            logger.warning(f'Could not clear saved session: {e}')

    @returns_result
    def refresh(self) -> Account:
        """Reload the current account from the directory."""
        user = self._require_user()
        live = self.directory.get_account(user.uid)
        if live is None:
            raise AuthError('Could not find user data. Please try signing up again.')
        return self._set_current(live)

    # Profile

    @returns_result
    def update_name(self, new_name: str) -> Account:
        user = self._require_user()
        return self._set_current(self.directory.rename_account(user.uid, new_name))

    @returns_result
    def update_avatar(self, avatar_url: Optional[str]) -> Account:
        user = self._require_user()
        account = self._set_current(self.directory.set_avatar(user.uid, avatar_url))
        self.stories = self.feed.active_stories()
        return account

    # Contacts and conversations

    @returns_result
    def link_contact(self, target_uid: str, name: str) -> Conversation:
        """Add target_uid as a contact and open a conversation with it."""
        user = self._require_user()
        self._set_current(self.directory.link_contact(user.uid, target_uid, name))
        return self.ledger.ensure_conversation(user.uid, target_uid.strip())

    @returns_result
    def list_conversations(self) -> List[Conversation]:
        user = self._require_user()
        return self.ledger.load(user.uid)

    @property
    def conversations(self) -> List[Conversation]:
        if self.current is None:
            return []
        return self.ledger.load(self.current.uid)

    @returns_result
    def send_text(self, recipient_uid: str, text: str) -> DeliveryReceipt:
        user = self._require_user()
        if not (text or '').strip():
            raise ValidationError('Message cannot be empty.')
        return self.delivery.send(user.uid, recipient_uid, build_text_message(user.uid, text))

    @returns_result
    async def send_file(self,
                        recipient_uid: str,
                        path: Union[str, Path],
                        mime_type: Optional[str] = None,
                        file_name: Optional[str] = None) -> DeliveryReceipt:
        user = self._require_user()
        try:
            message = await build_file_message(user.uid, path, mime_type=mime_type, file_name=file_name)
        except OSError as e:
            raise ValidationError(f'Could not read file: {e}')
        return self.delivery.send(user.uid, recipient_uid, message)

    @returns_result
    def suggest_reply(self, counterpart_uid: str, text: str) -> str:
        """Ask the reply collaborator for an automated answer to text."""
        user = self._require_user()
        if self.reply_service is None:
            raise ValidationError('Automated replies are disabled.')
        conversation = self.ledger.get(user.uid, counterpart_uid) or Conversation(id=counterpart_uid)
        return self.reply_service.get_reply(conversation, user.uid, text)

    # Stories

    @returns_result
    def post_story(self, image_url: str) -> Story:
        user = self._require_user()
        story = self.feed.post(user.uid, user.name, user.avatar_url, image_url)
        self.stories = self.feed.active_stories()
        return story

    @returns_result
    def list_story_feed(self) -> dict:
        user = self._require_user()
        return self.feed.list_active_grouped_by_owner(exclude_uid=user.uid)

    @returns_result
    def list_owner_stories(self, owner_uid: str) -> List[Story]:
        return self.feed.list_active_for_owner(owner_uid)

    def open_story_playback(self, owner_uid: str) -> StoryPlayback:
        return StoryPlayback(self.feed.list_active_for_owner(owner_uid))
