"""
Account Directory: credentials and profile records keyed by 8-digit identifier.
"""

import re
import secrets
from typing import Callable, Dict, Optional

from ..models.core import Account, Contact
from ..utils.config import config
from ..utils.logging_config import get_logger
from ..utils.partition_store import PartitionStore
from .errors import AuthError, ValidationError
from .story_feed import StoryRepository

logger = get_logger(__name__)

CREDENTIALS_KEY = 'accounts.credentials'
PROFILES_KEY = 'accounts.profiles'

UID_PATTERN = re.compile(r'^\d{8}$')


def is_valid_uid(uid: str) -> bool:
    return isinstance(uid, str) and bool(UID_PATTERN.match(uid))


def generate_uid() -> str:
    """Uniformly random 8-digit identifier without a leading zero."""
    return str(10_000_000 + secrets.randbelow(90_000_000))


class AccountRepository:
    """Access to the ``accounts.credentials`` and ``accounts.profiles`` partitions."""

    def __init__(self, store: PartitionStore):
        self.store = store

    def load_credentials(self) -> Dict[str, str]:
        raw = self.store.read(CREDENTIALS_KEY)
        if not isinstance(raw, dict):
            return {}
        return {uid: secret for uid, secret in raw.items() if isinstance(secret, str)}

    def save_credentials(self, credentials: Dict[str, str]) -> None:
        self.store.write(CREDENTIALS_KEY, credentials)

    def load_profiles(self) -> Dict[str, Account]:
        raw = self.store.read(PROFILES_KEY)
        if not isinstance(raw, dict):
            return {}
        return {uid: Account.from_profile(uid, data) for uid, data in raw.items() if isinstance(data, dict)}

    def save_profiles(self, profiles: Dict[str, Account]) -> None:
        self.store.write(PROFILES_KEY, {uid: account.to_profile() for uid, account in profiles.items()})

    def get(self, uid: str) -> Optional[Account]:
        return self.load_profiles().get(uid)


def propagate_profile(profiles: Dict[str, Account], uid: str, name: Optional[str] = None, avatar_url: Optional[str] = None,
                      update_avatar: bool = False) -> int:
    """Push uid's live name and/or avatar into every other account's cached Contact for uid.

    Contact entries are denormalized snapshots; this is the only place they are
    brought back in line with the source profile.

    Returns:
        Number of contact entries rewritten
    """
    touched = 0
    for owner_uid, owner in profiles.items():
        if owner_uid == uid:
            continue
        for contact in owner.contacts:
            if contact.uid != uid:
                continue
            if name is not None:
                contact.name = name
            if update_avatar:
                contact.avatar_url = avatar_url
            touched += 1
    return touched


class AccountDirectory:
    """Sign-up, authentication, profile edits and symmetric contact linking."""

    def __init__(self,
                 accounts: AccountRepository,
                 stories: Optional[StoryRepository] = None,
                 uid_factory: Callable[[], str] = generate_uid,
                 min_secret_length: Optional[int] = None):
        self.accounts = accounts
        self.stories = stories
        self.uid_factory = uid_factory
        self.min_secret_length = min_secret_length if min_secret_length is not None else config.account.min_secret_length

    @staticmethod
    def _name_taken(profiles: Dict[str, Account], name: str, exclude_uid: Optional[str] = None) -> bool:
        lowered = name.lower()
        return any(uid != exclude_uid and account.name.lower() == lowered for uid, account in profiles.items())

    def create_account(self, name: str, secret: str) -> Account:
        """Create an account with a fresh identifier.

        Raises:
            ValidationError: If the secret is too short, the name is empty or already taken
        """
        if len(secret or '') < self.min_secret_length:
            raise ValidationError(f'Password must be at least {self.min_secret_length} characters long.')
        trimmed = (name or '').strip()
        if not trimmed:
            raise ValidationError('Please enter your name.')

        profiles = self.accounts.load_profiles()
        if self._name_taken(profiles, trimmed):
            raise ValidationError('This name is already taken. Please choose another one.')

        credentials = self.accounts.load_credentials()
        uid = self.uid_factory()
        while uid in credentials or uid in profiles:
            logger.debug(f'Identifier collision on {uid}, drawing again')
            uid = self.uid_factory()

        credentials[uid] = secret
        self.accounts.save_credentials(credentials)

        account = Account(uid=uid, name=trimmed)
        profiles[uid] = account
        self.accounts.save_profiles(profiles)

        logger.info(f'Created account {uid}')
        return account

    def authenticate(self, uid: str, secret: str) -> Account:
        """Return the account for uid if secret matches.

        Raises:
            AuthError: If uid is unknown, the secret mismatches, or the profile record is missing
        """
        credentials = self.accounts.load_credentials()
        if uid not in credentials or credentials[uid] != secret:
            logger.info(f'Rejected login for {uid}')
            raise AuthError('Invalid UID or password.')

        account = self.accounts.get(uid)
        if account is None:
            logger.warning(f'Credential for {uid} has no profile record')
            raise AuthError('Could not find user data. Please try signing up again.')
        return account

    def get_account(self, uid: str) -> Optional[Account]:
        return self.accounts.get(uid)

    def rename_account(self, uid: str, new_name: str) -> Account:
        """Rename uid and propagate the new name into other accounts' contact caches.

        Raises:
            ValidationError: If the name is empty, taken by another account, or uid is unknown
        """
        trimmed = (new_name or '').strip()
        if not trimmed:
            raise ValidationError('Name cannot be empty.')

        profiles = self.accounts.load_profiles()
        account = profiles.get(uid)
        if account is None:
            raise ValidationError('User with this UID does not exist.')
        if self._name_taken(profiles, trimmed, exclude_uid=uid):
            raise ValidationError('This name is already taken.')

        account.name = trimmed
        touched = propagate_profile(profiles, uid, name=trimmed)
        self.accounts.save_profiles(profiles)

        logger.info(f'Renamed account {uid}; refreshed {touched} contact entries')
        return account

    def set_avatar(self, uid: str, avatar_url: Optional[str]) -> Account:
        """Replace uid's avatar and propagate it into contact caches and story snapshots.

        Raises:
            ValidationError: If uid is unknown
        """
        profiles = self.accounts.load_profiles()
        account = profiles.get(uid)
        if account is None:
            raise ValidationError('User with this UID does not exist.')

        account.avatar_url = avatar_url or None
        touched = propagate_profile(profiles, uid, avatar_url=account.avatar_url, update_avatar=True)
        self.accounts.save_profiles(profiles)

        story_count = 0
        if self.stories is not None:
            story_count = self.stories.update_owner_avatar(uid, account.avatar_url)

        logger.info(f'Updated avatar for {uid}; refreshed {touched} contact entries and {story_count} stories')
        return account

    def link_contact(self, owner_uid: str, target_uid: str, proposed_name: str) -> Account:
        """Link owner and target as contacts of each other.

        The owner's entry uses proposed_name; the target's entry for the owner
        carries the owner's real name. Sides that are already linked are left as is.

        Returns:
            The owner's updated account

        Raises:
            ValidationError: If target_uid is malformed, equals owner_uid, is unknown,
                or a new contact is requested with an empty name
        """
        target_uid = (target_uid or '').strip()
        if not is_valid_uid(target_uid):
            raise ValidationError('Invalid UID. Must be 8 digits.')
        if target_uid == owner_uid:
            raise ValidationError('You cannot add yourself.')

        profiles = self.accounts.load_profiles()
        target = profiles.get(target_uid)
        if target is None:
            raise ValidationError('User with this UID does not exist.')
        owner = profiles.get(owner_uid)
        if owner is None:
            raise ValidationError('Your account could not be found.')

        owner_has_target = owner.find_contact(target_uid) is not None
        trimmed = (proposed_name or '').strip()
        if not owner_has_target and not trimmed:
            raise ValidationError('Contact name cannot be empty for a new contact.')

        changed = False
        if not owner_has_target:
            owner.contacts.append(Contact(uid=target_uid, name=trimmed, avatar_url=target.avatar_url))
            changed = True
        if target.find_contact(owner_uid) is None:
            target.contacts.append(Contact(uid=owner_uid, name=owner.name, avatar_url=owner.avatar_url))
            changed = True

        if changed:
            self.accounts.save_profiles(profiles)
            logger.info(f'Linked contacts {owner_uid} <-> {target_uid}')
        else:
            logger.debug(f'Contacts {owner_uid} and {target_uid} already linked')
        return owner
