"""
Story Feed: a single shared, time-bounded collection of ephemeral image posts.
"""

import asyncio
from typing import Awaitable, Callable, Dict, List, Optional

from ..models.core import Story
from ..utils.config import config
from ..utils.logging_config import get_logger
from ..utils.partition_store import PartitionStore
from ..utils.timestamp_utils import HOUR_MS, next_sequence_id, now_ms
from .errors import LimitError

logger = get_logger(__name__)

STORIES_KEY = 'stories.feed'


class StoryRepository:
    """Access to the global ``stories.feed`` partition, rewritten wholesale on every change."""

    def __init__(self, store: PartitionStore):
        self.store = store

    def load(self) -> List[Story]:
        raw = self.store.read(STORIES_KEY)
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning('Story feed partition has unexpected shape, treating as empty')
            return []
        return [Story.from_dict(item) for item in raw if isinstance(item, dict)]

    def save(self, stories: List[Story]) -> None:
        self.store.write(STORIES_KEY, [story.to_dict() for story in stories])

    def update_owner_avatar(self, owner_uid: str, avatar_url: Optional[str]) -> int:
        """Refresh the avatar snapshot on every story owned by owner_uid.

        Returns:
            Number of stories rewritten
        """
        stories = self.load()
        touched = 0
        for story in stories:
            if story.user_id == owner_uid:
                story.user_avatar_url = avatar_url
                touched += 1
        if touched:
            self.save(stories)
        return touched


class StoryFeed:
    """Post and list stories, applying the activity window and the per-owner ceiling."""

    def __init__(self,
                 repository: StoryRepository,
                 ttl_hours: Optional[int] = None,
                 max_active_per_owner: Optional[int] = None,
                 clock: Callable[[], int] = now_ms):
        self.repository = repository
        self.ttl_ms = (ttl_hours if ttl_hours is not None else config.story.ttl_hours) * HOUR_MS
        self.max_active_per_owner = max_active_per_owner if max_active_per_owner is not None else config.story.max_active_per_owner
        self.clock = clock

    def is_active(self, story: Story, now: Optional[int] = None) -> bool:
        if now is None:
            now = self.clock()
        return now - story.timestamp < self.ttl_ms

    def active_stories(self) -> List[Story]:
        now = self.clock()
        return [story for story in self.repository.load() if self.is_active(story, now)]

    def count_active(self, owner_uid: str) -> int:
        return sum(1 for story in self.active_stories() if story.user_id == owner_uid)

    def post(self, owner_uid: str, owner_name: str, owner_avatar: Optional[str], image_url: str) -> Story:
        """Append a new story for owner_uid.

        Raises:
            LimitError: If the owner already has the maximum number of active stories
        """
        stories = self.repository.load()
        now = self.clock()
        active_count = sum(1 for s in stories if s.user_id == owner_uid and self.is_active(s, now))
        if active_count >= self.max_active_per_owner:
            logger.info(f'Story limit reached for {owner_uid} ({active_count} active)')
            raise LimitError(f'You can only have up to {self.max_active_per_owner} active stories.')

        story = Story(id=next_sequence_id(),
                      user_id=owner_uid,
                      user_name=owner_name,
                      user_avatar_url=owner_avatar,
                      image_url=image_url,
                      timestamp=now)
        stories.append(story)
        self.repository.save(stories)
        logger.debug(f'Posted story {story.id} for {owner_uid}')
        return story

    def purge_expired(self) -> List[Story]:
        """Drop inactive stories from storage and return the remaining active ones."""
        stories = self.repository.load()
        now = self.clock()
        active = [story for story in stories if self.is_active(story, now)]
        if len(active) != len(stories):
            self.repository.save(active)
            logger.info(f'Purged {len(stories) - len(active)} expired stories')
        return active

    def list_active_grouped_by_owner(self, exclude_uid: Optional[str] = None) -> Dict[str, List[Story]]:
        """Active stories per owner (excluding exclude_uid), each list newest-first."""
        grouped: Dict[str, List[Story]] = {}
        for story in self.active_stories():
            if story.user_id == exclude_uid:
                continue
            grouped.setdefault(story.user_id, []).append(story)
        for owner_stories in grouped.values():
            owner_stories.sort(key=lambda s: s.timestamp, reverse=True)
        return grouped

    def list_active_for_owner(self, owner_uid: str) -> List[Story]:
        """Active stories of one owner, oldest-first, in playback order."""
        owned = [story for story in self.active_stories() if story.user_id == owner_uid]
        return sorted(owned, key=lambda s: s.timestamp)


class StoryPlayback:
    """Sequential viewer over one owner's stories.

    Shows each story for a fixed interval and auto-advances; closes after the
    last story, or immediately when there is nothing to show.
    """

    def __init__(self, stories: List[Story], interval_seconds: Optional[float] = None):
        self.stories = list(stories)
        self.interval_seconds = interval_seconds if interval_seconds is not None else config.story.playback_seconds
        self.index = 0
        self.closed = not self.stories

    @property
    def current(self) -> Optional[Story]:
        if self.closed:
            return None
        return self.stories[self.index]

    def next(self) -> Optional[Story]:
        if self.closed:
            return None
        if self.index < len(self.stories) - 1:
            self.index += 1
        else:
            self.close()
        return self.current

    def previous(self) -> Optional[Story]:
        if not self.closed and self.index > 0:
            self.index -= 1
        return self.current

    def close(self) -> None:
        self.closed = True

    async def run(self,
                  show: Callable[[Story], None],
                  sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> None:
        """Show stories one after another until the viewer closes."""
        while not self.closed:
            shown = self.current
            show(shown)
            await sleep(self.interval_seconds)
            # A manual next/previous during the wait already moved the cursor.
            if self.current is shown:
                self.next()
