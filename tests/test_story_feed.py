import asyncio

import pytest

from simchat.models.core import Story
from simchat.services.errors import LimitError
from simchat.services.story_feed import StoryPlayback, StoryRepository
from simchat.utils.timestamp_utils import HOUR_MS

ALICE = '10000001'
BOB = '10000002'
CAROL = '10000003'


def _seed(store, *stories):
    StoryRepository(store).save(list(stories))


def test_post_appends_story_with_snapshot(feed, clock):
    story = feed.post(ALICE, 'Alice', 'avatar-a', 'img')
    assert story.user_id == ALICE
    assert story.user_name == 'Alice'
    assert story.user_avatar_url == 'avatar-a'
    assert story.timestamp == clock.now
    assert feed.list_active_for_owner(ALICE) == [story]


def test_sixteenth_story_is_rejected(feed):
    for i in range(15):
        feed.post(ALICE, 'Alice', None, f'img-{i}')

    with pytest.raises(LimitError):
        feed.post(ALICE, 'Alice', None, 'img-15')

    assert feed.count_active(ALICE) == 15
    assert len(feed.repository.load()) == 15


def test_limit_is_per_owner_and_counts_only_active(feed, clock):
    for i in range(15):
        feed.post(ALICE, 'Alice', None, f'img-{i}')
    feed.post(BOB, 'Bob', None, 'bob-img')

    clock.advance(hours=14)
    assert feed.count_active(ALICE) == 0
    feed.post(ALICE, 'Alice', None, 'fresh')
    assert feed.count_active(ALICE) == 1


def test_activity_window(store, feed, clock):
    now = clock.now
    old = Story(id='old', user_id=BOB, user_name='Bob', image_url='a', timestamp=now - 15 * HOUR_MS)
    recent = Story(id='recent', user_id=BOB, user_name='Bob', image_url='b', timestamp=now - 1 * HOUR_MS)
    edge = Story(id='edge', user_id=BOB, user_name='Bob', image_url='c', timestamp=now - 14 * HOUR_MS)
    _seed(store, old, recent, edge)

    assert [s.id for s in feed.list_active_for_owner(BOB)] == ['recent']
    assert [s.id for s in feed.list_active_grouped_by_owner(ALICE)[BOB]] == ['recent']


def test_grouped_feed_excludes_viewer_and_orders_newest_first(store, feed, clock):
    now = clock.now
    _seed(store,
          Story(id='b1', user_id=BOB, user_name='Bob', image_url='1', timestamp=now - 3 * HOUR_MS),
          Story(id='a1', user_id=ALICE, user_name='Alice', image_url='2', timestamp=now - 2 * HOUR_MS),
          Story(id='b2', user_id=BOB, user_name='Bob', image_url='3', timestamp=now - 1 * HOUR_MS),
          Story(id='c1', user_id=CAROL, user_name='Carol', image_url='4', timestamp=now))

    grouped = feed.list_active_grouped_by_owner(exclude_uid=ALICE)
    assert set(grouped) == {BOB, CAROL}
    assert [s.id for s in grouped[BOB]] == ['b2', 'b1']
    assert [s.id for s in feed.list_active_for_owner(BOB)] == ['b1', 'b2']


def test_expired_stories_stay_stored_until_purge(store, feed, clock):
    feed.post(ALICE, 'Alice', None, 'img')
    clock.advance(hours=15)
    assert feed.list_active_for_owner(ALICE) == []
    assert len(StoryRepository(store).load()) == 1

    assert feed.purge_expired() == []
    assert StoryRepository(store).load() == []


def test_corrupt_feed_reads_as_empty(store, feed):
    store.put_raw('stories.feed', '{{{')
    assert feed.active_stories() == []
    feed.post(ALICE, 'Alice', None, 'img')
    assert feed.count_active(ALICE) == 1


def _stories(n):
    return [Story(id=str(i), user_id=BOB, user_name='Bob', image_url=f'img-{i}', timestamp=i) for i in range(n)]


def test_playback_manual_navigation():
    playback = StoryPlayback(_stories(3), interval_seconds=5)
    assert playback.current.id == '0'
    playback.previous()
    assert playback.current.id == '0'
    assert playback.next().id == '1'
    assert playback.previous().id == '0'
    playback.next()
    playback.next()
    assert playback.current.id == '2'
    assert playback.next() is None
    assert playback.closed


def test_playback_of_empty_set_is_closed():
    playback = StoryPlayback([], interval_seconds=5)
    assert playback.closed
    assert playback.current is None


def test_playback_run_auto_advances_then_closes():
    shown, waits = [], []

    async def fake_sleep(seconds):
        waits.append(seconds)

    playback = StoryPlayback(_stories(3), interval_seconds=5)
    asyncio.run(playback.run(lambda story: shown.append(story.id), sleep=fake_sleep))

    assert shown == ['0', '1', '2']
    assert waits == [5, 5, 5]
    assert playback.closed
