"""
Property tests: cached contact and story snapshots converge on live profiles.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from simchat.services.account_directory import AccountDirectory, AccountRepository
from simchat.services.errors import LimitError, ValidationError
from simchat.services.story_feed import StoryFeed, StoryRepository
from simchat.utils.partition_store import MemoryPartitionStore

from .conftest import FakeClock, sequential_uids

ACCOUNT_COUNT = 4

operations = st.lists(
    st.one_of(
        st.tuples(st.just('rename'), st.integers(0, ACCOUNT_COUNT - 1), st.sampled_from(['Ann', 'Ben', 'Cat', 'Dan', 'Eve', 'ann'])),
        st.tuples(st.just('avatar'), st.integers(0, ACCOUNT_COUNT - 1), st.sampled_from([None, 'a.png', 'b.png', 'data:x'])),
        st.tuples(st.just('link'), st.integers(0, ACCOUNT_COUNT - 1), st.integers(0, ACCOUNT_COUNT - 1)),
        st.tuples(st.just('story'), st.integers(0, ACCOUNT_COUNT - 1), st.just('img')),
    ),
    max_size=30,
)


@settings(max_examples=60, deadline=None)
@given(operations)
def test_snapshots_converge_after_any_edit_sequence(ops):
    store = MemoryPartitionStore()
    stories = StoryRepository(store)
    directory = AccountDirectory(AccountRepository(store), stories=stories, uid_factory=sequential_uids())
    feed = StoryFeed(stories, ttl_hours=14, max_active_per_owner=15, clock=FakeClock())
    uids = [directory.create_account(f'user{i}', 'secret').uid for i in range(ACCOUNT_COUNT)]

    for op, who, arg in ops:
        uid = uids[who]
        try:
            if op == 'rename':
                directory.rename_account(uid, arg)
            elif op == 'avatar':
                directory.set_avatar(uid, arg)
            elif op == 'link':
                directory.link_contact(uid, uids[arg], 'nickname')
            else:
                account = directory.get_account(uid)
                feed.post(uid, account.name, account.avatar_url, arg)
        except (LimitError, ValidationError):
            pass

    profiles = AccountRepository(store).load_profiles()
    for owner in profiles.values():
        seen = set()
        for contact in owner.contacts:
            assert contact.uid not in seen
            seen.add(contact.uid)
            assert contact.avatar_url == profiles[contact.uid].avatar_url

    for story in stories.load():
        assert story.user_avatar_url == profiles[story.user_id].avatar_url


@settings(max_examples=60, deadline=None)
@given(st.lists(st.sampled_from(['Ann', 'Ben', 'Cat']), min_size=1, max_size=10))
def test_contact_names_follow_renames_once_linked(names):
    store = MemoryPartitionStore()
    directory = AccountDirectory(AccountRepository(store), uid_factory=sequential_uids())
    subject = directory.create_account('subject', 'secret')
    watchers = [directory.create_account(f'watcher{i}', 'secret') for i in range(3)]
    for watcher in watchers:
        directory.link_contact(watcher.uid, subject.uid, 'nick')

    for name in names:
        directory.rename_account(subject.uid, name)

    live = directory.get_account(subject.uid).name
    assert live == names[-1]
    for watcher in watchers:
        assert directory.get_account(watcher.uid).find_contact(subject.uid).name == live
