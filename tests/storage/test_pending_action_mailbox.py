import datetime as dt
import unittest

from storage.pending_action import PENDING_ACTION_KEY, PendingAction, PendingActionMailbox
from storage.stores import MemoryBlobStore

NOW = dt.datetime(2026, 3, 2, 9, 0, tzinfo=dt.timezone.utc)


def _mailbox():
    store = MemoryBlobStore()
    return PendingActionMailbox(store, now_fn=lambda: NOW), store


class _PostDuringTakeStore(MemoryBlobStore):
    """Lets a second writer post while the first request is being taken."""

    def __init__(self):
        super().__init__()
        self.on_take = None

    def take(self, key: str):
        blob = super().take(key)
        hook, self.on_take = self.on_take, None
        if hook is not None:
            hook()
        return blob


class PendingActionMailboxTests(unittest.TestCase):
    def test_post_then_take_clears_slot(self) -> None:
        mailbox, store = _mailbox()

        self.assertTrue(mailbox.post(" Pause "))

        self.assertEqual(PendingAction(action="pause", requested_at=NOW), mailbox.take())
        self.assertIsNone(store.load(PENDING_ACTION_KEY))
        self.assertIsNone(mailbox.take())

    def test_newer_post_replaces_unread_one(self) -> None:
        mailbox, _ = _mailbox()

        mailbox.post("start")
        mailbox.post("reset")

        self.assertEqual("reset", mailbox.take().action)

    def test_post_racing_a_take_is_kept_for_the_next_take(self) -> None:
        store = _PostDuringTakeStore()
        mailbox = PendingActionMailbox(store, now_fn=lambda: NOW)
        mailbox.post("start")
        store.on_take = lambda: mailbox.post("pause")

        self.assertEqual("start", mailbox.take().action)
        self.assertEqual("pause", mailbox.take().action)
        self.assertIsNone(mailbox.take())

    def test_unsupported_actions_are_rejected(self) -> None:
        mailbox, store = _mailbox()

        with self.assertLogs("storage", level="WARNING"):
            self.assertFalse(mailbox.post("skip"))
        self.assertFalse(mailbox.post(""))
        self.assertEqual([], store.keys())

    def test_malformed_blob_is_discarded(self) -> None:
        mailbox, store = _mailbox()
        store.save(PENDING_ACTION_KEY, b"not json")

        with self.assertLogs("storage", level="WARNING"):
            self.assertIsNone(mailbox.take())
        self.assertIsNone(store.load(PENDING_ACTION_KEY))

    def test_unknown_stored_action_is_discarded(self) -> None:
        mailbox, store = _mailbox()
        store.save(PENDING_ACTION_KEY, b'{"action":"explode"}')

        self.assertIsNone(mailbox.take())
        self.assertEqual([], store.keys())


if __name__ == "__main__":
    unittest.main()
