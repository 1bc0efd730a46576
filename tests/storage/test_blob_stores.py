import os
import tempfile
import unittest
from pathlib import Path

from storage.errors import StorageReadError, StorageWriteError
from storage.persistence import decode_blob, encode_blob
from storage.stores import FileBlobStore, MemoryBlobStore


class MemoryBlobStoreTests(unittest.TestCase):
    def test_save_load_delete(self) -> None:
        store = MemoryBlobStore()

        store.save("b", b"2")
        store.save("a", b"1")
        store.save("a", b"3")

        self.assertEqual(b"3", store.load("a"))
        self.assertEqual(["a", "b"], store.keys())
        store.delete("a")
        store.delete("a")
        self.assertIsNone(store.load("a"))

    def test_take_returns_blob_once(self) -> None:
        store = MemoryBlobStore()
        store.save("slot", b"1")

        self.assertEqual(b"1", store.take("slot"))
        self.assertIsNone(store.take("slot"))
        self.assertEqual([], store.keys())


class FileBlobStoreTests(unittest.TestCase):
    def test_round_trip_creates_directory(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            directory = Path(temp_dir) / "nested" / "state"
            store = FileBlobStore(directory)

            store.save("wallet_snapshot", b'{"balance":"1"}')

            self.assertEqual(b'{"balance":"1"}', store.load("wallet_snapshot"))
            self.assertTrue((directory / "wallet_snapshot.json").is_file())
            self.assertEqual(["wallet_snapshot.json"], os.listdir(directory))

    def test_missing_key_loads_none_and_delete_is_idempotent(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = FileBlobStore(temp_dir)

            self.assertIsNone(store.load("absent"))
            store.delete("absent")

    def test_replace_overwrites_previous_blob(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = FileBlobStore(temp_dir)

            store.save("timer_snapshot", b"old")
            store.save("timer_snapshot", b"new")

            self.assertEqual(b"new", store.load("timer_snapshot"))

    def test_take_claims_file_and_leaves_no_residue(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = FileBlobStore(temp_dir)
            store.save("pending_action", b'{"action":"start"}')

            self.assertEqual(b'{"action":"start"}', store.take("pending_action"))
            self.assertIsNone(store.take("pending_action"))
            self.assertEqual([], os.listdir(temp_dir))

    def test_invalid_key_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = FileBlobStore(temp_dir)

            with self.assertRaises(StorageWriteError):
                store.save("../escape", b"x")

    def test_unreadable_path_raises_read_error(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = FileBlobStore(temp_dir)
            os.mkdir(os.path.join(temp_dir, "dir_key.json"))

            with self.assertRaises(StorageReadError):
                store.load("dir_key")


class BlobCodecTests(unittest.TestCase):
    def test_encoding_is_compact_and_sorted(self) -> None:
        self.assertEqual(b'{"a":1,"b":"\xc3\xa7"}', encode_blob({"b": "ç", "a": 1}))

    def test_malformed_blobs_raise_read_error(self) -> None:
        with self.assertRaises(StorageReadError):
            decode_blob(b"{not json")
        with self.assertRaises(StorageReadError):
            decode_blob(b"\xff\xfe")
        with self.assertRaises(StorageReadError):
            decode_blob(b"[1, 2]")

    def test_lists_allowed_when_requested(self) -> None:
        self.assertEqual([1, 2], decode_blob(b"[1, 2]", expect_object=False))


if __name__ == "__main__":
    unittest.main()
