"""Tests for the MemoryStore class."""

import threading
from dataclasses import dataclass

from warden.bundled.auth.memory.store import MemoryStore


@dataclass
class Box:
    value: int


class TestMemoryStore:
    """Test basic MemoryStore operations."""

    def setup_method(self):
        self.store = MemoryStore()

    def test_set_and_get(self):
        self.store.set("ns", "k", Box(1))

        assert self.store.get("ns", "k") == Box(1)
        assert self.store.get("ns", "missing") is None
        assert self.store.get("other", "k") is None

    def test_reads_are_copies(self):
        self.store.set("ns", "k", Box(1))

        self.store.get("ns", "k").value = 99

        assert self.store.get("ns", "k").value == 1

    def test_writes_are_copies(self):
        box = Box(1)
        self.store.set("ns", "k", box)

        box.value = 99

        assert self.store.get("ns", "k").value == 1

    def test_exists(self):
        self.store.set("ns", "k", Box(1))

        assert self.store.exists("ns", "k")
        assert not self.store.exists("ns", "other")
        assert not self.store.exists("other", "k")

    def test_find_and_update_where(self):
        for i in range(5):
            self.store.set("ns", str(i), Box(i))

        assert self.store.update_where("ns", lambda b: b.value % 2 == 0, lambda b: setattr(b, "value", -1)) == 3
        assert sorted(b.value for b in self.store.find("ns", lambda b: True)) == [-1, -1, -1, 1, 3]
        assert self.store.find_one("ns", lambda b: b.value == 3) == Box(3)
        assert self.store.find_one("ns", lambda b: b.value == 42) is None

    def test_concurrent_updates_are_atomic(self):
        self.store.set("ns", "counter", Box(0))

        def bump():
            for _ in range(500):
                self.store.update_where(
                    "ns", lambda b: True, lambda b: setattr(b, "value", b.value + 1)
                )

        threads = [threading.Thread(target=bump) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert self.store.get("ns", "counter").value == 2000
