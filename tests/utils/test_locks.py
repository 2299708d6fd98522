import threading
import time

import pytest

from examhub.utils.locks import KeyedLock


class TestKeyedLock:
    def test_entry_is_dropped_after_release(self):
        locks = KeyedLock()
        with locks.hold((1, "student-a")):
            assert len(locks) == 1
        assert len(locks) == 0

    def test_entry_is_dropped_when_the_body_raises(self):
        locks = KeyedLock()
        with pytest.raises(ValueError):
            with locks.hold("key"):
                raise ValueError("boom")
        assert len(locks) == 0

    def test_nested_holds_on_different_keys(self):
        locks = KeyedLock()
        with locks.hold("a"):
            with locks.hold("b"):
                assert len(locks) == 2
            assert len(locks) == 1
        assert len(locks) == 0

    def test_different_keys_do_not_block(self):
        locks = KeyedLock()
        done = threading.Event()

        def other_key():
            with locks.hold("b"):
                done.set()

        with locks.hold("a"):
            thread = threading.Thread(target=other_key)
            thread.start()
            assert done.wait(timeout=5)
            thread.join()
        assert len(locks) == 0

    def test_same_key_is_serialised_and_cleaned_up(self):
        locks = KeyedLock()
        counter = {"value": 0}

        def increment():
            with locks.hold((7, "student-b")):
                current = counter["value"]
                time.sleep(0.005)
                counter["value"] = current + 1

        threads = [threading.Thread(target=increment) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert counter["value"] == 8
        assert len(locks) == 0
