"""Tests for squadboard.lib.locking module."""

import pytest

from squadboard.lib.locking import LockTimeout, card_lock, session_lock


class TestCardLock:

    def test_lock_file_location(self, tmp_path):
        with card_lock(tmp_path, "abc123", timeout=1):
            assert (tmp_path / "locks" / "cards" / "abc123.lock").exists()

    def test_reacquire_after_release(self, tmp_path):
        with card_lock(tmp_path, "abc123", timeout=1):
            pass
        with card_lock(tmp_path, "abc123", timeout=1):
            pass

    def test_contention_times_out(self, tmp_path):
        with card_lock(tmp_path, "abc123", timeout=1):
            with pytest.raises(LockTimeout, match="card abc123"):
                with card_lock(tmp_path, "abc123", timeout=0.2):
                    pass

    def test_different_cards_do_not_contend(self, tmp_path):
        with card_lock(tmp_path, "aaa", timeout=1):
            with card_lock(tmp_path, "bbb", timeout=0.2):
                pass

    def test_released_on_error(self, tmp_path):
        with pytest.raises(RuntimeError):
            with card_lock(tmp_path, "abc123", timeout=1):
                raise RuntimeError("boom")
        with card_lock(tmp_path, "abc123", timeout=0.2):
            pass


class TestSessionLock:

    def test_session_and_card_locks_are_separate(self, tmp_path):
        with card_lock(tmp_path, "same", timeout=1):
            with session_lock(tmp_path, "same", timeout=0.2):
                assert (tmp_path / "locks" / "sessions" / "same.lock").exists()
