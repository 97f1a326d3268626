"""Tests for the SQLAlchemy-backed stores."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import patch

import pytest

from threadboard.db.errors import StorageError, StorageErrorKind
from threadboard.stores import comment_store, session_store, thread_store, user_store


@pytest.fixture()
def alice(db_enabled):
    return user_store.create_user("alice", "Alice@Example.com", "hash")


@pytest.fixture()
def bob(db_enabled):
    return user_store.create_user("bob", "bob@example.com", "hash")


class TestUserStore:
    """Tests for user_store."""

    def test_create_user_normalizes_email(self, alice):
        assert alice["email"] == "alice@example.com"
        assert isinstance(alice["id"], int)
        assert "password_hash" not in alice

    def test_duplicate_username_rejected(self, alice):
        with pytest.raises(user_store.UserConflictError):
            user_store.create_user("alice", "other@example.com", "hash")

    def test_duplicate_email_rejected(self, alice):
        """Email uniqueness ignores case."""
        with pytest.raises(user_store.UserConflictError):
            user_store.create_user("alice2", "ALICE@example.com", "hash")

    def test_lookup_includes_password_hash(self, alice):
        assert user_store.get_user_by_username("alice")["password_hash"] == "hash"
        assert user_store.get_user_by_email("alice@example.com")["id"] == alice["id"]
        assert user_store.get_user_by_id(alice["id"])["username"] == "alice"

    def test_lookup_missing_returns_none(self, db_enabled):
        assert user_store.get_user_by_username("ghost") is None
        assert user_store.get_user_by_id(999) is None

    def test_social_user_has_no_hash(self, db_enabled):
        user_store.create_user("octo", "octo@example.com", None, social_only=True)
        user = user_store.get_user_by_username("octo")
        assert user["social_only"] is True
        assert user["password_hash"] is None

    def test_update_user_applies_change_set(self, alice):
        updated = user_store.update_user(alice["id"], {"nickname": "Al", "location": "", "email": None})
        assert updated["nickname"] == "Al"
        assert updated["location"] is None
        assert updated["email"] == "alice@example.com"

    def test_update_user_conflict(self, alice, bob):
        with pytest.raises(user_store.UserConflictError):
            user_store.update_user(alice["id"], {"username": "bob"})

    def test_update_user_keeps_own_username(self, alice):
        """Resubmitting your own username is not a conflict."""
        updated = user_store.update_user(alice["id"], {"username": "alice"})
        assert updated["username"] == "alice"

    def test_profile_lists_threads_newest_first(self, alice):
        first = thread_store.create_thread(alice["id"], "first")
        second = thread_store.create_thread(alice["id"], "second")
        profile = user_store.get_user_profile(alice["id"])
        assert [t["id"] for t in profile["threads"]] == [second["id"], first["id"]]
        assert "password_hash" not in profile

    def test_set_password_hash(self, alice):
        user_store.set_password_hash(alice["id"], "new-hash")
        assert user_store.get_user_by_id(alice["id"])["password_hash"] == "new-hash"


class TestThreadStore:
    """Tests for thread_store."""

    def test_create_then_read(self, alice):
        thread = thread_store.create_thread(alice["id"], "x")
        assert thread_store.get_thread(thread["id"])["content"] == "x"

    def test_update_keeps_file_url_without_new_file(self, alice):
        thread = thread_store.create_thread(alice["id"], "x", "/uploads/image/a.png")
        updated = thread_store.update_thread(thread["id"], {"content": "y", "file_url": None})
        assert updated["content"] == "y"
        assert updated["file_url"] == "/uploads/image/a.png"

    def test_update_cannot_change_owner(self, alice, bob):
        thread = thread_store.create_thread(alice["id"], "x")
        with pytest.raises(ValueError):
            thread_store.update_thread(thread["id"], {"user_id": bob["id"]})
        assert thread_store.get_thread(thread["id"])["user_id"] == alice["id"]

    def test_update_missing_returns_none(self, db_enabled):
        assert thread_store.update_thread(42, {"content": "y"}) is None

    def test_list_threads_with_author(self, alice, bob):
        thread_store.create_thread(alice["id"], "from alice")
        thread_store.create_thread(bob["id"], "from bob")
        threads = thread_store.list_threads()
        assert [t["content"] for t in threads] == ["from bob", "from alice"]
        assert threads[0]["author"]["username"] == "bob"

    def test_search_is_case_insensitive(self, alice):
        thread_store.create_thread(alice["id"], "Hello World")
        thread_store.create_thread(alice["id"], "goodbye")
        results = thread_store.search_threads("hello")
        assert [t["content"] for t in results] == ["Hello World"]

    def test_record_view_increments(self, alice):
        thread = thread_store.create_thread(alice["id"], "x")
        thread_store.record_view(thread["id"])
        thread_store.record_view(thread["id"])
        assert thread_store.get_thread(thread["id"])["views"] == 2

    def test_detail_includes_comments_and_like_count(self, alice, bob):
        from threadboard.stores.like_store import toggle_like

        thread = thread_store.create_thread(alice["id"], "x")
        comment_store.create_comment(thread["id"], bob["id"], "first!")
        toggle_like(thread["id"], bob["id"], True)

        detail = thread_store.get_thread_detail(thread["id"])
        assert detail["author"]["username"] == "alice"
        assert detail["comments"][0]["content"] == "first!"
        assert detail["comments"][0]["author"]["username"] == "bob"
        assert detail["like_count"] == 1

    def test_delete_cascades(self, alice, bob):
        from threadboard.stores.like_store import count_likes, toggle_like

        thread = thread_store.create_thread(alice["id"], "x")
        comment = comment_store.create_comment(thread["id"], bob["id"], "c")
        toggle_like(thread["id"], bob["id"], True)

        deleted = thread_store.delete_thread(thread["id"])

        assert deleted["id"] == thread["id"]
        assert thread_store.get_thread(thread["id"]) is None
        assert comment_store.get_comment(comment["id"]) is None
        assert count_likes(thread["id"]) == 0


class TestCommentStore:
    """Tests for comment_store."""

    def test_create_update_delete(self, alice):
        thread = thread_store.create_thread(alice["id"], "x")
        comment = comment_store.create_comment(thread["id"], alice["id"], "a")

        updated = comment_store.update_comment(comment["id"], {"content": "b"})
        assert updated["content"] == "b"

        assert comment_store.delete_comment(comment["id"]) is True
        assert comment_store.delete_comment(comment["id"]) is False

    def test_comment_on_missing_thread_is_storage_error(self, alice):
        """The foreign key rejects orphan comments."""
        with pytest.raises(StorageError) as exc_info:
            comment_store.create_comment(9999, alice["id"], "orphan")
        assert exc_info.value.kind is StorageErrorKind.CONSTRAINT


class TestSessionStore:
    """Tests for session_store."""

    def test_create_and_get(self, db_enabled):
        sid = session_store.create_session({"logged_in": True}, timedelta(days=1))
        assert session_store.get_session(sid) == {"logged_in": True}

    def test_expired_session_is_missing(self, db_enabled):
        sid = session_store.create_session({"logged_in": True}, timedelta(seconds=-1))
        assert session_store.get_session(sid) is None

    def test_update_and_destroy(self, db_enabled):
        sid = session_store.create_session({"n": 1}, timedelta(days=1))
        assert session_store.update_session_data(sid, {"n": 2}) is True
        assert session_store.get_session(sid) == {"n": 2}
        assert session_store.destroy_session(sid) is True
        assert session_store.get_session(sid) is None
        assert session_store.destroy_session(sid) is False

    def test_purge_expired(self, db_enabled):
        session_store.create_session({}, timedelta(seconds=-1))
        live = session_store.create_session({}, timedelta(days=1))
        assert session_store.purge_expired_sessions() == 1
        assert session_store.get_session(live) == {}


class TestUserUniquenessRace:
    """The unique constraint still holds when the pre-check is bypassed."""

    def test_create_duplicate_after_precheck_is_constraint_error(self, alice):
        with patch("threadboard.stores.user_store.is_taken", return_value=False):
            with pytest.raises(StorageError) as exc_info:
                user_store.create_user("alice", "second@example.com", "hash")
        assert exc_info.value.kind == StorageErrorKind.CONSTRAINT
