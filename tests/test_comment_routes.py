"""Integration tests for comment endpoints nested under a thread."""

from __future__ import annotations

import pytest


@pytest.fixture()
def setup(logged_in):
    """alice owns a thread, bob has commented on it."""
    alice, _ = logged_in("alice")
    bob, _ = logged_in("bob")
    thread_id = alice.post("/threads", data={"content": "topic"}).json()["id"]
    comment = bob.post(f"/threads/{thread_id}/comment", json={"content": "reply"}).json()
    return alice, bob, thread_id, comment


class TestCreateComment:
    """Tests for POST /threads/{id}/comment."""

    def test_comment_created(self, setup):
        alice, _, thread_id, comment = setup
        assert comment["content"] == "reply"
        assert comment["thread_id"] == thread_id

        detail = alice.get(f"/threads/{thread_id}").json()
        assert [c["content"] for c in detail["comments"]] == ["reply"]

    def test_comment_on_missing_thread(self, setup):
        _, bob, _, _ = setup
        assert bob.post("/threads/9999/comment", json={"content": "x"}).status_code == 404

    def test_empty_comment_rejected(self, setup):
        _, bob, thread_id, _ = setup
        assert bob.post(f"/threads/{thread_id}/comment", json={"content": ""}).status_code == 400

    def test_comment_requires_login(self, setup, client):
        _, _, thread_id, _ = setup
        assert client.post(f"/threads/{thread_id}/comment", json={"content": "x"}).status_code == 401


class TestUpdateComment:
    """Tests for PUT /threads/{id}/comment/{cid}."""

    def test_author_updates(self, setup):
        _, bob, thread_id, comment = setup
        resp = bob.put(f"/threads/{thread_id}/comment/{comment['id']}", json={"content": "edited"})
        assert resp.status_code == 200
        assert resp.json()["content"] == "edited"

    def test_blank_update_keeps_content(self, setup):
        _, bob, thread_id, comment = setup
        resp = bob.put(f"/threads/{thread_id}/comment/{comment['id']}", json={"content": ""})
        assert resp.status_code == 200
        assert resp.json()["content"] == "reply"

    def test_thread_owner_cannot_edit_others_comment(self, setup):
        alice, _, thread_id, comment = setup
        resp = alice.put(f"/threads/{thread_id}/comment/{comment['id']}", json={"content": "x"})
        assert resp.status_code == 403

    def test_comment_through_wrong_thread_is_404(self, setup):
        """A comment addressed under another thread does not exist there."""
        _, bob, _, comment = setup
        other_id = bob.post("/threads", data={"content": "other"}).json()["id"]
        resp = bob.put(f"/threads/{other_id}/comment/{comment['id']}", json={"content": "x"})
        assert resp.status_code == 404

    @pytest.mark.parametrize("cid", ["9999", "nope"])
    def test_missing_comment_is_404(self, setup, cid):
        _, bob, thread_id, _ = setup
        resp = bob.put(f"/threads/{thread_id}/comment/{cid}", json={"content": "x"})
        assert resp.status_code == 404


class TestDeleteComment:
    """Tests for DELETE /threads/{id}/comment/{cid}."""

    def test_author_deletes(self, setup):
        alice, bob, thread_id, comment = setup
        assert bob.delete(f"/threads/{thread_id}/comment/{comment['id']}").status_code == 204
        assert alice.get(f"/threads/{thread_id}").json()["comments"] == []

    def test_non_author_forbidden(self, setup):
        alice, _, thread_id, comment = setup
        assert alice.delete(f"/threads/{thread_id}/comment/{comment['id']}").status_code == 403

    def test_missing_thread_checked_first(self, setup):
        """An unknown thread is 404 even for someone else's comment."""
        alice, _, _, comment = setup
        assert alice.delete(f"/threads/9999/comment/{comment['id']}").status_code == 404


class TestCommentContent:
    """Comment content must have visible text."""

    @pytest.mark.parametrize("content", ["   ", "\t\n"])
    def test_whitespace_comment_rejected(self, setup, content):
        alice, bob, thread_id, _ = setup
        assert bob.post(f"/threads/{thread_id}/comment", json={"content": content}).status_code == 400
        detail = alice.get(f"/threads/{thread_id}").json()
        assert [c["content"] for c in detail["comments"]] == ["reply"]

    def test_comment_content_trimmed(self, setup):
        _, bob, thread_id, _ = setup
        resp = bob.post(f"/threads/{thread_id}/comment", json={"content": "  hi  "})
        assert resp.status_code == 201
        assert resp.json()["content"] == "hi"
