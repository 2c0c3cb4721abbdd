import pytest
from sqlalchemy import func, select

from showcase.models import CommentReply, Like, Notification


async def _comment(client, project_id, user, content):
    r = await client.post(f"/api/projects/{project_id}/comments", json={"content": content}, headers=user.headers)
    assert r.status_code == 201, r.text
    return r.json()["comment"]


@pytest.mark.integration
class TestComments:
    async def test_create_and_list_newest_first(self, client, register, seed_project):
        alice = await register("alice")
        bob = await register("bob")
        project_id = await seed_project(alice.id)

        first = await _comment(client, project_id, bob, "First!")
        second = await _comment(client, project_id, alice, "Thanks for checking it out")
        assert second["isAuthor"] is True
        assert first["isAuthor"] is False

        body = (await client.get(f"/api/projects/{project_id}/comments")).json()
        assert body["totalComments"] == 2
        assert body["hasMore"] is False
        assert [c["id"] for c in body["comments"]] == [second["id"], first["id"]]

        body = (await client.get(f"/api/projects/{project_id}/comments", params={"sort": "oldest"})).json()
        assert [c["id"] for c in body["comments"]] == [first["id"], second["id"]]

    async def test_comment_pagination(self, client, register, seed_project):
        alice = await register("alice")
        project_id = await seed_project(alice.id)
        for i in range(12):
            await _comment(client, project_id, alice, f"Comment {i}")

        body = (await client.get(f"/api/projects/{project_id}/comments")).json()
        assert len(body["comments"]) == 10
        assert body["hasMore"] is True
        body = (await client.get(f"/api/projects/{project_id}/comments", params={"page": 2})).json()
        assert len(body["comments"]) == 2
        assert body["hasMore"] is False

    async def test_blank_comment_rejected(self, client, register, seed_project):
        alice = await register("alice")
        project_id = await seed_project(alice.id)
        r = await client.post(
            f"/api/projects/{project_id}/comments", json={"content": "   "}, headers=alice.headers
        )
        assert r.status_code == 400
        assert r.json()["detail"] == "Validation failed"
        assert r.json()["errors"]

    async def test_replies_and_comment_counts(self, client, register, seed_project):
        alice = await register("alice")
        bob = await register("bob")
        project_id = await seed_project(alice.id)
        comment = await _comment(client, project_id, bob, "How did you build this?")

        r = await client.post(
            f"/api/comments/{comment['id']}/replies", json={"content": "Mostly prompting"}, headers=alice.headers
        )
        assert r.status_code == 201
        reply = r.json()["reply"]
        assert reply["isAuthor"] is True
        r = await client.post(
            f"/api/comments/{comment['id']}/replies", json={"content": "Cool"}, headers=bob.headers
        )
        later = r.json()["reply"]

        body = (await client.get(f"/api/projects/{project_id}/comments")).json()
        assert [r["id"] for r in body["comments"][0]["replies"]] == [reply["id"], later["id"]]

        project = (await client.get(f"/api/projects/{project_id}")).json()["project"]
        assert project["commentsCount"] == 1

    async def test_reply_to_missing_comment(self, client, register):
        alice = await register("alice")
        r = await client.post("/api/comments/999/replies", json={"content": "hello"}, headers=alice.headers)
        assert r.status_code == 404
        r = await client.post("/api/comments/abc/replies", json={"content": "hello"}, headers=alice.headers)
        assert r.status_code == 400

    async def test_comment_and_reply_likes(self, client, register, seed_project):
        alice = await register("alice")
        bob = await register("bob")
        project_id = await seed_project(alice.id)
        quiet = await _comment(client, project_id, bob, "Quiet comment")
        popular = await _comment(client, project_id, bob, "Popular comment")
        r = await client.post(
            f"/api/comments/{popular['id']}/replies", json={"content": "Agreed"}, headers=alice.headers
        )
        reply_id = r.json()["reply"]["id"]

        await client.post(f"/api/comments/{quiet['id']}/like", headers=alice.headers)
        await client.post(f"/api/comments/{quiet['id']}/like", headers=alice.headers)
        await client.post(f"/api/comments/{quiet['id']}/like", headers=bob.headers)
        await client.post(f"/api/replies/{reply_id}/like", headers=bob.headers)

        body = (
            await client.get(
                f"/api/projects/{project_id}/comments", params={"sort": "mostLiked"}, headers=alice.headers
            )
        ).json()
        top, second = body["comments"]
        assert top["id"] == quiet["id"]
        assert top["likesCount"] == 2
        assert top["isLiked"] is True
        assert second["replies"][0]["likesCount"] == 1
        assert second["replies"][0]["isLiked"] is False

        await client.delete(f"/api/replies/{reply_id}/like", headers=bob.headers)
        await client.delete(f"/api/comments/{quiet['id']}/like", headers=alice.headers)
        body = (await client.get(f"/api/projects/{project_id}/comments", headers=alice.headers)).json()
        by_id = {c["id"]: c for c in body["comments"]}
        assert by_id[quiet["id"]]["likesCount"] == 1
        assert by_id[quiet["id"]]["isLiked"] is False
        assert by_id[popular["id"]]["replies"][0]["likesCount"] == 0


@pytest.mark.integration
class TestCommentsOnPrivateProjects:
    async def test_outsiders_cannot_reply_or_like(self, client, register, seed_project, session_factory, bus):
        alice = await register("alice")
        bob = await register("bob")
        project_id = await seed_project(bob.id, "Hidden", is_private=True)
        comment = await _comment(client, project_id, bob, "Note to self")
        r = await client.post(
            f"/api/comments/{comment['id']}/replies", json={"content": "And another"}, headers=bob.headers
        )
        assert r.status_code == 201
        reply_id = r.json()["reply"]["id"]
        bob_queue = bus.subscribe(bob.id)

        assert (await client.get(f"/api/projects/{project_id}/comments", headers=alice.headers)).status_code == 404
        r = await client.post(
            f"/api/comments/{comment['id']}/replies", json={"content": "Sneaky"}, headers=alice.headers
        )
        assert r.status_code == 404
        for method, url in (
            ("POST", f"/api/comments/{comment['id']}/like"),
            ("DELETE", f"/api/comments/{comment['id']}/like"),
            ("POST", f"/api/replies/{reply_id}/like"),
            ("DELETE", f"/api/replies/{reply_id}/like"),
        ):
            r = await client.request(method, url, headers=alice.headers)
            assert r.status_code == 404, (method, url)

        async with session_factory() as session:
            assert (await session.execute(select(func.count(CommentReply.id)))).scalar_one() == 1
            assert (await session.execute(select(func.count(Like.id)))).scalar_one() == 0
            assert (await session.execute(select(func.count(Notification.id)))).scalar_one() == 0
        assert bob_queue.empty()

    async def test_author_can_like_own_private_thread(self, client, register, seed_project):
        bob = await register("bob")
        project_id = await seed_project(bob.id, "Hidden", is_private=True)
        comment = await _comment(client, project_id, bob, "Draft notes")

        r = await client.post(f"/api/comments/{comment['id']}/like", headers=bob.headers)
        assert r.status_code == 200
        body = (await client.get(f"/api/projects/{project_id}/comments", headers=bob.headers)).json()
        assert body["comments"][0]["likesCount"] == 1
