from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from showcase.models import Like, ProjectView
from showcase.services import engagement
from showcase.services.engagement import CommentLike, ProjectLike, ReplyLike, like_values, target_of


@pytest.mark.unit
class TestLikeVariants:
    def test_like_values_set_exactly_one_target(self):
        assert like_values(ProjectLike(5), 1) == {"project_id": 5, "comment_id": None, "reply_id": None, "user_id": 1}
        assert like_values(CommentLike(6), 1) == {"project_id": None, "comment_id": 6, "reply_id": None, "user_id": 1}
        assert like_values(ReplyLike(7), 1) == {"project_id": None, "comment_id": None, "reply_id": 7, "user_id": 1}

    def test_like_values_rejects_unknown_target(self):
        with pytest.raises(TypeError):
            like_values({"project_id": 1}, 1)

    def test_target_of_round_trips_stored_rows(self):
        assert target_of(Like(id=1, user_id=1, comment_id=9)) == CommentLike(9)

    @pytest.mark.parametrize(
        "row",
        [
            Like(id=1, user_id=1),
            Like(id=2, user_id=1, project_id=1, comment_id=2),
        ],
    )
    def test_target_of_rejects_malformed_rows(self, row):
        with pytest.raises(ValueError):
            target_of(row)


@pytest.mark.integration
class TestProjectLikes:
    async def test_like_is_idempotent(self, client, register, seed_project):
        alice = await register("alice")
        bob = await register("bob")
        project_id = await seed_project(alice.id)

        for _ in range(2):
            r = await client.post(f"/api/projects/{project_id}/like", headers=bob.headers)
            assert r.status_code == 200

        project = (await client.get(f"/api/projects/{project_id}", headers=bob.headers)).json()["project"]
        assert project["likesCount"] == 1

    async def test_is_liked_depends_on_viewer(self, client, register, seed_project):
        alice = await register("alice")
        bob = await register("bob")
        carol = await register("carol")
        project_id = await seed_project(alice.id)

        await client.post(f"/api/projects/{project_id}/like", headers=bob.headers)

        as_bob = (await client.get(f"/api/projects/{project_id}", headers=bob.headers)).json()["project"]
        as_carol = (await client.get(f"/api/projects/{project_id}", headers=carol.headers)).json()["project"]
        anonymous = (await client.get(f"/api/projects/{project_id}")).json()["project"]
        assert as_bob["isLiked"] is True
        assert as_carol["isLiked"] is False
        assert anonymous["isLiked"] is False

    async def test_unlike(self, client, register, seed_project):
        alice = await register("alice")
        bob = await register("bob")
        project_id = await seed_project(alice.id)

        await client.post(f"/api/projects/{project_id}/like", headers=bob.headers)
        r = await client.delete(f"/api/projects/{project_id}/like", headers=bob.headers)
        assert r.status_code == 200

        project = (await client.get(f"/api/projects/{project_id}", headers=bob.headers)).json()["project"]
        assert project["likesCount"] == 0
        assert project["isLiked"] is False

    async def test_like_requires_auth(self, client, register, seed_project):
        alice = await register("alice")
        project_id = await seed_project(alice.id)
        r = await client.post(f"/api/projects/{project_id}/like")
        assert r.status_code == 401

    async def test_cannot_like_hidden_project(self, client, register, seed_project):
        alice = await register("alice")
        bob = await register("bob")
        project_id = await seed_project(alice.id, is_private=True)
        r = await client.post(f"/api/projects/{project_id}/like", headers=bob.headers)
        assert r.status_code == 404

    async def test_stored_likes_have_one_target(self, client, register, seed_project, session_factory):
        alice = await register("alice")
        bob = await register("bob")
        project_id = await seed_project(alice.id)
        await client.post(f"/api/projects/{project_id}/like", headers=bob.headers)
        r = await client.post(
            f"/api/projects/{project_id}/comments", json={"content": "Nice"}, headers=bob.headers
        )
        await client.post(f"/api/comments/{r.json()['comment']['id']}/like", headers=alice.headers)

        async with session_factory() as session:
            likes = (await session.execute(select(Like))).scalars().all()
        assert len(likes) == 2
        assert {type(target_of(like)) for like in likes} == {ProjectLike, CommentLike}


@pytest.mark.integration
class TestBookmarksAndShares:
    async def test_bookmark_toggle(self, client, register, seed_project):
        alice = await register("alice")
        bob = await register("bob")
        project_id = await seed_project(alice.id)

        await client.post(f"/api/projects/{project_id}/bookmark", headers=bob.headers)
        await client.post(f"/api/projects/{project_id}/bookmark", headers=bob.headers)
        project = (await client.get(f"/api/projects/{project_id}", headers=bob.headers)).json()["project"]
        assert project["isBookmarked"] is True

        await client.delete(f"/api/projects/{project_id}/bookmark", headers=bob.headers)
        project = (await client.get(f"/api/projects/{project_id}", headers=bob.headers)).json()["project"]
        assert project["isBookmarked"] is False

    async def test_share_counts(self, client, register, seed_project):
        alice = await register("alice")
        project_id = await seed_project(alice.id)

        r = await client.post(f"/api/projects/{project_id}/share", json={"platform": "twitter"})
        assert r.json() == {"success": True, "sharesCount": 1}
        r = await client.post(
            f"/api/projects/{project_id}/share", json={"platform": "linkedin"}, headers=alice.headers
        )
        assert r.json()["sharesCount"] == 2

        project = (await client.get(f"/api/projects/{project_id}")).json()["project"]
        assert project["sharesCount"] == 2

    async def test_share_validates_platform(self, client, register, seed_project):
        alice = await register("alice")
        project_id = await seed_project(alice.id)
        r = await client.post(f"/api/projects/{project_id}/share", json={"platform": "x"})
        assert r.status_code == 400
        assert r.json()["detail"] == "Validation failed"


@pytest.mark.integration
class TestRecordView:
    async def test_monthly_row_is_upserted(self, session, register, seed_project):
        alice = await register("alice")
        project_id = await seed_project(alice.id)
        march = datetime(2026, 3, 2, tzinfo=timezone.utc)
        april = datetime(2026, 4, 2, tzinfo=timezone.utc)

        for now in (march, march, march, april):
            await engagement.record_view(session, project_id, now)

        res = await session.execute(
            select(ProjectView.month, ProjectView.views_count)
            .where(ProjectView.project_id == project_id)
            .order_by(ProjectView.month)
        )
        assert res.all() == [(3, 3), (4, 1)]
