import pytest


@pytest.mark.integration
class TestAdmin:
    async def test_feature_is_single_active(self, client, register, seed_project, make_admin):
        alice = await register("alice")
        admin = await register("admin")
        await make_admin(admin)
        first = await seed_project(alice.id, "First", featured=True)
        second = await seed_project(alice.id, "Second")

        r = await client.put(f"/api/admin/projects/{second}/feature", headers=admin.headers)
        assert r.status_code == 200

        body = (await client.get("/api/projects", params={"sort": "featured"})).json()
        assert [p["id"] for p in body["projects"]] == [second]
        assert (await client.get(f"/api/projects/{first}")).json()["project"]["featured"] is False

    async def test_feature_requires_admin(self, client, register, seed_project):
        alice = await register("alice")
        project_id = await seed_project(alice.id)
        r = await client.put(f"/api/admin/projects/{project_id}/feature", headers=alice.headers)
        assert r.status_code == 403
        r = await client.put(f"/api/admin/projects/{project_id}/feature")
        assert r.status_code == 401

    async def test_feature_missing_project(self, client, register, make_admin):
        admin = await register("admin")
        await make_admin(admin)
        r = await client.put("/api/admin/projects/12345/feature", headers=admin.headers)
        assert r.status_code == 404

    async def test_privacy_toggle(self, client, register, seed_project):
        alice = await register("alice")
        bob = await register("bob")
        project_id = await seed_project(alice.id)

        r = await client.put(
            f"/api/admin/projects/{project_id}/privacy", json={"isPrivate": True}, headers=bob.headers
        )
        assert r.status_code == 403

        r = await client.put(
            f"/api/admin/projects/{project_id}/privacy", json={"isPrivate": True}, headers=alice.headers
        )
        assert r.status_code == 200
        assert (await client.get("/api/projects")).json()["total"] == 0
        assert (await client.get(f"/api/projects/{project_id}")).status_code == 404


@pytest.mark.integration
class TestProfiles:
    async def test_profile_lists_visible_projects(self, client, register, seed_project):
        alice = await register("alice")
        bob = await register("bob")
        public_id = await seed_project(alice.id, "Public")
        private_id = await seed_project(alice.id, "Private", is_private=True)

        body = (await client.get("/api/profiles/alice", headers=bob.headers)).json()
        assert body["user"]["username"] == "alice"
        assert [p["id"] for p in body["projects"]] == [public_id]

        body = (await client.get("/api/profiles/alice", headers=alice.headers)).json()
        assert {p["id"] for p in body["projects"]} == {public_id, private_id}

    async def test_unknown_profile(self, client):
        r = await client.get("/api/profiles/ghost")
        assert r.status_code == 404

    async def test_directory_filters_intersect(self, client, register, seed_project):
        alice = await register("alice")
        bob = await register("bob")
        carol = await register("carol")
        await seed_project(alice.id, "A1", tags=("Code",), vibe_coding_tool="Cursor")
        await seed_project(bob.id, "B1", tags=("Code",), vibe_coding_tool="Bolt")
        await seed_project(carol.id, "C1", tags=("Art",), vibe_coding_tool="Cursor")

        def names(body):
            return [p["username"] for p in body["profiles"]]

        assert names((await client.get("/api/profiles")).json()) == ["alice", "bob", "carol"]
        assert names((await client.get("/api/profiles", params={"tag": "code"})).json()) == ["alice", "bob"]
        assert names((await client.get("/api/profiles", params={"role": "cursor"})).json()) == ["alice", "carol"]
        body = (await client.get("/api/profiles", params={"tag": "Code", "role": "Cursor"})).json()
        assert names(body) == ["alice"]
        body = (await client.get("/api/profiles", params={"tag": "Nonexistent"})).json()
        assert body == {"profiles": []}


@pytest.mark.integration
class TestOwnProfile:
    async def test_liked_projects_newest_like_first(self, client, register, seed_project):
        alice = await register("alice")
        bob = await register("bob")
        first = await seed_project(alice.id, "First")
        second = await seed_project(alice.id, "Second")
        await seed_project(alice.id, "Not liked")

        await client.post(f"/api/projects/{first}/like", headers=bob.headers)
        await client.post(f"/api/projects/{second}/like", headers=bob.headers)

        body = (await client.get("/api/profile/liked", headers=bob.headers)).json()
        assert [p["id"] for p in body["projects"]] == [second, first]
        assert all(p["isLiked"] for p in body["projects"])
        assert body["projects"][0]["likesCount"] == 1

        assert (await client.get("/api/profile/liked")).json() == {"projects": []}

    async def test_liked_projects_respect_privacy(self, client, register, seed_project):
        alice = await register("alice")
        bob = await register("bob")
        project_id = await seed_project(alice.id, "Soon private")
        await client.post(f"/api/projects/{project_id}/like", headers=bob.headers)

        r = await client.put(
            f"/api/admin/projects/{project_id}/privacy", json={"isPrivate": True}, headers=alice.headers
        )
        assert r.status_code == 200
        assert (await client.get("/api/profile/liked", headers=bob.headers)).json() == {"projects": []}

    async def test_update_bio_and_avatar(self, client, register):
        alice = await register("alice")
        r = await client.patch(
            "/api/profile", json={"bio": "Builds small tools", "avatarUrl": "/avatars/a.png"}, headers=alice.headers
        )
        assert r.status_code == 200, r.text
        user = r.json()["user"]
        assert user["bio"] == "Builds small tools"
        assert user["avatarUrl"] == "/avatars/a.png"

        profile = (await client.get("/api/profiles/alice")).json()["user"]
        assert profile["bio"] == "Builds small tools"

        r = await client.patch("/api/profile", json={"bio": None}, headers=alice.headers)
        assert r.json()["user"]["bio"] is None
        assert r.json()["user"]["avatarUrl"] == "/avatars/a.png"

    async def test_update_validation(self, client, register):
        alice = await register("alice")
        await register("bob")

        r = await client.patch("/api/profile", json={"bio": "x" * 301}, headers=alice.headers)
        assert r.status_code == 400
        r = await client.patch("/api/profile", json={"email": "bob@example.com"}, headers=alice.headers)
        assert r.status_code == 400
        assert r.json()["detail"] == "Email already in use"
        r = await client.patch("/api/profile", json={"email": "alice@new.example.com"}, headers=alice.headers)
        assert r.status_code == 200
        r = await client.patch("/api/profile", json={"bio": "hi"})
        assert r.status_code == 401
