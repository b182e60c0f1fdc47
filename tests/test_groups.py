"""Group membership, friend-gated invites and admin succession."""
from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import func, select

from huddle.database import SessionLocal
from huddle.models import Group, GroupMembership, Message, Poll, PollOption


def _create_group(client, name: str = "Climbers", *, is_public: bool = False) -> str:
    response = client.post("/groups", json={"name": name, "description": "Weekend crew", "is_public": is_public})
    assert response.status_code == 201
    return response.json()["id"]


def _admin_rows(group_id: str) -> list[UUID]:
    with SessionLocal() as session:
        stmt = select(GroupMembership.user_id).where(
            GroupMembership.group_id == UUID(group_id), GroupMembership.role == "admin"
        )
        return list(session.scalars(stmt))


def test_creator_becomes_sole_admin(authed_client, user_factory):
    owner = user_factory("owner")
    client = authed_client(owner)

    response = client.post("/groups", json={"name": "  Book Club ", "is_public": True})
    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Book Club"
    assert body["admin_id"] == str(owner.id)
    assert [(member["user"]["username"], member["role"]) for member in body["members"]] == [("owner", "admin")]

    blank = client.post("/groups", json={"name": "   "})
    assert blank.status_code == 400
    assert blank.json() == {"error": "Group name required"}


def test_join_rules(authed_client, user_factory):
    owner = user_factory("owner")
    walker = user_factory("walker")
    public_id = _create_group(authed_client(owner), "Open Crew", is_public=True)
    private_id = _create_group(authed_client(owner), "Inner Circle")

    client = authed_client(walker)
    assert client.post(f"/groups/{public_id}/join").status_code == 200
    again = client.post(f"/groups/{public_id}/join")
    assert again.status_code == 400
    assert again.json()["error"] == "Already a member"

    private = client.post(f"/groups/{private_id}/join")
    assert private.status_code == 403
    assert private.json()["error"] == "Group is private"

    assert client.post(f"/groups/{uuid4()}/join").status_code == 404

    discovered = client.get("/groups/public").json()["groups"]
    assert [group["name"] for group in discovered] == ["Open Crew"]


def test_admin_leaving_promotes_earliest_member(authed_client, user_factory):
    ada = user_factory("ada")
    ben = user_factory("ben")
    cy = user_factory("cy")
    group_id = _create_group(authed_client(ada), is_public=True)
    authed_client(ben).post(f"/groups/{group_id}/join")
    authed_client(cy).post(f"/groups/{group_id}/join")

    left = authed_client(ada).post(f"/groups/{group_id}/leave")
    assert left.status_code == 200
    assert left.json() == {"success": True, "group_deleted": False, "new_admin_id": str(ben.id)}

    assert _admin_rows(group_id) == [ben.id]
    with SessionLocal() as session:
        group = session.get(Group, UUID(group_id))
        assert group is not None
        assert group.admin_id == ben.id

    members = authed_client(cy).get(f"/groups/{group_id}/members").json()["members"]
    assert [(member["user"]["username"], member["role"]) for member in members] == [
        ("ben", "admin"),
        ("cy", "member"),
    ]


def test_member_leaving_keeps_admin(authed_client, user_factory):
    ada = user_factory("ada")
    ben = user_factory("ben")
    group_id = _create_group(authed_client(ada), is_public=True)
    authed_client(ben).post(f"/groups/{group_id}/join")

    left = authed_client(ben).post(f"/groups/{group_id}/leave")
    assert left.json() == {"success": True, "group_deleted": False, "new_admin_id": None}
    assert _admin_rows(group_id) == [ada.id]

    not_member = authed_client(ben).post(f"/groups/{group_id}/leave")
    assert not_member.status_code == 400
    assert not_member.json()["error"] == "Not a member"


def test_last_member_leaving_deletes_group_and_content(authed_client, user_factory):
    ada = user_factory("ada")
    client = authed_client(ada)
    group_id = _create_group(client)
    assert client.post("/messages", json={"group_id": group_id, "content": "hello"}).status_code == 201
    poll = client.post("/polls", json={"group_id": group_id, "question": "Where?", "options": ["Crag", "Gym"]})
    assert poll.status_code == 201

    left = client.post(f"/groups/{group_id}/leave")
    assert left.json()["group_deleted"] is True

    with SessionLocal() as session:
        assert session.get(Group, UUID(group_id)) is None
        for model in (GroupMembership, Message, Poll, PollOption):
            assert session.scalar(select(func.count()).select_from(model)) == 0

    assert client.get(f"/groups/{group_id}").status_code == 404


def test_add_members_requires_admin_and_friendship(authed_client, user_factory, befriend):
    ada = user_factory("ada")
    ben = user_factory("ben")
    cy = user_factory("cy")
    dee = user_factory("dee")
    group_id = _create_group(authed_client(ada), is_public=True)
    befriend(ada, ben)
    befriend(ada, cy)
    authed_client(cy).post(f"/groups/{group_id}/join")

    client = authed_client(ada)
    strangers = client.post(f"/groups/{group_id}/members", json={"user_ids": [str(ben.id), str(dee.id)]})
    assert strangers.status_code == 400
    assert strangers.json() == {"error": "Can only add friends to groups", "non_friends": [str(dee.id)]}

    added = client.post(f"/groups/{group_id}/members", json={"user_ids": [str(ben.id), str(cy.id)]})
    assert added.status_code == 200
    assert added.json() == {
        "success": True,
        "added": 1,
        "already_members": [str(cy.id)],
        "new_members": [str(ben.id)],
    }

    empty = client.post(f"/groups/{group_id}/members", json={"user_ids": []})
    assert empty.status_code == 400

    not_admin = authed_client(cy).post(f"/groups/{group_id}/members", json={"user_ids": [str(ada.id)]})
    assert not_admin.status_code == 403

    missing = client.post(f"/groups/{uuid4()}/members", json={"user_ids": [str(ben.id)]})
    assert missing.status_code == 404


def test_group_reads_are_member_only(authed_client, user_factory):
    ada = user_factory("ada")
    outsider = user_factory("outsider")
    group_id = _create_group(authed_client(ada))

    detail = authed_client(ada).get(f"/groups/{group_id}")
    assert detail.status_code == 200
    assert detail.json()["name"] == "Climbers"
    assert [group["id"] for group in authed_client(ada).get("/groups").json()["groups"]] == [group_id]

    client = authed_client(outsider)
    assert client.get(f"/groups/{group_id}").status_code == 403
    assert client.get(f"/groups/{group_id}/members").status_code == 403
    assert client.get("/groups").json()["groups"] == []
