"""API tests for comments, internal notes and feedback."""

import pytest


@pytest.fixture
def complaint(make_complaint, student):
    return make_complaint(student)


@pytest.mark.asyncio
async def test_internal_notes_only_reach_staff(client_for, complaint, student, lecturer):
    staff = client_for(lecturer)
    owner = client_for(student)
    path = f"/complaints/{complaint.id}/comments"

    assert (await staff.post(path, json={"body": "Public reply"})).status_code == 201
    note = await staff.post(path, json={"body": "Staff only", "is_internal": True})
    assert note.status_code == 201

    owner_view = [c["body"] for c in (await owner.get(path)).json()]
    staff_view = [c["body"] for c in (await staff.get(path)).json()]
    assert owner_view == ["Public reply"]
    assert staff_view == ["Public reply", "Staff only"]

    owner_history = (await owner.get(f"/complaints/{complaint.id}/history")).json()
    assert [h["action"] for h in owner_history].count("comment_added") == 1


@pytest.mark.asyncio
async def test_student_cannot_post_internal_note(client_for, complaint, student):
    response = await client_for(student).post(
        f"/complaints/{complaint.id}/comments", json={"body": "x", "is_internal": True}
    )
    assert response.status_code == 403
    assert response.json()["field"] == "is_internal"


@pytest.mark.asyncio
async def test_comment_body_is_sanitized(client_for, complaint, student):
    response = await client_for(student).post(
        f"/complaints/{complaint.id}/comments",
        json={"body": "<p>Hi</p><script>alert(1)</script>"},
    )
    assert response.status_code == 201
    assert response.json()["body"] == "<p>Hi</p>"

    empty = await client_for(student).post(
        f"/complaints/{complaint.id}/comments", json={"body": "<script>x</script>"}
    )
    assert empty.status_code == 422
    assert empty.json()["kind"] == "InvalidInput"


@pytest.mark.asyncio
async def test_only_author_edits_and_deletes(client_for, complaint, student, lecturer, admin):
    owner = client_for(student)
    created = (
        await owner.post(f"/complaints/{complaint.id}/comments", json={"body": "First"})
    ).json()
    path = f"/comments/{created['id']}"

    for other in (client_for(lecturer), client_for(admin)):
        denied = await other.patch(path, json={"body": "Hijack"})
        assert denied.status_code == 403
        assert denied.json()["kind"] == "NotAuthor"

    edited = await owner.patch(path, json={"body": "First, edited"})
    assert edited.json()["body"] == "First, edited"

    assert (await owner.delete(path)).status_code == 204
    assert (await owner.get(f"/complaints/{complaint.id}/comments")).json() == []


@pytest.mark.asyncio
async def test_feedback(client_for, complaint, student, lecturer):
    path = f"/complaints/{complaint.id}/feedback"

    denied = await client_for(student).post(path, json={"content": "Self feedback"})
    assert denied.status_code == 403

    created = await client_for(lecturer).post(path, json={"content": "Estates booked"})
    assert created.status_code == 201

    listed = (await client_for(student).get(path)).json()
    assert [f["content"] for f in listed] == ["Estates booked"]


@pytest.mark.asyncio
async def test_history_tracks_comment_visibility_edits(client_for, complaint, student, lecturer):
    staff = client_for(lecturer)
    owner = client_for(student)
    comments_path = f"/complaints/{complaint.id}/comments"
    history_path = f"/complaints/{complaint.id}/history"

    created = (await staff.post(comments_path, json={"body": "Reply"})).json()

    async def owner_counts():
        comments = (await owner.get(comments_path)).json()
        history = (await owner.get(history_path)).json()
        return len(comments), [h["action"] for h in history].count("comment_added")

    assert await owner_counts() == (1, 1)

    hidden = await staff.patch(f"/comments/{created['id']}", json={"is_internal": True})
    assert hidden.status_code == 200
    assert await owner_counts() == (0, 0)

    shown = await staff.patch(f"/comments/{created['id']}", json={"is_internal": False})
    assert shown.status_code == 200
    assert await owner_counts() == (1, 1)
