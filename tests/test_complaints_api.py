"""API tests for complaint intake, lifecycle and error rendering."""

import uuid

import pytest

from app.db.enums import ComplaintStatus

NEW_COMPLAINT = {
    "title": "Lab PCs keep crashing",
    "description": "Machines in room 3.14 reboot every few minutes.",
    "category": "facilities",
    "priority": "high",
}


async def _file(client, **overrides) -> dict:
    response = await client.post("/complaints", json={**NEW_COMPLAINT, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


# =============================================================================
# Auth / CSRF
# =============================================================================

@pytest.mark.asyncio
async def test_requires_authentication(client):
    response = await client.get("/complaints")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_mutation_requires_csrf_header(client_for, student):
    response = await client_for(student, csrf=False).post("/complaints", json=NEW_COMPLAINT)
    assert response.status_code == 403
    assert "CSRF" in response.json()["detail"]


@pytest.mark.asyncio
async def test_revoked_session_is_rejected(client_for, db, student):
    client = client_for(student)
    student.token_version += 1
    db.commit()

    response = await client.get("/auth/me")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_me(client_for, lecturer):
    response = await client_for(lecturer).get("/auth/me")
    assert response.status_code == 200
    assert response.json()["role"] == "lecturer"
    assert response.json()["user_id"] == str(lecturer.id)


# =============================================================================
# Intake
# =============================================================================

@pytest.mark.asyncio
async def test_student_files_complaint(client_for, student):
    client = client_for(student)

    created = await _file(client)

    assert created["status"] == "new"
    assert created["student"] == str(student.id)
    history = (await client.get(f"/complaints/{created['id']}/history")).json()
    assert [h["action"] for h in history] == ["created"]
    assert history[0]["performed_by"] == str(student.id)


@pytest.mark.asyncio
async def test_staff_cannot_file_complaints(client_for, lecturer):
    response = await client_for(lecturer).post("/complaints", json=NEW_COMPLAINT)
    assert response.status_code == 403
    assert response.json()["kind"] == "PermissionDenied"


@pytest.mark.asyncio
async def test_draft_is_private_until_submitted(client_for, student, lecturer):
    owner = client_for(student)
    staff = client_for(lecturer)
    draft = await _file(owner, is_draft=True)
    assert draft["status"] == "draft"

    hidden = await staff.get(f"/complaints/{draft['id']}")
    assert hidden.status_code == 403
    assert (await staff.get("/complaints")).json() == []

    edited = await owner.patch(f"/complaints/{draft['id']}", json={"title": "Lab PCs"})
    assert edited.json()["title"] == "Lab PCs"

    submitted = await owner.post(f"/complaints/{draft['id']}/submit")
    assert submitted.status_code == 200
    assert submitted.json()["status"] == "new"
    assert (await staff.get(f"/complaints/{draft['id']}")).status_code == 200


@pytest.mark.asyncio
async def test_submitted_complaint_cannot_be_edited(client_for, student):
    owner = client_for(student)
    created = await _file(owner)

    response = await owner.patch(f"/complaints/{created['id']}", json={"title": "x"})
    assert response.status_code == 409
    assert response.json()["kind"] == "DraftRequired"


@pytest.mark.asyncio
async def test_students_list_only_their_own(client_for, student, other_student):
    await _file(client_for(student))
    theirs = await _file(client_for(other_student))

    listed = (await client_for(other_student).get("/complaints")).json()
    assert [c["id"] for c in listed] == [theirs["id"]]

    response = await client_for(student).get(f"/complaints/{theirs['id']}")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_unknown_complaint_is_404(client_for, lecturer):
    response = await client_for(lecturer).get(f"/complaints/{uuid.uuid4()}")
    assert response.status_code == 404
    assert response.json()["kind"] == "ComplaintNotFound"


# =============================================================================
# Lifecycle
# =============================================================================

@pytest.mark.asyncio
async def test_invalid_transition_error_body(client_for, student, lecturer):
    created = await _file(client_for(student))

    response = await client_for(lecturer).post(
        f"/complaints/{created['id']}/status", json={"status": "reopened"}
    )

    assert response.status_code == 409
    body = response.json()
    assert body["kind"] == "InvalidTransition"
    assert body["field"] == "status"
    assert "new" in body["detail"]


@pytest.mark.asyncio
async def test_students_cannot_change_status(client_for, student):
    owner = client_for(student)
    created = await _file(owner)

    response = await owner.post(
        f"/complaints/{created['id']}/status", json={"status": "closed"}
    )
    assert response.status_code == 403
    assert response.json()["kind"] == "PermissionDenied"


@pytest.mark.asyncio
async def test_resolve_rate_reopen(client_for, student, lecturer):
    owner = client_for(student)
    staff = client_for(lecturer)
    complaint_id = (await _file(owner))["id"]

    assigned = await staff.post(
        f"/complaints/{complaint_id}/assign", json={"lecturer_id": str(lecturer.id)}
    )
    assert assigned.json()["assigned_to"] == str(lecturer.id)
    resolved = await staff.post(
        f"/complaints/{complaint_id}/status", json={"status": "resolved", "note": "Fixed"}
    )
    assert resolved.json()["resolved_at"] is not None

    for bad in ({"rating": "5"}, {"rating": "4"}, {"rating": 4.5}, {"rating": True}, {}):
        rejected = await owner.post(f"/complaints/{complaint_id}/rating", json=bad)
        assert rejected.status_code == 422
        assert rejected.json()["kind"] == "InvalidRatingValue"
        assert rejected.json()["field"] == "rating"

    out_of_range = await owner.post(f"/complaints/{complaint_id}/rating", json={"rating": 6})
    assert out_of_range.status_code == 422
    assert out_of_range.json()["kind"] == "InvalidRatingValue"

    rated = await owner.post(
        f"/complaints/{complaint_id}/rating", json={"rating": 4, "feedback_text": "Quick"}
    )
    assert rated.status_code == 201
    again = await owner.post(f"/complaints/{complaint_id}/rating", json={"rating": 5})
    assert again.status_code == 409
    assert again.json()["kind"] == "AlreadyRated"

    status = (await owner.get(f"/complaints/{complaint_id}/rating")).json()
    assert status["has_rated"] is True
    assert status["rating"]["rating"] == 4
    assert (await owner.get("/ratings/me/average")).json() == {"average": 4.0}

    blank = await owner.post(f"/complaints/{complaint_id}/reopen", json={"justification": " "})
    assert blank.status_code == 422
    assert blank.json()["kind"] == "JustificationRequired"

    reopened = await owner.post(
        f"/complaints/{complaint_id}/reopen", json={"justification": "Broke again"}
    )
    assert reopened.status_code == 200
    assert reopened.json()["status"] == ComplaintStatus.REOPENED.value

    history = (await staff.get(f"/complaints/{complaint_id}/history")).json()
    assert [h["action"] for h in history] == [
        "created",
        "assigned",
        "status_changed",
        "rated",
        "reopened",
    ]


@pytest.mark.asyncio
async def test_assign_unknown_lecturer(client_for, student, lecturer, other_student):
    created = await _file(client_for(student))

    response = await client_for(lecturer).post(
        f"/complaints/{created['id']}/assign", json={"lecturer_id": str(other_student.id)}
    )
    assert response.status_code == 422
    assert response.json() == {
        "kind": "UnknownAssignee",
        "field": "assigned_to",
        "detail": f"User {other_student.id} is not an active staff member",
    }


@pytest.mark.asyncio
async def test_tags(client_for, student, lecturer):
    created = await _file(client_for(student))
    staff = client_for(lecturer)

    response = await staff.post(
        f"/complaints/{created['id']}/tags", json={"tags": ["IT", "it", "lab"]}
    )
    assert response.status_code == 200
    assert sorted(response.json()["added"]) == ["it", "lab"]

    empty = await staff.post(f"/complaints/{created['id']}/tags", json={"tags": []})
    assert empty.status_code == 422
    assert empty.json()["kind"] == "InvalidTags"


@pytest.mark.asyncio
async def test_bulk_status(client_for, student, lecturer):
    owner = client_for(student)
    ids = [(await _file(owner))["id"] for _ in range(2)]
    missing = str(uuid.uuid4())

    response = await client_for(lecturer).post(
        "/complaints/bulk/status",
        json={"complaint_ids": ids + [missing], "status": "in_progress"},
    )

    body = response.json()
    assert body["success"] == 2
    assert body["failed"] == 1
    assert body["errors"][0]["complaint_id"] == missing


# =============================================================================
# Anonymity / export
# =============================================================================

@pytest.mark.asyncio
async def test_anonymous_owner_hidden_from_lecturers(client_for, student, lecturer, admin):
    created = await _file(client_for(student), is_anonymous=True)
    path = f"/complaints/{created['id']}"

    as_lecturer = (await client_for(lecturer).get(path)).json()
    assert as_lecturer["student"] == "anonymous"
    history = (await client_for(lecturer).get(f"{path}/history")).json()
    assert history[0]["performed_by"] == "anonymous"

    as_admin = (await client_for(admin).get(path)).json()
    assert as_admin["student"] == str(student.id)

    listed = (await client_for(lecturer).get("/complaints")).json()
    assert listed[0]["student"] == "anonymous"


@pytest.mark.asyncio
async def test_export_csv(client_for, student):
    owner = client_for(student)
    created = await _file(owner)

    response = await owner.get(f"/complaints/{created['id']}/export.csv")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert f"complaint_{created['id']}.csv" in response.headers["content-disposition"]
    assert response.text.splitlines()[0].startswith("timestamp,entry_type,action")
