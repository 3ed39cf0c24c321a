"""Integration tests for idea routes: credits, isolation, reports, deletion."""

import uuid

import pytest

pytestmark = pytest.mark.integration

IDEA = {
    "title": "Tool library",
    "description": "Neighbours lend and borrow power tools through a shared locker.",
    "target_customer": "Suburban homeowners",
}


def _create(client, **overrides) -> dict:
    response = client.post("/api/ideas", json={**IDEA, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


def test_create_idea_returns_remaining_runs(api_client):
    body = _create(api_client)

    assert body["remaining_runs"] == 4
    assert api_client.get("/api/account").json()["remaining_runs"] == 4


def test_create_idea_missing_fields(api_client):
    response = api_client.post("/api/ideas", json={"title": "No description"})

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "missing_required_field"
    assert "description" in body["detail"]
    assert "debug_id" in body


def test_create_idea_without_credits(api_client, free_runs):
    free_runs(0)

    response = api_client.post("/api/ideas", json=IDEA)

    assert response.status_code == 403
    assert response.json()["code"] == "no_credits_remaining"


def test_create_idea_unverified(api_client, authenticate_as):
    from arena.core.auth import ClerkUser

    authenticate_as(ClerkUser(user_id="user_c", claims={"sub": "user_c"}))

    response = api_client.post("/api/ideas", json=IDEA)

    assert response.status_code == 403
    assert response.json()["code"] == "unverified"


def test_list_and_get_idea(api_client):
    idea_id = _create(api_client)["idea_id"]

    listed = api_client.get("/api/ideas").json()
    detail = api_client.get(f"/api/ideas/{idea_id}").json()

    assert [i["id"] for i in listed] == [idea_id]
    assert detail["title"] == "Tool library"
    assert detail["next_persona"] == "customer"
    assert detail["completed_stages"] == []


def test_other_user_gets_404(api_client, authenticate_as, user_a, user_b):
    idea_id = _create(api_client)["idea_id"]

    authenticate_as(user_b)

    assert api_client.get(f"/api/ideas/{idea_id}").status_code == 404
    assert api_client.get(f"/api/ideas/{idea_id}/report").status_code == 404
    assert api_client.delete(f"/api/ideas/{idea_id}").status_code == 404
    assert api_client.get("/api/ideas").json() == []

    # Identical to a missing idea
    missing = api_client.get(f"/api/ideas/{uuid.uuid4()}")
    assert missing.status_code == 404
    assert missing.json()["code"] == "not_found"

    authenticate_as(user_a)
    assert api_client.get(f"/api/ideas/{idea_id}").status_code == 200


def test_report_before_any_stage(api_client):
    idea_id = _create(api_client)["idea_id"]

    report = api_client.get(f"/api/ideas/{idea_id}/report").json()

    assert report["average_score"] is None
    assert report["completed_stages"] == 0
    assert report["total_stages"] == 4
    assert report["is_final"] is False


def test_delete_idea_removes_stages(api_client):
    idea_id = _create(api_client)["idea_id"]
    stage = api_client.post("/api/stages/start", json={"idea_id": idea_id, "persona": "customer"}).json()
    api_client.post(f"/api/stages/{stage['stage_id']}/messages", json={"content": "Hello"})

    response = api_client.delete(f"/api/ideas/{idea_id}")

    assert response.status_code == 204
    assert api_client.get(f"/api/ideas/{idea_id}").status_code == 404
    assert api_client.get(f"/api/stages/{stage['stage_id']}/messages").status_code == 404
