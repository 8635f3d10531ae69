import pytest
from httpx import AsyncClient

from app.config import get_settings


@pytest.fixture
def admin_email(monkeypatch):
  monkeypatch.setenv("LESSONS_SUPERADMIN_EMAIL", "root@x.com")
  get_settings.cache_clear()
  yield "root@x.com"
  get_settings.cache_clear()


@pytest.fixture
async def lesson_id(async_client: AsyncClient, auth_headers) -> str:
  response = await async_client.post("/lessons", json={"title": "Patience", "description": "Waiting well", "category": "growth", "emotionalTone": "calm"}, headers=auth_headers("a@x.com"))
  return response.json()["id"]


@pytest.mark.anyio
async def test_duplicate_report_is_answered_without_a_second_write(async_client: AsyncClient, auth_headers, lesson_id, admin_email):
  headers = auth_headers("b@y.com")
  first = await async_client.post("/reports", json={"lessonId": lesson_id, "reason": "spam"}, headers=headers)
  assert first.status_code == 201
  assert first.json()["report"]["status"] == "pending"

  second = await async_client.post("/reports", json={"lessonId": lesson_id, "reason": "spam again"}, headers=headers)
  assert second.status_code == 200
  assert second.json()["inserted"] is False
  assert second.json()["duplicate"] is True

  admin = auth_headers(admin_email)
  await async_client.post("/users", json={}, headers=admin)
  reports = (await async_client.get("/reports", headers=admin)).json()
  assert len(reports) == 1

  per_lesson = (await async_client.get(f"/reports/lesson/{lesson_id}", headers=admin)).json()
  assert [report["reporterEmail"] for report in per_lesson] == ["b@y.com"]

  updated = await async_client.patch(f"/reports/{reports[0]['id']}", json={"status": "resolved"}, headers=admin)
  assert updated.json()["status"] == "resolved"

  invalid = await async_client.patch(f"/reports/{reports[0]['id']}", json={"status": "closed"}, headers=admin)
  assert invalid.status_code == 422


@pytest.mark.anyio
async def test_moderation_requires_admin(async_client: AsyncClient, auth_headers, lesson_id):
  headers = auth_headers("b@y.com")
  await async_client.post("/users", json={}, headers=headers)
  assert (await async_client.get("/reports", headers=headers)).status_code == 403
  assert (await async_client.get(f"/reports/lesson/{lesson_id}", headers=headers)).status_code == 403


@pytest.mark.anyio
async def test_comment_lifecycle(async_client: AsyncClient, auth_headers, lesson_id):
  posted = await async_client.post("/comments", json={"lessonId": lesson_id, "comment": "Helpful", "userEmail": "spoof@x.com"}, headers=auth_headers("b@y.com"))
  assert posted.status_code == 201
  comment = posted.json()
  assert comment["userEmail"] == "b@y.com"

  listed = (await async_client.get(f"/comments/{lesson_id}")).json()
  assert [item["id"] for item in listed] == [comment["id"]]

  assert (await async_client.delete(f"/comments/{comment['id']}", headers=auth_headers("c@z.com"))).status_code == 403
  assert len((await async_client.get(f"/comments/{lesson_id}")).json()) == 1

  assert (await async_client.delete(f"/comments/{comment['id']}", headers=auth_headers("b@y.com"))).json() == {"deleted": True}
  assert (await async_client.get(f"/comments/{lesson_id}")).json() == []
