from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from app.storage.users_repo import UsersRepository

LESSON = {"title": "Patience", "description": "Waiting well", "category": "growth", "emotionalTone": "calm"}


@pytest.fixture
async def lesson_id(async_client: AsyncClient, auth_headers) -> str:
  await async_client.post("/users", json={}, headers=auth_headers("a@x.com"))
  await async_client.post("/users", json={}, headers=auth_headers("b@y.com"))
  response = await async_client.post("/lessons", json=LESSON, headers=auth_headers("a@x.com"))
  return response.json()["id"]


async def _counters(client: AsyncClient, lesson_id: str, auth_headers) -> tuple[int, int]:
  lesson = (await client.get(f"/lessons/{lesson_id}")).json()
  user = (await client.get("/users/b@y.com", headers=auth_headers("b@y.com"))).json()
  return lesson["favoritesCount"], user["totalLessonsSaved"]


@pytest.mark.anyio
async def test_favorite_round_trip_keeps_counters_consistent(async_client: AsyncClient, auth_headers, lesson_id):
  headers = auth_headers("b@y.com")

  added = await async_client.post("/favorites", json={"lessonId": lesson_id, "userEmail": "spoof@x.com"}, headers=headers)
  assert added.json()["inserted"] is True
  assert added.json()["favorite"]["userEmail"] == "b@y.com"
  assert await _counters(async_client, lesson_id, auth_headers) == (1, 1)

  again = await async_client.post("/favorites", json={"lessonId": lesson_id}, headers=headers)
  assert again.json()["inserted"] is False
  assert await _counters(async_client, lesson_id, auth_headers) == (1, 1)

  check = await async_client.get(f"/favorites/check/{lesson_id}", headers=headers)
  assert check.json() == {"isFavorited": True}
  listed = (await async_client.get("/favorites", headers=headers)).json()
  assert [favorite["lessonId"] for favorite in listed] == [lesson_id]

  removed = await async_client.delete(f"/favorites/{lesson_id}", headers=headers)
  assert removed.json() == {"deleted": True}
  assert await _counters(async_client, lesson_id, auth_headers) == (0, 0)

  assert (await async_client.delete(f"/favorites/{lesson_id}", headers=headers)).status_code == 404
  assert await _counters(async_client, lesson_id, auth_headers) == (0, 0)


@pytest.mark.anyio
async def test_favorite_of_missing_lesson_is_404(async_client: AsyncClient, auth_headers):
  response = await async_client.post("/favorites", json={"lessonId": "64b7f0c2a1b2c3d4e5f60718"}, headers=auth_headers("b@y.com"))
  assert response.status_code == 404


@pytest.mark.anyio
async def test_counter_failure_answers_500_with_request_id(async_client: AsyncClient, auth_headers, lesson_id):
  with patch.object(UsersRepository, "adjust_saved_count", AsyncMock(side_effect=TimeoutError("storage timed out"))):
    response = await async_client.post("/favorites", json={"lessonId": lesson_id}, headers=auth_headers("b@y.com"))

  assert response.status_code == 500
  assert response.json()["requestId"] == response.headers["x-request-id"]
  # The favorite and the lesson counter were written before the failing step.
  assert (await async_client.get(f"/lessons/{lesson_id}")).json()["favoritesCount"] == 1
