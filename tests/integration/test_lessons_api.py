import pytest
from httpx import AsyncClient

LESSON = {"title": "Patience", "description": "Waiting well", "category": "growth", "emotionalTone": "calm", "privacy": "public", "accessLevel": "free"}


async def _login(client: AsyncClient, headers) -> dict:
  response = await client.post("/users", json={}, headers=headers)
  assert response.status_code == 200
  return response.json()["user"]


async def _create(client: AsyncClient, headers, **overrides) -> dict:
  response = await client.post("/lessons", json={**LESSON, **overrides}, headers=headers)
  assert response.status_code == 201
  return response.json()


@pytest.mark.anyio
async def test_create_lesson_uses_token_identity_and_counts_it(async_client: AsyncClient, auth_headers):
  headers = auth_headers("a@x.com")
  await _login(async_client, headers)

  lesson = await _create(async_client, headers, creatorEmail="spoof@x.com")
  assert lesson["creatorEmail"] == "a@x.com"
  assert lesson["likesCount"] == 0
  assert lesson["favoritesCount"] == 0

  user = (await async_client.get("/users/a@x.com", headers=headers)).json()
  assert user["totalLessonsCreated"] == 1


@pytest.mark.anyio
async def test_list_and_get_lessons_are_public(async_client: AsyncClient, auth_headers):
  headers = auth_headers("a@x.com")
  first = await _create(async_client, headers, category="growth")
  await _create(async_client, headers, category="career")

  listed = (await async_client.get("/lessons", params={"category": "growth"})).json()
  assert [lesson["id"] for lesson in listed] == [first["id"]]

  fetched = await async_client.get(f"/lessons/{first['id']}")
  assert fetched.status_code == 200
  assert fetched.json()["title"] == "Patience"

  assert (await async_client.get("/lessons/64b7f0c2a1b2c3d4e5f60718")).status_code == 404


@pytest.mark.anyio
async def test_only_owner_can_edit(async_client: AsyncClient, auth_headers):
  lesson = await _create(async_client, auth_headers("a@x.com"))

  forbidden = await async_client.patch(f"/lessons/{lesson['id']}", json={"title": "Hijacked"}, headers=auth_headers("b@y.com"))
  assert forbidden.status_code == 403

  edited = await async_client.patch(f"/lessons/{lesson['id']}", json={"title": "Renamed", "likesCount": 50}, headers=auth_headers("a@x.com"))
  assert edited.status_code == 200
  assert edited.json()["title"] == "Renamed"
  assert edited.json()["likesCount"] == 0


@pytest.mark.anyio
async def test_my_lessons_lists_and_deletes(async_client: AsyncClient, auth_headers):
  owner = auth_headers("a@x.com")
  await _login(async_client, owner)
  lesson = await _create(async_client, owner)
  await _create(async_client, auth_headers("b@y.com"))

  mine = (await async_client.get("/my-lessons", headers=owner)).json()
  assert [item["id"] for item in mine] == [lesson["id"]]

  assert (await async_client.delete(f"/my-lessons/{lesson['id']}", headers=auth_headers("b@y.com"))).status_code == 403

  deleted = await async_client.delete(f"/my-lessons/{lesson['id']}", headers=owner)
  assert deleted.status_code == 200
  assert deleted.json() == {"deleted": True, "id": lesson["id"]}
  assert (await async_client.get("/users/a@x.com", headers=owner)).json()["totalLessonsCreated"] == 0

  assert (await async_client.delete(f"/my-lessons/{lesson['id']}", headers=owner)).status_code == 404


@pytest.mark.anyio
async def test_like_toggle(async_client: AsyncClient, auth_headers):
  lesson = await _create(async_client, auth_headers("a@x.com"))

  liked = await async_client.patch(f"/lessons/{lesson['id']}/like", headers=auth_headers("b@y.com"))
  assert liked.json() == {"liked": True, "likesCount": 1}

  unliked = await async_client.patch(f"/lessons/{lesson['id']}/like", headers=auth_headers("b@y.com"))
  assert unliked.json() == {"liked": False, "likesCount": 0}


@pytest.mark.anyio
async def test_create_lesson_validation_error_hides_payload(async_client: AsyncClient, auth_headers):
  response = await async_client.post("/lessons", json={"title": ""}, headers=auth_headers("a@x.com"))
  assert response.status_code == 422
  for error in response.json()["detail"]:
    assert "input" not in error


@pytest.mark.anyio
async def test_edit_cannot_null_required_fields(async_client: AsyncClient, auth_headers):
  headers = auth_headers("a@x.com")
  lesson = await _create(async_client, headers, image="http://img/p.png")

  rejected = await async_client.patch(f"/lessons/{lesson['id']}", json={"title": None, "description": None}, headers=headers)
  assert rejected.status_code == 422

  stored = (await async_client.get(f"/lessons/{lesson['id']}")).json()
  assert stored["title"] == LESSON["title"]
  assert stored["description"] == LESSON["description"]

  cleared = await async_client.patch(f"/lessons/{lesson['id']}", json={"image": None}, headers=headers)
  assert cleared.status_code == 200
  assert cleared.json()["image"] is None
  assert cleared.json()["title"] == LESSON["title"]
