import pytest
from fastapi.testclient import TestClient

from daily_alchemy.core.clock import local_today
from daily_alchemy.core.database import get_db
from daily_alchemy.main import app
from daily_alchemy.routers.dependencies import get_oracle, get_settings

from conftest import ADMIN_TOKEN

ADMIN = {"X-Admin-Token": ADMIN_TOKEN, "X-User-Id": "admin"}
PLAYER = {"X-User-Id": "player-1"}

LAVA_PATH = {
    "target": {"name": "Lava", "emoji": "🌋"},
    "path": {"steps": [
        {"a": "fire", "b": "earth", "resultName": "Stone", "resultEmoji": "🪨"},
        {"a": "fire", "b": "stone", "resultName": "Lava", "resultEmoji": "🌋"},
    ]},
}


@pytest.fixture
def client(session_factory, oracle, settings):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_oracle] = lambda: oracle
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def today(settings):
    return local_today(settings.PUZZLE_TIME_ZONE)


@pytest.fixture
def published(client, today):
    assert client.put("/paths", json=LAVA_PATH, headers=ADMIN).status_code == 200
    response = client.post("/puzzles", headers=ADMIN, json={
        "date": today.isoformat(),
        "target": {"name": "Lava", "emoji": "🌋"},
        "parMoves": 3,
        "solutionPath": LAVA_PATH["path"]["steps"],
        "difficulty": "medium",
        "published": True,
    })
    assert response.status_code == 201, response.text
    return response.json()


def test_combine_twice_hits_catalog(client, oracle_client):
    body = {"a": {"name": "Fire", "emoji": "🔥"}, "b": {"name": "water", "emoji": "💧"}}

    first = client.post("/combine", json=body, headers=PLAYER).json()
    second = client.post("/combine", json=body).json()

    assert first == {"result": {"name": "Steam", "emoji": "💨"}, "firstDiscovery": True, "fromCache": False}
    assert second == {"result": {"name": "Steam", "emoji": "💨"}, "firstDiscovery": False, "fromCache": True}
    assert oracle_client.combination_calls == 1


def test_invalid_name_is_a_400(client):
    response = client.post("/combine", json={"a": {"name": "  "}, "b": {"name": "Fire"}})

    assert response.status_code == 400
    assert response.json()["error"] == "InvalidName"


def test_generate_paths(client):
    client.put("/paths", json=LAVA_PATH, headers=ADMIN)

    response = client.post("/paths/generate", json={"targetName": "lava", "limit": 2})

    assert response.status_code == 200
    body = response.json()
    assert body["existingCombinationsCount"] == 2
    assert [s["resultName"] for s in body["paths"][0]["steps"]] == ["Stone", "Lava"]


def test_saving_paths_requires_admin(client):
    assert client.put("/paths", json=LAVA_PATH, headers=PLAYER).status_code == 403

    first = client.put("/paths", json=LAVA_PATH, headers=ADMIN).json()
    second = client.put("/paths", json=LAVA_PATH, headers=ADMIN).json()
    assert (first["created"], first["skipped"]) == (2, 0)
    assert (second["created"], second["skipped"]) == (0, 2)


def test_todays_puzzle_hides_solution(client, published):
    response = client.get("/puzzles")

    assert response.status_code == 200
    puzzle = response.json()["puzzle"]
    assert puzzle["puzzleNumber"] == published["puzzleNumber"]
    assert puzzle["target"] == "Lava"
    assert "solutionPath" not in puzzle


def test_duplicate_puzzle_date_is_a_409(client, published, today):
    response = client.post("/puzzles", headers=ADMIN, json={
        "date": today.isoformat(),
        "target": {"name": "Lava", "emoji": "🌋"},
        "parMoves": 3,
        "solutionPath": LAVA_PATH["path"]["steps"],
    })
    assert response.status_code == 409
    assert response.json()["error"] == "DuplicateDate"


def test_unpublished_puzzle_is_admin_only(client, published):
    client.patch(f"/puzzles/{published['id']}", json={"published": False}, headers=ADMIN)

    assert client.get("/puzzles").status_code == 404
    assert client.get("/puzzles", headers=ADMIN).status_code == 200


def test_play_session_to_a_win(client, published, today):
    url = f"/sessions/{today.isoformat()}"
    assert client.post(f"{url}/start", headers=PLAYER).json()["firstAttempt"] is True

    client.post(f"{url}/combine", headers=PLAYER,
                json={"a": {"name": "Fire"}, "b": {"name": "Earth"}})
    step = client.post(f"{url}/combine", headers=PLAYER,
                       json={"a": {"name": "Stone"}, "b": {"name": "Fire"}}).json()
    assert step["targetReached"] is True
    assert step["state"]["moves"] == 2

    final = client.post(f"{url}/finalize", headers=PLAYER, json={"outcome": "won"}).json()
    assert final["outcome"] == "won"

    stats = client.get("/stats", headers=PLAYER).json()
    assert stats["totalCompleted"] == 1
    assert stats["underParCount"] == 1


def test_sessions_need_a_user(client, published, today):
    assert client.post(f"/sessions/{today.isoformat()}/start").status_code == 403


def test_admin_can_delete_combination(client):
    client.put("/paths", json=LAVA_PATH, headers=ADMIN)

    assert client.get("/combinations/earth|fire", headers=PLAYER).status_code == 403
    assert client.get("/combinations/earth|fire", headers=ADMIN).json()["resultName"] == "Stone"
    assert client.delete("/combinations/earth|fire", headers=ADMIN).status_code == 200
    assert client.get("/combinations/earth|fire", headers=ADMIN).status_code == 404


def test_discoveries_lists_the_callers_first_combinations(client):
    body = {"a": {"name": "Fire", "emoji": "🔥"}, "b": {"name": "Water", "emoji": "💧"}}
    client.post("/combine", json=body, headers=PLAYER)
    client.post("/combine", json=body, headers={"X-User-Id": "player-2"})

    mine = client.get("/discoveries", headers=PLAYER)
    theirs = client.get("/discoveries", headers={"X-User-Id": "player-2"})

    assert mine.status_code == 200
    assert mine.json()["total"] == 1
    discovery = mine.json()["discoveries"][0]
    assert (discovery["elementA"], discovery["elementB"]) == ("Fire", "Water")
    assert discovery["resultName"] == "Steam"
    assert theirs.json() == {"discoveries": [], "total": 0, "page": 1, "limit": 100}
    assert client.get("/discoveries").status_code == 403
