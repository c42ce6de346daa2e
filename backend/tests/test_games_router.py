import asyncio
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from betleague import main
from betleague.domain import Bet
from betleague.repositories import InMemoryGameRepository
from betleague.routers import games
from betleague.services import GameServiceRegistry
from betleague.services.game import Game
from betleague.time_utils import utcnow

from conftest import COMPETITION, SEASON

GAMES = f"{main.API_PREFIX}/v0/games"
BASE = f"{GAMES}/g1"
MATCHES = f"{main.API_PREFIX}/v0/matches"


def _as(player_id, name=None):
    headers = {"X-Player-Id": player_id}
    if name is not None:
        headers["X-Player-Name"] = name
    return headers


@pytest.fixture
def upcoming(make_match):
    tomorrow = utcnow() + timedelta(days=1)
    return [
        make_match("Paris", "Marseille", 1, date=tomorrow, home_odds=1.5, draw_odds=4.0, away_odds=6.0),
        make_match("Lyon", "Lille", 1, date=tomorrow, home_odds=2.4, draw_odds=3.2, away_odds=2.9),
    ]


@pytest.fixture
def kicked_off(make_match):
    return make_match("Nice", "Lens", 2, date=utcnow() - timedelta(minutes=5))


@pytest.fixture
def league(players, upcoming, kicked_off):
    return Game.fresh(SEASON, COMPETITION, "Office league", players, upcoming + [kicked_off])


@pytest.fixture
def registry(league):
    repository = InMemoryGameRepository()
    asyncio.run(repository.save_game("g1", league))
    return GameServiceRegistry(repository)


@pytest.fixture
def client(registry):
    main.app.dependency_overrides[games.get_registry] = lambda: registry
    try:
        with TestClient(main.app) as c:
            yield c
    finally:
        main.app.dependency_overrides.pop(games.get_registry, None)


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}
    assert client.get(f"{main.API_PREFIX}/healthz").json() == {"status": "ok"}


def test_place_and_list_bets(client, upcoming):
    mid = upcoming[0].id
    resp = client.post(
        f"{BASE}/bets",
        json={"matchId": mid, "predictedHomeGoals": 2, "predictedAwayGoals": 0},
        headers=_as("p1"),
    )
    assert resp.status_code == 200
    assert resp.json() == {"matchId": mid, "predictedHomeGoals": 2, "predictedAwayGoals": 0}

    resp = client.get(f"{BASE}/bets", headers=_as("p1"))
    assert resp.json() == [{"matchId": mid, "predictedHomeGoals": 2, "predictedAwayGoals": 0}]
    assert client.get(f"{BASE}/bets", headers=_as("p2")).json() == []


def test_incoming_matches_hide_other_bets(client, league, players, upcoming, kicked_off):
    mid = upcoming[0].id
    league.add_player_bet(players[1], Bet(mid, 0, 1))

    body = client.get(f"{BASE}/matches/incoming", headers=_as("p1")).json()
    assert set(body) == {m.id for m in upcoming} | {kicked_off.id}
    assert body[mid]["bets"] == {}
    assert body[mid]["match"]["homeTeam"] == "Paris"
    assert body[mid]["match"]["status"] == "scheduled"
    assert body[mid]["scores"] is None

    body = client.get(f"{BASE}/matches/incoming", headers=_as("p2")).json()
    assert body[mid]["bets"]["p2"]["predictedAwayGoals"] == 1


def test_missing_identity_is_rejected(client):
    resp = client.get(f"{BASE}/bets")
    assert resp.status_code == 401
    assert resp.headers["content-type"].startswith("application/problem+json")
    assert resp.json()["code"] == "player_identity_required"


def test_unknown_game_is_a_problem(client):
    resp = client.get(f"{main.API_PREFIX}/v0/games/nope/standings")
    assert resp.status_code == 404
    assert resp.json()["code"] == "game_not_found"


def test_bet_on_unknown_match(client):
    resp = client.post(
        f"{BASE}/bets",
        json={"matchId": "nope", "predictedHomeGoals": 1, "predictedAwayGoals": 0},
        headers=_as("p1"),
    )
    assert resp.status_code == 404
    assert resp.json()["code"] == "match_not_found"


def test_bet_from_outsider(client, upcoming):
    resp = client.post(
        f"{BASE}/bets",
        json={"matchId": upcoming[0].id, "predictedHomeGoals": 1, "predictedAwayGoals": 0},
        headers=_as("stranger"),
    )
    assert resp.status_code == 404
    assert resp.json()["code"] == "player_not_found"


def test_late_bet(client, kicked_off):
    resp = client.post(
        f"{BASE}/bets",
        json={"matchId": kicked_off.id, "predictedHomeGoals": 1, "predictedAwayGoals": 1},
        headers=_as("p1"),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "bet_too_late"


@pytest.mark.parametrize(
    "payload",
    [
        {"matchId": "x", "predictedHomeGoals": -1, "predictedAwayGoals": 0},
        {"matchId": "x", "predictedHomeGoals": True, "predictedAwayGoals": 0},
        {"matchId": "x", "predictedHomeGoals": 1},
    ],
)
def test_invalid_bet_payload(client, payload):
    resp = client.post(f"{BASE}/bets", json=payload, headers=_as("p1"))
    assert resp.status_code == 422


def test_join_game(client):
    resp = client.post(f"{BASE}/players", headers=_as("p9", "Zoe"))
    assert resp.status_code == 201
    assert resp.json() == {"id": "p9", "name": "Zoe"}

    resp = client.post(f"{BASE}/players", headers=_as("p9", "Zoe"))
    assert resp.status_code == 409
    assert resp.json()["code"] == "duplicate_player"


def test_join_requires_a_name(client):
    resp = client.post(f"{BASE}/players", headers=_as("p9"))
    assert resp.status_code == 422
    assert resp.json()["code"] == "player_name_required"


def test_standings_and_past_results(client, league, players, upcoming):
    finished = upcoming[1].finish(2, 1)
    league.add_player_bet(players[0], Bet(finished.id, 2, 1))
    league.apply_match_scores(finished, league.calculate_match_scores(finished))

    standings = client.get(f"{BASE}/standings").json()
    assert standings == {
        "status": "scheduled",
        "points": {"p1": 625, "p2": -100, "p3": -100, "p4": -100},
        "winners": ["p1"],
    }

    past = client.get(f"{BASE}/matches/past").json()
    assert past[finished.id]["scores"]["p1"] == 625
    assert past[finished.id]["match"]["homeGoals"] == 2


def _snapshot(match):
    body = {
        "homeTeam": match.home_team,
        "awayTeam": match.away_team,
        "seasonCode": match.season_code,
        "competitionCode": match.competition_code,
        "homeOdds": match.home_odds,
        "drawOdds": match.draw_odds,
        "awayOdds": match.away_odds,
        "date": match.date.isoformat(),
        "matchday": match.matchday,
        "status": match.status.value,
    }
    if match.home_goals is not None:
        body["homeGoals"] = match.home_goals
        body["awayGoals"] = match.away_goals
    return body


def test_ingest_scores_games_tracking_the_match(client, league, players, upcoming):
    mid = upcoming[1].id
    league.add_player_bet(players[0], Bet(mid, 2, 1))

    resp = client.post(MATCHES, json=[_snapshot(upcoming[1].finish(2, 1))])

    assert resp.status_code == 200
    assert resp.json() == {"g1": {mid: {"p1": 625, "p2": -100, "p3": -100, "p4": -100}}}
    assert league.is_past(mid)
    assert client.get(f"{BASE}/standings").json()["points"]["p1"] == 625


def test_ingest_rejects_finished_match_without_goals(client, upcoming):
    body = _snapshot(upcoming[0])
    body["status"] = "finished"
    resp = client.post(MATCHES, json=[body])
    assert resp.status_code == 422


def test_create_join_list_and_leave(client, upcoming):
    assert client.post(MATCHES, json=[_snapshot(m) for m in upcoming]).json() == {"g1": {}}

    resp = client.post(
        GAMES,
        json={"seasonCode": SEASON, "competitionCode": COMPETITION, "name": " Friends "},
        headers=_as("p9", "Zoe"),
    )
    assert resp.status_code == 201
    created = resp.json()
    game_id, code = created["gameId"], created["code"]
    assert len(code) == 4 and code.isalnum()

    resp = client.post(f"{GAMES}/join", json={"code": code.lower()}, headers=_as("p8", "Yan"))
    assert resp.status_code == 200
    assert resp.json() == {
        "gameId": game_id,
        "seasonCode": SEASON,
        "competitionCode": COMPETITION,
        "name": "Friends",
    }
    # joining twice is harmless
    resp = client.post(f"{GAMES}/join", json={"code": code}, headers=_as("p8", "Yan"))
    assert resp.status_code == 200

    listed = client.get(GAMES, headers=_as("p8")).json()
    assert len(listed) == 1
    assert listed[0]["gameId"] == game_id
    assert listed[0]["code"] == code
    assert listed[0]["status"] == "not_started"
    assert listed[0]["players"] == [
        {"id": "p9", "name": "Zoe", "totalScore": 0, "scoresByMatch": {}},
        {"id": "p8", "name": "Yan", "totalScore": 0, "scoresByMatch": {}},
    ]

    incoming = client.get(f"{GAMES}/{game_id}/matches/incoming", headers=_as("p8")).json()
    assert set(incoming) == {m.id for m in upcoming}

    assert client.delete(f"{GAMES}/{game_id}/leave", headers=_as("p8")).status_code == 204
    assert client.get(GAMES, headers=_as("p8")).json() == []
    resp = client.delete(f"{GAMES}/{game_id}/leave", headers=_as("p8"))
    assert resp.status_code == 404
    assert resp.json()["code"] == "player_not_found"


def test_list_games_shows_scores_by_match(client, league, players, upcoming):
    finished = upcoming[1].finish(2, 1)
    league.add_player_bet(players[0], Bet(finished.id, 2, 1))
    league.apply_match_scores(finished, league.calculate_match_scores(finished))

    listed = client.get(GAMES, headers=_as("p1")).json()
    assert [entry["gameId"] for entry in listed] == ["g1"]
    alice = listed[0]["players"][0]
    assert alice == {
        "id": "p1",
        "name": "Alice",
        "totalScore": 625,
        "scoresByMatch": {finished.id: 625},
    }
    assert listed[0]["code"] is None


def test_create_game_for_unknown_competition(client):
    resp = client.post(
        GAMES,
        json={"seasonCode": "1999", "competitionCode": "Serie Z", "name": "Nope"},
        headers=_as("p9", "Zoe"),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "unsupported_competition"


def test_create_game_requires_a_name(client):
    resp = client.post(
        GAMES,
        json={"seasonCode": SEASON, "competitionCode": COMPETITION, "name": "   "},
        headers=_as("p9", "Zoe"),
    )
    assert resp.status_code == 422


def test_join_with_unknown_code(client):
    resp = client.post(f"{GAMES}/join", json={"code": "ZZZZ"}, headers=_as("p9", "Zoe"))
    assert resp.status_code == 404
    assert resp.json()["code"] == "game_code_not_found"


@pytest.mark.parametrize("code", ["ABC", "ABCDE", "AB-D"])
def test_join_with_malformed_code(client, code):
    resp = client.post(f"{GAMES}/join", json={"code": code}, headers=_as("p9", "Zoe"))
    assert resp.status_code == 422
