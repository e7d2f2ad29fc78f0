"""
HTTP endpoint integration tests for the tennis league API.

These tests verify that FastAPI endpoints:
- Return correct HTTP status codes
- Apply league rules (match validation, season lifecycle)
- Clear the ranking cache on every write
- Report cache status through X-Cache / X-Cache-Key

Uses FastAPI TestClient for in-memory HTTP testing.
"""
from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

API = "/api/v1"


def duo(season_id, players, play_date="2026-03-07", score=(6, 2), **overrides):
    a, b, c, d = players
    body = {
        "season_id": season_id,
        "play_date": play_date,
        "player1_id": a,
        "player2_id": b,
        "player3_id": c,
        "player4_id": d,
        "team1_score": score[0],
        "team2_score": score[1],
    }
    body.update(overrides)
    return body


@pytest.fixture
def ids(players):
    return [p.id for p in players]


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

class TestRootAndHealthEndpoints:
    """Test root and health check endpoints."""

    def test_root_endpoint(self, test_client: TestClient):
        response = test_client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "running"
        assert "endpoints" in data

    def test_health_endpoint(self, test_client: TestClient):
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_api_health_endpoint(self, test_client: TestClient):
        response = test_client.get("/api/health")

        # 200 or 503 depending on the process-wide database
        assert response.status_code in [200, 503]
        assert "components" in response.json()

    def test_correlation_id_echoed(self, test_client: TestClient):
        response = test_client.get("/health", headers={"X-Correlation-ID": "abc-123"})

        assert response.headers["X-Correlation-ID"] == "abc-123"


# =============================================================================
# PLAYERS
# =============================================================================

class TestPlayerEndpoints:

    def test_create_and_list(self, test_client: TestClient):
        response = test_client.post(f"{API}/players", json={"name": "  Anna  "})

        assert response.status_code == 201
        assert response.json()["name"] == "Anna"

        listing = test_client.get(f"{API}/players").json()
        assert [p["name"] for p in listing] == ["Anna"]

    def test_duplicate_name_conflict(self, test_client: TestClient, players):
        response = test_client.post(f"{API}/players", json={"name": "Anna"})

        assert response.status_code == 409

    def test_blank_name_rejected(self, test_client: TestClient):
        response = test_client.post(f"{API}/players", json={"name": "   "})

        assert response.status_code == 400

    def test_delete_removes_their_matches(self, test_client: TestClient, season, ids):
        test_client.post(f"{API}/matches", json=duo(season.id, ids))

        response = test_client.delete(f"{API}/players/{ids[0]}")

        assert response.status_code == 200
        assert response.json()["matches_removed"] == 1
        assert test_client.get(f"{API}/matches").json() == []
        assert test_client.get(f"{API}/rankings/lifetime").json() == []

    def test_delete_unknown_player(self, test_client: TestClient):
        assert test_client.delete(f"{API}/players/999").status_code == 404


# =============================================================================
# SEASONS
# =============================================================================

class TestSeasonEndpoints:

    def test_create_deactivates_previous(self, test_client: TestClient, season):
        response = test_client.post(
            f"{API}/seasons", json={"name": "Summer 2026", "start_date": "2026-06-01"}
        )

        assert response.status_code == 201
        created = response.json()
        assert created["is_active"] is True

        active = test_client.get(f"{API}/seasons/active").json()
        assert active["id"] == created["id"]
        assert test_client.get(f"{API}/seasons/{season.id}").json()["is_active"] is False

    def test_past_end_date_created_inactive(self, test_client: TestClient, season):
        response = test_client.post(
            f"{API}/seasons",
            json={"name": "Archive", "start_date": "2020-01-01", "end_date": "2020-06-30"},
        )

        assert response.json()["is_active"] is False
        assert test_client.get(f"{API}/seasons/active").json()["id"] == season.id

    def test_auto_end_requires_end_date(self, test_client: TestClient):
        response = test_client.post(
            f"{API}/seasons", json={"name": "Open", "start_date": "2026-01-01", "auto_end": True}
        )

        assert response.status_code == 400

    def test_end_reactivate_delete_lifecycle(self, test_client: TestClient, season):
        base = f"{API}/seasons/{season.id}"

        # Active seasons cannot be deleted
        assert test_client.delete(base).status_code == 400

        ended = test_client.post(f"{base}/end", json={"end_date": "2026-05-31"}).json()
        assert ended["is_active"] is False
        assert ended["end_date"] == "2026-05-31"
        assert ended["ended_at"] is not None

        assert test_client.post(f"{base}/reactivate").json()["is_active"] is True
        assert test_client.post(f"{base}/reactivate").status_code == 400

        test_client.post(f"{base}/end")
        assert test_client.delete(base).status_code == 200
        assert test_client.get(base).status_code == 404

    def test_end_defaults_to_today(self, test_client: TestClient, season):
        ended = test_client.post(f"{API}/seasons/{season.id}/end").json()

        assert ended["end_date"] == date.today().isoformat()

    def test_end_future_season_without_date(self, test_client: TestClient):
        start = date.today() + timedelta(days=10)
        created = test_client.post(f"{API}/seasons", json={
            "name": "Next Autumn", "start_date": start.isoformat(),
        }).json()
        assert created["is_active"] is True

        response = test_client.post(f"{API}/seasons/{created['id']}/end")

        assert response.status_code == 200
        assert response.json()["is_active"] is False
        assert response.json()["end_date"] == start.isoformat()
        assert test_client.delete(f"{API}/seasons/{created['id']}").status_code == 200

    def test_delete_season_removes_its_matches(self, test_client: TestClient, season, ids):
        test_client.post(f"{API}/matches", json=duo(season.id, ids))
        test_client.post(f"{API}/seasons/{season.id}/end")

        response = test_client.delete(f"{API}/seasons/{season.id}")

        assert response.json()["matches_removed"] == 1
        assert test_client.get(f"{API}/matches").json() == []

    def test_check_expired(self, test_client: TestClient):
        yesterday = date.today() - timedelta(days=1)
        test_client.post(f"{API}/seasons", json={
            "name": "Ending", "start_date": (yesterday - timedelta(days=30)).isoformat(),
            "end_date": date.today().isoformat(), "auto_end": True,
        })

        # Still running today
        assert test_client.post(f"{API}/seasons/check-expired").json()["ended"] == 0

    def test_unknown_season(self, test_client: TestClient):
        assert test_client.get(f"{API}/seasons/999").status_code == 404

    def test_roster_management(self, test_client: TestClient, season, ids):
        base = f"{API}/seasons/{season.id}/players"

        roster = test_client.put(base, json={"player_ids": ids[:2]}).json()
        assert [entry["name"] for entry in roster] == ["Anna", "Binh"]

        assert test_client.post(f"{base}/{ids[2]}").status_code == 201
        assert test_client.post(f"{base}/{ids[2]}").status_code == 409
        assert test_client.delete(f"{base}/{ids[2]}").status_code == 200
        assert test_client.delete(f"{base}/{ids[2]}").status_code == 404
        assert len(test_client.get(base).json()) == 2

    def test_roster_unknown_player(self, test_client: TestClient, season):
        response = test_client.put(f"{API}/seasons/{season.id}/players", json={"player_ids": [999]})

        assert response.status_code == 404


# =============================================================================
# MATCHES
# =============================================================================

class TestMatchEndpoints:

    def test_create_and_fetch(self, test_client: TestClient, season, ids):
        response = test_client.post(f"{API}/matches", json=duo(season.id, ids))

        assert response.status_code == 201
        match = response.json()
        assert match["winning_team"] == 1
        assert match["player1_name"] == "Anna"
        assert match["season_name"] == "Spring 2026"

        assert test_client.get(f"{API}/matches/{match['id']}").json()["id"] == match["id"]

    def test_duplicate_players_rejected(self, test_client: TestClient, season, ids):
        body = duo(season.id, [ids[0], ids[0], ids[2], ids[3]])

        response = test_client.post(f"{API}/matches", json=body)

        assert response.status_code == 400

    def test_solo_match(self, test_client: TestClient, season, ids):
        body = duo(season.id, ids, player2_id=None, player4_id=None, match_type="solo")

        response = test_client.post(f"{API}/matches", json=body)

        assert response.status_code == 201
        assert response.json()["player2_id"] is None

    def test_solo_with_four_players_rejected(self, test_client: TestClient, season, ids):
        response = test_client.post(f"{API}/matches", json=duo(season.id, ids, match_type="solo"))

        assert response.status_code == 400

    def test_unknown_season_rejected(self, test_client: TestClient, ids):
        assert test_client.post(f"{API}/matches", json=duo(999, ids)).status_code == 404

    def test_winner_must_match_score(self, test_client: TestClient, season, ids):
        response = test_client.post(f"{API}/matches", json=duo(season.id, ids, winning_team=2))

        assert response.status_code == 400

    def test_level_score_needs_winner(self, test_client: TestClient, season, ids):
        assert test_client.post(f"{API}/matches", json=duo(season.id, ids, score=(6, 6))).status_code == 400
        assert test_client.post(
            f"{API}/matches", json=duo(season.id, ids, score=(6, 6), winning_team=2)
        ).status_code == 201

    def test_winner_rule_documented(self, test_client: TestClient):
        schema = test_client.get("/openapi.json").json()["components"]["schemas"]["MatchRequest"]

        description = schema["properties"]["winning_team"]["description"]
        assert "agree with a non-level score" in description

    def test_negative_score_is_422(self, test_client: TestClient, season, ids):
        assert test_client.post(f"{API}/matches", json=duo(season.id, ids, score=(-1, 6))).status_code == 422

    def test_roster_restricts_players(self, test_client: TestClient, season, ids):
        test_client.put(f"{API}/seasons/{season.id}/players", json={"player_ids": ids[:3]})

        response = test_client.post(f"{API}/matches", json=duo(season.id, ids))

        assert response.status_code == 400
        assert response.json()["detail"]["details"]["player_ids"] == [ids[3]]

    def test_update_and_delete(self, test_client: TestClient, season, ids):
        match = test_client.post(f"{API}/matches", json=duo(season.id, ids)).json()

        updated = test_client.put(f"{API}/matches/{match['id']}", json=duo(season.id, ids, score=(3, 6)))
        assert updated.status_code == 200
        assert updated.json()["winning_team"] == 2

        assert test_client.delete(f"{API}/matches/{match['id']}").status_code == 200
        assert test_client.get(f"{API}/matches/{match['id']}").status_code == 404

    def test_listing_views(self, test_client: TestClient, season, ids):
        test_client.post(f"{API}/matches", json=duo(season.id, ids, play_date="2026-03-07"))
        test_client.post(f"{API}/matches", json=duo(season.id, ids, play_date="2026-03-14"))

        assert len(test_client.get(f"{API}/matches", params={"limit": 1}).json()) == 1
        assert len(test_client.get(f"{API}/matches/by-date/2026-03-07").json()) == 1
        assert len(test_client.get(f"{API}/matches/by-season/{season.id}").json()) == 2
        assert test_client.get(f"{API}/matches/play-dates").json() == ["2026-03-14", "2026-03-07"]
        assert test_client.get(f"{API}/matches/play-dates/latest").json() == {"play_date": "2026-03-14"}
        assert test_client.get(f"{API}/matches/by-date/not-a-date").status_code == 400


# =============================================================================
# RANKINGS
# =============================================================================

class TestRankingEndpoints:

    def test_lifetime_scenario(self, test_client: TestClient, season, ids):
        test_client.post(f"{API}/matches", json=duo(season.id, ids))

        response = test_client.get(f"{API}/rankings/lifetime")

        assert response.status_code == 200
        rows = {row["name"]: row for row in response.json()}
        assert rows["Anna"]["points"] == 4
        assert rows["Anna"]["win_percentage"] == 100
        assert rows["Anna"]["money_lost"] == 0
        assert rows["Chi"]["points"] == 1
        assert rows["Chi"]["win_percentage"] == 0
        assert rows["Chi"]["money_lost"] == 20000

    def test_cache_hit_then_invalidated_by_write(self, test_client: TestClient, season, ids):
        first = test_client.get(f"{API}/rankings/lifetime")
        assert first.headers["X-Cache"] == "MISS"
        assert first.headers["X-Cache-Key"] == "rankings:lifetime"
        assert first.json() == []

        assert test_client.get(f"{API}/rankings/lifetime").headers["X-Cache"] == "HIT"

        test_client.post(f"{API}/matches", json=duo(season.id, ids))

        after = test_client.get(f"{API}/rankings/lifetime")
        assert after.headers["X-Cache"] == "MISS"
        assert len(after.json()) == 4

    def test_season_fee_override(self, test_client: TestClient, ids):
        season = test_client.post(f"{API}/seasons", json={
            "name": "High stakes", "start_date": "2026-03-01", "loss_fee": 50000,
        }).json()
        test_client.post(f"{API}/matches", json=duo(season["id"], ids))

        rows = {row["name"]: row for row in test_client.get(f"{API}/rankings/season/{season['id']}").json()}

        assert rows["Chi"]["money_lost"] == 50000
        assert rows["Dung"]["money_lost"] == 50000

    def test_date_scope(self, test_client: TestClient, season, ids):
        test_client.post(f"{API}/matches", json=duo(season.id, ids, play_date="2026-03-07"))
        test_client.post(f"{API}/matches", json=duo(season.id, ids, play_date="2026-03-14", score=(1, 6)))

        response = test_client.get(f"{API}/rankings/date/2026-03-14")

        assert response.headers["X-Cache-Key"] == "rankings:date:2026-03-14"
        assert response.json()[0]["name"] == "Chi"

    def test_empty_date_is_empty_list(self, test_client: TestClient):
        response = test_client.get(f"{API}/rankings/date/2020-01-01")

        assert response.status_code == 200
        assert response.json() == []

    def test_invalid_scopes(self, test_client: TestClient, season):
        assert test_client.get(f"{API}/rankings/date/2026-13-01").status_code == 400
        assert test_client.get(f"{API}/rankings/season/abc").status_code == 400
        assert test_client.get(f"{API}/rankings/season/999").status_code == 404
        assert test_client.get(f"{API}/rankings", params={"view": "weekly"}).status_code == 400

    def test_view_mode_query(self, test_client: TestClient, season):
        response = test_client.get(f"{API}/rankings", params={"view": "season", "selector": season.id})

        assert response.status_code == 200
        assert response.headers["X-Cache-Key"] == f"rankings:season:{season.id}"

    def test_scope_key_query(self, test_client: TestClient, season):
        by_season = test_client.get(f"{API}/rankings", params={"scope": f"season/{season.id}"})
        by_date = test_client.get(f"{API}/rankings", params={"scope": "date/2026-03-07"})

        assert by_season.headers["X-Cache-Key"] == f"rankings:season:{season.id}"
        assert by_date.headers["X-Cache-Key"] == "rankings:date:2026-03-07"
        assert test_client.get(f"{API}/rankings", params={"scope": "season/abc"}).status_code == 400
        assert test_client.get(f"{API}/rankings", params={"scope": "weekly"}).status_code == 400
        assert test_client.get(f"{API}/rankings", params={"scope": "season/999"}).status_code == 404

    def test_cache_stats(self, test_client: TestClient):
        test_client.get(f"{API}/rankings/lifetime")
        test_client.get(f"{API}/rankings/lifetime")

        stats = test_client.get(f"{API}/rankings/cache/stats").json()

        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["keys"] == ["rankings:lifetime"]


# =============================================================================
# EXPORT
# =============================================================================

class TestExportEndpoints:

    def test_full_export_is_xlsx(self, test_client: TestClient, season, ids):
        test_client.post(f"{API}/matches", json=duo(season.id, ids))

        response = test_client.get(f"{API}/export")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert "attachment" in response.headers["content-disposition"]
        assert response.content[:2] == b"PK"

    def test_unknown_season_export(self, test_client: TestClient):
        assert test_client.get(f"{API}/export/season/999").status_code == 404

    def test_bad_date_export(self, test_client: TestClient):
        assert test_client.get(f"{API}/export/date/yesterday").status_code == 400
