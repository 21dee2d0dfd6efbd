"""HTTP API over a temporary store."""

import pytest

RULES = ["Wait for the open", "Max 3 trades", "Stop after 2 losses", "Size by the plan"]

TRADE_BODY = {
    "symbol": "ES",
    "type": "long",
    "quantity": 1,
    "entryPrice": 4800.0,
    "exitPrice": 4801.0,
    "entryDate": "2024-01-02",
    "exitDate": "2024-01-02",
    "pnl": 50.0,
    "status": "closed",
    "notes": "Waited for confirmation",
}


class TestTradesApi:

    def test_create_list_get(self, client):
        created = client.post("/api/users/u1/trades", json=TRADE_BODY)
        assert created.status_code == 200
        trade_id = created.json()["trade"]["id"]

        listed = client.get("/api/users/u1/trades").json()
        assert listed["count"] == 1

        detail = client.get(f"/api/users/u1/trades/{trade_id}").json()
        assert detail["trade"]["direction"] == "long"
        assert detail["metrics"]["points_gained_lost"] == 1.0

    def test_invalid_trade(self, client):
        resp = client.post("/api/users/u1/trades", json={**TRADE_BODY, "symbol": ""})
        assert resp.status_code == 422
        assert resp.json()["category"] == "validation"

    def test_close_and_delete(self, client):
        body = {k: v for k, v in TRADE_BODY.items() if k not in ("exitPrice", "exitDate", "pnl", "status")}
        trade_id = client.post("/api/users/u1/trades", json=body).json()["trade"]["id"]
        closed = client.post(f"/api/users/u1/trades/{trade_id}/close",
                             json={"exit_price": 4790.0, "pnl": -500.0, "exit_date": "2024-01-03"})
        assert closed.json()["trade"]["status"] == "closed"
        assert client.delete(f"/api/users/u1/trades/{trade_id}").status_code == 200
        assert client.get(f"/api/users/u1/trades/{trade_id}").status_code == 404

    def test_close_missing(self, client):
        resp = client.post("/api/users/u1/trades/nope/close", json={"exit_price": 1.0, "pnl": 1.0})
        assert resp.status_code == 404

    def test_update_notes(self, client):
        trade_id = client.post("/api/users/u1/trades", json=TRADE_BODY).json()["trade"]["id"]
        resp = client.put(f"/api/users/u1/trades/{trade_id}", json={"notes": "Took profit early"})
        assert resp.json()["trade"]["notes"] == "Took profit early"


class TestActivitiesApi:

    def test_crud(self, client):
        created = client.post("/api/users/u1/activities",
                              json={"type": "backtest", "date": "2024-01-05", "notes": "ORB replay"})
        activity_id = created.json()["activity"]["id"]
        updated = client.put(f"/api/users/u1/activities/{activity_id}", json={"notes": "ORB replay v2"})
        assert updated.json()["activity"]["notes"] == "ORB replay v2"
        assert len(client.get("/api/users/u1/activities").json()["activities"]) == 1
        assert client.delete(f"/api/users/u1/activities/{activity_id}").status_code == 200
        assert client.delete(f"/api/users/u1/activities/{activity_id}").status_code == 404


class TestOtherUsersDocuments:

    @pytest.fixture
    def alice_trade(self, client):
        return client.post("/api/users/alice/trades", json=TRADE_BODY).json()["trade"]["id"]

    @pytest.fixture
    def alice_activity(self, client):
        created = client.post("/api/users/alice/activities",
                              json={"type": "backtest", "date": "2024-01-05", "notes": "ORB replay"})
        return created.json()["activity"]["id"]

    def test_get_trade(self, client, alice_trade):
        assert client.get(f"/api/users/mallory/trades/{alice_trade}").status_code == 404

    def test_update_trade(self, client, alice_trade):
        resp = client.put(f"/api/users/mallory/trades/{alice_trade}", json={"notes": "mine now"})
        assert resp.status_code == 404
        assert client.get(f"/api/users/alice/trades/{alice_trade}").json()["trade"]["notes"] == \
            "Waited for confirmation"

    def test_close_trade(self, client):
        body = {k: v for k, v in TRADE_BODY.items() if k not in ("exitPrice", "exitDate", "pnl", "status")}
        trade_id = client.post("/api/users/alice/trades", json=body).json()["trade"]["id"]
        resp = client.post(f"/api/users/mallory/trades/{trade_id}/close",
                           json={"exit_price": 4790.0, "pnl": -500.0})
        assert resp.status_code == 404
        assert client.get(f"/api/users/alice/trades/{trade_id}").json()["trade"]["status"] == "open"

    def test_delete_trade(self, client, alice_trade):
        assert client.delete(f"/api/users/mallory/trades/{alice_trade}").status_code == 404
        assert client.get(f"/api/users/alice/trades/{alice_trade}").status_code == 200

    def test_update_activity(self, client, alice_activity):
        resp = client.put(f"/api/users/mallory/activities/{alice_activity}", json={"notes": "mine now"})
        assert resp.status_code == 404
        activities = client.get("/api/users/alice/activities").json()["activities"]
        assert activities[0]["notes"] == "ORB replay"

    def test_delete_activity(self, client, alice_activity):
        assert client.delete(f"/api/users/mallory/activities/{alice_activity}").status_code == 404
        assert len(client.get("/api/users/alice/activities").json()["activities"]) == 1

    def test_missing_activity(self, client):
        assert client.put("/api/users/alice/activities/nope", json={"notes": "x"}).status_code == 404


class TestProgressApi:

    def test_missing_progress(self, client):
        resp = client.get("/api/users/ghost/progress")
        assert resp.status_code == 404
        assert resp.json()["error"] == "User progress not found"

    def test_refresh(self, client):
        client.post("/api/users/u1/progress")
        client.post("/api/users/u1/trades", json=TRADE_BODY)
        client.post("/api/users/u1/activities",
                    json={"type": "backtest", "date": "2024-01-05", "notes": "ORB replay"})
        progress = client.post("/api/users/u1/progress/refresh").json()
        assert progress["xp"] == 95
        assert progress["daily_xp_log"] == {"2024-01-02": 55, "2024-01-05": 40}

    def test_stats_profit_factor_is_json_safe(self, client):
        client.post("/api/users/u1/trades", json=TRADE_BODY)
        stats = client.get("/api/users/u1/stats").json()
        assert stats["profit_factor"] == "Infinity"
        assert stats["total_pnl"] == 50.0

    def test_today_week_nudges(self, client):
        client.post("/api/users/u1/progress")
        client.post("/api/users/u1/trades", json=TRADE_BODY)
        client.post("/api/users/u1/progress/refresh")
        today = client.get("/api/users/u1/today", params={"date": "2024-01-02"}).json()
        assert today["trades_count"] == 1
        assert today["today_xp"] == 55
        week = client.get("/api/users/u1/week", params={"date": "2024-01-02"}).json()
        assert len(week["days"]) == 7
        nudges = client.get("/api/users/u1/nudges", params={"date": "2024-01-04"}).json()
        assert any(n["id"] == "no-trades-today" for n in nudges["nudges"])

    @pytest.mark.parametrize("path,day", [
        ("today", "not-a-date"),
        ("week", "2024/01/02"),
        ("nudges", "2024-02-30"),
    ])
    def test_malformed_date_query(self, client, path, day):
        client.post("/api/users/u1/progress")
        resp = client.get(f"/api/users/u1/{path}", params={"date": day})
        assert resp.status_code == 422
        assert resp.json()["category"] == "validation"

    def test_export(self, client):
        client.post("/api/users/u1/progress")
        client.post("/api/users/u1/trades", json=TRADE_BODY)
        dump = client.get("/api/users/u1/export").json()
        assert len(dump["trades"]) == 1
        assert dump["progress"]["level"] == 1


class TestRulesApi:

    def test_unconfigured_defaults(self, client):
        rules = client.get("/api/users/u1/rules").json()
        assert rules["configured"] is False
        assert rules["preferences"]["max_trades_per_day"] == 3
        assert rules["session"]["start"] == "08:00"

    def test_checkin_flow(self, client):
        client.post("/api/users/u1/progress")
        client.put("/api/users/u1/rules", json={"customRules": RULES})
        assert client.get("/api/users/u1/rules").json()["configured"] is True

        resp = client.post("/api/users/u1/checkin",
                           json={"followed": [True] * 4, "honesty_confirmed": True, "date": "2024-01-02"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["tier"] == "all_rules_followed"
        assert body["xp_awarded"] == 25
        assert body["streak"] == 1
        assert body["progress"]["xp"] == 25

        again = client.post("/api/users/u1/checkin",
                            json={"followed": [True] * 4, "honesty_confirmed": True, "date": "2024-01-02"})
        assert again.status_code == 409

        status = client.get("/api/users/u1/checkin", params={"date": "2024-01-02"}).json()
        assert status["checked_in"] is True

    def test_checkin_status_with_malformed_date(self, client):
        resp = client.get("/api/users/u1/checkin", params={"date": "yesterday"})
        assert resp.status_code == 422

    def test_incomplete_checkin(self, client):
        client.post("/api/users/u1/progress")
        client.put("/api/users/u1/rules", json={"customRules": RULES})
        resp = client.post("/api/users/u1/checkin",
                           json={"followed": [True, None, True, True], "honesty_confirmed": True,
                                 "date": "2024-01-02"})
        assert resp.status_code == 422
        assert resp.json()["category"] == "validation"


class TestXpTable:

    def test_single_sourced_values(self, client):
        table = client.get("/api/xp-table").json()
        assert table["activity"]["backtest"] == 40
        assert table["rule_checkin"]["all_rules_followed"] == 25
