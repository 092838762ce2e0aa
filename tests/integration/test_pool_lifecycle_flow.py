import pathlib
import sys

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from majorspool import create_app
from majorspool.datastore import load_snapshot as ds_load_snapshot


def test_tournament_from_roster_to_standings(memory_store, admin_headers):
    app = create_app()
    app.config.update({"TESTING": True})
    field = [f"Player {i:02d}" for i in range(1, 65)]

    with app.test_client() as client:
        res = client.post("/api/tournaments/pga-2025", json={"name": "PGA Championship", "par": 70}, headers=admin_headers)
        assert res.status_code == 200
        res = client.post("/api/tournaments/pga-2025/roster", json={"golfers": field}, headers=admin_headers)
        assert res.status_code == 200
        tiers = res.get_json()["tiers"]
        assert tiers["tier1"][0] == "Player 01"
        assert len(tiers["tier6"]) == 14

        teams = {
            "Alice": {f"tier{i}": tiers[f"tier{i}"][0] for i in range(1, 7)},
            "Bob": {f"tier{i}": tiers[f"tier{i}"][1] for i in range(1, 7)},
        }
        for name, picks in teams.items():
            assert client.post("/api/tournaments/pga-2025/players", json={"name": name, "picks": picks}).status_code == 200

        scores = [
            {"golfer_name": "Player 01", "rounds": [68, 68]},
            {"golfer_name": "Player 11", "rounds": [70, 71]},
            {"golfer_name": "Player 02", "rounds": [67, 70]},
            {"golfer_name": "Player 12", "rounds": [76, 77], "made_cut": False},
        ]
        res = client.post("/api/tournaments/pga-2025/scores", json={"scores": scores}, headers=admin_headers)
        assert res.get_json()["updated"] == 4

        standings = client.get("/api/tournaments/pga-2025/leaderboard").get_json()["standings"]

    # Alice: -4 and +1; Bob: -3 and 76+77+78+78 vs 280 (+29)
    assert [s["name"] for s in standings] == ["Alice", "Bob"]
    assert [s["total_score"] for s in standings] == [-3, 26]
    assert standings[1]["golfer_scores"][-1]["rounds"] == [76, 77, 78, 78]

    snapshot = ds_load_snapshot("pga-2025")
    assert snapshot["par"] == 70
    assert len(snapshot["players"]) == 2
    assert set(snapshot["scores"]) == {"Player 01", "Player 11", "Player 02", "Player 12"}
