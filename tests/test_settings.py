import json
import pytest
from dashboard.settings import SCHEMA_VERSION, SettingsStore, deserialize_state, migrate, serialize_state
from dashboard.store import DashboardStore
from levels.models import DEFAULT_COLOR, RsiOp, make_level_id


@pytest.fixture
def customized(store):
    """A store with non-default settings for two symbols."""
    store.add_symbol("BTCUSDT")
    store.update_levels("XRPUSD", [l.with_changes(price=0.5 + l.ratio) for l in store.levels("XRPUSD")])
    store.update_level("XRPUSD", make_level_id("XRPUSD", 0.618),
                       alert_enabled=True, rsi_op="<=", rsi_threshold=35, color="#ff0000")
    store.update_level("BTCUSDT", make_level_id("BTCUSDT", -1.0), enabled=False)
    store.set_overlay("BTCUSDT", "ema200", show=True, opacity=0.4, smooth=9)
    store.set_timeframe("1h")
    store.set_use_heikin_ashi(True)
    store.set_tts_enabled(True)
    return store


class TestSerialization:
    def test_round_trip(self, customized):
        doc = json.loads(json.dumps(serialize_state(customized.state)))

        assert doc["schema_version"] == SCHEMA_VERSION
        assert deserialize_state(doc) == customized.state

    def test_file_round_trip(self, customized, tmp_path):
        settings = SettingsStore(str(tmp_path / "settings.json"))
        settings.save(customized.state)

        assert settings.load() == customized.state
        assert not (tmp_path / "settings.json.tmp").exists()

    def test_missing_file_gives_defaults(self, tmp_path):
        state = SettingsStore(str(tmp_path / "none.json")).load(["btcusdt"])

        assert state.symbols == ("XRPUSD", "BTCUSDT")
        assert state == DashboardStore(state).state

    def test_corrupt_file_gives_defaults(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json", encoding="utf-8")

        assert SettingsStore(str(path)).load() == DashboardStore().state


class TestFallbacks:
    def test_non_mapping_documents(self):
        for raw in (None, [], "x", 3):
            assert deserialize_state(raw) == DashboardStore().state

    def test_entries_fall_back_independently(self):
        state = deserialize_state({
            "schema_version": 2,
            "symbols": ["XRPUSD"],
            "timeframe": "4h",
            "use_ha_rsi": True,
            "levels": {"XRPUSD": [{"ratio": "bad"}, {"ratio": 0.5, "price": 1.5}]},
            "overlays": {"XRPUSD": {"ema9": {"opacity": 7}, "vwap": {"show": False}}},
        })

        assert state.timeframe == "1d"
        assert state.use_ha_rsi is True
        assert [(l.ratio, l.price) for l in state.levels["XRPUSD"]] == [(0.5, 1.5)]
        assert state.overlays["XRPUSD"]["vwap"].show is False
        assert state.overlays["XRPUSD"]["ema9"].opacity == 0.75

    def test_backfills_missing_level_fields(self):
        state = deserialize_state({"schema_version": 2, "levels": {"XRPUSD": [{"ratio": 0.618}]}})
        level = state.levels["XRPUSD"][0]

        assert level.id == "XRPUSD-fib-0_618"
        assert level.enabled and not level.alert_enabled
        assert level.rsi_op is RsiOp.GTE
        assert level.rsi_threshold == 50.0
        assert level.color == DEFAULT_COLOR


class TestMigration:
    legacy = {
        "fibdash.symbols": ["XRPUSD", "ETHUSDT"],
        "fibdash.perSymFib": {
            "XRPUSD": [{
                "id": "XRPUSD-fib-0_5", "symbol": "XRPUSD", "ratio": 0.5, "price": 0.61,
                "enabled": True, "alertEnabled": True, "rsiThreshold": 70, "rsiOp": "<=",
            }],
        },
        "fibdash.perSymMeta": {"ETHUSDT": {"ema9": {"show": True, "color": "#00ff00", "opacity": 1, "smooth": 3}}},
        "fibdash.timeframe": "5m",
        "fibdash.useHA": True,
        "fibdash.ttsEnabled": True,
    }

    def test_migrate_maps_legacy_keys(self):
        doc = migrate(self.legacy)

        assert doc["schema_version"] == SCHEMA_VERSION
        assert doc["timeframe"] == "5m"
        assert doc["levels"]["XRPUSD"][0]["alert_enabled"] is True
        assert doc["levels"]["XRPUSD"][0]["rsi_op"] == "<="

    def test_legacy_state(self):
        state = deserialize_state(self.legacy)
        level = state.levels["XRPUSD"][0]

        assert state.symbols == ("XRPUSD", "ETHUSDT")
        assert state.timeframe == "5m"
        assert state.use_heikin_ashi and state.tts_enabled and not state.use_ha_rsi
        assert level.alert_enabled and level.rsi_op is RsiOp.LTE and level.rsi_threshold == 70.0
        assert level.color == DEFAULT_COLOR
        assert state.overlays["ETHUSDT"]["ema9"].smooth == 3
        assert len(state.levels["ETHUSDT"]) == 11
