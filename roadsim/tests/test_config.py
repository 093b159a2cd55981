from roadsim.config import SimConfig, load_config


def test_defaults():
    cfg = SimConfig()
    assert cfg.fleet_size == 9
    assert cfg.attempt_multiplier == 3
    assert (cfg.fleet_min_radius_m, cfg.fleet_max_radius_m) == (100.0, 400.0)
    assert (cfg.drift_min_m, cfg.drift_max_m) == (30.0, 80.0)
    assert cfg.dedup_distance_m == 50.0
    assert cfg.tick_interval_s == 2.0
    assert cfg.vehicles_per_tick == 1
    assert cfg.search_debounce_s == 0.5
    assert cfg.search_min_chars == 4
    assert cfg.search_max_results == 15


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("ROADSIM_FLEET_SIZE", "5")
    monkeypatch.setenv("ROADSIM_TICK_INTERVAL_S", "0.5")
    monkeypatch.setenv("ROADSIM_OSRM_URL", "http://router:5000")
    monkeypatch.setenv("ROADSIM_SEARCH_BIAS", "40,28,42,30")
    cfg = load_config(str(tmp_path / "missing.env"), vehicles_per_tick=2)
    assert cfg.fleet_size == 5
    assert cfg.tick_interval_s == 0.5
    assert cfg.osrm_url == "http://router:5000"
    assert cfg.search_bias == (40.0, 28.0, 42.0, 30.0)
    assert cfg.vehicles_per_tick == 2


def test_env_file(tmp_path, monkeypatch):
    monkeypatch.delenv("ROADSIM_MAX_STOPS", raising=False)
    env = tmp_path / ".env"
    env.write_text("ROADSIM_MAX_STOPS=5\n")
    try:
        assert load_config(str(env)).max_stops == 5
    finally:
        monkeypatch.delenv("ROADSIM_MAX_STOPS", raising=False)
