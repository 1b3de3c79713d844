from __future__ import annotations

# We use pytest fixtures (monkeypatch, tmp_path) so env vars and config files never leak between tests.
import pytest

# We import the real loader so tests exercise the packaged defaults.yaml and logging.yaml.
from nearpair.config.settings import get_logging_config, get_settings


@pytest.fixture(autouse=True)
def _fresh_settings():
    # `get_settings` is lru_cached; clear it so each test sees its own environment.
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_packaged_defaults_load():
    # Load the packaged defaults (no NEARPAIR_CONFIG_PATH in this test).
    settings = get_settings()

    assert settings.app.name == "NearPair"
    # The default columns match the walkthrough's CSV header (latitude/longitude).
    assert settings.columns.lat == "latitude"
    assert settings.columns.lon == "longitude"
    # The finder is single-threaded unless asked otherwise.
    assert settings.finder.workers == 1
    assert settings.geocoding.base_url.startswith("https://")


def test_env_overrides_whitelisted_values(monkeypatch, tmp_path):
    # Each of these env vars is on the override whitelist in `_apply_env_overrides`.
    monkeypatch.setenv("NEARPAIR_LOG_LEVEL", "debug")
    monkeypatch.setenv("NEARPAIR_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("NEARPAIR_GEOCODER_API_KEY", "k-123")

    settings = get_settings()

    assert settings.app.log_level == "debug"
    assert settings.cache.dir == str(tmp_path / "cache")
    # The API key only reaches settings; clients still receive it explicitly from the CLI.
    assert settings.geocoding.api_key == "k-123"


def test_external_config_file_replaces_defaults(monkeypatch, tmp_path):
    # An external YAML file replaces the packaged defaults entirely (no deep merge).
    cfg = tmp_path / "nearpair.yaml"
    cfg.write_text(
        "columns:\n  lat: Lat\n  lon: Lng\nfinder:\n  workers: 4\ngeocoding:\n  base_url: http://localhost:9/geo\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("NEARPAIR_CONFIG_PATH", str(cfg))

    settings = get_settings()

    assert (settings.columns.lat, settings.columns.lon) == ("Lat", "Lng")
    assert settings.finder.workers == 4
    assert settings.geocoding.base_url == "http://localhost:9/geo"


def test_invalid_config_values_are_rejected(monkeypatch, tmp_path):
    # `finder.workers` has a `ge=1` constraint, so 0 must fail Pydantic validation.
    cfg = tmp_path / "bad.yaml"
    cfg.write_text("finder:\n  workers: 0\ngeocoding:\n  base_url: http://x\n", encoding="utf-8")
    monkeypatch.setenv("NEARPAIR_CONFIG_PATH", str(cfg))

    # Pydantic's ValidationError is a ValueError subclass.
    with pytest.raises(ValueError):
        get_settings()


def test_logging_config_is_a_dict_config():
    # The packaged logging.yaml must be a valid `logging.config.dictConfig` payload.
    config = get_logging_config()
    assert config["version"] == 1
    assert "console" in config["handlers"]
