from sf_informal_review.config import AppConfig, DEFAULT_DATASET_URL, get_config, reset_config_cache


def test_defaults():
    config = AppConfig.from_env()
    assert config.dataset_url == DEFAULT_DATASET_URL
    assert config.roll_year == "2024"
    assert config.app_token is None
    assert config.http_timeout_s == 30.0
    assert config.residential_use_codes == ("SRES", "MRES")
    assert config.log_level == "INFO"
    assert config.log_json is False


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SFIR_ROLL_YEAR", "2025")
    monkeypatch.setenv("SFIR_APP_TOKEN", " abc ")
    monkeypatch.setenv("SFIR_HTTP_TIMEOUT", "12.5")
    monkeypatch.setenv("SFIR_RESIDENTIAL_USE_CODES", "sres, mres ,cres")
    monkeypatch.setenv("SFIR_LOG_JSON", "yes")
    monkeypatch.setenv("SFIR_LOG_LEVEL", "debug")
    config = AppConfig.from_env()
    assert config.roll_year == "2025"
    assert config.app_token == "abc"
    assert config.http_timeout_s == 12.5
    assert config.residential_use_codes == ("SRES", "MRES", "CRES")
    assert config.log_json is True
    assert config.log_level == "DEBUG"


def test_malformed_values_fall_back(monkeypatch):
    monkeypatch.setenv("SFIR_HTTP_TIMEOUT", "soon")
    monkeypatch.setenv("SFIR_LOG_JSON", "maybe")
    monkeypatch.setenv("SFIR_RESIDENTIAL_USE_CODES", " , ")
    config = AppConfig.from_env()
    assert config.http_timeout_s == 30.0
    assert config.log_json is False
    assert config.residential_use_codes == ("SRES", "MRES")


def test_get_config_is_cached_until_reset(monkeypatch):
    first = get_config()
    monkeypatch.setenv("SFIR_ROLL_YEAR", "2030")
    assert get_config() is first
    reset_config_cache()
    assert get_config().roll_year == "2030"
