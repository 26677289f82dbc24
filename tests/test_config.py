import yaml
import pytest
from dexgrid.core.config import AppConfig, GridSection, load_config, validate_config, ConfigError

@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("DEXGRID_RPC_URL", "DEXGRID_PRIVATE_KEY", "DEXGRID_ACCOUNT"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr("dexgrid.core.config.load_dotenv", lambda: None)

def test_load_default_config():
    config = load_config(None, cli_dry_run=True)
    assert config.dry_run is True
    assert config.venue == "arbitrum-uniswap-v3"
    assert config.grid.base_token == "WETH"
    assert config.grid.interval_ms == 10_000

def test_missing_private_key_forces_dry_run(tmp_path):
    config_file = tmp_path / "conf.yaml"
    config_file.write_text(yaml.dump({"dry_run": False}))

    config = load_config(str(config_file), cli_dry_run=False)
    assert config.dry_run is True

def test_private_key_allows_live_mode(tmp_path, monkeypatch):
    monkeypatch.setenv("DEXGRID_PRIVATE_KEY", "0x" + "11" * 32)
    config_file = tmp_path / "conf.yaml"
    config_file.write_text(yaml.dump({"dry_run": False}))

    config = load_config(str(config_file), cli_dry_run=False)
    assert config.dry_run is False
    assert config.private_key == "0x" + "11" * 32

def test_load_yaml_config(tmp_path):
    config_file = tmp_path / "test_conf.yaml"
    config_data = {
        "venue": "polygon-quickswap-v2",
        "grid": {
            "base_token": "WMATIC",
            "quote_token": "USDT",
            "lower_price": 0.4,
            "upper_price": 0.6,
            "level_count": 5,
            "investment_amount": 50,
            "slippage_percent": 1.0,
        },
        "dry_run": False,
        "rpc_url": "https://yaml.example",
    }
    config_file.write_text(yaml.dump(config_data))

    config = load_config(str(config_file), cli_dry_run=True)
    assert config.venue == "polygon-quickswap-v2"
    assert config.grid.base_token == "WMATIC"
    assert config.grid.level_count == 5
    assert config.grid.investment_amount == 50.0
    assert config.rpc_url == "https://yaml.example"
    # CLI arg overrides YAML
    assert config.dry_run is True

def test_env_overrides_yaml_secrets(tmp_path, monkeypatch):
    monkeypatch.setenv("DEXGRID_RPC_URL", "https://env.example")
    config_file = tmp_path / "conf.yaml"
    config_file.write_text(yaml.dump({"rpc_url": "https://yaml.example"}))

    config = load_config(str(config_file), cli_dry_run=True)
    assert config.rpc_url == "https://env.example"

def test_invalid_venue():
    with pytest.raises(ConfigError, match="Venue must be one of"):
        validate_config(AppConfig(venue="nowhere"))

def test_invalid_range():
    with pytest.raises(ConfigError, match="must be <"):
        validate_config(AppConfig(grid=GridSection(lower_price=3000.0, upper_price=2000.0)))

def test_invalid_level_count():
    with pytest.raises(ConfigError, match=">= 2"):
        validate_config(AppConfig(grid=GridSection(level_count=1)))

def test_invalid_slippage():
    with pytest.raises(ConfigError, match="slippage_percent"):
        validate_config(AppConfig(grid=GridSection(slippage_percent=150)))
