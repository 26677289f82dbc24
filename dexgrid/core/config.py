import os
import logging
import yaml
from dataclasses import dataclass, field
from typing import Optional
from dotenv import load_dotenv

from dexgrid.dex.venues import VENUES

logger = logging.getLogger(__name__)

class ConfigError(ValueError):
    pass

@dataclass
class GridSection:
    base_token: str = "WETH"
    quote_token: str = "USDC"
    lower_price: float = 2000.0
    upper_price: float = 4000.0
    level_count: int = 10
    investment_amount: float = 100.0
    slippage_percent: float = 0.5
    interval_ms: int = 10_000

@dataclass
class AppConfig:
    grid: GridSection = field(default_factory=GridSection)
    venue: str = "arbitrum-uniswap-v3"
    dry_run: bool = True
    rpc_url: Optional[str] = None
    private_key: Optional[str] = None
    account: Optional[str] = None
    rpc_timeout_seconds: float = 15.0
    receipt_timeout_seconds: float = 120.0
    deadline_minutes: int = 20

def load_config(config_path: Optional[str], cli_dry_run: bool) -> AppConfig:
    # 1. Load env vars
    load_dotenv()

    # 2. Load yaml config if provided
    raw_yaml = {}
    if config_path:
        with open(config_path, "r", encoding="utf-8") as file:
            raw_yaml = yaml.safe_load(file) or {}

    defaults = GridSection()
    grid_data = raw_yaml.get("grid", {})
    grid = GridSection(
        base_token=str(grid_data.get("base_token", defaults.base_token)),
        quote_token=str(grid_data.get("quote_token", defaults.quote_token)),
        lower_price=float(grid_data.get("lower_price", defaults.lower_price)),
        upper_price=float(grid_data.get("upper_price", defaults.upper_price)),
        level_count=int(grid_data.get("level_count", defaults.level_count)),
        investment_amount=float(grid_data.get("investment_amount", defaults.investment_amount)),
        slippage_percent=float(grid_data.get("slippage_percent", defaults.slippage_percent)),
        interval_ms=int(grid_data.get("interval_ms", defaults.interval_ms)),
    )

    app_config = AppConfig(
        grid=grid,
        venue=raw_yaml.get("venue", "arbitrum-uniswap-v3"),
        rpc_timeout_seconds=float(raw_yaml.get("rpc_timeout_seconds", 15.0)),
        receipt_timeout_seconds=float(raw_yaml.get("receipt_timeout_seconds", 120.0)),
        deadline_minutes=int(raw_yaml.get("deadline_minutes", 20)),
    )

    # 3. CLI --dry-run always wins; otherwise yaml may turn it off
    app_config.dry_run = True
    if not cli_dry_run and "dry_run" in raw_yaml:
        app_config.dry_run = bool(raw_yaml["dry_run"])

    # 4. Secrets from ENV override yaml
    app_config.rpc_url = os.environ.get("DEXGRID_RPC_URL", raw_yaml.get("rpc_url"))
    app_config.private_key = os.environ.get("DEXGRID_PRIVATE_KEY", raw_yaml.get("private_key"))
    app_config.account = os.environ.get("DEXGRID_ACCOUNT", raw_yaml.get("account"))

    validate_config(app_config)

    return app_config

def validate_config(config: AppConfig):
    if not config.dry_run and not config.private_key:
        logger.warning("Private key missing. Yielding safely to dry-run mode.")
        config.dry_run = True

    if config.venue not in VENUES:
        raise ConfigError(f"Venue must be one of {sorted(VENUES)}, got {config.venue}")

    if config.grid.level_count < 2:
        raise ConfigError("Level count must be >= 2.")

    if config.grid.lower_price <= 0:
        raise ConfigError("lower_price must be > 0.")

    if config.grid.lower_price >= config.grid.upper_price:
        raise ConfigError(f"lower_price ({config.grid.lower_price}) must be < upper_price ({config.grid.upper_price})")

    if config.grid.investment_amount <= 0:
        raise ConfigError("Investment amount must be > 0.")

    if not 0 <= config.grid.slippage_percent <= 100:
        raise ConfigError(f"slippage_percent must be within [0, 100], got {config.grid.slippage_percent}")

    if config.grid.interval_ms <= 0:
        raise ConfigError("interval_ms must be > 0.")

    if config.rpc_timeout_seconds <= 0 or config.receipt_timeout_seconds <= 0:
        raise ConfigError("Timeouts must be > 0.")

    if config.deadline_minutes < 1:
        raise ConfigError("deadline_minutes must be >= 1.")
