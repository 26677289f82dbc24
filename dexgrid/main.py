import argparse
import sys
import logging

from dexgrid.bot.loop import GridScheduler
from dexgrid.bot.state import GridBotConfig
from dexgrid.chain.base import ChainError
from dexgrid.chain.web3_client import Web3ChainClient
from dexgrid.core.config import AppConfig, load_config, ConfigError
from dexgrid.core.math import slippage_percent_to_bps
from dexgrid.dex.executor import SwapExecutor
from dexgrid.dex.quote import QuoteEngine
from dexgrid.dex.tokens import TokenMetadataCache
from dexgrid.dex.venues import get_venue

def setup_logging():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

def build_scheduler(config: AppConfig) -> GridScheduler:
    venue = get_venue(config.venue)
    chain = Web3ChainClient(
        rpc_url=config.rpc_url or venue.public_rpc,
        private_key=config.private_key or "",
        rpc_timeout=config.rpc_timeout_seconds,
    )
    account = chain.address or config.account
    if not account:
        raise ConfigError("Set a private key, or an account address for dry runs.")

    tokens = TokenMetadataCache(chain)
    executor = SwapExecutor(
        chain,
        venue,
        quotes=QuoteEngine(chain, venue, tokens),
        deadline_minutes=config.deadline_minutes,
        receipt_timeout=config.receipt_timeout_seconds,
        dry_run=config.dry_run,
    )
    return GridScheduler(chain, venue, account, executor=executor, tokens=tokens)

def build_grid_config(config: AppConfig, bot: GridScheduler) -> GridBotConfig:
    venue = bot.venue
    base_token = venue.resolve_token(config.grid.base_token)
    quote_token = venue.resolve_token(config.grid.quote_token)
    return GridBotConfig(
        base_token=base_token,
        quote_token=quote_token,
        upper_price=config.grid.upper_price,
        lower_price=config.grid.lower_price,
        level_count=config.grid.level_count,
        total_investment=bot.tokens.to_base_units(quote_token, config.grid.investment_amount),
        slippage_bps=slippage_percent_to_bps(config.grid.slippage_percent),
    )

def log_summary(logger: logging.Logger, bot: GridScheduler):
    state = bot.state
    if state is None:
        return
    pnl = bot.get_total_pnl()
    logger.info("--- END OF RUN SUMMARY ---")
    logger.info(f"Trades executed: {pnl.trades}")
    logger.info(f"Realized profit (quote units): {state.total_profit}")
    logger.info(f"Gas spent (wei): {pnl.gas_costs}")
    try:
        for token, balance in bot.get_balances().items():
            logger.info(f"Balance {token}: {bot.tokens.format(token, balance)}")
    except ChainError as e:
        logger.warning(f"Could not read final balances: {e}")

def main():
    setup_logging()
    logger = logging.getLogger("main")

    parser = argparse.ArgumentParser(description="DEX grid bot CLI")
    parser.add_argument("--config", type=str, default="config.yaml", help="Path to configuration file")
    parser.add_argument("--dry-run", action="store_true", help="Run in dry-run mode (quotes only, no transactions)")
    parser.add_argument("--run-once", action="store_true", help="Run a single tick and exit (mostly for testing)")
    parser.add_argument("--interval-ms", type=int, default=None, help="Override the polling interval")
    args = parser.parse_args()

    try:
        config = load_config(args.config, args.dry_run)
    except (ConfigError, OSError) as e:
        logger.error(f"Configuration Error: {e}")
        sys.exit(1)

    logger.info("Starting dexgrid")
    logger.info(f"Dry run mode: {config.dry_run}")
    logger.info(
        f"Grid setup: {config.grid.base_token}/{config.grid.quote_token} on {config.venue} "
        f"with {config.grid.level_count} levels"
    )

    bot = None
    try:
        bot = build_scheduler(config)
        bot.initialize(build_grid_config(config, bot))

        if args.run_once:
            logger.info("Running a single tick for validation...")
            trade = bot.run_once()
            logger.info(f"Tick executed. Trade: {trade.transaction_id if trade else 'None'}")
        else:
            logger.info("Entering continuous bot loop... (Press Ctrl+C to stop)")
            bot.start(args.interval_ms or config.grid.interval_ms)
            bot.wait()

    except KeyboardInterrupt:
        if bot is not None:
            bot.stop()
            log_summary(logger, bot)
        logger.info("Graceful shutdown complete.")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Bot execution failed: {e}", exc_info=True)
        sys.exit(1)

if __name__ == "__main__":
    main()
