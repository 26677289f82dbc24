import copy
import time
import logging
import threading
from typing import Callable, Dict, Optional

from dexgrid.bot.decision import apply_fill, create_state, find_due_levels, record_trade
from dexgrid.bot.events import Event, EventBus, EventType
from dexgrid.bot.ledger import PnL, TradeLedger
from dexgrid.bot.state import GridBotConfig, GridBotState, GridSide, TradeRecord
from dexgrid.chain.base import ChainInterface, ChainError, ChainTimeoutError
from dexgrid.dex.errors import SwapError
from dexgrid.dex.executor import SwapExecutor
from dexgrid.dex.models import SwapRequest, SwapResult
from dexgrid.dex.quote import QuoteEngine
from dexgrid.dex.tokens import TokenMetadataCache
from dexgrid.dex.venues import Venue

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 10_000

class IntervalTicker:
    """
    Runs a callback on a background thread: once immediately, then every
    interval until cancelled. Cancelling never interrupts a running callback.
    """

    def __init__(self):
        self._stop: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def active(self) -> bool:
        return self._stop is not None and not self._stop.is_set()

    def schedule(self, callback: Callable[[], object], interval_seconds: float):
        if self.active:
            raise RuntimeError("Ticker is already scheduled.")
        stop = threading.Event()
        self._stop = stop
        self._thread = threading.Thread(
            target=self._run, args=(callback, interval_seconds, stop), name="grid-ticker", daemon=True
        )
        self._thread.start()

    def _run(self, callback: Callable[[], object], interval_seconds: float, stop: threading.Event):
        while not stop.is_set():
            try:
                callback()
            except Exception as e:
                logger.error(f"Error during tick: {e}", exc_info=True)
            if stop.wait(interval_seconds):
                break

    def cancel(self):
        if self._stop is not None:
            self._stop.set()

    def join(self, timeout: Optional[float] = None):
        if self._thread is not None:
            self._thread.join(timeout)


class GridScheduler:
    """
    Owns one GridBotState and drives it: price probe, trigger check, swap,
    state transition, notification. At most one trade per tick.
    """

    def __init__(
        self,
        chain: ChainInterface,
        venue: Venue,
        account: str,
        executor: Optional[SwapExecutor] = None,
        tokens: Optional[TokenMetadataCache] = None,
        events: Optional[EventBus] = None,
        ticker: Optional[IntervalTicker] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.chain = chain
        self.venue = venue
        self.account = account
        self.tokens = tokens or TokenMetadataCache(chain)
        self.executor = executor or SwapExecutor(chain, venue, quotes=QuoteEngine(chain, venue, self.tokens))
        self.quotes = self.executor.quotes
        self.events = events or EventBus()
        self.ticker = ticker or IntervalTicker()
        self.clock = clock

        self.state: Optional[GridBotState] = None
        self._tick_lock = threading.Lock()
        # Guards state mutation against snapshots taken from other threads
        self._state_lock = threading.Lock()

    def _require_state(self) -> GridBotState:
        if self.state is None:
            raise RuntimeError("Bot not initialized")
        return self.state

    def initialize(self, config: GridBotConfig) -> GridBotState:
        """Builds the price ladder. The bot stays stopped until start()."""
        if self.state is not None and self.state.running:
            raise RuntimeError("Cannot re-initialize a running bot")

        self.state = create_state(config, now=self.clock())
        logger.info(
            f"Initialized grid {config.base_token}/{config.quote_token}: {config.level_count} levels "
            f"from {config.lower_price} to {config.upper_price}, {config.total_investment} invested"
        )
        for i, level in enumerate(self.state.levels):
            logger.debug(f"Level {i}: {level.side.value} at {level.price} ({level.allocated_amount})")
        return self.state

    def get_current_price(self) -> float:
        """Quoted price of one whole base token, in quote tokens."""
        config = self._require_state().config
        one_base = self.tokens.one_unit(config.base_token)
        quote = self.quotes.get_quote(config.base_token, config.quote_token, one_base)
        return float(self.tokens.format(config.quote_token, quote.amount_out))

    def _swap(self, side: GridSide, amount_in: int) -> SwapResult:
        config = self._require_state().config
        if side == GridSide.BUY:
            token_in, token_out = config.quote_token, config.base_token
        else:
            token_in, token_out = config.base_token, config.quote_token

        return self.executor.execute_swap(SwapRequest(
            token_in=token_in,
            token_out=token_out,
            amount_in=amount_in,
            slippage_bps=config.slippage_bps,
            recipient=self.account,
        ))

    def check_and_execute(self) -> Optional[TradeRecord]:
        """
        One tick. Errors end the tick quietly; the next tick retries.
        A tick that finds the previous one still running is skipped.
        """
        if self.state is None or not self.state.running:
            return None

        if not self._tick_lock.acquire(blocking=False):
            logger.warning("Previous tick still in flight. Skipping this one.")
            return None

        try:
            return self._evaluate_levels()
        except Exception as e:
            logger.error(f"Check and execute error: {e}", exc_info=True)
            return None
        finally:
            self._tick_lock.release()

    def run_once(self) -> Optional[TradeRecord]:
        """A single tick without scheduling one, for validation runs."""
        state = self._require_state()
        was_running = state.running
        state.running = True
        try:
            return self.check_and_execute()
        finally:
            state.running = was_running

    def _evaluate_levels(self) -> Optional[TradeRecord]:
        state = self.state
        current_price = self.get_current_price()
        state.last_check_time = self.clock()
        logger.debug(f"[TICK] price: {current_price}")

        for index in find_due_levels(state.levels, current_price):
            level = state.levels[index]
            logger.info(f"Executing {level.side.value} at level {index} ({level.price}), current: {current_price}")

            try:
                result = self._swap(level.side, level.allocated_amount)
            except ChainTimeoutError:
                # The swap may still be mined; trying another level now risks a double fill
                raise
            except (SwapError, ChainError) as e:
                logger.warning(f"Failed to execute {level.side.value} at level {index}: {e}")
                continue

            with self._state_lock:
                trade = apply_fill(state, index, result, current_price, self.clock())
            self._publish_trade(trade)
            return trade

        return None

    def execute_manual_trade(self, side: GridSide, amount_in: int) -> TradeRecord:
        """One-off swap outside the grid. Failures propagate to the caller."""
        state = self._require_state()

        with self._tick_lock:
            current_price = self.get_current_price()
            result = self._swap(side, amount_in)
            trade = TradeRecord(
                time=self.clock(),
                side=side,
                price=current_price,
                amount_in=result.amount_in,
                amount_out=result.amount_out,
                transaction_id=result.transaction_id,
                gas_cost=result.gas_cost,
            )
            with self._state_lock:
                record_trade(state, trade)

        self._publish_trade(trade)
        return trade

    def start(self, interval_ms: int = DEFAULT_INTERVAL_MS):
        state = self._require_state()
        if state.running:
            logger.warning("Bot already running.")
            return
        if interval_ms <= 0:
            raise ValueError("interval_ms must be > 0")

        state.running = True
        logger.info(f"Starting grid bot, checking every {interval_ms} ms.")
        self._publish_state()
        self.ticker.schedule(self.check_and_execute, interval_ms / 1000)

    def stop(self):
        self.ticker.cancel()
        if self.state is not None:
            self.state.running = False
            logger.info("Grid bot stopped.")
            self._publish_state()

    def wait(self, timeout: Optional[float] = None):
        """Blocks on the background ticker (until stop() or timeout)."""
        self.ticker.join(timeout)

    def get_state(self) -> Optional[GridBotState]:
        """A detached snapshot; mutating it does not affect the bot."""
        with self._state_lock:
            return copy.deepcopy(self.state)

    def get_balances(self) -> Dict[str, int]:
        config = self._require_state().config
        return {
            config.base_token: self.chain.get_balance(config.base_token, self.account),
            config.quote_token: self.chain.get_balance(config.quote_token, self.account),
        }

    def get_total_pnl(self) -> PnL:
        return TradeLedger(self.state).get_total_pnl()

    def on_trade(self, handler: Callable[[TradeRecord], None]) -> Callable[[], None]:
        return self.events.subscribe(EventType.TRADE_EXECUTED, lambda event: handler(event.payload))

    def on_state_change(self, handler: Callable[[GridBotState], None]) -> Callable[[], None]:
        return self.events.subscribe(EventType.STATE_CHANGED, lambda event: handler(event.payload))

    def _publish_trade(self, trade: TradeRecord):
        self.events.publish(Event(EventType.TRADE_EXECUTED, trade))
        self._publish_state()

    def _publish_state(self):
        if self.events.subscriber_count(EventType.STATE_CHANGED):
            self.events.publish(Event(EventType.STATE_CHANGED, self.get_state()))
