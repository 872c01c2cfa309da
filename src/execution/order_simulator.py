"""
Order execution simulator: settings + OrderRequest -> ExecutionResult.

Stateless. Every order is decided on the bar it is submitted; nothing rests
on a book and rejections are never retried. Trailing-stop bookkeeping lives
in the portfolio, so ``trailing_stop`` orders are priced like market orders.
"""

import logging
import math

from config.session_settings import TradingSessionSettings, resolve_settings
from execution.models import BUY, ORDER_TYPES, SELL, ExecutionResult, OrderRequest

logger = logging.getLogger("backtester.execution")

# Share of the bar's volume a single order can take when liquidity is short.
PARTIAL_FILL_VOLUME_SHARE = 0.8


class OrderExecutionSimulator:
    def __init__(self, settings: TradingSessionSettings | None = None) -> None:
        self._settings = resolve_settings(settings)

    @property
    def settings(self) -> TradingSessionSettings:
        return self._settings

    def execute_order(self, order: OrderRequest) -> ExecutionResult:
        """Decide one order against the current bar."""
        rejection = self._check_request(order)
        if rejection:
            return self._reject(order, rejection)

        current = order.current_price
        buying = order.side == BUY
        otype = order.order_type

        if otype in ("stop", "stop_limit"):
            triggered = current >= order.stop_price if buying else current <= order.stop_price
            if not triggered:
                return self._reject(order, "Stop price not triggered")

        base_price = current
        if otype in ("limit", "stop_limit"):
            limit_met = current <= order.limit_price if buying else current >= order.limit_price
            if not limit_met:
                reason = (
                    "Limit price not reached after stop triggered"
                    if otype == "stop_limit"
                    else "Limit price not reached"
                )
                return self._reject(order, reason)
            base_price = order.limit_price

        price = self.apply_slippage(base_price, order.quantity, order.side)
        quantity = self.fill_quantity(order.quantity, order.volume)

        if quantity <= 0:
            return self._reject(order, "Insufficient volume to fill order")
        if quantity < order.quantity and self._settings.time_in_force == "fok":
            return self._reject(order, "Fill-or-kill order could not be filled completely")

        return ExecutionResult(
            executed=True,
            executed_price=price,
            executed_quantity=quantity,
            commission=self.commission(price, quantity),
            slippage=abs(price - current) * quantity,
        )

    def apply_slippage(self, price: float, quantity: int, side: str) -> float:
        """Move *price* against the trader according to the slippage model."""
        model = self._settings.slippage_model
        if model == "none" or self._settings.slippage_value == 0:
            return price

        pct = self._settings.slippage_value / 100
        if model == "proportional":
            # Grows with size, capped at twice the base rate.
            pct *= min(1 + (quantity / 1000) * 0.1, 2)
        return price * (1 + pct) if side == BUY else price * (1 - pct)

    def commission(self, price: float, quantity: int) -> float:
        if self._settings.commission_rate == 0:
            return 0.0
        return price * quantity * (self._settings.commission_rate / 100)

    def fill_quantity(self, quantity: int, volume: float | None) -> int:
        """Quantity filled given the bar's volume (unknown volume fills in full)."""
        if volume is None or volume <= 0 or volume >= quantity:
            return quantity
        if not self._settings.allow_partial_fills:
            return 0
        return int(math.floor(volume * PARTIAL_FILL_VOLUME_SHARE))

    @staticmethod
    def _check_request(order: OrderRequest) -> str | None:
        if order.side not in (BUY, SELL):
            return f"Unknown order side: {order.side}"
        if order.order_type not in ORDER_TYPES:
            return f"Unknown order type: {order.order_type}"
        if order.quantity <= 0:
            return "Order quantity must be positive"
        if not math.isfinite(order.current_price) or order.current_price <= 0:
            return "Current price must be positive"
        if order.order_type in ("limit", "stop_limit") and not order.limit_price:
            return f"{order.order_type} order requires a limit price"
        if order.order_type in ("stop", "stop_limit") and not order.stop_price:
            return f"{order.order_type} order requires a stop price"
        return None

    @staticmethod
    def _reject(order: OrderRequest, reason: str) -> ExecutionResult:
        logger.debug("Rejected %s %s x%s: %s", order.side, order.symbol, order.quantity, reason)
        return ExecutionResult.rejected(order, reason)
