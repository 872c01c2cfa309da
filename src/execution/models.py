"""OrderRequest and ExecutionResult for simulated execution. Ephemeral, one per order."""

from dataclasses import dataclass
from datetime import datetime

BUY = "BUY"
SELL = "SELL"

ORDER_TYPES = ("market", "limit", "stop", "stop_limit", "trailing_stop")


@dataclass(frozen=True)
class OrderRequest:
    symbol: str
    side: str  # "BUY" | "SELL"
    quantity: int
    order_type: str  # one of ORDER_TYPES
    current_price: float
    timestamp: datetime
    limit_price: float | None = None
    stop_price: float | None = None
    volume: float | None = None  # bar volume, for liquidity-limited fills


@dataclass(frozen=True)
class ExecutionResult:
    executed: bool
    executed_price: float
    executed_quantity: int
    commission: float = 0.0
    slippage: float = 0.0  # |executed_price - current_price| * executed_quantity
    reason: str | None = None

    @classmethod
    def rejected(cls, order: OrderRequest, reason: str) -> "ExecutionResult":
        return cls(
            executed=False,
            executed_price=order.current_price,
            executed_quantity=0,
            reason=reason,
        )
