"""
Simulated execution: OrderRequest -> ExecutionResult under session settings.
No broker, no state between orders.
"""

from execution.models import BUY, SELL, ExecutionResult, OrderRequest
from execution.order_simulator import OrderExecutionSimulator

__all__ = ["BUY", "ExecutionResult", "OrderExecutionSimulator", "OrderRequest", "SELL"]
