# backend/app/services/notifications.py
"""
Best-effort side effects for order events: printing and live broadcast.

Everything here runs after the order is committed, as background tasks.
A failing printer or a dead socket is logged and counted, never raised
back to the request that triggered it.
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from backend.app.core.constants import DocumentKind, OrderType
from backend.app.core.logging import get_logger
from backend.app.core.metrics import side_effect_failures_total
from backend.app.core.settings import get_settings
from backend.app.services.broadcast import OrderBroadcaster, order_ws_manager
from backend.app.services.printer import PrinterClient

logger = get_logger(__name__)


class NotificationDispatcher:
    def __init__(
        self,
        printer: PrinterClient,
        broadcaster: OrderBroadcaster,
        timeout: Optional[float] = None,
    ):
        self.printer = printer
        self.broadcaster = broadcaster
        self.timeout = timeout if timeout is not None else get_settings().SIDE_EFFECT_TIMEOUT
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def _spawn(self, kind: str, order_id, factory: Callable[[], Awaitable[Any]]) -> asyncio.Task:
        task = asyncio.create_task(self._run(kind, order_id, factory))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, kind: str, order_id, factory: Callable[[], Awaitable[Any]]) -> None:
        try:
            await asyncio.wait_for(factory(), timeout=self.timeout)
        except asyncio.TimeoutError:
            side_effect_failures_total.labels(kind=kind).inc()
            logger.warning("Side effect timed out", kind=kind, order_id=order_id, timeout=self.timeout)
        except Exception as e:
            side_effect_failures_total.labels(kind=kind).inc()
            logger.error("Side effect failed", kind=kind, order_id=order_id, error=str(e))

    def _print(self, order: Dict[str, Any], document_kind: DocumentKind) -> asyncio.Task:
        return self._spawn(
            f"print:{document_kind.value}",
            order.get("id"),
            lambda: self.printer.print_order(order, document_kind),
        )

    def dispatch_order_created(self, order: Dict[str, Any]) -> None:
        """Kitchen ticket, receipt, delivery slip (delivery only) and a new-order event."""
        self._print(order, DocumentKind.KITCHEN_ORDER)
        self._print(order, DocumentKind.CUSTOMER_RECEIPT)
        if order.get("order_type") == OrderType.DELIVERY.value:
            self._print(order, DocumentKind.DELIVERY_SLIP)
        self._spawn("broadcast:new-order", order.get("id"), lambda: self.broadcaster.emit_new_order(order))

    def dispatch_status_changed(self, order: Dict[str, Any], reprint_kitchen: bool = False) -> None:
        if reprint_kitchen:
            self._print(order, DocumentKind.KITCHEN_ORDER)
        self._spawn(
            "broadcast:order-update",
            order.get("id"),
            lambda: self.broadcaster.emit_order_status_update(order),
        )

    async def drain(self) -> None:
        """Wait for in-flight side effects (shutdown, tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


_dispatcher: Optional[NotificationDispatcher] = None


def get_dispatcher() -> NotificationDispatcher:
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher(PrinterClient(), OrderBroadcaster(order_ws_manager))
    return _dispatcher
