# backend/app/services/printer.py
"""Client for the receipt/kitchen printer service."""
from typing import Optional, Dict, Any

import httpx

from backend.app.core.constants import DocumentKind
from backend.app.core.logging import get_logger
from backend.app.core.settings import get_settings

logger = get_logger(__name__)


class PrinterError(Exception):
    """Printer service rejected or failed to accept a document."""


class PrinterClient:
    """
    Sends print jobs as JSON to PRINTER_SERVICE_URL.

    Payload: {"document_kind": "kitchenOrder", "order": {...}}
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url if base_url is not None else settings.PRINTER_SERVICE_URL or "").rstrip("/")
        self.timeout = timeout if timeout is not None else settings.PRINTER_TIMEOUT
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    async def print_order(self, order: Dict[str, Any], document_kind: DocumentKind) -> bool:
        """Returns False when printing is not configured; raises PrinterError on failure."""
        kind = DocumentKind(document_kind)
        if not self.enabled:
            logger.info("PRINTER_SERVICE_URL not set, skip print", order_id=order.get("id"), document_kind=kind.value)
            return False

        payload = {"document_kind": kind.value, "order": order}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            r = await client.post(f"{self.base_url}/print", json=payload)
        if not r.is_success:
            raise PrinterError(
                f"Printer service returned {r.status_code} for order {order.get('id')}: {r.text[:200]}"
            )
        logger.info("Document printed", order_id=order.get("id"), document_kind=kind.value)
        return True
