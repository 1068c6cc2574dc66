import logging
from typing import Any

import httpx
from sqlalchemy.orm import Session

from pizzeria.core.config import get_settings
from pizzeria.models import PrinterConfig
from pizzeria.models.base import utcnow

from . import exceptions

logger = logging.getLogger("pizzeria.printer")

RECEIPT_TYPES = ("customer", "kitchen")


class PrinterService:
    """Forwards receipts to the thermal printer bridge running inside the restaurant."""

    def __init__(self, db: Session, client: httpx.Client | None = None):
        self.db = db
        self.settings = get_settings()
        self._client = client or httpx.Client(timeout=self.settings.PRINTER_TIMEOUT_SECONDS)

    def close(self) -> None:
        self._client.close()

    def print_receipt(
        self,
        *,
        receipt_data: dict[str, Any],
        order_id: int | None,
        receipt_type: str = "customer",
        printer_url: str | None = None,
    ) -> dict[str, Any]:
        if not receipt_data:
            raise exceptions.ValidationError("receipt_data is required")

        printer = None
        if not printer_url:
            printer = self.get_primary()
            if printer is None:
                raise exceptions.NotFoundError("No active printer configured")
            printer_url = printer.print_url

        payload = {"receiptData": receipt_data, "orderId": order_id, "receiptType": receipt_type}
        logger.info("Proxying %s receipt for order %s to %s", receipt_type, order_id, printer_url)
        try:
            response = self._client.post(printer_url, json=payload)
        except httpx.HTTPError as exc:
            logger.error("Printer bridge %s unreachable: %s", printer_url, exc)
            self._record_status(printer, ok=False, error=str(exc))
            raise exceptions.ExternalServiceError(
                "Failed to reach printer bridge",
                details={"printer_url": printer_url},
            ) from exc

        if response.is_error:
            logger.error(
                "Printer bridge %s returned %s: %s",
                printer_url,
                response.status_code,
                response.text,
            )
            self._record_status(printer, ok=False, error=response.text)
            raise exceptions.ExternalServiceError(
                "Printer server error",
                details=response.text,
                upstream_status=response.status_code,
            )

        self._record_status(printer, ok=True)
        try:
            result = response.json() if response.content else {}
        except ValueError:
            result = {"raw": response.text}
        return {
            "success": True,
            "message": f"Printed {receipt_type} receipt for order #{order_id}",
            "result": result,
        }

    def get_primary(self) -> PrinterConfig | None:
        return (
            self.db.query(PrinterConfig)
            .filter(PrinterConfig.is_active == True)  # noqa: E712
            .order_by(PrinterConfig.is_primary.desc(), PrinterConfig.id.asc())
            .first()
        )

    def list_configs(self) -> list[PrinterConfig]:
        return self.db.query(PrinterConfig).order_by(PrinterConfig.id).all()

    def create_config(self, *, data: dict) -> PrinterConfig:
        printer = PrinterConfig(**data)
        has_primary = (
            self.db.query(PrinterConfig.id).filter(PrinterConfig.is_primary == True).first()  # noqa: E712
        )
        if printer.is_primary or not has_primary:
            self._clear_primary()
            printer.is_primary = True
        self.db.add(printer)
        self.db.commit()
        self.db.refresh(printer)
        return printer

    def set_primary(self, printer_id: int) -> PrinterConfig:
        printer = self.db.query(PrinterConfig).filter(PrinterConfig.id == printer_id).first()
        if printer is None:
            raise exceptions.NotFoundError("Printer not found")
        self._clear_primary()
        printer.is_primary = True
        printer.is_active = True
        self.db.commit()
        self.db.refresh(printer)
        logger.info("Printer %s (%s) is now primary", printer.id, printer.name)
        return printer

    def _clear_primary(self) -> None:
        self.db.query(PrinterConfig).filter(PrinterConfig.is_primary == True).update(  # noqa: E712
            {PrinterConfig.is_primary: False}, synchronize_session=False
        )

    def _record_status(self, printer: PrinterConfig | None, *, ok: bool, error: str | None = None) -> None:
        if printer is None:
            return
        if ok:
            printer.connection_status = "connected"
            printer.last_connected = utcnow()
            printer.last_error = None
        else:
            printer.connection_status = "error"
            printer.last_error = (error or "")[:1000]
        self.db.commit()
