from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class PrinterConfig(TimestampMixin, Base):
    __tablename__ = "printer_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), default="Main Printer")
    ip_address: Mapped[str] = mapped_column(String(64))
    port: Mapped[int] = mapped_column(Integer, default=80)
    printer_type: Mapped[str] = mapped_column(String(64), default="epson_tm_m32")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    connection_status: Mapped[str] = mapped_column(String(32), default="unknown")
    last_connected: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    @property
    def print_url(self) -> str:
        return f"http://{self.ip_address}:{self.port}/print"
