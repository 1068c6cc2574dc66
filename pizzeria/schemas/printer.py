from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class PrintRequest(BaseModel):
    receipt_data: dict[str, Any]
    order_id: Optional[int] = None
    receipt_type: Literal["customer", "kitchen"] = "customer"
    printer_url: Optional[str] = Field(default=None, max_length=500)


class PrintResponse(BaseModel):
    success: bool
    message: str
    result: Any = None


class PrinterConfigCreate(BaseModel):
    name: str = Field(default="Main Printer", max_length=100)
    ip_address: str = Field(..., max_length=64)
    port: int = Field(default=80, gt=0, lt=65536)
    printer_type: str = Field(default="epson_tm_m32", max_length=64)
    is_active: bool = True
    is_primary: bool = False
    settings: dict[str, Any] = Field(default_factory=dict)


class PrinterConfigRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    ip_address: str
    port: int
    printer_type: str
    is_active: bool
    is_primary: bool
    connection_status: str
    last_connected: Optional[datetime] = None
    last_error: Optional[str] = None
    settings: dict[str, Any] = Field(default_factory=dict)
