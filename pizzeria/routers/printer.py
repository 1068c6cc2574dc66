from typing import Generator

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from pizzeria.core.dependencies import get_db, require_admin, require_staff
from pizzeria.models import User
from pizzeria.schemas import PrinterConfigCreate, PrinterConfigRead, PrintRequest, PrintResponse
from pizzeria.services import PrinterService

router = APIRouter(prefix="/printer", tags=["printer"])


def get_printer_service(db: Session = Depends(get_db)) -> Generator[PrinterService, None, None]:
    service = PrinterService(db)
    try:
        yield service
    finally:
        service.close()


@router.post("/print", response_model=PrintResponse)
def print_receipt(
    payload: PrintRequest,
    staff: User = Depends(require_staff),
    service: PrinterService = Depends(get_printer_service),
):
    return service.print_receipt(
        receipt_data=payload.receipt_data,
        order_id=payload.order_id,
        receipt_type=payload.receipt_type,
        printer_url=payload.printer_url,
    )


@router.get("/config", response_model=list[PrinterConfigRead])
def list_printers(
    staff: User = Depends(require_staff),
    service: PrinterService = Depends(get_printer_service),
):
    return [PrinterConfigRead.model_validate(printer) for printer in service.list_configs()]


@router.post("/config", response_model=PrinterConfigRead, status_code=status.HTTP_201_CREATED)
def create_printer(
    payload: PrinterConfigCreate,
    admin: User = Depends(require_admin),
    service: PrinterService = Depends(get_printer_service),
):
    return PrinterConfigRead.model_validate(service.create_config(data=payload.model_dump()))


@router.post("/config/{printer_id}/primary", response_model=PrinterConfigRead)
def set_primary_printer(
    printer_id: int,
    admin: User = Depends(require_admin),
    service: PrinterService = Depends(get_printer_service),
):
    return PrinterConfigRead.model_validate(service.set_primary(printer_id))
