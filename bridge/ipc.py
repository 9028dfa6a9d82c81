"""
Desktop bridge
Async request/response handlers mirroring the HTTP surface for Electron-style IPC
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional

from models.errors import ValidationError
from services.invoice_service import InvoiceService
from utils.logging import logger


class DesktopBridge:
    """
    IPC handlers

    Each handler returns the same JSON document the HTTP surface returns.
    Not-found resolves to None; every other failure is raised to the caller
    (the renderer's invoke promise rejects).
    """

    def __init__(self, service: Optional[InvoiceService] = None):
        self.service = service or InvoiceService()
        self.channels: Dict[str, Callable[..., Awaitable[Any]]] = {
            "get-all-invoices": self.get_all_invoices,
            "get-invoice-by-id": self.get_invoice_by_id,
            "save-invoice": self.save_invoice,
            "delete-invoice": self.delete_invoice,
            "get-company-info": self.get_company_info,
            "save-company-info": self.save_company_info,
        }

    async def handle(self, channel: str, *args) -> Any:
        """Dispatch an invoke on `channel` with its arguments"""
        handler = self.channels.get(channel)
        if handler is None:
            raise ValidationError(f"Unknown IPC channel: {channel}")

        try:
            return await handler(*args)
        except Exception as e:
            logger.log_error("ipc_handler_failed", {"channel": channel, "error": str(e)})
            raise

    async def get_all_invoices(self) -> List[dict]:
        return [record.to_json() for record in self.service.list_invoices()]

    async def get_invoice_by_id(self, invoice_id: str) -> Optional[dict]:
        record = self.service.get_invoice(invoice_id)
        return record.to_json() if record else None

    async def save_invoice(self, invoice: dict) -> dict:
        return self.service.save_invoice(invoice).to_json()

    async def delete_invoice(self, invoice_id: str) -> bool:
        return self.service.delete_invoice(invoice_id)

    async def get_company_info(self) -> Optional[dict]:
        company = self.service.get_company()
        return company.to_json() if company else None

    async def save_company_info(self, company: dict) -> dict:
        return self.service.save_company(company).to_json()
