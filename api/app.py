"""HTTP surface for the invoice engine"""

import time
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from models.errors import (
    CollaboratorUnavailable,
    ComputationError,
    RecordNotFound,
    StateTransitionError,
    ValidationError,
)
from models.invoice import InvoiceStatus
from services.invoice_service import InvoiceService
from utils.logging import logger


def error_response(status_code: int, message: str, details: Optional[list] = None) -> JSONResponse:
    content: Dict[str, Any] = {"error": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def create_app(service: Optional[InvoiceService] = None, config: Optional[dict] = None) -> FastAPI:
    """Build the FastAPI app around a service (in-memory service by default)"""

    config = config or {}
    app_config = config.get("app", {})

    app = FastAPI(
        title=app_config.get("name", "GST Invoice Engine"),
        description="Invoice tax computation and status lifecycle",
        version="1.0.0",
    )
    app.state.service = service or InvoiceService()

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests"""
        start_time = time.time()

        response = await call_next(request)

        logger.log_step("request_completed", {
            "method": request.method,
            "url": str(request.url),
            "status_code": response.status_code,
            "process_time": time.time() - start_time,
        })
        return response

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return error_response(400, exc.message, exc.errors)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg')}" for e in exc.errors()]
        return error_response(400, "Malformed request", details)

    @app.exception_handler(StateTransitionError)
    async def state_transition_handler(request: Request, exc: StateTransitionError):
        return error_response(409, str(exc))

    @app.exception_handler(RecordNotFound)
    async def not_found_handler(request: Request, exc: RecordNotFound):
        return error_response(404, str(exc))

    @app.exception_handler(CollaboratorUnavailable)
    async def collaborator_handler(request: Request, exc: CollaboratorUnavailable):
        logger.log_error("collaborator_unavailable", {"url": str(request.url), "error": str(exc)})
        return error_response(500, str(exc))

    @app.exception_handler(ComputationError)
    async def computation_handler(request: Request, exc: ComputationError):
        logger.log_error("computation_failed", {"url": str(request.url), "error": str(exc)})
        return error_response(500, str(exc))

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.log_error("unhandled_exception", {
            "method": request.method,
            "url": str(request.url),
            "error": str(exc),
        })
        return error_response(500, "Internal server error")

    def service_of(request: Request) -> InvoiceService:
        return request.app.state.service

    # Invoices

    @app.get("/invoices")
    async def list_invoices(request: Request, status: Optional[InvoiceStatus] = None, customerId: Optional[str] = None):
        records = service_of(request).list_invoices(status=status, customer_id=customerId)
        return [record.to_json() for record in records]

    @app.post("/invoices")
    async def save_invoice(request: Request, payload: Dict[str, Any] = Body(...)):
        return service_of(request).save_invoice(payload).to_json()

    @app.get("/invoices/{invoice_id}")
    async def get_invoice(request: Request, invoice_id: str):
        record = service_of(request).get_invoice(invoice_id)
        if record is None:
            return error_response(404, "Invoice not found")
        return record.to_json()

    @app.delete("/invoices/{invoice_id}")
    async def delete_invoice(request: Request, invoice_id: str):
        if not service_of(request).delete_invoice(invoice_id):
            return error_response(404, "Invoice not found")
        return {"success": True}

    @app.post("/invoices/{invoice_id}/finalize")
    async def finalize_invoice(request: Request, invoice_id: str):
        return service_of(request).finalize_invoice(invoice_id).to_json()

    @app.post("/invoices/{invoice_id}/payments")
    async def record_payment(request: Request, invoice_id: str, payload: Dict[str, Any] = Body(...)):
        return service_of(request).record_payment(invoice_id, payload).to_json()

    @app.post("/invoices/{invoice_id}/payments/{index}/reverse")
    async def reverse_payment(request: Request, invoice_id: str, index: int):
        return service_of(request).reverse_payment(invoice_id, index).to_json()

    # Company

    @app.get("/company")
    async def get_company(request: Request):
        company = service_of(request).get_company()
        if company is None:
            return error_response(404, "Company information not found")
        return company.to_json()

    @app.post("/company")
    async def save_company(request: Request, payload: Dict[str, Any] = Body(...)):
        return service_of(request).save_company(payload).to_json()

    # Suggestions

    @app.post("/suggestions/tax-category")
    async def suggest_tax_category(request: Request, payload: Dict[str, Any] = Body(...)):
        description = payload.get("itemDescription") or payload.get("description")
        if not isinstance(description, str) or not description.strip():
            return error_response(400, "itemDescription is required")
        suggestion = await service_of(request).suggest_tax_category(description)
        return suggestion.to_json()

    @app.post("/suggestions/sales")
    async def suggest_sales(request: Request, payload: Dict[str, Any] = Body(default={})):
        suggestions = await service_of(request).suggest_sales_strategies(payload.get("businessContext"))
        return suggestions.to_json()

    return app
