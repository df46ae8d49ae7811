"""
HTTP API for the DTF quote backend.

Thin FastAPI layer: validates requests, calls the StorageGateway and returns
JSON. Typed backend errors are turned into JSON error bodies by exception
handlers registered in create_app().
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from dtf_backend.auth.credentials import load_credentials
from dtf_backend.auth.token_manager import TokenLifecycleManager
from dtf_backend.config_loader import get_refresh_interval, get_server_settings
from dtf_backend.dropbox_client import DropboxClient
from dtf_backend.exceptions import (
    ConfigurationError,
    DTFBackendError,
    NotFoundError,
    RemoteOperationError,
    RenderError,
    TokenRefreshError,
)
from dtf_backend.metrics import StorageMetrics
from dtf_backend.scheduler import TokenRefreshScheduler
from dtf_backend.storage_gateway import StorageGateway

SERVICE_NAME = "DTF Backend API"

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    NotFoundError: 404,
    RenderError: 422,
    RemoteOperationError: 502,
    TokenRefreshError: 503,
    ConfigurationError: 503,
}


@dataclass
class Services:
    """Process-wide collaborators shared by every request."""

    metrics: StorageMetrics
    token_manager: TokenLifecycleManager
    client: DropboxClient
    gateway: StorageGateway
    scheduler: TokenRefreshScheduler


def build_services(config: Dict[str, Any]) -> Services:
    """Wire the token manager, Dropbox client and gateway from configuration."""
    dropbox_config = config.get("dropbox") or {}
    timeout = dropbox_config.get("timeout")

    metrics = StorageMetrics()
    token_manager = TokenLifecycleManager(load_credentials(config), metrics=metrics, timeout=timeout)
    client = DropboxClient(token_manager, metrics=metrics, timeout=timeout)
    gateway = StorageGateway(client, metrics=metrics)
    scheduler = TokenRefreshScheduler(token_manager, interval_seconds=get_refresh_interval(config))
    return Services(metrics=metrics, token_manager=token_manager, client=client, gateway=gateway, scheduler=scheduler)


class SaveQuoteRequest(BaseModel):
    quoteData: Optional[Dict[str, Any]] = None
    isUpdate: bool = False


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_gateway(request: Request) -> StorageGateway:
    return request.app.state.services.gateway


router = APIRouter()


@router.get("/health")
async def health(services: Services = Depends(get_services)) -> Dict[str, Any]:
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": SERVICE_NAME,
        "credentials_configured": services.token_manager.credentials.is_complete,
    }


@router.get("/metrics")
async def metrics(services: Services = Depends(get_services)) -> Dict[str, Any]:
    return services.metrics.get_summary()


@router.post("/api/save-quote")
async def save_quote(payload: SaveQuoteRequest, gateway: StorageGateway = Depends(get_gateway)):
    if not payload.quoteData or not payload.quoteData.get("id"):
        return JSONResponse(status_code=400, content={"error": "Invalid quote data. Missing required fields."})

    return await gateway.save_quote(payload.quoteData, payload.isUpdate)


@router.get("/api/get-quote/{quote_id}")
async def get_quote(quote_id: str, format: str = "json", gateway: StorageGateway = Depends(get_gateway)):
    quote = await gateway.load_quote(quote_id, format)
    return {"success": True, "data": quote}


@router.get("/api/customer-quotes/{customer_id}")
async def get_customer_quotes(customer_id: str, gateway: StorageGateway = Depends(get_gateway)):
    listing = await gateway.load_customer_quotes(customer_id)
    return {
        "success": True,
        "data": listing.quotes,
        "degraded": listing.degraded,
        "skipped_count": listing.skipped_count,
    }


@router.delete("/api/delete-quote/{quote_id}")
async def delete_quote(
    quote_id: str, customerId: Optional[str] = None, gateway: StorageGateway = Depends(get_gateway)
):
    return await gateway.delete_quote(quote_id, customerId)


@router.post("/api/save-logo/{customer_id}")
async def save_logo(
    customer_id: str, logo_data: Dict[str, Any] = Body(...), gateway: StorageGateway = Depends(get_gateway)
):
    result = await gateway.save_customer_logo(customer_id, logo_data)
    return {"success": True, "data": result}


@router.get("/api/get-logo/{customer_id}")
async def get_logo(customer_id: str, gateway: StorageGateway = Depends(get_gateway)):
    logo_data = await gateway.load_customer_logo(customer_id)
    if logo_data is None:
        return JSONResponse(status_code=404, content={"error": "Logo not found"})
    return {"success": True, "data": logo_data}


@router.delete("/api/delete-logo/{customer_id}")
async def delete_logo(customer_id: str, gateway: StorageGateway = Depends(get_gateway)):
    return await gateway.delete_customer_logo(customer_id)


async def handle_backend_error(request: Request, exc: DTFBackendError) -> JSONResponse:
    status_code = next((code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)), 500)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(exc), "kind": "invalid_request", "details": {}})


def create_app(
    config: Optional[Dict[str, Any]] = None,
    services: Optional[Services] = None,
    enable_scheduler: bool = True,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Configuration dictionary (empty means environment and defaults)
        services: Pre-built collaborators (tests inject fakes here)
        enable_scheduler: Start the hourly token refresh loop with the app

    Returns:
        Configured FastAPI app
    """
    config = config or {}
    services = services or build_services(config)
    settings = get_server_settings(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if enable_scheduler:
            services.scheduler.start()
        yield
        await services.scheduler.stop()
        services.metrics.log_summary()

    app = FastAPI(title=SERVICE_NAME, lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings["allowed_origins"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )

    app.add_exception_handler(DTFBackendError, handle_backend_error)
    app.add_exception_handler(ValueError, handle_value_error)
    app.include_router(router)
    return app
