"""
Router dependencies
Services live on app.state, created by the application lifespan.
"""
from fastapi import HTTPException, Request, status

from finsync.core.config import Settings
from finsync.core.errors import GatewayError


def get_gateway(request: Request):
    return request.app.state.gateway


def get_orchestrator(request: Request):
    return request.app.state.orchestrator


def get_loader(request: Request):
    return request.app.state.loader


def get_alert_book(request: Request):
    return request.app.state.alert_book


def get_scheduler(request: Request):
    return request.app.state.scheduler


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def bad_gateway(e: GatewayError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Backend request failed: {e}",
    )
