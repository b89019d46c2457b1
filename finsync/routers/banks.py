"""
Banks Router
Connected banks and the bank-link handshake
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from finsync.core.errors import GatewayError
from finsync.routers.deps import bad_gateway, get_gateway, get_loader

router = APIRouter()
logger = logging.getLogger(__name__)


class TokenExchangeRequest(BaseModel):
    public_token: str
    institution: Optional[Dict[str, Any]] = None


@router.get("/banks")
async def list_banks(gateway=Depends(get_gateway)):
    try:
        banks = await gateway.get_connected_banks()
    except GatewayError as e:
        raise bad_gateway(e)
    return {"banks": [b.model_dump(mode="json") for b in banks]}


@router.delete("/banks/{bank_id}")
async def remove_bank(bank_id: str, gateway=Depends(get_gateway), loader=Depends(get_loader)):
    try:
        removed = await gateway.remove_bank(bank_id)
    except GatewayError as e:
        raise bad_gateway(e)
    if not removed:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Bank removal was rejected")
    loader.invalidate()
    logger.info(f"Removed bank {bank_id}")
    return {"success": True}


@router.post("/link/token")
async def create_link_token(gateway=Depends(get_gateway)):
    try:
        token = await gateway.create_link_token()
    except GatewayError as e:
        raise bad_gateway(e)
    return {"link_token": token}


@router.post("/link/exchange")
async def exchange_public_token(body: TokenExchangeRequest, gateway=Depends(get_gateway), loader=Depends(get_loader)):
    try:
        accepted = await gateway.exchange_public_token(body.public_token, body.institution)
    except GatewayError as e:
        raise bad_gateway(e)
    if not accepted:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Token exchange was rejected")
    loader.invalidate()
    return {"success": True}
