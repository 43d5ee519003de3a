"""
Chain & Ledger Router

Host-side controls the registry consumes but does not own:
- /api/chain  - logical time (block height)
- /api/ledger - fee ledger balances and transfer log

Moving time and crediting balances are reserved to the bound authority.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from legal_registry.core.config import SQL_INT_MAX
from legal_registry.routers.deps import registry_transaction, require_authority
from legal_registry.services.legal_records import CallContext

chain_router = APIRouter(prefix="/api/chain", tags=["Chain"])
ledger_router = APIRouter(prefix="/api/ledger", tags=["Ledger"])


class AdvanceRequest(BaseModel):
    blocks: int = Field(default=1, ge=0, le=SQL_INT_MAX)


class CreditRequest(BaseModel):
    principal: str
    amount: int = Field(gt=0, le=SQL_INT_MAX)


@chain_router.get("/height")
async def get_block_height(request: Request):
    return {"height": request.app.state.clock.height}


@chain_router.post("/advance")
async def advance_chain(
    body: AdvanceRequest,
    request: Request,
    ctx: CallContext = Depends(require_authority),
):
    """Mine `blocks` empty blocks."""
    clock = request.app.state.clock
    async with registry_transaction(request):
        if clock.height + body.blocks > SQL_INT_MAX:
            raise HTTPException(status_code=409, detail="Block height limit reached")
        height = clock.advance(body.blocks)
    return {"height": height}


@ledger_router.get("/balances/{principal}")
async def get_balance(principal: str, request: Request):
    ledger = request.app.state.ledger
    return {"principal": principal, "balance": ledger.balance_of(principal), "metered": ledger.metered}


@ledger_router.post("/credit")
async def credit_principal(
    body: CreditRequest,
    request: Request,
    ctx: CallContext = Depends(require_authority),
):
    ledger = request.app.state.ledger
    if not ledger.metered:
        raise HTTPException(status_code=409, detail="Ledger is unmetered")
    async with registry_transaction(request):
        if ledger.balance_of(body.principal) + body.amount > SQL_INT_MAX:
            raise HTTPException(status_code=409, detail="Balance limit reached")
        balance = ledger.credit(body.principal, body.amount)
    return {"principal": body.principal, "balance": balance}


@ledger_router.get("/transfers")
async def list_transfers(request: Request):
    transfers = request.app.state.ledger.transfers
    return {"count": len(transfers), "transfers": [t.to_dict() for t in transfers]}
