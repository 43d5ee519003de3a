"""
Legal Records API Router
========================

REST endpoints over the record registry. The calling principal is taken
from the X-Principal header and the current block height from the
application's chain clock.

Failures come back as the standard error body with the registry's
numeric code, e.g. {"error": "record_not_found", "code": 108, ...}.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field

from legal_registry.core.config import SQL_INT_MAX
from legal_registry.core.errors import RegistryError, status_for_code
from legal_registry.routers.deps import get_call_context, get_registry, registry_transaction
from legal_registry.services.legal_records import CallContext, RecordRegistry, Result

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/records", tags=["Legal Records"])


# =============================================================================
# MODELS
# =============================================================================

# Field limits are enforced by the registry so callers get registry codes.
# Integers are bounded to the signed 64-bit range the record store can hold.
SQL_INT_MIN = -SQL_INT_MAX - 1


class PrincipalAssignment(BaseModel):
    candidate: str


class FeeUpdate(BaseModel):
    fee: int = Field(ge=SQL_INT_MIN, le=SQL_INT_MAX)


class MaxRecordsUpdate(BaseModel):
    max_records: int = Field(ge=SQL_INT_MIN, le=SQL_INT_MAX)


class ThresholdUpdate(BaseModel):
    threshold: int = Field(ge=SQL_INT_MIN, le=SQL_INT_MAX)


class RecordRegistration(BaseModel):
    property_id: int = Field(ge=SQL_INT_MIN, le=SQL_INT_MAX)
    # Record keys travel in the URL path
    doc_type: str = Field(pattern=r"^[^/]*$")
    doc_hash: str
    jurisdiction: str
    metadata: str = ""
    expiry: Optional[int] = Field(default=None, ge=SQL_INT_MIN, le=SQL_INT_MAX)
    currency: str
    location: str = ""


class StatusUpdate(BaseModel):
    status: str
    new_hash: Optional[str] = None


# =============================================================================
# HELPERS
# =============================================================================

def _unwrap(result: Result, *, on_read: bool = False) -> Any:
    if not result.ok:
        raise RegistryError(result.error, status_code=status_for_code(result.error, on_read=on_read))
    return result.value


# =============================================================================
# GOVERNANCE
# =============================================================================

@router.post("/authority")
async def set_authority_contract(
    body: PrincipalAssignment,
    request: Request,
    ctx: CallContext = Depends(get_call_context),
    registry: RecordRegistry = Depends(get_registry),
):
    """Bind the authority principal (once)."""
    async with registry_transaction(request):
        _unwrap(registry.set_authority_contract(ctx, body.candidate))
    return {"success": True, "authority_contract": body.candidate}


@router.post("/oracle")
async def set_oracle_principal(
    body: PrincipalAssignment,
    request: Request,
    ctx: CallContext = Depends(get_call_context),
    registry: RecordRegistry = Depends(get_registry),
):
    """Assign the oracle. Authority only."""
    async with registry_transaction(request):
        _unwrap(registry.set_oracle_principal(ctx, body.candidate))
    return {"success": True, "oracle_principal": body.candidate}


@router.put("/config/fee")
async def set_registration_fee(
    body: FeeUpdate,
    request: Request,
    ctx: CallContext = Depends(get_call_context),
    registry: RecordRegistry = Depends(get_registry),
):
    async with registry_transaction(request):
        _unwrap(registry.set_registration_fee(ctx, body.fee))
    return {"success": True, "registration_fee": body.fee}


@router.put("/config/max-records")
async def set_max_records(
    body: MaxRecordsUpdate,
    request: Request,
    ctx: CallContext = Depends(get_call_context),
    registry: RecordRegistry = Depends(get_registry),
):
    async with registry_transaction(request):
        _unwrap(registry.set_max_records(ctx, body.max_records))
    return {"success": True, "max_records": body.max_records}


@router.put("/config/governance-threshold")
async def set_governance_threshold(
    body: ThresholdUpdate,
    request: Request,
    ctx: CallContext = Depends(get_call_context),
    registry: RecordRegistry = Depends(get_registry),
):
    async with registry_transaction(request):
        _unwrap(registry.set_governance_threshold(ctx, body.threshold))
    return {"success": True, "governance_threshold": body.threshold}


@router.get("/config")
async def get_config(registry: RecordRegistry = Depends(get_registry)):
    return _unwrap(registry.get_config()).to_dict()


# =============================================================================
# READS
# =============================================================================

@router.get("/count")
async def get_record_count(registry: RecordRegistry = Depends(get_registry)):
    return {"count": _unwrap(registry.get_record_count())}


@router.get("/stats")
async def get_statistics(registry: RecordRegistry = Depends(get_registry)):
    return registry.get_statistics()


@router.get("/hash/{doc_hash}/exists")
async def check_record_existence(doc_hash: str, registry: RecordRegistry = Depends(get_registry)):
    return {"hash": doc_hash, "exists": _unwrap(registry.check_record_existence(doc_hash))}


@router.get("/hash/{doc_hash}")
async def get_record_by_hash(doc_hash: str, registry: RecordRegistry = Depends(get_registry)):
    property_id, doc_type = _unwrap(registry.get_record_by_hash(doc_hash))
    return {"hash": doc_hash, "property_id": property_id, "doc_type": doc_type}


# =============================================================================
# RECORD LIFECYCLE
# =============================================================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def register_legal_record(
    body: RecordRegistration,
    request: Request,
    ctx: CallContext = Depends(get_call_context),
    registry: RecordRegistry = Depends(get_registry),
):
    """Register a record; the oracle pays the registration fee to the authority."""
    async with registry_transaction(request):
        _unwrap(registry.register_legal_record(
            ctx,
            property_id=body.property_id,
            doc_type=body.doc_type,
            doc_hash=body.doc_hash,
            jurisdiction=body.jurisdiction,
            metadata=body.metadata,
            expiry=body.expiry,
            currency=body.currency,
            location=body.location,
        ))
        record = _unwrap(registry.get_legal_record(body.property_id, body.doc_type))

    return {
        "success": True,
        "property_id": body.property_id,
        "doc_type": body.doc_type,
        "record": record.to_dict(),
    }


@router.get("/{property_id}/{doc_type}")
async def get_legal_record(
    property_id: int,
    doc_type: str,
    registry: RecordRegistry = Depends(get_registry),
):
    record = _unwrap(registry.get_legal_record(property_id, doc_type))
    return {"property_id": property_id, "doc_type": doc_type, "record": record.to_dict()}


@router.get("/{property_id}/{doc_type}/update")
async def get_record_update(
    property_id: int,
    doc_type: str,
    registry: RecordRegistry = Depends(get_registry),
):
    update = _unwrap(registry.get_record_update(property_id, doc_type))
    return {"property_id": property_id, "doc_type": doc_type, "update": update.to_dict()}


@router.get("/{property_id}/{doc_type}/verify")
async def verify_record(
    property_id: int,
    doc_type: str,
    request: Request,
    registry: RecordRegistry = Depends(get_registry),
):
    """Verify at the current block height. No caller identity needed."""
    ctx = CallContext(
        caller=request.headers.get("X-Principal", ""),
        block_height=request.app.state.clock.height,
    )
    verification = _unwrap(registry.verify_record(ctx, property_id, doc_type), on_read=True)
    return verification.to_dict()


@router.put("/{property_id}/{doc_type}/status")
async def update_record_status(
    property_id: int,
    doc_type: str,
    body: StatusUpdate,
    request: Request,
    ctx: CallContext = Depends(get_call_context),
    registry: RecordRegistry = Depends(get_registry),
):
    async with registry_transaction(request):
        _unwrap(registry.update_record_status(ctx, property_id, doc_type, body.status, body.new_hash))
        record = _unwrap(registry.get_legal_record(property_id, doc_type))
    return {"success": True, "record": record.to_dict()}


@router.post("/{property_id}/{doc_type}/revoke")
async def revoke_record(
    property_id: int,
    doc_type: str,
    request: Request,
    ctx: CallContext = Depends(get_call_context),
    registry: RecordRegistry = Depends(get_registry),
):
    async with registry_transaction(request):
        _unwrap(registry.revoke_record(ctx, property_id, doc_type))
        record = _unwrap(registry.get_legal_record(property_id, doc_type))
    return {"success": True, "record": record.to_dict()}
