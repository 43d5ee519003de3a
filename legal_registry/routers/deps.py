"""
Shared router dependencies.

- get_registry / get_call_context: who is calling and at which height
- require_authority: gate for host controls (time, ledger credits)
- registry_transaction: serialize a mutation and save its snapshot,
  undoing the in-memory change if the save fails
"""

import copy
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import Depends, FastAPI, Header, Request

from legal_registry.core.errors import AuthenticationError, RegistryError, RegistryErrorCode
from legal_registry.services.legal_records import CallContext, RecordRegistry
from legal_registry.services.record_store import Snapshot

logger = logging.getLogger(__name__)


def get_registry(request: Request) -> RecordRegistry:
    return request.app.state.registry


def get_call_context(
    request: Request,
    x_principal: Optional[str] = Header(default=None),
) -> CallContext:
    """Caller principal plus the current block height."""
    if x_principal is None:
        raise AuthenticationError("X-Principal header is required")
    return CallContext(caller=x_principal, block_height=request.app.state.clock.height)


def require_authority(
    ctx: CallContext = Depends(get_call_context),
    registry: RecordRegistry = Depends(get_registry),
) -> CallContext:
    """Only the bound authority may drive host controls."""
    if registry.config.authority_contract is None or ctx.caller != registry.config.authority_contract:
        raise RegistryError(RegistryErrorCode.NOT_AUTHORIZED)
    return ctx


# =============================================================================
# SNAPSHOTS
# =============================================================================

def take_snapshot(app: FastAPI) -> Snapshot:
    """Deep copy of everything the host persists."""
    ledger = app.state.ledger
    return Snapshot(
        state=copy.deepcopy(app.state.registry.state),
        block_height=app.state.clock.height,
        balances=ledger.balances,
        transfers=ledger.transfers,
    )


def restore_snapshot(app: FastAPI, snapshot: Snapshot) -> None:
    app.state.registry.restore(snapshot.state)
    app.state.clock.restore(snapshot.block_height)
    app.state.ledger.restore(snapshot.balances, snapshot.transfers)


@asynccontextmanager
async def registry_transaction(request: Request) -> AsyncIterator[None]:
    """
    Run one mutation under the registry lock.

    With persistence on, the new state is saved before the lock is
    released. If the save fails, registry, clock and ledger go back to
    their state before the call and the error propagates.
    """
    app = request.app
    async with app.state.registry_lock:
        store = app.state.record_store
        if store is None:
            yield
            return

        checkpoint = take_snapshot(app)
        yield
        try:
            await store.save(take_snapshot(app))
        except Exception:
            logger.exception("Snapshot save failed on %s; rolling back", request.url.path)
            restore_snapshot(app, checkpoint)
            raise
