"""
Shared fixtures for the Legal Records Registry tests.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from legal_registry.core.config import Settings
from legal_registry.main import create_app
from legal_registry.services.fee_ledger import FeeLedger
from legal_registry.services.legal_records import CallContext, RecordRegistry

DEPLOYER = "ST1DEPLOYER"
AUTHORITY = "ST2AUTH"
ORACLE = "ST3ORACLE"
OUTSIDER = "ST4OUTSIDER"

DOC_HASH = "a" * 64


@pytest.fixture
def anyio_backend():
    return "asyncio"


# =============================================================================
# Library fixtures
# =============================================================================

@pytest.fixture
def ledger():
    """Unmetered fee ledger."""
    return FeeLedger()


@pytest.fixture
def registry(ledger):
    """A fresh, unbootstrapped registry."""
    return RecordRegistry(transfer=ledger)


@pytest.fixture
def bootstrapped(registry):
    """Registry with AUTHORITY bound and ORACLE assigned."""
    assert registry.set_authority_contract(CallContext(DEPLOYER), AUTHORITY).ok
    assert registry.set_oracle_principal(CallContext(AUTHORITY), ORACLE).ok
    return registry


@pytest.fixture
def oracle_ctx():
    return CallContext(caller=ORACLE, block_height=0)


def register_deed(registry, ctx, property_id=1, doc_type="deed", doc_hash=DOC_HASH, **overrides):
    """Register a record with valid defaults for every field."""
    fields = {
        "jurisdiction": "USA",
        "metadata": "Test metadata",
        "expiry": None,
        "currency": "USD",
        "location": "New York",
    }
    fields.update(overrides)
    return registry.register_legal_record(ctx, property_id, doc_type, doc_hash, **fields)


# =============================================================================
# API fixtures
# =============================================================================

@pytest.fixture
def settings():
    return Settings(_env_file=None, persist_registry=False)


@pytest.fixture
def app(settings):
    """Create test application."""
    return create_app(settings)


@pytest.fixture
async def client(app):
    """Create test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
