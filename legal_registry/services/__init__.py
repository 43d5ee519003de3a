# Registry services - state machine, fee ledger, logical time, persistence

from legal_registry.services.legal_records import (
    RecordRegistry,
    RegistryState,
    RegistryConfig,
    LegalRecord,
    RecordUpdate,
    RecordStatus,
    Currency,
    CallContext,
    Result,
    VerificationResult,
)

from legal_registry.services.fee_ledger import (
    FeeLedger,
    FeeTransfer,
    ValueTransfer,
)

from legal_registry.services.chain_clock import ChainClock
