"""
Legal Records Registry

Permissioned registry of legal-document attestations (deeds, titles,
liens) keyed by (property_id, doc_type).

Trust model:
- Authority: bound exactly once; controls fees, capacity and the oracle
- Oracle: the only principal allowed to register records and change status

Every record gets:
1. A 64-character document hash (opaque, indexed for existence checks)
2. The block height of its last write
3. A status: valid, expired, disputed or revoked
4. An optional expiry height after which verification fails

Operations never raise for domain failures. They return a Result whose
error is a RegistryErrorCode, and a failed call leaves the state exactly
as it was. Validation order inside each operation is part of the
contract: callers rely on getting the most specific error.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Generic, Optional, TypeVar, Union

from legal_registry.core.errors import RegistryError, RegistryErrorCode
from legal_registry.services.fee_ledger import ValueTransfer

logger = logging.getLogger(__name__)

T = TypeVar("T")

RecordKey = tuple[int, str]  # (property_id, doc_type)


# =============================================================================
# CONSTANTS
# =============================================================================

HASH_LENGTH = 64
JURISDICTION_LENGTH = 3
MAX_DOC_TYPE_LENGTH = 32
MAX_METADATA_LENGTH = 256
MAX_LOCATION_LENGTH = 100

DEFAULT_MAX_RECORDS = 10000
DEFAULT_REGISTRATION_FEE = 500
DEFAULT_GOVERNANCE_THRESHOLD = 51


# =============================================================================
# ENUMS
# =============================================================================

class RecordStatus(str, Enum):
    """Status of a legal record. Any status may move to any other."""
    VALID = "valid"
    EXPIRED = "expired"
    DISPUTED = "disputed"
    REVOKED = "revoked"


class Currency(str, Enum):
    """Currencies a record may be denominated in."""
    USD = "USD"
    EUR = "EUR"
    STX = "STX"


# =============================================================================
# RESULT
# =============================================================================

@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a registry operation."""
    ok: bool
    value: Optional[T] = None
    error: Optional[RegistryErrorCode] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: RegistryErrorCode) -> "Result[T]":
        return cls(ok=False, error=error)

    def unwrap(self) -> T:
        """Return the value or raise RegistryError for a failure."""
        if not self.ok:
            raise RegistryError(self.error)
        return self.value


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class CallContext:
    """Who is calling, and at which block height."""
    caller: str
    block_height: int = 0


@dataclass
class LegalRecord:
    """A registered legal document attestation."""
    hash: str
    timestamp: int  # block height of last write
    issuer: str
    status: RecordStatus
    jurisdiction: str
    metadata: str
    expiry: Optional[int]
    owner: str
    currency: Currency
    location: str

    def to_dict(self) -> dict:
        return {
            "hash": self.hash,
            "timestamp": self.timestamp,
            "issuer": self.issuer,
            "status": self.status.value,
            "jurisdiction": self.jurisdiction,
            "metadata": self.metadata,
            "expiry": self.expiry,
            "owner": self.owner,
            "currency": self.currency.value,
            "location": self.location,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LegalRecord":
        return cls(
            hash=data["hash"],
            timestamp=data["timestamp"],
            issuer=data["issuer"],
            status=RecordStatus(data["status"]),
            jurisdiction=data["jurisdiction"],
            metadata=data.get("metadata", ""),
            expiry=data.get("expiry"),
            owner=data["owner"],
            currency=Currency(data["currency"]),
            location=data.get("location", ""),
        )


@dataclass
class RecordUpdate:
    """Most recent status transition of a record."""
    update_hash: str
    update_timestamp: int
    updater: str
    previous_status: RecordStatus

    def to_dict(self) -> dict:
        return {
            "update_hash": self.update_hash,
            "update_timestamp": self.update_timestamp,
            "updater": self.updater,
            "previous_status": self.previous_status.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RecordUpdate":
        return cls(
            update_hash=data["update_hash"],
            update_timestamp=data["update_timestamp"],
            updater=data["updater"],
            previous_status=RecordStatus(data["previous_status"]),
        )


@dataclass
class RegistryConfig:
    """Registry-wide settings and counters."""
    next_record_id: int = 0
    max_records: int = DEFAULT_MAX_RECORDS
    registration_fee: int = DEFAULT_REGISTRATION_FEE
    authority_contract: Optional[str] = None  # write-once
    oracle_principal: Optional[str] = None
    governance_threshold: int = DEFAULT_GOVERNANCE_THRESHOLD  # stored, not enforced

    def to_dict(self) -> dict:
        return {
            "next_record_id": self.next_record_id,
            "max_records": self.max_records,
            "registration_fee": self.registration_fee,
            "authority_contract": self.authority_contract,
            "oracle_principal": self.oracle_principal,
            "governance_threshold": self.governance_threshold,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RegistryConfig":
        return cls(**{k: data[k] for k in cls().to_dict() if k in data})


@dataclass
class VerificationResult:
    """Successful verification of a record."""
    valid: bool
    details: LegalRecord

    def to_dict(self) -> dict:
        return {"valid": self.valid, "details": self.details.to_dict()}


@dataclass
class RegistryState:
    """Everything the registry owns."""
    config: RegistryConfig = field(default_factory=RegistryConfig)
    records: dict[RecordKey, LegalRecord] = field(default_factory=dict)
    updates: dict[RecordKey, RecordUpdate] = field(default_factory=dict)
    hash_index: dict[str, RecordKey] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "config": self.config.to_dict(),
            "records": [
                {"property_id": pid, "doc_type": dtype, **record.to_dict()}
                for (pid, dtype), record in self.records.items()
            ],
            "updates": [
                {"property_id": pid, "doc_type": dtype, **update.to_dict()}
                for (pid, dtype), update in self.updates.items()
            ],
            "hash_index": [
                {"hash": doc_hash, "property_id": pid, "doc_type": dtype}
                for doc_hash, (pid, dtype) in self.hash_index.items()
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RegistryState":
        return cls(
            config=RegistryConfig.from_dict(data.get("config", {})),
            records={
                (item["property_id"], item["doc_type"]): LegalRecord.from_dict(item)
                for item in data.get("records", [])
            },
            updates={
                (item["property_id"], item["doc_type"]): RecordUpdate.from_dict(item)
                for item in data.get("updates", [])
            },
            hash_index={
                item["hash"]: (item["property_id"], item["doc_type"])
                for item in data.get("hash_index", [])
            },
        )


# =============================================================================
# RECORD REGISTRY
# =============================================================================

class RecordRegistry:
    """
    The registry state machine.

    One instance owns one RegistryState. The host must serialize calls;
    each operation is a single read-validate-write step.
    """

    def __init__(self, transfer: ValueTransfer, state: Optional[RegistryState] = None):
        self._transfer = transfer
        self._state = state if state is not None else RegistryState()

    @property
    def state(self) -> RegistryState:
        return self._state

    @property
    def config(self) -> RegistryConfig:
        return self._state.config

    def restore(self, state: RegistryState) -> None:
        """Replace the whole state, e.g. after loading a snapshot."""
        self._state = state
        logger.info(
            "Registry state restored: %d records, next id %d",
            len(state.records),
            state.config.next_record_id,
        )

    def _reject(self, operation: str, ctx: CallContext, code: RegistryErrorCode) -> Result:
        logger.debug(
            "%s rejected for %s: %s",
            operation,
            ctx.caller,
            code.name,
            extra={"error_code": code.slug},
        )
        return Result.failure(code)

    # -------------------------------------------------------------------------
    # Governance bootstrap
    # -------------------------------------------------------------------------

    def set_authority_contract(self, ctx: CallContext, candidate: str) -> Result[bool]:
        """Bind the authority. Works once; the authority cannot be the caller."""
        if candidate == ctx.caller:
            return self._reject("set_authority_contract", ctx, RegistryErrorCode.NOT_AUTHORIZED)
        if self.config.authority_contract is not None:
            return self._reject("set_authority_contract", ctx, RegistryErrorCode.AUTHORITY_ALREADY_SET)

        self.config.authority_contract = candidate
        logger.info("Authority contract set to %s by %s", candidate, ctx.caller)
        return Result.success(True)

    def set_oracle_principal(self, ctx: CallContext, candidate: str) -> Result[bool]:
        """Assign (or reassign) the oracle. Authority only."""
        if candidate == ctx.caller:
            return self._reject("set_oracle_principal", ctx, RegistryErrorCode.NOT_AUTHORIZED)
        if ctx.caller != self.config.authority_contract:
            return self._reject("set_oracle_principal", ctx, RegistryErrorCode.NOT_AUTHORIZED)

        previous = self.config.oracle_principal
        self.config.oracle_principal = candidate
        logger.info("Oracle principal changed: %s -> %s", previous, candidate)
        return Result.success(True)

    def set_registration_fee(self, ctx: CallContext, new_fee: int) -> Result[bool]:
        if new_fee <= 0:
            return self._reject("set_registration_fee", ctx, RegistryErrorCode.INVALID_FEE)
        if ctx.caller != self.config.authority_contract:
            return self._reject("set_registration_fee", ctx, RegistryErrorCode.NOT_AUTHORIZED)

        self.config.registration_fee = new_fee
        logger.info("Registration fee set to %d", new_fee)
        return Result.success(True)

    def set_max_records(self, ctx: CallContext, new_max: int) -> Result[bool]:
        """Raise the capacity ceiling. It can never be lowered."""
        if new_max <= self.config.max_records:
            return self._reject("set_max_records", ctx, RegistryErrorCode.INVALID_PARAM)
        if ctx.caller != self.config.authority_contract:
            return self._reject("set_max_records", ctx, RegistryErrorCode.NOT_AUTHORIZED)

        self.config.max_records = new_max
        logger.info("Max records raised to %d", new_max)
        return Result.success(True)

    def set_governance_threshold(self, ctx: CallContext, threshold: int) -> Result[bool]:
        if not 1 <= threshold <= 100:
            return self._reject("set_governance_threshold", ctx, RegistryErrorCode.INVALID_PARAM)
        if ctx.caller != self.config.authority_contract:
            return self._reject("set_governance_threshold", ctx, RegistryErrorCode.NOT_AUTHORIZED)

        self.config.governance_threshold = threshold
        logger.info("Governance threshold set to %d%%", threshold)
        return Result.success(True)

    # -------------------------------------------------------------------------
    # Record lifecycle
    # -------------------------------------------------------------------------

    def register_legal_record(
        self,
        ctx: CallContext,
        property_id: int,
        doc_type: str,
        doc_hash: str,
        jurisdiction: str,
        metadata: str,
        expiry: Optional[int],
        currency: Union[str, Currency],
        location: str,
    ) -> Result[bool]:
        """
        Register a new record and collect the registration fee.

        Field checks run before the oracle and authority checks, and the
        duplicate-key check runs last. The fee transfer happens before any
        state is written, so a failed transfer leaves nothing behind.
        """
        config = self.config

        def reject(code: RegistryErrorCode) -> Result[bool]:
            return self._reject("register_legal_record", ctx, code)

        if config.next_record_id >= config.max_records:
            return reject(RegistryErrorCode.MAX_RECORDS_EXCEEDED)
        if property_id <= 0:
            return reject(RegistryErrorCode.INVALID_PROPERTY_ID)
        if not doc_type or len(doc_type) > MAX_DOC_TYPE_LENGTH:
            return reject(RegistryErrorCode.INVALID_DOC_TYPE)
        if len(doc_hash) != HASH_LENGTH:
            return reject(RegistryErrorCode.INVALID_HASH)
        if len(jurisdiction) != JURISDICTION_LENGTH:
            return reject(RegistryErrorCode.INVALID_JURISDICTION)
        if len(metadata) > MAX_METADATA_LENGTH:
            return reject(RegistryErrorCode.INVALID_METADATA)
        if expiry is not None and expiry <= ctx.block_height:
            return reject(RegistryErrorCode.INVALID_EXPIRY)
        try:
            record_currency = Currency(currency)
        except ValueError:
            return reject(RegistryErrorCode.INVALID_CURRENCY)
        if len(location) > MAX_LOCATION_LENGTH:
            return reject(RegistryErrorCode.INVALID_LOCATION)
        if ctx.caller != config.oracle_principal:
            return reject(RegistryErrorCode.ORACLE_NOT_VERIFIED)
        if config.authority_contract is None:
            return reject(RegistryErrorCode.AUTHORITY_NOT_SET)

        key = (property_id, doc_type)
        if key in self._state.records:
            return reject(RegistryErrorCode.RECORD_ALREADY_EXISTS)

        if not self._transfer.transfer(config.registration_fee, ctx.caller, config.authority_contract):
            return reject(RegistryErrorCode.TRANSFER_FAILED)

        self._state.records[key] = LegalRecord(
            hash=doc_hash,
            timestamp=ctx.block_height,
            issuer=ctx.caller,
            status=RecordStatus.VALID,
            jurisdiction=jurisdiction,
            metadata=metadata,
            expiry=expiry,
            owner=ctx.caller,
            currency=record_currency,
            location=location,
        )
        self._state.hash_index[doc_hash] = key
        config.next_record_id += 1

        logger.info(
            "Registered %s for property %d at height %d (record #%d)",
            doc_type,
            property_id,
            ctx.block_height,
            config.next_record_id,
        )
        return Result.success(True)

    def update_record_status(
        self,
        ctx: CallContext,
        property_id: int,
        doc_type: str,
        new_status: Union[str, RecordStatus],
        new_hash: Optional[str] = None,
    ) -> Result[bool]:
        """Change a record's status, optionally replacing its hash."""
        def reject(code: RegistryErrorCode) -> Result[bool]:
            return self._reject("update_record_status", ctx, code)

        key = (property_id, doc_type)
        record = self._state.records.get(key)
        if record is None:
            return reject(RegistryErrorCode.RECORD_NOT_FOUND)
        try:
            status = RecordStatus(new_status)
        except ValueError:
            return reject(RegistryErrorCode.INVALID_STATUS)
        if new_hash is not None and len(new_hash) != HASH_LENGTH:
            return reject(RegistryErrorCode.INVALID_HASH)
        if ctx.caller != self.config.oracle_principal:
            return reject(RegistryErrorCode.ORACLE_NOT_VERIFIED)

        previous_status = record.status
        applied_hash = new_hash if new_hash is not None else record.hash

        self._state.records[key] = replace(
            record,
            status=status,
            hash=applied_hash,
            timestamp=ctx.block_height,
        )
        self._state.updates[key] = RecordUpdate(
            update_hash=applied_hash,
            update_timestamp=ctx.block_height,
            updater=ctx.caller,
            previous_status=previous_status,
        )

        logger.info(
            "Record %d/%s status %s -> %s at height %d",
            property_id,
            doc_type,
            previous_status.value,
            status.value,
            ctx.block_height,
        )
        return Result.success(True)

    def revoke_record(self, ctx: CallContext, property_id: int, doc_type: str) -> Result[bool]:
        return self.update_record_status(ctx, property_id, doc_type, RecordStatus.REVOKED, None)

    def verify_record(self, ctx: CallContext, property_id: int, doc_type: str) -> Result[VerificationResult]:
        """
        Check that a record exists, has not expired, and is valid.

        Expiry is checked before status: an expired record reports
        RECORD_EXPIRED even while it is still marked valid.
        """
        record = self._state.records.get((property_id, doc_type))
        if record is None:
            return self._reject("verify_record", ctx, RegistryErrorCode.RECORD_NOT_FOUND)
        if record.expiry is not None and ctx.block_height > record.expiry:
            return self._reject("verify_record", ctx, RegistryErrorCode.RECORD_EXPIRED)
        if record.status is not RecordStatus.VALID:
            return self._reject("verify_record", ctx, RegistryErrorCode.INVALID_STATUS)
        return Result.success(VerificationResult(valid=True, details=record))

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_record_count(self) -> Result[int]:
        return Result.success(self.config.next_record_id)

    def check_record_existence(self, doc_hash: str) -> Result[bool]:
        return Result.success(doc_hash in self._state.hash_index)

    def get_legal_record(self, property_id: int, doc_type: str) -> Result[LegalRecord]:
        record = self._state.records.get((property_id, doc_type))
        if record is None:
            return Result.failure(RegistryErrorCode.RECORD_NOT_FOUND)
        return Result.success(record)

    def get_record_update(self, property_id: int, doc_type: str) -> Result[RecordUpdate]:
        update = self._state.updates.get((property_id, doc_type))
        if update is None:
            return Result.failure(RegistryErrorCode.RECORD_NOT_FOUND)
        return Result.success(update)

    def get_record_by_hash(self, doc_hash: str) -> Result[RecordKey]:
        key = self._state.hash_index.get(doc_hash)
        if key is None:
            return Result.failure(RegistryErrorCode.RECORD_NOT_FOUND)
        return Result.success(key)

    def get_config(self) -> Result[RegistryConfig]:
        return Result.success(replace(self.config))

    def get_statistics(self) -> dict[str, Any]:
        """Record counts by status plus bootstrap flags."""
        by_status: dict[str, int] = {}
        for record in self._state.records.values():
            by_status[record.status.value] = by_status.get(record.status.value, 0) + 1

        return {
            "total_records": self.config.next_record_id,
            "max_records": self.config.max_records,
            "by_status": by_status,
            "authority_set": self.config.authority_contract is not None,
            "oracle_set": self.config.oracle_principal is not None,
        }
