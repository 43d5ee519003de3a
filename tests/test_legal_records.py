"""
Tests for the Legal Records Registry state machine.

Tests cover:
- Authority / oracle bootstrap
- Authority-only configuration setters and their check order
- Record registration: field validation order, uniqueness, capacity, fees
- Status updates and revocation
- Verification with expiry
- Read accessors
"""

import warnings

import pytest

from legal_registry.core.errors import RegistryError, RegistryErrorCode, status_for_code
from legal_registry.services.fee_ledger import FeeLedger
from legal_registry.services.legal_records import (
    CallContext,
    Currency,
    RecordRegistry,
    RecordStatus,
    RegistryConfig,
    RegistryState,
    Result,
)
from tests.conftest import AUTHORITY, DEPLOYER, DOC_HASH, ORACLE, OUTSIDER, register_deed


# =============================================================================
# Authority Bootstrap Tests
# =============================================================================

class TestSetAuthorityContract:
    """Tests for the write-once authority binding."""

    def test_sets_authority(self, registry):
        result = registry.set_authority_contract(CallContext(DEPLOYER), AUTHORITY)
        assert result.ok is True
        assert result.value is True
        assert registry.config.authority_contract == AUTHORITY

    def test_rejects_self_assignment(self, registry):
        result = registry.set_authority_contract(CallContext(DEPLOYER), DEPLOYER)
        assert result.ok is False
        assert result.error == RegistryErrorCode.NOT_AUTHORIZED
        assert registry.config.authority_contract is None

    def test_second_call_rejected(self, registry):
        registry.set_authority_contract(CallContext(DEPLOYER), AUTHORITY)
        result = registry.set_authority_contract(CallContext(DEPLOYER), OUTSIDER)
        assert result.error == RegistryErrorCode.AUTHORITY_ALREADY_SET
        assert registry.config.authority_contract == AUTHORITY

    def test_second_call_rejected_even_from_authority(self, registry):
        registry.set_authority_contract(CallContext(DEPLOYER), AUTHORITY)
        result = registry.set_authority_contract(CallContext(AUTHORITY), OUTSIDER)
        assert result.error == RegistryErrorCode.AUTHORITY_ALREADY_SET

    def test_self_assignment_checked_before_already_set(self, registry):
        registry.set_authority_contract(CallContext(DEPLOYER), AUTHORITY)
        result = registry.set_authority_contract(CallContext(OUTSIDER), OUTSIDER)
        assert result.error == RegistryErrorCode.NOT_AUTHORIZED

    def test_empty_principal_counts_as_set(self, registry):
        """An empty-string principal is a value, not 'unset'."""
        assert registry.set_authority_contract(CallContext(DEPLOYER), "").ok
        result = registry.set_authority_contract(CallContext(DEPLOYER), AUTHORITY)
        assert result.error == RegistryErrorCode.AUTHORITY_ALREADY_SET


class TestSetOraclePrincipal:
    """Tests for oracle assignment."""

    def test_authority_sets_oracle(self, registry):
        registry.set_authority_contract(CallContext(DEPLOYER), AUTHORITY)
        result = registry.set_oracle_principal(CallContext(AUTHORITY), ORACLE)
        assert result.ok is True
        assert registry.config.oracle_principal == ORACLE

    def test_rejects_non_authority(self, registry):
        registry.set_authority_contract(CallContext(DEPLOYER), AUTHORITY)
        result = registry.set_oracle_principal(CallContext(DEPLOYER), ORACLE)
        assert result.error == RegistryErrorCode.NOT_AUTHORIZED
        assert registry.config.oracle_principal is None

    def test_rejects_when_authority_unset(self, registry):
        result = registry.set_oracle_principal(CallContext(DEPLOYER), ORACLE)
        assert result.error == RegistryErrorCode.NOT_AUTHORIZED

    def test_rejects_authority_as_oracle(self, registry):
        registry.set_authority_contract(CallContext(DEPLOYER), AUTHORITY)
        result = registry.set_oracle_principal(CallContext(AUTHORITY), AUTHORITY)
        assert result.error == RegistryErrorCode.NOT_AUTHORIZED

    def test_oracle_can_be_reassigned(self, bootstrapped):
        result = bootstrapped.set_oracle_principal(CallContext(AUTHORITY), OUTSIDER)
        assert result.ok is True
        assert bootstrapped.config.oracle_principal == OUTSIDER

    def test_previous_oracle_loses_rights(self, bootstrapped):
        bootstrapped.set_oracle_principal(CallContext(AUTHORITY), OUTSIDER)
        result = register_deed(bootstrapped, CallContext(ORACLE))
        assert result.error == RegistryErrorCode.ORACLE_NOT_VERIFIED
        assert register_deed(bootstrapped, CallContext(OUTSIDER)).ok


# =============================================================================
# Configuration Setter Tests
# =============================================================================

class TestConfigurationSetters:
    """Fee, capacity and threshold setters check the value before the caller."""

    def test_sets_registration_fee(self, bootstrapped):
        result = bootstrapped.set_registration_fee(CallContext(AUTHORITY), 1000)
        assert result.ok is True
        assert bootstrapped.config.registration_fee == 1000

    def test_rejects_zero_fee(self, bootstrapped):
        result = bootstrapped.set_registration_fee(CallContext(AUTHORITY), 0)
        assert result.error == RegistryErrorCode.INVALID_FEE
        assert bootstrapped.config.registration_fee == 500

    def test_invalid_fee_reported_before_authorization(self, bootstrapped):
        result = bootstrapped.set_registration_fee(CallContext(OUTSIDER), -5)
        assert result.error == RegistryErrorCode.INVALID_FEE

    def test_fee_rejects_non_authority(self, bootstrapped):
        result = bootstrapped.set_registration_fee(CallContext(ORACLE), 1000)
        assert result.error == RegistryErrorCode.NOT_AUTHORIZED

    def test_raises_max_records(self, bootstrapped):
        result = bootstrapped.set_max_records(CallContext(AUTHORITY), 20000)
        assert result.ok is True
        assert bootstrapped.config.max_records == 20000

    @pytest.mark.parametrize("new_max", [10000, 5000, 0])
    def test_max_records_cannot_decrease_or_stay(self, bootstrapped, new_max):
        result = bootstrapped.set_max_records(CallContext(AUTHORITY), new_max)
        assert result.error == RegistryErrorCode.INVALID_PARAM
        assert bootstrapped.config.max_records == 10000

    def test_invalid_max_reported_before_authorization(self, bootstrapped):
        result = bootstrapped.set_max_records(CallContext(OUTSIDER), 1)
        assert result.error == RegistryErrorCode.INVALID_PARAM

    def test_max_records_rejects_non_authority(self, bootstrapped):
        result = bootstrapped.set_max_records(CallContext(OUTSIDER), 20000)
        assert result.error == RegistryErrorCode.NOT_AUTHORIZED

    def test_sets_governance_threshold(self, bootstrapped):
        result = bootstrapped.set_governance_threshold(CallContext(AUTHORITY), 66)
        assert result.ok is True
        assert bootstrapped.config.governance_threshold == 66

    @pytest.mark.parametrize("threshold", [0, 101])
    def test_threshold_out_of_range(self, bootstrapped, threshold):
        result = bootstrapped.set_governance_threshold(CallContext(OUTSIDER), threshold)
        assert result.error == RegistryErrorCode.INVALID_PARAM

    def test_threshold_rejects_non_authority(self, bootstrapped):
        result = bootstrapped.set_governance_threshold(CallContext(ORACLE), 66)
        assert result.error == RegistryErrorCode.NOT_AUTHORIZED


# =============================================================================
# Registration Tests
# =============================================================================

class TestRegisterLegalRecord:
    """Tests for record registration."""

    def test_registers_record(self, bootstrapped, oracle_ctx):
        result = register_deed(bootstrapped, oracle_ctx)
        assert result.ok is True
        assert result.value is True

        record = bootstrapped.get_legal_record(1, "deed").value
        assert record.hash == DOC_HASH
        assert record.status == RecordStatus.VALID
        assert record.issuer == ORACLE
        assert record.owner == ORACLE
        assert record.jurisdiction == "USA"
        assert record.currency == Currency.USD
        assert record.location == "New York"
        assert record.expiry is None

    def test_timestamp_is_block_height(self, bootstrapped):
        register_deed(bootstrapped, CallContext(ORACLE, block_height=42))
        assert bootstrapped.get_legal_record(1, "deed").value.timestamp == 42

    def test_increments_count_and_indexes_hash(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx)
        assert bootstrapped.get_record_count().value == 1
        assert bootstrapped.check_record_existence(DOC_HASH).value is True
        assert bootstrapped.get_record_by_hash(DOC_HASH).value == (1, "deed")

    def test_collects_registration_fee(self, bootstrapped, ledger, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx)
        transfers = ledger.transfers
        assert len(transfers) == 1
        assert transfers[0].amount == 500
        assert transfers[0].sender == ORACLE
        assert transfers[0].recipient == AUTHORITY

    def test_duplicate_key_rejected(self, bootstrapped, oracle_ctx):
        assert register_deed(bootstrapped, oracle_ctx).ok
        result = register_deed(bootstrapped, oracle_ctx, doc_hash="b" * 64)
        assert result.error == RegistryErrorCode.RECORD_ALREADY_EXISTS
        assert bootstrapped.get_record_count().value == 1
        assert bootstrapped.check_record_existence("b" * 64).value is False

    def test_same_property_different_doc_type(self, bootstrapped, oracle_ctx):
        assert register_deed(bootstrapped, oracle_ctx, doc_type="deed").ok
        assert register_deed(bootstrapped, oracle_ctx, doc_type="lien", doc_hash="b" * 64).ok
        assert bootstrapped.get_record_count().value == 2

    def test_rejects_non_oracle(self, bootstrapped):
        result = register_deed(bootstrapped, CallContext(DEPLOYER))
        assert result.error == RegistryErrorCode.ORACLE_NOT_VERIFIED

    def test_rejects_before_bootstrap(self, registry, oracle_ctx):
        result = register_deed(registry, oracle_ctx)
        assert result.error == RegistryErrorCode.ORACLE_NOT_VERIFIED

    def test_authority_not_set(self, ledger, oracle_ctx):
        state = RegistryState(config=RegistryConfig(oracle_principal=ORACLE))
        registry = RecordRegistry(transfer=ledger, state=state)
        result = register_deed(registry, oracle_ctx)
        assert result.error == RegistryErrorCode.AUTHORITY_NOT_SET

    @pytest.mark.parametrize("length", [63, 65, 0])
    def test_hash_length_must_be_64(self, bootstrapped, oracle_ctx, length):
        result = register_deed(bootstrapped, oracle_ctx, doc_hash="a" * length)
        assert result.error == RegistryErrorCode.INVALID_HASH

    def test_hash_of_64_accepted(self, bootstrapped, oracle_ctx):
        assert register_deed(bootstrapped, oracle_ctx, doc_hash="f" * 64).ok

    def test_jurisdiction_of_three_accepted(self, bootstrapped, oracle_ctx):
        assert register_deed(bootstrapped, oracle_ctx, jurisdiction="USA").ok

    @pytest.mark.parametrize("jurisdiction", ["US", "USAA", ""])
    def test_jurisdiction_must_be_three(self, bootstrapped, oracle_ctx, jurisdiction):
        result = register_deed(bootstrapped, oracle_ctx, jurisdiction=jurisdiction)
        assert result.error == RegistryErrorCode.INVALID_JURISDICTION

    @pytest.mark.parametrize("property_id", [0, -1])
    def test_property_id_must_be_positive(self, bootstrapped, oracle_ctx, property_id):
        result = register_deed(bootstrapped, oracle_ctx, property_id=property_id)
        assert result.error == RegistryErrorCode.INVALID_PROPERTY_ID

    @pytest.mark.parametrize("doc_type", ["", "x" * 33])
    def test_doc_type_bounds(self, bootstrapped, oracle_ctx, doc_type):
        result = register_deed(bootstrapped, oracle_ctx, doc_type=doc_type)
        assert result.error == RegistryErrorCode.INVALID_DOC_TYPE

    def test_doc_type_of_32_accepted(self, bootstrapped, oracle_ctx):
        assert register_deed(bootstrapped, oracle_ctx, doc_type="x" * 32).ok

    def test_metadata_limit(self, bootstrapped, oracle_ctx):
        assert register_deed(bootstrapped, oracle_ctx, metadata="m" * 256).ok
        result = register_deed(bootstrapped, oracle_ctx, property_id=2, metadata="m" * 257)
        assert result.error == RegistryErrorCode.INVALID_METADATA

    def test_location_limit(self, bootstrapped, oracle_ctx):
        assert register_deed(bootstrapped, oracle_ctx, location="l" * 100).ok
        result = register_deed(bootstrapped, oracle_ctx, property_id=2, location="l" * 101)
        assert result.error == RegistryErrorCode.INVALID_LOCATION

    @pytest.mark.parametrize("currency", ["USD", "EUR", "STX", Currency.EUR])
    def test_accepted_currencies(self, bootstrapped, oracle_ctx, currency):
        assert register_deed(bootstrapped, oracle_ctx, currency=currency).ok

    @pytest.mark.parametrize("currency", ["GBP", "usd", ""])
    def test_rejects_other_currencies(self, bootstrapped, oracle_ctx, currency):
        result = register_deed(bootstrapped, oracle_ctx, currency=currency)
        assert result.error == RegistryErrorCode.INVALID_CURRENCY

    def test_expiry_must_be_after_current_height(self, bootstrapped):
        ctx = CallContext(ORACLE, block_height=10)
        assert register_deed(bootstrapped, ctx, expiry=10).error == RegistryErrorCode.INVALID_EXPIRY
        assert register_deed(bootstrapped, ctx, expiry=5).error == RegistryErrorCode.INVALID_EXPIRY
        assert register_deed(bootstrapped, ctx, expiry=11).ok


class TestRegistrationCheckOrder:
    """The first failing check wins, in a fixed order."""

    def test_capacity_checked_first(self, ledger, oracle_ctx):
        state = RegistryState(config=RegistryConfig(
            max_records=1,
            authority_contract=AUTHORITY,
            oracle_principal=ORACLE,
        ))
        registry = RecordRegistry(transfer=ledger, state=state)
        assert register_deed(registry, oracle_ctx).ok

        result = register_deed(registry, CallContext(OUTSIDER), property_id=0, doc_hash="short")
        assert result.error == RegistryErrorCode.MAX_RECORDS_EXCEEDED
        assert registry.get_record_count().value == 1

    def test_field_errors_before_oracle_check(self, bootstrapped):
        result = register_deed(bootstrapped, CallContext(OUTSIDER), doc_hash="short")
        assert result.error == RegistryErrorCode.INVALID_HASH

    def test_property_id_before_hash(self, bootstrapped, oracle_ctx):
        result = register_deed(bootstrapped, oracle_ctx, property_id=0, doc_hash="short")
        assert result.error == RegistryErrorCode.INVALID_PROPERTY_ID

    def test_jurisdiction_before_metadata(self, bootstrapped, oracle_ctx):
        result = register_deed(bootstrapped, oracle_ctx, jurisdiction="US", metadata="m" * 300)
        assert result.error == RegistryErrorCode.INVALID_JURISDICTION

    def test_expiry_before_currency(self, bootstrapped, oracle_ctx):
        result = register_deed(bootstrapped, oracle_ctx, expiry=0, currency="GBP")
        assert result.error == RegistryErrorCode.INVALID_EXPIRY

    def test_currency_before_location(self, bootstrapped, oracle_ctx):
        result = register_deed(bootstrapped, oracle_ctx, currency="GBP", location="l" * 101)
        assert result.error == RegistryErrorCode.INVALID_CURRENCY

    def test_oracle_check_before_existence(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx)
        result = register_deed(bootstrapped, CallContext(OUTSIDER))
        assert result.error == RegistryErrorCode.ORACLE_NOT_VERIFIED


class TestRegistrationFeeTransfer:
    """A failed fee transfer leaves no trace."""

    def test_insufficient_balance_fails_atomically(self):
        ledger = FeeLedger(opening_balance=100)
        registry = RecordRegistry(transfer=ledger)
        registry.set_authority_contract(CallContext(DEPLOYER), AUTHORITY)
        registry.set_oracle_principal(CallContext(AUTHORITY), ORACLE)

        result = register_deed(registry, CallContext(ORACLE))

        assert result.error == RegistryErrorCode.TRANSFER_FAILED
        assert registry.get_record_count().value == 0
        assert registry.check_record_existence(DOC_HASH).value is False
        assert registry.get_legal_record(1, "deed").error == RegistryErrorCode.RECORD_NOT_FOUND
        assert ledger.transfers == []
        assert ledger.balance_of(ORACLE) == 100

    def test_succeeds_after_credit(self):
        ledger = FeeLedger(opening_balance=100)
        registry = RecordRegistry(transfer=ledger)
        registry.set_authority_contract(CallContext(DEPLOYER), AUTHORITY)
        registry.set_oracle_principal(CallContext(AUTHORITY), ORACLE)
        ledger.credit(ORACLE, 1000)

        assert register_deed(registry, CallContext(ORACLE)).ok
        assert ledger.balance_of(ORACLE) == 600
        assert ledger.balance_of(AUTHORITY) == 600

    def test_charges_current_fee(self, bootstrapped, ledger, oracle_ctx):
        bootstrapped.set_registration_fee(CallContext(AUTHORITY), 750)
        register_deed(bootstrapped, oracle_ctx)
        assert ledger.transfers[0].amount == 750


# =============================================================================
# Status Update Tests
# =============================================================================

class TestUpdateRecordStatus:
    """Tests for status changes."""

    def test_updates_status(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx)
        ctx = CallContext(ORACLE, block_height=7)
        result = bootstrapped.update_record_status(ctx, 1, "deed", "disputed")
        assert result.ok is True

        record = bootstrapped.get_legal_record(1, "deed").value
        assert record.status == RecordStatus.DISPUTED
        assert record.hash == DOC_HASH
        assert record.timestamp == 7

    def test_records_previous_status(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx)
        bootstrapped.update_record_status(CallContext(ORACLE, 3), 1, "deed", RecordStatus.DISPUTED)

        update = bootstrapped.get_record_update(1, "deed").value
        assert update.previous_status == RecordStatus.VALID
        assert update.update_hash == DOC_HASH
        assert update.update_timestamp == 3
        assert update.updater == ORACLE

    def test_only_latest_update_kept(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx)
        bootstrapped.update_record_status(CallContext(ORACLE, 1), 1, "deed", "disputed")
        bootstrapped.update_record_status(CallContext(ORACLE, 2), 1, "deed", "expired")

        update = bootstrapped.get_record_update(1, "deed").value
        assert update.previous_status == RecordStatus.DISPUTED
        assert update.update_timestamp == 2

    def test_replaces_hash(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx)
        new_hash = "b" * 64
        bootstrapped.update_record_status(oracle_ctx, 1, "deed", "valid", new_hash)

        assert bootstrapped.get_legal_record(1, "deed").value.hash == new_hash
        assert bootstrapped.get_record_update(1, "deed").value.update_hash == new_hash

    def test_hash_index_keeps_original_hash(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx)
        bootstrapped.update_record_status(oracle_ctx, 1, "deed", "valid", "b" * 64)
        assert bootstrapped.check_record_existence(DOC_HASH).value is True

    def test_any_status_may_follow_any_other(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx)
        for status in ["revoked", "valid", "expired", "disputed", "valid"]:
            assert bootstrapped.update_record_status(oracle_ctx, 1, "deed", status).ok

    def test_unknown_record(self, bootstrapped, oracle_ctx):
        result = bootstrapped.update_record_status(oracle_ctx, 99, "deed", "disputed")
        assert result.error == RegistryErrorCode.RECORD_NOT_FOUND
        assert bootstrapped.get_record_update(99, "deed").error == RegistryErrorCode.RECORD_NOT_FOUND
        assert bootstrapped.state.updates == {}

    def test_not_found_before_invalid_status(self, bootstrapped, oracle_ctx):
        result = bootstrapped.update_record_status(oracle_ctx, 99, "deed", "bogus")
        assert result.error == RegistryErrorCode.RECORD_NOT_FOUND

    def test_invalid_status(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx)
        result = bootstrapped.update_record_status(oracle_ctx, 1, "deed", "archived", "short")
        assert result.error == RegistryErrorCode.INVALID_STATUS

    def test_invalid_hash_before_oracle_check(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx)
        result = bootstrapped.update_record_status(CallContext(OUTSIDER), 1, "deed", "valid", "short")
        assert result.error == RegistryErrorCode.INVALID_HASH

    def test_rejects_non_oracle(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx)
        result = bootstrapped.update_record_status(CallContext(AUTHORITY), 1, "deed", "revoked")
        assert result.error == RegistryErrorCode.ORACLE_NOT_VERIFIED
        assert bootstrapped.get_legal_record(1, "deed").value.status == RecordStatus.VALID
        assert bootstrapped.state.updates == {}


class TestRevokeRecord:

    def test_revokes(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx)
        assert bootstrapped.revoke_record(oracle_ctx, 1, "deed").ok

        record = bootstrapped.get_legal_record(1, "deed").value
        assert record.status == RecordStatus.REVOKED
        assert record.hash == DOC_HASH
        assert bootstrapped.get_record_update(1, "deed").value.previous_status == RecordStatus.VALID

    def test_revoke_unknown(self, bootstrapped, oracle_ctx):
        result = bootstrapped.revoke_record(oracle_ctx, 5, "deed")
        assert result.error == RegistryErrorCode.RECORD_NOT_FOUND

    def test_revoke_requires_oracle(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx)
        result = bootstrapped.revoke_record(CallContext(AUTHORITY), 1, "deed")
        assert result.error == RegistryErrorCode.ORACLE_NOT_VERIFIED

    def test_record_is_never_deleted(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx)
        bootstrapped.revoke_record(oracle_ctx, 1, "deed")
        assert bootstrapped.get_legal_record(1, "deed").ok
        assert bootstrapped.get_record_count().value == 1


# =============================================================================
# Verification Tests
# =============================================================================

class TestVerifyRecord:
    """Verification with expiry and status."""

    def test_verifies_valid_record(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx)
        result = bootstrapped.verify_record(CallContext(OUTSIDER), 1, "deed")
        assert result.ok is True
        assert result.value.valid is True
        assert result.value.details.hash == DOC_HASH

    def test_missing_record(self, bootstrapped):
        result = bootstrapped.verify_record(CallContext(OUTSIDER), 1, "deed")
        assert result.error == RegistryErrorCode.RECORD_NOT_FOUND

    def test_valid_up_to_and_including_expiry(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx, expiry=10)
        for height in (0, 5, 10):
            assert bootstrapped.verify_record(CallContext(OUTSIDER, height), 1, "deed").ok

    def test_expired_after_expiry(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx, expiry=10)
        result = bootstrapped.verify_record(CallContext(OUTSIDER, 11), 1, "deed")
        assert result.error == RegistryErrorCode.RECORD_EXPIRED

    def test_expiry_reported_before_status(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx, expiry=10)
        bootstrapped.revoke_record(oracle_ctx, 1, "deed")
        result = bootstrapped.verify_record(CallContext(OUTSIDER, 11), 1, "deed")
        assert result.error == RegistryErrorCode.RECORD_EXPIRED

    @pytest.mark.parametrize("status", ["expired", "disputed", "revoked"])
    def test_non_valid_status(self, bootstrapped, oracle_ctx, status):
        register_deed(bootstrapped, oracle_ctx)
        bootstrapped.update_record_status(oracle_ctx, 1, "deed", status)
        result = bootstrapped.verify_record(CallContext(OUTSIDER), 1, "deed")
        assert result.error == RegistryErrorCode.INVALID_STATUS

    def test_verification_is_read_only(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx, expiry=10)
        before = bootstrapped.state.to_dict()
        bootstrapped.verify_record(CallContext(OUTSIDER, 20), 1, "deed")
        assert bootstrapped.state.to_dict() == before


# =============================================================================
# Lifecycle Scenario
# =============================================================================

class TestRecordLifecycle:

    def test_register_count_exists_revoke_verify(self, bootstrapped, oracle_ctx):
        assert register_deed(bootstrapped, oracle_ctx).ok
        assert bootstrapped.get_record_count().value == 1
        assert bootstrapped.check_record_existence(DOC_HASH).value is True

        assert bootstrapped.revoke_record(oracle_ctx, 1, "deed").ok

        result = bootstrapped.verify_record(oracle_ctx, 1, "deed")
        assert result.error == RegistryErrorCode.INVALID_STATUS

    def test_failed_calls_leave_state_unchanged(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx)
        before = bootstrapped.state.to_dict()

        register_deed(bootstrapped, oracle_ctx)  # duplicate
        register_deed(bootstrapped, CallContext(OUTSIDER), property_id=2)
        bootstrapped.update_record_status(CallContext(OUTSIDER), 1, "deed", "revoked")
        bootstrapped.set_max_records(CallContext(OUTSIDER), 1)
        bootstrapped.set_authority_contract(CallContext(DEPLOYER), OUTSIDER)

        assert bootstrapped.state.to_dict() == before


# =============================================================================
# Reads & Result Tests
# =============================================================================

class TestReads:

    def test_count_starts_at_zero(self, registry):
        assert registry.get_record_count() == Result.success(0)

    def test_unknown_hash(self, registry):
        assert registry.check_record_existence(DOC_HASH).value is False
        assert registry.get_record_by_hash(DOC_HASH).error == RegistryErrorCode.RECORD_NOT_FOUND

    def test_config_is_a_copy(self, bootstrapped):
        config = bootstrapped.get_config().value
        config.registration_fee = 1
        assert bootstrapped.config.registration_fee == 500

    def test_default_config(self, registry):
        config = registry.get_config().value
        assert config.next_record_id == 0
        assert config.max_records == 10000
        assert config.registration_fee == 500
        assert config.governance_threshold == 51
        assert config.authority_contract is None
        assert config.oracle_principal is None

    def test_statistics(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx)
        register_deed(bootstrapped, oracle_ctx, property_id=2, doc_hash="b" * 64)
        bootstrapped.revoke_record(oracle_ctx, 2, "deed")

        stats = bootstrapped.get_statistics()
        assert stats["total_records"] == 2
        assert stats["by_status"] == {"valid": 1, "revoked": 1}
        assert stats["authority_set"] is True
        assert stats["oracle_set"] is True

    def test_unwrap_success(self):
        assert Result.success(3).unwrap() == 3

    def test_unwrap_failure_raises(self):
        with pytest.raises(RegistryError) as exc_info:
            Result.failure(RegistryErrorCode.RECORD_NOT_FOUND).unwrap()
        assert exc_info.value.code == RegistryErrorCode.RECORD_NOT_FOUND
        assert exc_info.value.status_code == 404
        assert exc_info.value.error_code == "record_not_found"

    def test_default_status_is_plain_422(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert status_for_code(RegistryErrorCode.INVALID_HASH) == 422
            assert RegistryError(RegistryErrorCode.INVALID_CURRENCY).status_code == 422

    def test_state_restores_from_dict(self, bootstrapped, oracle_ctx):
        register_deed(bootstrapped, oracle_ctx, expiry=50)
        bootstrapped.update_record_status(oracle_ctx, 1, "deed", "disputed")

        restored = RegistryState.from_dict(bootstrapped.state.to_dict())
        assert restored == bootstrapped.state
