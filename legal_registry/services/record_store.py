"""
Record Store - persists registry snapshots to the database.

The registry itself works purely in memory. The host saves a full
snapshot and restores it on startup. A snapshot holds:
- the registry state (config, records, updates, hash index)
- the chain clock height, so logical time survives a restart
- the fee ledger balances and transfer log

A save replaces every stored row in one transaction.
"""

import logging
from dataclasses import dataclass, field
from datetime import timezone
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from legal_registry.models.models import (
    FeeTransferRow,
    LedgerBalanceRow,
    LegalRecordRow,
    RecordHashRow,
    RecordUpdateRow,
    RegistryConfigRow,
)
from legal_registry.services.fee_ledger import FeeTransfer
from legal_registry.services.legal_records import (
    Currency,
    LegalRecord,
    RecordStatus,
    RecordUpdate,
    RegistryConfig,
    RegistryState,
)

logger = logging.getLogger(__name__)

CONFIG_ROW_ID = 1

_SNAPSHOT_TABLES = (
    FeeTransferRow,
    LedgerBalanceRow,
    RecordHashRow,
    RecordUpdateRow,
    LegalRecordRow,
    RegistryConfigRow,
)


@dataclass
class Snapshot:
    """Everything the host persists."""
    state: RegistryState
    block_height: int = 0
    balances: dict[str, int] = field(default_factory=dict)
    transfers: list[FeeTransfer] = field(default_factory=list)


class RecordStore:
    """Snapshot persistence for the registry and its host services."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def save(self, snapshot: Snapshot) -> None:
        """Write a full snapshot, replacing whatever was stored before."""
        state = snapshot.state
        async with self._session_factory() as session:
            async with session.begin():
                for model in _SNAPSHOT_TABLES:
                    await session.execute(delete(model))

                config = state.config
                session.add(RegistryConfigRow(
                    id=CONFIG_ROW_ID,
                    next_record_id=config.next_record_id,
                    max_records=config.max_records,
                    registration_fee=config.registration_fee,
                    authority_contract=config.authority_contract,
                    oracle_principal=config.oracle_principal,
                    governance_threshold=config.governance_threshold,
                    block_height=snapshot.block_height,
                ))

                for (property_id, doc_type), record in state.records.items():
                    session.add(LegalRecordRow(
                        property_id=property_id,
                        doc_type=doc_type,
                        hash=record.hash,
                        timestamp=record.timestamp,
                        issuer=record.issuer,
                        status=record.status.value,
                        jurisdiction=record.jurisdiction,
                        metadata_text=record.metadata,
                        expiry=record.expiry,
                        owner=record.owner,
                        currency=record.currency.value,
                        location=record.location,
                    ))

                for (property_id, doc_type), update in state.updates.items():
                    session.add(RecordUpdateRow(
                        property_id=property_id,
                        doc_type=doc_type,
                        update_hash=update.update_hash,
                        update_timestamp=update.update_timestamp,
                        updater=update.updater,
                        previous_status=update.previous_status.value,
                    ))

                for doc_hash, (property_id, doc_type) in state.hash_index.items():
                    session.add(RecordHashRow(
                        hash=doc_hash,
                        property_id=property_id,
                        doc_type=doc_type,
                    ))

                for principal, balance in snapshot.balances.items():
                    session.add(LedgerBalanceRow(principal=principal, balance=balance))

                for position, transfer in enumerate(snapshot.transfers, start=1):
                    session.add(FeeTransferRow(
                        id=position,
                        amount=transfer.amount,
                        sender=transfer.sender,
                        recipient=transfer.recipient,
                        recorded_at=transfer.recorded_at,
                    ))

        logger.info(
            "Saved registry snapshot: %d records, %d updates, %d transfers at height %d",
            len(state.records),
            len(state.updates),
            len(snapshot.transfers),
            snapshot.block_height,
        )

    async def load(self) -> Optional[Snapshot]:
        """Load the stored snapshot, or None if nothing was ever saved."""
        async with self._session_factory() as session:
            config_row = await session.get(RegistryConfigRow, CONFIG_ROW_ID)
            if config_row is None:
                return None

            state = RegistryState(config=RegistryConfig(
                next_record_id=config_row.next_record_id,
                max_records=config_row.max_records,
                registration_fee=config_row.registration_fee,
                authority_contract=config_row.authority_contract,
                oracle_principal=config_row.oracle_principal,
                governance_threshold=config_row.governance_threshold,
            ))
            snapshot = Snapshot(state=state, block_height=config_row.block_height)

            for row in (await session.scalars(select(LegalRecordRow))).all():
                state.records[(row.property_id, row.doc_type)] = LegalRecord(
                    hash=row.hash,
                    timestamp=row.timestamp,
                    issuer=row.issuer,
                    status=RecordStatus(row.status),
                    jurisdiction=row.jurisdiction,
                    metadata=row.metadata_text,
                    expiry=row.expiry,
                    owner=row.owner,
                    currency=Currency(row.currency),
                    location=row.location,
                )

            for row in (await session.scalars(select(RecordUpdateRow))).all():
                state.updates[(row.property_id, row.doc_type)] = RecordUpdate(
                    update_hash=row.update_hash,
                    update_timestamp=row.update_timestamp,
                    updater=row.updater,
                    previous_status=RecordStatus(row.previous_status),
                )

            for row in (await session.scalars(select(RecordHashRow))).all():
                state.hash_index[row.hash] = (row.property_id, row.doc_type)

            for row in (await session.scalars(select(LedgerBalanceRow))).all():
                snapshot.balances[row.principal] = row.balance

            for row in (await session.scalars(select(FeeTransferRow).order_by(FeeTransferRow.id))).all():
                recorded_at = row.recorded_at
                if recorded_at.tzinfo is None:
                    # SQLite drops the offset; transfers are always recorded in UTC
                    recorded_at = recorded_at.replace(tzinfo=timezone.utc)
                snapshot.transfers.append(FeeTransfer(
                    amount=row.amount,
                    sender=row.sender,
                    recipient=row.recipient,
                    recorded_at=recorded_at,
                ))

        logger.info(
            "Loaded registry snapshot: %d records at height %d",
            len(state.records),
            snapshot.block_height,
        )
        return snapshot
