"""
Registry Database Models
SQLAlchemy ORM models for the persisted registry state.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from legal_registry.core.database import Base


# =============================================================================
# Registry Configuration (single row)
# =============================================================================

class RegistryConfigRow(Base):
    """Registry-wide counters and governance bindings."""
    __tablename__ = "registry_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)

    next_record_id: Mapped[int] = mapped_column(Integer, default=0)
    max_records: Mapped[int] = mapped_column(Integer)
    registration_fee: Mapped[int] = mapped_column(Integer)
    authority_contract: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    oracle_principal: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    governance_threshold: Mapped[int] = mapped_column(Integer)

    # Chain clock height when the snapshot was taken
    block_height: Mapped[int] = mapped_column(Integer, default=0)

    saved_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# =============================================================================
# Legal Records
# =============================================================================

class LegalRecordRow(Base):
    """A legal record, keyed by property id and document type."""
    __tablename__ = "legal_records"

    property_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    doc_type: Mapped[str] = mapped_column(String(32), primary_key=True)

    hash: Mapped[str] = mapped_column(String(64), index=True)
    timestamp: Mapped[int] = mapped_column(Integer)  # block height
    issuer: Mapped[str] = mapped_column(String(128))
    status: Mapped[str] = mapped_column(String(16), index=True)  # valid, expired, disputed, revoked
    jurisdiction: Mapped[str] = mapped_column(String(3))
    metadata_text: Mapped[str] = mapped_column("metadata", String(256), default="")
    expiry: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    owner: Mapped[str] = mapped_column(String(128))
    currency: Mapped[str] = mapped_column(String(3))
    location: Mapped[str] = mapped_column(String(100), default="")


class RecordUpdateRow(Base):
    """Most recent status change of a record."""
    __tablename__ = "record_updates"

    property_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    doc_type: Mapped[str] = mapped_column(String(32), primary_key=True)

    update_hash: Mapped[str] = mapped_column(String(64))
    update_timestamp: Mapped[int] = mapped_column(Integer)
    updater: Mapped[str] = mapped_column(String(128))
    previous_status: Mapped[str] = mapped_column(String(16))


class RecordHashRow(Base):
    """Hash index entry: every hash ever registered."""
    __tablename__ = "record_hashes"

    hash: Mapped[str] = mapped_column(String(64), primary_key=True)
    property_id: Mapped[int] = mapped_column(Integer)
    doc_type: Mapped[str] = mapped_column(String(32))


# =============================================================================
# Fee Ledger
# =============================================================================

class LedgerBalanceRow(Base):
    """Balance of a principal on a metered fee ledger."""
    __tablename__ = "ledger_balances"

    principal: Mapped[str] = mapped_column(String(128), primary_key=True)
    balance: Mapped[int] = mapped_column(Integer)


class FeeTransferRow(Base):
    """A completed fee transfer, in ledger order."""
    __tablename__ = "fee_transfers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)  # position in the log
    amount: Mapped[int] = mapped_column(Integer)
    sender: Mapped[str] = mapped_column(String(128))
    recipient: Mapped[str] = mapped_column(String(128))
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
