"""
CascadeEntry model — one row per (client, consultant, sequence) assignment.

The ledger is append-only: rows are never deleted, and only the status and
finalization columns move, always forward (Active → Expired,
Active → FinalizedSuccess).
"""
from datetime import timezone

from sqlalchemy import (
    Column, Integer, Text, DateTime, JSON, ForeignKey, Index, UniqueConstraint, text,
)
from sqlalchemy.sql import func

from leadcascade.database import Base


class CascadeEntry(Base):
    __tablename__ = 'cascade_entries'

    id = Column(Integer, primary_key=True, autoincrement=True)
    lead_id = Column(Integer, nullable=True)
    cliente_id = Column(Integer, nullable=False)
    consultant_id = Column(Integer, nullable=False)
    sequence = Column(Integer, nullable=False)
    sla_hours = Column(Integer, nullable=False)          # captured at creation
    started_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(Text, nullable=False, default='Active')
    finalized_at = Column(DateTime(timezone=True), nullable=True)
    finalized_by_consultant_id = Column(Integer, nullable=True)
    finalization_reason = Column(Text, nullable=True)
    config_id = Column(Integer, ForeignKey('cascade_configs.id'), nullable=True)
    queue_snapshot = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint('cliente_id', 'sequence', name='uq_cascade_entry_cliente_sequence'),
        Index(
            'uq_cascade_entry_one_success', 'cliente_id',
            unique=True,
            sqlite_where=text("status = 'FinalizedSuccess'"),
            postgresql_where=text("status = 'FinalizedSuccess'"),
        ),
        Index(
            'uq_cascade_entry_active_pair', 'cliente_id', 'consultant_id',
            unique=True,
            sqlite_where=text("status = 'Active'"),
            postgresql_where=text("status = 'Active'"),
        ),
        Index('ix_cascade_entries_status_expires', 'status', 'expires_at'),
        Index('ix_cascade_entries_consultant_id', 'consultant_id'),
        Index('ix_cascade_entries_started_at', 'started_at'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'cliente_id': self.cliente_id,
            'consultant_id': self.consultant_id,
            'sequence': self.sequence,
            'sla_hours': self.sla_hours,
            'started_at': _iso(self.started_at),
            'expires_at': _iso(self.expires_at),
            'status': self.status,
            'finalized_at': _iso(self.finalized_at),
            'finalized_by_consultant_id': self.finalized_by_consultant_id,
            'finalization_reason': self.finalization_reason,
            'config_id': self.config_id,
        }


def _iso(value):
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
