"""
ResponsibilityChange model — audit trail of the client's responsible consultant.

Cascade writes (start, escalation) and manual reassignments are distinct
event sources rather than indistinguishable writes to one field.
"""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey
from sqlalchemy.sql import func

from leadcascade.database import Base

SOURCE_CASCADE_START = 'cascade_start'
SOURCE_CASCADE_ESCALATION = 'cascade_escalation'
SOURCE_MANUAL = 'manual'


class ResponsibilityChange(Base):
    __tablename__ = 'responsibility_changes'

    id = Column(Integer, primary_key=True, autoincrement=True)
    cliente_id = Column(Integer, nullable=False, index=True)
    consultant_id = Column(Integer, nullable=False)
    source = Column(Text, nullable=False)
    entry_id = Column(Integer, ForeignKey('cascade_entries.id'), nullable=True)
    actor_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self):
        return {
            'id': self.id,
            'cliente_id': self.cliente_id,
            'consultant_id': self.consultant_id,
            'source': self.source,
            'entry_id': self.entry_id,
            'actor_id': self.actor_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
