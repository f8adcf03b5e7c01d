"""
CascadeConfig model — ordered consultant queue + per-step SLA hours.

Read-mostly; written rarely by an administrator. At most one row is active.
"""
from sqlalchemy import Column, Integer, Text, Boolean, DateTime, JSON
from sqlalchemy.sql import func

from leadcascade.database import Base


class CascadeConfig(Base):
    __tablename__ = 'cascade_configs'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False, default='default')
    active = Column(Boolean, nullable=False, default=True)
    distribution_method = Column(Text, nullable=False, default='volume')
    queue = Column(JSON, nullable=False, default=list)     # ordered consultant ids
    sla_hours_per_step = Column(Integer, nullable=False, default=24)
    warning_pct = Column(Integer, nullable=False, default=75)
    critical_pct = Column(Integer, nullable=False, default=90)
    freeze_when_inactive = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'active': bool(self.active),
            'distribution_method': self.distribution_method,
            'queue': list(self.queue or []),
            'sla_hours_per_step': self.sla_hours_per_step,
            'warning_pct': self.warning_pct,
            'critical_pct': self.critical_pct,
            'freeze_when_inactive': bool(self.freeze_when_inactive),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
