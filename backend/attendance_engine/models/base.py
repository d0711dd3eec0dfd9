"""Base model class with common functionality."""
from datetime import datetime
from enum import Enum
from typing import Any, Dict

from attendance_engine import db
from attendance_engine.utils.helpers import isoformat_utc, utcnow


class BaseModel(db.Model):
    """Base model class with common bookkeeping fields."""

    __abstract__ = True

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def save(self) -> 'BaseModel':
        """Save instance to database."""
        db.session.add(self)
        db.session.commit()
        return self

    def to_dict(self, exclude: list = None) -> Dict[str, Any]:
        """Convert instance to dictionary."""
        exclude = exclude or []
        result = {}

        for column in self.__table__.columns:
            key = column.name
            if key not in exclude:
                value = getattr(self, key)
                if isinstance(value, datetime):
                    value = isoformat_utc(value)
                elif isinstance(value, Enum):
                    value = value.value
                result[key] = value

        return result

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} {self.primary_key}>'

    @property
    def primary_key(self):
        return tuple(getattr(self, col.name) for col in self.__table__.primary_key.columns)
