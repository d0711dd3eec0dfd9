"""Models package with all models."""
from .base import BaseModel
from .attendance import AttendanceRecord, AttendanceStatus, LifecycleStatus, uniqueness_key
from .class_session import ClassSession

__all__ = [
    'BaseModel', 'AttendanceRecord', 'AttendanceStatus', 'LifecycleStatus',
    'ClassSession', 'uniqueness_key'
]
