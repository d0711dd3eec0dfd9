"""Read-only lookup of class session reference data."""
from typing import Dict, Iterable, Optional

from sqlalchemy.exc import OperationalError

from attendance_engine.models.class_session import ClassSession
from attendance_engine.utils.exceptions import Unavailable


class ClassSessionLookup:
    """Lookup of classes by id; scheduling owns the writes."""

    def __init__(self, session):
        self.session = session

    def get(self, class_id: str) -> Optional[ClassSession]:
        try:
            return self.session.get(ClassSession, class_id)
        except OperationalError as e:
            self.session.rollback()
            raise Unavailable("Class directory unreachable") from e

    def get_many(self, class_ids: Iterable[str]) -> Dict[str, ClassSession]:
        ids = sorted(set(class_ids))
        if not ids:
            return {}
        try:
            classes = self.session.query(ClassSession).filter(ClassSession.class_id.in_(ids)).all()
        except OperationalError as e:
            self.session.rollback()
            raise Unavailable("Class directory unreachable") from e
        return {cls.class_id: cls for cls in classes}
