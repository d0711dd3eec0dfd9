"""Class session reference data, owned by scheduling."""
from attendance_engine import db
from attendance_engine.models.base import BaseModel
from attendance_engine.utils.helpers import isoformat_utc


class ClassSession(BaseModel):
    """Class model with optional location for GPS verification."""

    __tablename__ = 'class_sessions'

    class_id = db.Column(db.String(128), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    instructor_id = db.Column(db.String(128), nullable=False, index=True)
    course_code = db.Column(db.String(50), nullable=True, index=True)
    start_time = db.Column(db.DateTime, nullable=False)

    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)

    @property
    def location(self):
        if self.latitude is None or self.longitude is None:
            return None
        return {'latitude': self.latitude, 'longitude': self.longitude}

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'class_id': self.class_id,
            'name': self.name,
            'instructor_id': self.instructor_id,
            'course_code': self.course_code,
            'start_time': isoformat_utc(self.start_time),
            'location': self.location
        }

    def __repr__(self):
        return f'<ClassSession {self.class_id}>'
