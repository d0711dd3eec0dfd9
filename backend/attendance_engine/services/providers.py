"""Per-request construction of services from the application config."""
import os

from flask import current_app

from attendance_engine import db
from attendance_engine.services.attendance_store import AttendanceStore
from attendance_engine.services.class_service import ClassSessionLookup
from attendance_engine.services.notification_service import NotificationPublisher
from attendance_engine.services.report_scheduler import ReportScheduler, ReportStorage
from attendance_engine.services.report_service import ReportService
from attendance_engine.services.session_service import AttendancePolicy, AttendanceSessionService

NOTIFIER_EXTENSION = 'attendance_notifier'


def init_notifier(app) -> NotificationPublisher:
    notifier = NotificationPublisher.from_config(app.config)
    app.extensions[NOTIFIER_EXTENSION] = notifier
    return notifier


def get_notifier() -> NotificationPublisher:
    return current_app.extensions[NOTIFIER_EXTENSION]


def get_policy() -> AttendancePolicy:
    return AttendancePolicy.from_config(current_app.config)


def get_store() -> AttendanceStore:
    return AttendanceStore(db.session)


def get_class_lookup() -> ClassSessionLookup:
    return ClassSessionLookup(db.session)


def get_session_service() -> AttendanceSessionService:
    return AttendanceSessionService(
        policy=get_policy(),
        store=get_store(),
        classes=get_class_lookup(),
        notifier=get_notifier()
    )


def get_report_service() -> ReportService:
    return ReportService(get_store(), get_class_lookup())


def get_report_scheduler() -> ReportScheduler:
    storage = None
    if current_app.config.get('ENABLE_REPORT_STORAGE'):
        folder = current_app.config['REPORTS_FOLDER']
        if not os.path.isabs(folder):
            folder = os.path.join(current_app.root_path, '..', folder)
        storage = ReportStorage(os.path.normpath(folder), current_app.config['ENVIRONMENT'])

    return ReportScheduler(get_report_service(), get_notifier(), storage)
