"""Scheduled daily report generation.

Runs from the ``flask reports daily`` command on an external timer. A failed
run is logged and not retried; the next tick produces the next day's report.
"""
import json
import logging
import os
from datetime import date, datetime
from typing import Dict, Optional

from attendance_engine.services.notification_service import NotificationPublisher
from attendance_engine.services.report_service import DailyReport, ReportService

logger = logging.getLogger(__name__)


class ReportStorage:
    """Writes report documents under a base folder."""

    def __init__(self, base_folder: str, environment: str):
        self.base_folder = base_folder
        self.environment = environment

    def key_for(self, report_type: str, day: date) -> str:
        return os.path.join(self.environment, report_type, f"{day.isoformat()}.json")

    def save(self, report: DailyReport) -> str:
        key = self.key_for(report.kind, report.day)
        path = os.path.join(self.base_folder, key)
        os.makedirs(os.path.dirname(path), exist_ok=True)

        with open(path, 'w', encoding='utf-8') as handle:
            json.dump(report.to_dict(), handle, indent=2, sort_keys=True)

        return path


class ReportScheduler:
    """Builds the daily report, stores it and announces it."""

    def __init__(self, reports: ReportService, notifier: NotificationPublisher,
                 storage: Optional[ReportStorage] = None):
        self.reports = reports
        self.notifier = notifier
        self.storage = storage

    def run_daily(self, day: date, generated_at: datetime) -> Dict:
        report = self.reports.daily_report(day, generated_at)

        location = None
        if self.storage is not None:
            location = self.storage.save(report)
            logger.info("Report saved: %s", location)

        self.notifier.publish({
            'type': 'scheduled_report',
            'report_type': report.kind,
            'date': day.isoformat(),
            'summary': report.summary
        })

        return {
            'report_type': report.kind,
            'date': day.isoformat(),
            'summary': report.summary,
            'location': location
        }
