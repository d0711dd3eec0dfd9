"""Test scheduled daily report generation and storage."""
import json
from datetime import date, datetime

from attendance_engine import db
from attendance_engine.services.class_service import ClassSessionLookup
from attendance_engine.services.report_scheduler import ReportScheduler, ReportStorage
from attendance_engine.services.report_service import ReportService


def test_run_daily_stores_and_announces(app, store, notifier, session_service,
                                        class_session, student, tmp_path):
    session_service.check_in(student, 'c1', timestamp=datetime(2024, 3, 1, 9, 0))

    storage = ReportStorage(str(tmp_path), 'test')
    scheduler = ReportScheduler(ReportService(store, ClassSessionLookup(db.session)),
                                notifier, storage)

    result = scheduler.run_daily(date(2024, 3, 1), datetime(2024, 3, 2, 0, 5))

    expected = tmp_path / 'test' / 'daily' / '2024-03-01.json'
    assert result['location'] == str(expected)
    assert result['summary']['total_attendees'] == 1

    saved = json.loads(expected.read_text())
    assert saved['date'] == '2024-03-01'
    assert saved['generated_at'] == '2024-03-02T00:05:00Z'
    assert saved['class_summary']['c1']['present_count'] == 1

    assert notifier.events[-1]['type'] == 'scheduled_report'
    assert notifier.events[-1]['date'] == '2024-03-01'


def test_run_daily_without_storage(app, store, notifier):
    scheduler = ReportScheduler(ReportService(store, ClassSessionLookup(db.session)), notifier)

    result = scheduler.run_daily(date(2024, 3, 1), datetime(2024, 3, 2))
    assert result['location'] is None
    assert result['summary']['total_classes'] == 0


def test_storage_key():
    storage = ReportStorage('/reports', 'production')
    assert storage.key_for('daily', date(2024, 3, 1)) == 'production/daily/2024-03-01.json'


def test_daily_cli_command(app, class_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=['reports', 'daily', '--date', '2024-03-01'])

    assert result.exit_code == 0
    assert 'Daily report 2024-03-01: 0 classes, 0 attendees' in result.output
