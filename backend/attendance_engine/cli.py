"""Flask CLI commands: database setup, scheduled reports and cleanup."""
import click
from flask import Flask, current_app
from flask.cli import AppGroup

from attendance_engine import db
from attendance_engine.utils.helpers import today_in, utcnow
from attendance_engine.utils.validators import Validator

reports_cli = AppGroup('reports', help='Attendance report jobs.')
attendance_cli = AppGroup('attendance', help='Attendance record maintenance.')


@reports_cli.command('daily')
@click.option('--date', 'report_date', default=None, help='Report day (YYYY-MM-DD), defaults to today')
def daily_report_command(report_date):
    """Generate, store and announce the daily attendance report."""
    from attendance_engine.services.providers import get_report_scheduler

    day = Validator.parse_date(report_date) or today_in(current_app.config['ATTENDANCE_TIMEZONE'])

    try:
        result = get_report_scheduler().run_daily(day, utcnow())
    except Exception:
        # No retry: the next scheduled run produces the next report
        current_app.logger.exception("Error generating scheduled report for %s", day)
        raise click.ClickException(f"Daily report for {day} failed")

    summary = result['summary']
    click.echo(f"Daily report {result['date']}: {summary['total_classes']} classes, "
               f"{summary['total_attendees']} attendees")
    if result['location']:
        click.echo(f"Saved to {result['location']}")


@attendance_cli.command('purge-expired')
def purge_expired_command():
    """Delete attendance records past their retention period."""
    from attendance_engine.services.providers import get_store

    deleted = get_store().purge_expired()
    click.echo(f"Deleted {deleted} expired attendance records")


def register_cli(app: Flask) -> None:
    """Register CLI commands."""
    app.cli.add_command(reports_cli)
    app.cli.add_command(attendance_cli)

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables')
    def init_db(drop):
        """Initialize the database."""
        if drop:
            db.drop_all()
            click.echo('Dropped all tables.')

        db.create_all()
        click.echo('Created all tables.')

    @app.cli.command('seed-classes')
    def seed_classes():
        """Seed a couple of class sessions for local testing."""
        from datetime import timedelta

        from attendance_engine.models import ClassSession

        start = utcnow().replace(minute=0, second=0, microsecond=0)
        samples = [
            ClassSession(class_id='cs101-a', name='Intro to Programming', instructor_id='teacher-1',
                         course_code='CS101', start_time=start, latitude=33.3152, longitude=44.3661),
            ClassSession(class_id='ma201-b', name='Linear Algebra', instructor_id='teacher-2',
                         course_code='MA201', start_time=start + timedelta(hours=2)),
        ]

        created = 0
        for sample in samples:
            if db.session.get(ClassSession, sample.class_id) is None:
                sample.save()
                created += 1

        click.echo(f'Seeded {created} class sessions.')
