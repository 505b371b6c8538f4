"""Tests for app.tasks.schedule and the Celery tasks it fires."""
import pytest
from unittest.mock import MagicMock, patch
from celery import Celery

from app.models.event import Event
from app.tasks.schedule import ScoutScheduler, Trigger, default_triggers


@pytest.fixture
def celery_scheduler():
    from app.tasks.celery_app import scheduler
    return scheduler


class TestDefaultTriggers:

    def test_full_scrape_every_six_hours(self):
        triggers = {t.name: t for t in default_triggers()}
        scrape = triggers['scout-full-scrape']
        assert scrape.task == 'app.tasks.scout_tasks.run_full_scrape'
        assert scrape.schedule.hour == {0, 6, 12, 18}
        assert scrape.schedule.minute == {0}

    def test_sweep_hourly(self):
        triggers = {t.name: t for t in default_triggers()}
        sweep = triggers['retention-sweep']
        assert sweep.task == 'app.tasks.maintenance_tasks.sweep_expired_records'
        assert sweep.schedule.minute == {0}
        assert sweep.schedule.hour == set(range(24))

    def test_custom_scrape_interval(self):
        triggers = {t.name: t for t in default_triggers(full_scrape_hours=12)}
        assert triggers['scout-full-scrape'].schedule.hour == {0, 12}


class TestStartStop:

    def test_start_installs_and_stop_removes(self):
        app = Celery('scheduler-test')
        app.conf.beat_schedule = {'other': {'task': 'x.y', 'schedule': 60}}
        scheduler = ScoutScheduler(app, default_triggers())

        scheduler.start()
        assert scheduler.running
        assert set(app.conf.beat_schedule) == {'other', 'scout-full-scrape', 'retention-sweep'}
        assert app.conf.beat_schedule['retention-sweep']['task'] == 'app.tasks.maintenance_tasks.sweep_expired_records'

        scheduler.stop()
        assert not scheduler.running
        assert set(app.conf.beat_schedule) == {'other'}

    def test_celery_app_is_started_on_import(self, celery_scheduler):
        assert celery_scheduler.running
        assert 'scout-full-scrape' in celery_scheduler.celery_app.conf.beat_schedule


class TestDispatch:

    def test_dispatch_sends_task(self):
        app = MagicMock()
        scheduler = ScoutScheduler(app, [Trigger('nightly', 'pkg.tasks.nightly', 3600, {'depth': 2})])

        scheduler.dispatch('nightly')

        app.send_task.assert_called_once_with('pkg.tasks.nightly', kwargs={'depth': 2})

    def test_unknown_trigger(self):
        scheduler = ScoutScheduler(MagicMock(), default_triggers())
        with pytest.raises(KeyError):
            scheduler.dispatch('nope')
        with pytest.raises(KeyError):
            scheduler.fire('nope')


class TestFireFullScrape:

    def test_launches_scout(self, celery_scheduler):
        supervisor = MagicMock()
        supervisor.launch.return_value.run_id = 'abc123'
        with patch('app.tasks.scout_tasks.get_supervisor', return_value=supervisor):
            result = celery_scheduler.fire('scout-full-scrape')

        assert result.result == {'launched': True, 'run_id': 'abc123'}
        supervisor.launch.assert_called_once_with(url=None)

    def test_spawn_failure_reported(self, celery_scheduler):
        supervisor = MagicMock()
        supervisor.launch.return_value = None
        with patch('app.tasks.scout_tasks.get_supervisor', return_value=supervisor):
            result = celery_scheduler.fire('scout-full-scrape')

        assert result.result == {'launched': False}

    def test_unexpected_error_does_not_escape(self, celery_scheduler):
        supervisor = MagicMock()
        supervisor.launch.side_effect = RuntimeError('fork bomb guard')
        with patch('app.tasks.scout_tasks.get_supervisor', return_value=supervisor):
            result = celery_scheduler.fire('scout-full-scrape')

        assert result.result['launched'] is False
        assert 'fork bomb guard' in result.result['error']


class TestFireRetentionSweep:

    def test_sweeps_expired_events(self, celery_scheduler, db_session):
        db_session.add(Event(id='old', title='Old gig', end_time='2020-01-01T20:00:00Z'))
        db_session.add(Event(id='future', title='Next gig', end_time='2999-01-01T20:00:00Z'))
        db_session.commit()

        with patch('app.tasks.maintenance_tasks.SyncSessionLocal', return_value=db_session):
            result = celery_scheduler.fire('retention-sweep')

        assert result.result['deleted'] == 1
        assert result.result['failed'] == []
        assert [e.id for e in db_session.query(Event).all()] == ['future']

    def test_failure_is_contained(self, celery_scheduler):
        db = MagicMock()
        with patch('app.tasks.maintenance_tasks.SyncSessionLocal', return_value=db), \
             patch('app.tasks.maintenance_tasks.RetentionSweeper.from_settings', side_effect=RuntimeError('db down')):
            result = celery_scheduler.fire('retention-sweep')

        assert result.result == {'deleted': 0, 'error': 'db down'}
        db.close.assert_called_once()
