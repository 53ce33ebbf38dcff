import pytest
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import override_settings
from slack_sdk.errors import SlackApiError

from pto import startup
from pto.management.commands import runbot
from pto.slack_utils import LEDGER_PURPOSE
from pto.startup import boot, check_bot_identity, run_startup_tasks

from conftest import BOB, DAY, make_message


@pytest.fixture(autouse=True)
def fresh_process(monkeypatch):
    monkeypatch.setattr(startup, '_booted', False)


def test_startup_locks_channel_and_restores_alerts(fake_slack, pto_scheduler):
    fake_slack.add_history('CREQUEST', make_message("Bob - 3 days - sick", BOB['id'], age_seconds=DAY))

    restored = run_startup_tasks()

    assert fake_slack.joined == ['CREQUEST']
    assert fake_slack.purposes == [('CREQUEST', LEDGER_PURPOSE)]
    assert [p.claimant_id for p in restored] == [BOB['id']]
    assert pto_scheduler.pending() == {BOB['id']}


def test_restore_can_be_disabled(fake_slack, pto_scheduler):
    fake_slack.add_history('CREQUEST', make_message("Bob - 3 days - sick", BOB['id'], age_seconds=DAY))
    with override_settings(PTO_RESTORE_ON_STARTUP=False):
        assert run_startup_tasks() == []
    assert pto_scheduler.pending() == set()


def test_check_bot_identity(fake_slack):
    assert check_bot_identity()['user'] == 'ptobot'


def test_runbot_login_failure_is_fatal(fake_slack, monkeypatch):
    fake_slack.auth_error = True
    served = []
    monkeypatch.setattr(runbot, 'call_command', lambda *args, **kwargs: served.append(args))

    with pytest.raises(CommandError, match="Failed to log in"):
        call_command('runbot')
    assert served == []


def test_runbot_serves_after_startup(fake_slack, pto_scheduler, monkeypatch):
    served = []
    monkeypatch.setattr(runbot, 'call_command', lambda *args, **kwargs: served.append((args, kwargs)))

    call_command('runbot', port=9000)

    assert fake_slack.joined == ['CREQUEST']
    assert served == [(('runserver', '0.0.0.0:9000'), {'use_reloader': False})]


def test_runbot_stops_scheduler_on_exit(fake_slack, pto_scheduler, monkeypatch):
    def interrupted(*args, **kwargs):
        raise KeyboardInterrupt

    monkeypatch.setattr(runbot, 'call_command', interrupted)
    with pytest.raises(KeyboardInterrupt):
        call_command('runbot', skip_startup=True)
    assert not pto_scheduler.scheduler.running


def test_boot_logs_in_and_restores(fake_slack, pto_scheduler):
    fake_slack.add_history('CREQUEST', make_message("Bob - 3 days - sick", BOB['id'], age_seconds=DAY))
    restored = boot()
    assert [p.claimant_id for p in restored] == [BOB['id']]
    assert pto_scheduler.scheduler.running
    assert pto_scheduler.pending() == {BOB['id']}


def test_boot_fails_on_bad_token(fake_slack, pto_scheduler):
    fake_slack.auth_error = True
    with pytest.raises(SlackApiError):
        boot()
    assert fake_slack.joined == []


def test_boot_runs_once_per_process(fake_slack, pto_scheduler):
    boot()
    assert boot() == []
    assert fake_slack.joined == ['CREQUEST']
