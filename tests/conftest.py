import pytest
import os
import time

# Set env before importing app components
os.environ["DJANGO_SETTINGS_MODULE"] = "pto_tracker.settings"
os.environ["SLACK_BOT_TOKEN"] = "xoxb-test"
os.environ["SLACK_SIGNING_SECRET"] = ""
os.environ["PTO_REQUEST_CHANNEL"] = "CREQUEST"
os.environ["PTO_LOG_CHANNEL"] = "CLOG"
os.environ["PTO_END_ANNOUNCE_CHANNEL"] = "CANNOUNCE"
os.environ["PTO_HISTORY_LIMIT"] = "100"

import django

django.setup()

from apscheduler.schedulers.background import BackgroundScheduler
from slack_sdk.errors import SlackApiError

DAY = 24 * 60 * 60

ALICE = {
    'id': 'UALICE0001', 'name': 'alice', 'real_name': 'Alice Anders',
    'profile': {'display_name': 'Alice', 'real_name': 'Alice Anders'},
}
BOB = {
    'id': 'UBOB000001', 'name': 'bobby', 'real_name': 'Bob Brown',
    'profile': {'display_name': 'Bob', 'real_name': 'Bob Brown'},
}
CAROL = {
    'id': 'UCAROL0001', 'name': 'carol', 'real_name': 'Carol Chen',
    'profile': {'display_name': '', 'real_name': 'Carol Chen'},
}
DAN = {
    'id': 'UDAN000001', 'name': 'dan', 'real_name': 'Dan Diaz',
    'profile': {'display_name': 'Dan', 'real_name': 'Dan Diaz'},
}
ERIN = {
    'id': 'UERIN00001', 'name': 'erin', 'real_name': 'Erin Evans',
    'profile': {'display_name': 'Erin', 'real_name': 'Erin Evans'},
}
FRANK = {
    'id': 'UFRANK0001', 'name': 'frank', 'real_name': 'Frank Fox',
    'profile': {'display_name': 'Frank', 'real_name': 'Frank Fox'},
}
MEMBERS = [ALICE, BOB, CAROL, DAN, ERIN, FRANK]


def make_message(text, user, age_seconds=0, now=None, bot=False):
    """A Slack history message posted `age_seconds` ago"""
    now = now if now is not None else time.time()
    message = {'type': 'message', 'text': text, 'ts': f"{now - age_seconds:.6f}", 'channel': 'CREQUEST'}
    if bot:
        message['bot_id'] = 'BPTOBOT'
    else:
        message['user'] = user
    return message


class FakeSlackClient:
    """Records Web API calls and serves canned history and users"""

    def __init__(self, members=None, history=None):
        self.members = list(members if members is not None else MEMBERS)
        self.history = {}
        for message in history or []:
            self.history.setdefault(message.get('channel', 'CREQUEST'), []).append(message)
        self.posted = []
        self.history_calls = []
        self.deleted = []
        self.joined = []
        self.purposes = []
        self.fail_dm = False
        self.fail_history = False
        self.fail_users_list = False
        self.fail_users_info = False
        self.auth_error = False
        self._ts = 1000

    def add_history(self, channel, message):
        self.history.setdefault(channel, []).append(message)

    def conversations_history(self, channel, limit=100, cursor=None):
        self.history_calls.append(channel)
        if self.fail_history:
            raise SlackApiError('ratelimited', {'ok': False, 'error': 'ratelimited'})
        messages = sorted(self.history.get(channel, []), key=lambda m: float(m['ts']), reverse=True)
        return {'ok': True, 'messages': [dict(m) for m in messages[:limit]], 'has_more': False}

    def users_list(self, limit=200, cursor=None):
        if self.fail_users_list:
            raise SlackApiError('ratelimited', {'ok': False, 'error': 'ratelimited'})
        return {'ok': True, 'members': self.members, 'response_metadata': {'next_cursor': ''}}

    def users_info(self, user):
        if self.fail_users_info:
            raise SlackApiError('ratelimited', {'ok': False, 'error': 'ratelimited'})
        for member in self.members:
            if member['id'] == user:
                return {'ok': True, 'user': member}
        raise SlackApiError('user_not_found', {'ok': False, 'error': 'user_not_found'})

    def chat_postMessage(self, channel, text=None, thread_ts=None, attachments=None, **kwargs):
        if self.fail_dm and channel.startswith('U'):
            raise SlackApiError('cannot_dm_bot', {'ok': False, 'error': 'cannot_dm_bot'})
        self._ts += 1
        post = {'channel': channel, 'text': text, 'thread_ts': thread_ts,
                'attachments': attachments, 'ts': f"{self._ts}.000000"}
        self.posted.append(post)
        return {'ok': True, 'channel': channel, 'ts': post['ts']}

    def chat_delete(self, channel, ts):
        self.deleted.append((channel, ts))
        return {'ok': True}

    def conversations_join(self, channel):
        self.joined.append(channel)
        return {'ok': True}

    def conversations_setPurpose(self, channel, purpose):
        self.purposes.append((channel, purpose))
        return {'ok': True}

    def auth_test(self):
        if self.auth_error:
            raise SlackApiError('invalid_auth', {'ok': False, 'error': 'invalid_auth'})
        return {'ok': True, 'user': 'ptobot', 'team': 'Test Team'}

    def posts_to(self, channel):
        return [p for p in self.posted if p['channel'] == channel]


def run_job(job):
    """Run a scheduled job now, in the calling thread"""
    return job.func(*job.args, **job.kwargs)


@pytest.fixture
def fake_slack(monkeypatch):
    from pto import slack_utils
    client = FakeSlackClient()
    monkeypatch.setattr(slack_utils, 'slack_client', client)
    return client


@pytest.fixture
def pto_scheduler(monkeypatch):
    """A paused scheduler: jobs are stored but only run through run_job()"""
    from pto import notification_utils, scheduler
    background = BackgroundScheduler(timezone='UTC')
    background.start(paused=True)
    fresh = scheduler.PTOEndScheduler(background)
    monkeypatch.setattr(scheduler, 'background_scheduler', background)
    monkeypatch.setattr(scheduler, 'pto_end_scheduler', fresh)
    monkeypatch.setattr(notification_utils, 'pto_end_scheduler', fresh)
    yield fresh
    if background.running:
        background.shutdown(wait=False)


@pytest.fixture
def sync_background(monkeypatch):
    """Run background tasks inline"""
    from pto import command_handlers, views
    calls = []

    def run_now(target, *args):
        calls.append((target, args))
        target(*args)

    monkeypatch.setattr(views, 'run_in_background', run_now)
    monkeypatch.setattr(command_handlers, 'run_in_background', run_now)
    return calls
