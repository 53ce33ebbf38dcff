from django.conf import settings
from django.core.management import call_command
from django.core.management.base import BaseCommand, CommandError
from slack_sdk.errors import SlackApiError

from pto.scheduler import stop_scheduler
from pto.startup import boot


class Command(BaseCommand):
    help = (
        "Log in to Slack, run startup tasks and serve Slack events with the development server. "
        "In production serve pto_tracker.wsgi:application with a WSGI server instead."
    )

    def add_arguments(self, parser):
        parser.add_argument('--port', type=int, default=settings.PORT)
        parser.add_argument('--skip-startup', action='store_true',
                            help="Don't lock the request channel or restore alerts")

    def handle(self, *args, **options):
        try:
            restored = boot(run_tasks=not options['skip_startup'])
        except SlackApiError as e:
            raise CommandError(f"❌ Failed to log in. Check SLACK_BOT_TOKEN. ({e})")

        try:
            if not options['skip_startup']:
                self.stdout.write(f"Restored {len(restored)} PTO end alert(s)")

            self.stdout.write(f"🌐 Web server running on port {options['port']}")
            self.stdout.write(self.style.WARNING(
                "runserver is for development; use `gunicorn pto_tracker.wsgi:application` in production."
            ))
            call_command('runserver', f"0.0.0.0:{options['port']}", use_reloader=False)
        finally:
            stop_scheduler()
