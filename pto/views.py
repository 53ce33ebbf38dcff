from django.conf import settings
from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET
from slack_sdk.signature import SignatureVerifier
import json
import logging

from .command_handlers import handle_pto_status
from .message_handlers import handle_message_event
from .slack_utils import run_in_background

logger = logging.getLogger(__name__)


@require_GET
def health(request):
    return HttpResponse('PTO Bot is running.', content_type='text/plain')


def is_valid_slack_request(request):
    """Check Slack's request signature; skipped when no signing secret is configured"""
    if not settings.SLACK_SIGNING_SECRET:
        return True
    verifier = SignatureVerifier(settings.SLACK_SIGNING_SECRET)
    return verifier.is_valid_request(request.body, dict(request.headers))


@csrf_exempt
def slack_events(request):
    if request.method != "POST":
        return JsonResponse({'error': 'Invalid request method'}, status=405)

    if not is_valid_slack_request(request):
        logger.warning("Rejected Slack request with invalid signature")
        return JsonResponse({'error': 'Invalid signature'}, status=403)

    content_type = request.headers.get('Content-Type', '')
    try:
        # Handle form-encoded data (slash commands)
        if content_type.startswith('application/x-www-form-urlencoded'):
            command = request.POST.get('command')
            if command == '/pto-status':
                return handle_pto_status(request)
            logger.info(f"Ignoring unknown command: {command}")

        # Handle JSON data (events API)
        elif content_type.startswith('application/json'):
            body = json.loads(request.body.decode('utf-8'))

            if body.get('type') == 'url_verification':
                return JsonResponse({'challenge': body['challenge']})

            if body.get('type') == 'event_callback':
                # Slack redelivers when we are slow; the first delivery is already being handled
                if request.headers.get('X-Slack-Retry-Num'):
                    logger.info(f"Ignoring Slack retry {request.headers.get('X-Slack-Retry-Num')} "
                                f"for event {body.get('event_id')}")
                    return JsonResponse({'status': 'ok'})

                event = body.get('event') or {}
                if event.get('type') == 'message':
                    run_in_background(handle_message_event, event)

        return JsonResponse({'status': 'ok'})

    except (ValueError, KeyError) as e:
        logger.error(f"Error processing request: {e}")
        return JsonResponse({'error': 'Malformed request'}, status=400)
