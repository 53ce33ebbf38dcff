from django.http import JsonResponse
import logging

from .notification_utils import post_current_pto_status
from .slack_utils import run_in_background

logger = logging.getLogger(__name__)


def handle_pto_status(request):
    """Handle /pto-status: ack right away, post the summary to the channel in the background"""
    user_id = request.POST.get('user_id')
    channel_id = request.POST.get('channel_id')
    logger.info(f"PTO_STATUS_COMMAND: {user_id} in {channel_id}")

    run_in_background(post_current_pto_status, channel_id)
    return JsonResponse({'response_type': 'ephemeral', 'text': '👥 Fetching current PTO status...'})
