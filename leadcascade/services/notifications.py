"""
Notifications — Slack webhook integration for cascade events.

Notification failure never blocks the sweep.
"""
import logging
import requests

from leadcascade.config import SLACK_WEBHOOK_URL

logger = logging.getLogger('services.notifications')


def notify_stuck_lead(stuck):
    """Post a stuck-lead alert: queue exhausted, nobody left to escalate to."""
    if not SLACK_WEBHOOK_URL:
        return

    try:
        queue = stuck.get('queue') or []
        blocks = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": f"Lead stuck — client {stuck['cliente_id']}",
                }
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Lead:* {stuck.get('lead_id') or '—'}"},
                    {"type": "mrkdwn", "text": f"*Last consultant:* {stuck.get('consultant_id')}"},
                    {"type": "mrkdwn", "text": f"*Sequence:* {stuck.get('sequence')}"},
                    {"type": "mrkdwn", "text": f"*Queue size:* {len(queue)}"},
                ]
            },
            {
                "type": "context",
                "elements": [{"type": "mrkdwn", "text": "Every consultant in the queue let the SLA expire."}]
            },
        ]

        requests.post(SLACK_WEBHOOK_URL, json={"blocks": blocks}, timeout=10)
        logger.info("Stuck-lead notification sent for client %s", stuck['cliente_id'])

    except Exception:
        logger.error("Failed to send stuck-lead notification for client %s",
                     stuck.get('cliente_id'), exc_info=True)
