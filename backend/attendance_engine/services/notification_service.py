"""Fire-and-forget attendance notifications over Redis pub/sub."""
import json
import logging
from typing import Any, Dict, Optional

import redis

from attendance_engine.utils.helpers import isoformat_utc, utcnow

logger = logging.getLogger(__name__)


class NotificationPublisher:
    """Publishes attendance events to the message bus.

    Publishing never raises: a failed delivery is logged and reported as
    ``False`` so the caller's state change stands.
    """

    def __init__(self, client: Optional[redis.Redis] = None,
                 channel: str = 'attendance-events', enabled: bool = False):
        self.client = client
        self.channel = channel
        self.enabled = enabled and client is not None

    @classmethod
    def from_config(cls, config) -> 'NotificationPublisher':
        url = config.get('REDIS_URL')
        enabled = bool(config.get('ENABLE_NOTIFICATIONS'))
        client = redis.Redis.from_url(url) if (url and enabled) else None
        return cls(client=client,
                   channel=config.get('NOTIFICATION_CHANNEL', 'attendance-events'),
                   enabled=enabled)

    def publish(self, event: Dict[str, Any]) -> bool:
        if not self.enabled:
            logger.debug("Notifications disabled, skipping %s event", event.get('type'))
            return False

        message = {
            'type': 'attendance',
            'data': event,
            'timestamp': isoformat_utc(utcnow())
        }

        try:
            self.client.publish(self.channel, json.dumps(message, default=str))
        except (redis.RedisError, OSError) as e:
            logger.error("Error sending %s notification: %s", event.get('type'), e)
            return False

        return True
