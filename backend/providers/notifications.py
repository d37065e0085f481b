"""Notification dispatcher implementations.

Neither implementation talks to a real mail or SMS gateway: the logging
dispatcher writes deliveries to the application log, and the outbox
dispatcher keeps them in memory for a relay process (or a test) to drain.
"""

import logging
import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from shared.models import Clock, utc_now

from .base import NotificationChannel, NotificationDispatcher
from .exceptions import NotificationDeliveryError

logger = logging.getLogger(__name__)


class Delivery(BaseModel):
    """A notification handed off for delivery."""

    id: str = Field(..., description="Delivery ID")
    channel: NotificationChannel = Field(..., description="Email or SMS")
    destination: str = Field(..., description="Email address or phone number")
    payload: dict[str, Any] = Field(default_factory=dict, description="Template and variables")
    created_at: datetime = Field(..., description="Hand-off time")

    model_config = {"frozen": True}


class LoggingNotificationDispatcher(NotificationDispatcher):
    """Writes every notification to the log instead of sending it."""

    async def send(
        self,
        channel: NotificationChannel,
        destination: str,
        payload: dict[str, Any],
    ) -> str:
        if not destination:
            raise NotificationDeliveryError(channel.value, destination, "Empty destination")

        delivery_id = str(uuid.uuid4())
        logger.info(
            "Notification %s via %s to %s: %s",
            delivery_id,
            channel.value,
            destination,
            payload.get("template", "message"),
        )
        return delivery_id


class OutboxNotificationDispatcher(NotificationDispatcher):
    """Records notifications in an in-memory outbox."""

    def __init__(self, clock: Clock = utc_now):
        self._clock = clock
        self.outbox: list[Delivery] = []

    async def send(
        self,
        channel: NotificationChannel,
        destination: str,
        payload: dict[str, Any],
    ) -> str:
        if not destination:
            raise NotificationDeliveryError(channel.value, destination, "Empty destination")

        delivery = Delivery(
            id=str(uuid.uuid4()),
            channel=channel,
            destination=destination,
            payload=dict(payload),
            created_at=self._clock(),
        )
        self.outbox.append(delivery)
        return delivery.id

    def sent_to(self, destination: str) -> list[Delivery]:
        """All deliveries addressed to destination, oldest first."""
        return [d for d in self.outbox if d.destination == destination]

    def drain(self) -> list[Delivery]:
        """Remove and return everything in the outbox."""
        deliveries, self.outbox = self.outbox, []
        return deliveries
