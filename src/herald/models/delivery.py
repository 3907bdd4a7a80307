"""Delivery gate decision models."""

from pydantic import BaseModel, ConfigDict

from herald.models.common import UTCDateTime
from herald.models.enums import Channel, DeliveryOutcome


class ChannelDecision(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    channel: Channel
    outcome: DeliveryOutcome
    until: UTCDateTime | None = None
    reason: str


class DeliveryDecision(BaseModel):
    """Union of per-channel outcomes. Channels excluded by preferences are absent."""

    model_config = ConfigDict(extra="forbid")

    notification_id: str | None = None
    user_id: str
    type: str
    evaluated_at: UTCDateTime
    channels: list[ChannelDecision] = []

    def _with(self, outcome: DeliveryOutcome) -> list[ChannelDecision]:
        return [c for c in self.channels if c.outcome == outcome]

    @property
    def deliver_now(self) -> list[Channel]:
        return [c.channel for c in self._with(DeliveryOutcome.DELIVER_NOW)]

    @property
    def enqueued(self) -> list[ChannelDecision]:
        return self._with(DeliveryOutcome.ENQUEUE)

    @property
    def suppressed(self) -> list[Channel]:
        return [c.channel for c in self._with(DeliveryOutcome.SUPPRESS)]

    @property
    def is_suppressed(self) -> bool:
        """True when no channel will deliver now or later."""
        return not self.deliver_now and not self.enqueued

    def for_channel(self, channel: Channel) -> ChannelDecision | None:
        for decision in self.channels:
            if decision.channel == channel:
                return decision
        return None
