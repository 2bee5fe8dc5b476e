"""
Buyer interaction records used to build preference vectors.
"""

import math
from datetime import datetime, timezone
from typing import Optional

from pydantic import Field, field_validator

from artisan_match.utils.constants import InteractionKind

from .base import EmbeddedModel

# Base weight per interaction kind when none is given explicitly
INTERACTION_KIND_WEIGHTS: dict[str, float] = {
    InteractionKind.VIEWED.value: 1.0,
    InteractionKind.CONTACTED.value: 2.0,
    InteractionKind.HIRED.value: 3.0,
}

# Days over which an implicit weight decays by a factor of e
RECENCY_DECAY_DAYS = 30.0


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class InteractionRecord(EmbeddedModel):
    """One (artisan, interaction kind, weight) entry of a buyer's history."""

    artisan_id: str
    kind: InteractionKind = Field(default=InteractionKind.VIEWED, alias="interaction", validate_default=True)
    weight: Optional[float] = Field(default=None, ge=0)
    timestamp: Optional[datetime] = None

    @field_validator("timestamp")
    @classmethod
    def timestamp_to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v) if v is not None else None

    def effective_weight(self, now: Optional[datetime] = None) -> float:
        """
        The explicit weight when given, otherwise the kind weight decayed
        exponentially by the age of the interaction.
        """
        if self.weight is not None:
            return self.weight

        base = INTERACTION_KIND_WEIGHTS[self.kind]
        if self.timestamp is None:
            return base

        now = _as_utc(now) if now is not None else datetime.now(timezone.utc)
        days_since = max(0.0, (now - self.timestamp).total_seconds() / 86400)
        return base * math.exp(-days_since / RECENCY_DECAY_DAYS)
