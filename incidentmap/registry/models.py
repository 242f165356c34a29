"""Incident models."""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from incidentmap.registry.errors import ValidationError


class Coordinate(BaseModel):
    """A (latitude, longitude) pair in decimal degrees."""

    latitude: float = Field(description="Latitude in decimal degrees")
    longitude: float = Field(description="Longitude in decimal degrees")

    model_config = {"frozen": True}

    def validate_range(self) -> "Coordinate":
        """Raise ValidationError unless the pair lies on the globe.

        Returns:
            The coordinate itself, for chaining
        """
        if not (math.isfinite(self.latitude) and math.isfinite(self.longitude)):
            raise ValidationError(f"coordinate must be finite: {self.latitude}, {self.longitude}")
        if not -90.0 <= self.latitude <= 90.0:
            raise ValidationError(f"latitude out of range [-90, 90]: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValidationError(f"longitude out of range [-180, 180]: {self.longitude}")
        return self

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


class Incident(BaseModel):
    """A user-reported point of interest anchored to a map location."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, description="Unique incident ID")
    sequence: int = Field(description="1-based creation number, never reused")
    title: str = Field(description="Display title")
    location: Coordinate = Field(description="Fixed geographic anchor")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Insertion time (UTC)"
    )
