"""GeoLocation -- immutable coordinate record"""

from pydantic import BaseModel, ConfigDict, Field


class GeoLocation(BaseModel):
    """A coordinate, referenced by task sites and check-in/out events

    Range checks live in fieldops.core.geo so that out-of-range input
    surfaces as the domain ValidationError.
    """

    model_config = ConfigDict(frozen=True)

    lat: float = Field(description="Latitude in decimal degrees")
    lng: float = Field(description="Longitude in decimal degrees")
    label: str | None = Field(default=None, description="Human readable label")
