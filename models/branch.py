from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from core import config
from core.errors import MalformedDocument


# Physical Branch w/ Circular Geofence
class Branch(BaseModel):
    id: str = Field(..., min_length=1, description="Firestore document id")
    name: str = Field(..., description="Human-friendly branch name")
    latitude: float = Field(..., ge=-90, le=90, description="Latitude of branch center")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude of branch center")
    radius_meters: Optional[float] = Field(
        default=None, gt=0, description="Allowed check-in radius in meters"
    )
    address: Optional[str] = None

    @property
    def effective_radius(self) -> float:
        if self.radius_meters is None:
            return config.DEFAULT_RADIUS_METERS
        return self.radius_meters

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> "Branch":
        """Build a Branch from a ``branches/{id}`` document (lat/lng/radiusMeters)."""
        try:
            return cls(
                id=doc_id,
                name=data.get("name") or doc_id,
                latitude=data.get("lat"),
                longitude=data.get("lng"),
                radius_meters=data.get("radiusMeters"),
                address=data.get("address"),
            )
        except ValidationError as e:
            raise MalformedDocument(f"Branch '{doc_id}' has invalid data. Contact admin.") from e
