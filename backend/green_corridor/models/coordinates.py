"""
Coordinate Models

GPS coordinate used by request bodies, managed intersection config and
map responses.
"""

from pydantic import BaseModel, Field


class GPSCoordinate(BaseModel):
    """GPS coordinate (latitude, longitude)"""
    lat: float = Field(..., ge=-90, le=90)      # Latitude (-90 to 90)
    lon: float = Field(..., ge=-180, le=180)    # Longitude (-180 to 180)

    class Config:
        json_schema_extra = {
            "example": {"lat": 26.9124, "lon": 75.7873}
        }

    def as_tuple(self) -> tuple[float, float]:
        """Get (lat, lon) tuple"""
        return (self.lat, self.lon)
