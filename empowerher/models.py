"""
Data model for users, emergency contacts, safety zones and routes.

Rows coming out of SQLite are turned into these with the ``from_row``
helpers; the API turns them back into plain dicts with ``to_dict``.
"""
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class SafetyLevel(str, Enum):
    HIGH_RISK = "HIGH_RISK"
    MEDIUM_RISK = "MEDIUM_RISK"
    SAFE = "SAFE"


SAFETY_COLORS = {
    SafetyLevel.HIGH_RISK: "#ea384c",  # red
    SafetyLevel.MEDIUM_RISK: "#f0ad4e",  # yellow / orange
    SafetyLevel.SAFE: "#2ecc71",  # green
}

SAFETY_LABELS = {
    SafetyLevel.HIGH_RISK: "High Risk Area",
    SafetyLevel.MEDIUM_RISK: "Medium Risk Area",
    SafetyLevel.SAFE: "Safe Area",
}


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    address: Optional[str] = None

    @property
    def latlng(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(frozen=True)
class Fix:
    """A single position reading. ``approximate`` marks IP-based fixes."""
    latitude: float
    longitude: float
    accuracy: float = 0.0
    approximate: bool = False

    def to_location(self):
        return Location(self.latitude, self.longitude)


@dataclass(frozen=True)
class User:
    id: int
    email: str
    name: Optional[str] = None

    @classmethod
    def from_row(cls, row):
        return cls(id=row["id"], email=row["email"], name=row["name"])

    @property
    def display_name(self):
        return self.name or self.email

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class EmergencyContact:
    id: int
    user_id: int
    name: str
    phone: str
    email: Optional[str] = None
    relation: Optional[str] = None

    @classmethod
    def from_row(cls, row):
        return cls(id=row["id"], user_id=row["user_id"], name=row["name"], phone=row["phone"],
                   email=row["email"], relation=row["relation"])

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class SafetyZone:
    center: Tuple[float, float]
    radius: float  # meters
    level: SafetyLevel

    def to_dict(self):
        return {"center": list(self.center), "radius": self.radius, "level": self.level.value,
                "color": SAFETY_COLORS[self.level]}


# Static placeholder zones; there is no data source behind these.
SAFETY_ZONES = (
    SafetyZone((11.0168, 76.9558), 500, SafetyLevel.HIGH_RISK),
    SafetyZone((11.0268, 76.9658), 300, SafetyLevel.MEDIUM_RISK),
    SafetyZone((11.0368, 76.9758), 400, SafetyLevel.SAFE),
)


@dataclass(frozen=True)
class RouteStep:
    instruction: str
    distance: float  # meters


@dataclass
class RouteSegment:
    start: Location
    end: Location
    level: SafetyLevel
    distance: float

    def to_dict(self):
        return {"start": list(self.start.latlng), "end": list(self.end.latlng),
                "level": self.level.value, "distance": self.distance}


@dataclass
class Route:
    start: Location
    end: Location
    points: List[Tuple[float, float]]
    steps: List[RouteStep] = field(default_factory=list)
    distance: float = 0.0  # meters
    duration: float = 0.0  # seconds
    segments: List[RouteSegment] = field(default_factory=list)

    def to_dict(self):
        return {
            "start": list(self.start.latlng),
            "end": list(self.end.latlng),
            "points": [list(p) for p in self.points],
            "distance_km": round(self.distance / 1000, 1),
            "duration_min": round(self.duration / 60, 1),
            "segments": [s.to_dict() for s in self.segments],
        }


@dataclass(frozen=True)
class SafetyReport:
    location: str
    rating: int
    user_id: Optional[int] = None
    destination: Optional[str] = None
    incident_type: Optional[str] = None
    description: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row):
        return cls(id=row["id"], user_id=row["user_id"], location=row["location"],
                   destination=row["destination"], rating=row["rating"],
                   incident_type=row["incident_type"], description=row["description"],
                   latitude=row["latitude"], longitude=row["longitude"])

    def to_dict(self):
        return asdict(self)
