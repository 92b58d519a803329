"""Monkey record as served by the remote data source."""
import math
from dataclasses import dataclass, field
from typing import Any, Dict

# Wire field name -> attribute name.  Keys are matched case-insensitively
# because the public feed capitalises them ("Name", "Image", ...).
_WIRE_FIELDS = {
    'name':       'name',
    'location':   'location',
    'details':    'details',
    'image':      'image_url',
    'population': 'population',
    'latitude':   'latitude',
    'longitude':  'longitude',
}


def whole_number(value: Any) -> int:
    """Return *value* as an ``int`` if it is an integral JSON number.

    Booleans, strings, non-finite floats and floats with a fractional part
    are rejected rather than truncated.

    Raises:
        ValueError: *value* is not a whole number.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"expected a whole number, got {value!r}")
    if isinstance(value, float) and not (math.isfinite(value) and value.is_integer()):
        raise ValueError(f"expected a whole number, got {value!r}")
    return int(value)


def _coordinate(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"expected a coordinate, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ValueError(f"expected a coordinate, got {value!r}") from exc


@dataclass(frozen=True)
class Monkey:
    """One monkey entry.

    Identity is the ``name``: two records with the same name compare equal
    and hash the same regardless of their other fields.
    """
    name: str
    location: str = field(default='', compare=False)
    details: str = field(default='', compare=False)
    image_url: str = field(default='', compare=False)
    population: int = field(default=0, compare=False)
    latitude: float = field(default=0.0, compare=False)
    longitude: float = field(default=0.0, compare=False)

    @property
    def map_url(self) -> str:
        """OpenStreetMap link centred on the monkey's coordinates."""
        return (f"https://www.openstreetmap.org/?mlat={self.latitude}"
                f"&mlon={self.longitude}#map=6/{self.latitude}/{self.longitude}")

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> 'Monkey':
        """Build a :class:`Monkey` from one JSON object of the feed.

        Raises:
            ValueError: *raw* is not an object, has no ``name``, or carries a
                population that is not a non-negative whole number, or
                non-numeric / non-finite coordinates.
        """
        if not isinstance(raw, dict):
            raise ValueError(f"Monkey record must be an object, got {type(raw).__name__}")

        values: Dict[str, Any] = {}
        for key, value in raw.items():
            attr = _WIRE_FIELDS.get(str(key).lower())
            if attr is not None:
                values[attr] = value

        name = values.get('name')
        if not isinstance(name, str) or not name:
            raise ValueError("Monkey record is missing a name")

        try:
            population = whole_number(values.get('population') or 0)
            latitude = _coordinate(values.get('latitude') or 0.0)
            longitude = _coordinate(values.get('longitude') or 0.0)
        except ValueError as exc:
            raise ValueError(f"Invalid numeric field for {name!r}: {exc}") from exc

        if population < 0:
            raise ValueError(f"Population of {name!r} must be non-negative")
        if not (math.isfinite(latitude) and math.isfinite(longitude)):
            raise ValueError(f"Coordinates of {name!r} must be finite")

        return cls(
            name=name,
            location=str(values.get('location') or ''),
            details=str(values.get('details') or ''),
            image_url=str(values.get('image_url') or ''),
            population=population,
            latitude=latitude,
            longitude=longitude,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialise back to the feed's field names."""
        return {
            'name':       self.name,
            'location':   self.location,
            'details':    self.details,
            'image':      self.image_url,
            'population': self.population,
            'latitude':   self.latitude,
            'longitude':  self.longitude,
        }
