"""
Typed observation record and its CSV adapter

The same record definition is used by the transform stage (which renders
observations into merged CSV lines) and by the load stage (which decodes
merged lines back into typed columns).
"""
import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .errors import ParseError, RecordShapeError


OBSERVATION_FIELDS = (
    "year",
    "month",
    "day",
    "hour",
    "temperature",
    "dew_point",
    "pressure",
    "wind_direction",
    "wind_speed",
    "sky_condition",
    "precip_1h",
    "precip_6h",
)

CSV_COLUMNS = ("station_id",) + OBSERVATION_FIELDS

# Python type of each merged column, in CSV order
COLUMN_TYPES = {
    "station_id": str,
    "year": int,
    "month": int,
    "day": int,
    "hour": int,
    "temperature": float,
    "dew_point": float,
    "pressure": float,
    "wind_direction": int,
    "wind_speed": float,
    "sky_condition": int,
    "precip_1h": float,
    "precip_6h": float,
}

TIME_WIDTHS = (4, 2, 2, 2)


@dataclass(frozen=True)
class Observation:
    """One hourly ISD-Lite observation with scaled values"""
    
    year: int
    month: int
    day: int
    hour: int
    temperature: float
    dew_point: float
    pressure: float
    wind_direction: int
    wind_speed: float
    sky_condition: int
    precip_1h: float
    precip_6h: float
    
    # Time components as found in the source, rendered without re-padding
    raw_time: Optional[Tuple[str, str, str, str]] = field(
        default=None, compare=False, repr=False
    )
    
    def time_text(self) -> Tuple[str, str, str, str]:
        if self.raw_time is not None:
            return self.raw_time
        values = (self.year, self.month, self.day, self.hour)
        return tuple(
            str(value).zfill(width) for value, width in zip(values, TIME_WIDTHS)
        )
    
    @property
    def key(self) -> str:
        """Sortable year+month+day+hour key"""
        return "".join(self.time_text())
    
    def to_csv_fields(self) -> List[str]:
        fields = list(self.time_text())
        fields.extend(
            str(getattr(self, name)) for name in OBSERVATION_FIELDS[4:]
        )
        return fields
    
    def to_csv(self) -> str:
        return ",".join(self.to_csv_fields())


@dataclass(frozen=True)
class LoadRecord:
    """A merged archive line decoded into typed columns"""
    
    station_id: str
    observation: Observation
    raw: str
    
    @property
    def key(self) -> str:
        """Queue partition key: the first five CSV fields concatenated"""
        return self.station_id + self.observation.key
    
    def values(self) -> tuple:
        """Column values in CSV order, ready to bind to an insert"""
        obs = self.observation
        return (self.station_id,) + tuple(
            getattr(obs, name) for name in OBSERVATION_FIELDS
        )


def _convert(name: str, text: str):
    """Convert one column, rejecting underscores and non-finite numbers"""
    column_type = COLUMN_TYPES[name]
    if column_type is str:
        return text
    if "_" in text:
        raise ValueError(text)
    value = column_type(text)
    if column_type is float and not math.isfinite(value):
        raise ValueError(text)
    return value

def render_merged(station_id: str, observation: Observation) -> str:
    """Render a merged archive line (without line terminator)"""
    return f"{station_id},{observation.to_csv()}"


def parse_merged(line: str) -> LoadRecord:
    """
    Decode one merged archive line
    
    Args:
        line: Line as read from the archive, terminator allowed
    
    Returns:
        LoadRecord with typed columns
    
    Raises:
        RecordShapeError: Field count is not 13
        ParseError: A numeric column does not convert
    """
    raw = line.rstrip("\r\n")
    parts = raw.split(",")
    
    if len(parts) != len(CSV_COLUMNS):
        raise RecordShapeError(len(CSV_COLUMNS), len(parts), line=raw)
    
    values = {}
    for name, text in zip(CSV_COLUMNS, parts):
        try:
            values[name] = _convert(name, text.strip())
        except ValueError:
            raise ParseError(
                f"Column {name} is not a valid {COLUMN_TYPES[name].__name__}: {text!r}",
                line=raw,
            ) from None
    
    station_id = values.pop("station_id")
    observation = Observation(
        raw_time=tuple(part.strip() for part in parts[1:5]),
        **values,
    )
    return LoadRecord(station_id=station_id, observation=observation, raw=raw)
