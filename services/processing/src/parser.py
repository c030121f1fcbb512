"""
ISD-Lite fixed-width record parser

Decodes one positional line into a typed Observation. Values in the raw
format carry no decimal point, so scaled fields are divided by their
factor; -9999 marks a missing reading.
"""
import math
from typing import NamedTuple, Union

from .errors import ParseError
from .records import Observation


MISSING_SENTINEL = "-9999"

# (field, start, end, scale factor); factor None keeps the source text
FIELD_LAYOUT = (
    ("year", 0, 4, None),
    ("month", 5, 7, None),
    ("day", 8, 10, None),
    ("hour", 11, 13, None),
    ("temperature", 14, 20, 10),
    ("dew_point", 21, 25, 10),
    ("pressure", 26, 31, 10),
    ("wind_direction", 32, 37, 1),
    ("wind_speed", 38, 43, 10),
    ("sky_condition", 44, 49, 1),
    ("precip_1h", 50, 55, 10),
    ("precip_6h", 56, 61, 10),
)

MIN_LINE_LENGTH = max(end for _, _, end, _ in FIELD_LAYOUT)


class ParsedLine(NamedTuple):
    observation: Observation
    key: str


def scale_value(raw: str, factor: int) -> Union[int, float]:
    """
    Convert a trimmed raw field to its scaled value
    
    Args:
        raw: Trimmed field text
        factor: 10 for decimal-bearing fields, 1 for integral codes
    
    Returns:
        0 for the missing sentinel, int for factor 1, float otherwise
    """
    try:
        if "_" in raw:
            raise ValueError(raw)
        value = float(raw)
    except ValueError:
        raise ParseError(f"Not a number: {raw!r}") from None
    
    if not math.isfinite(value):
        raise ParseError(f"Not a finite number: {raw!r}")
    
    if raw == MISSING_SENTINEL:
        return 0
    
    if factor == 1:
        return int(value)
    
    return value / factor


def _parse_time_component(name: str, raw: str) -> int:
    if not (raw.isascii() and raw.isdigit()):
        raise ParseError(f"Field {name} is not numeric: {raw!r}")
    return int(raw)


def parse_line(line: str) -> ParsedLine:
    """
    Parse one ISD-Lite line
    
    Args:
        line: Raw line, a trailing newline is ignored
    
    Returns:
        ParsedLine with the observation and its year+month+day+hour key
    
    Raises:
        ParseError: Line is too short or a field is not numeric
    """
    text = line.rstrip("\r\n")
    
    if len(text) < MIN_LINE_LENGTH:
        raise ParseError(
            f"Line has {len(text)} characters, need at least {MIN_LINE_LENGTH}",
            line=text,
        )
    
    values = {}
    raw_time = []
    
    for name, start, end, factor in FIELD_LAYOUT:
        raw = text[start:end].strip()
        
        try:
            if factor is None:
                values[name] = _parse_time_component(name, raw)
                raw_time.append(raw)
            else:
                values[name] = scale_value(raw, factor)
        except ParseError as e:
            raise ParseError(f"Field {name}: {e}", line=text) from None
    
    observation = Observation(raw_time=tuple(raw_time), **values)
    return ParsedLine(observation, "".join(raw_time))

