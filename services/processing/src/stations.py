"""
Station id resolution from ISD file names
"""
from pathlib import Path
from typing import Union

from .errors import MalformedFileNameError


def resolve_station_id(path: Union[str, Path]) -> str:
    """
    Derive the USAF:WBAN station id from a file path
    
    Example:
        /data/2004/032040-99999-2004.gz -> 032040:99999
    
    Raises:
        MalformedFileNameError: Base name has fewer than two dash tokens
    """
    # Extensions are not part of the id: 032040-99999.gz -> 032040:99999
    stem = Path(path).name.split(".", 1)[0]
    tokens = stem.split("-")
    
    if len(tokens) < 2 or not tokens[0] or not tokens[1]:
        raise MalformedFileNameError(str(path))
    
    return f"{tokens[0]}:{tokens[1]}"
