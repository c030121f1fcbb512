"""
Error taxonomy shared by the transform and load stages
"""
from typing import Optional


class PipelineError(Exception):
    """Base class for pipeline errors"""


class ParseError(PipelineError, ValueError):
    """A record could not be decoded into an observation"""
    
    def __init__(self, message: str, line: Optional[str] = None):
        super().__init__(message)
        self.line = line


class MalformedFileNameError(PipelineError, ValueError):
    """A station id cannot be derived from a file name"""
    
    def __init__(self, path: str):
        super().__init__(
            f"Cannot derive station id from file name: {path} "
            f"(expected <USAF>-<WBAN>-...)"
        )
        self.path = path


class RecordShapeError(PipelineError, ValueError):
    """A merged CSV record does not have the expected field count"""
    
    def __init__(self, expected: int, actual: int, line: Optional[str] = None):
        super().__init__(
            f"Expected {expected} fields, got {actual}"
        )
        self.expected = expected
        self.actual = actual
        self.line = line
