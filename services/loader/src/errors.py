"""
Load stage errors
"""
from processing.errors import PipelineError


class ResourceUnavailableError(PipelineError):
    """The sink cannot be reached; the run aborts"""


class SubmissionError(PipelineError):
    """One or more submissions failed or were never acknowledged"""
    
    def __init__(self, message: str, failed: int = 0, pending: int = 0):
        super().__init__(message)
        self.failed = failed
        self.pending = pending
