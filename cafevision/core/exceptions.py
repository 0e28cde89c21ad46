"""
Exception hierarchy for the design workflow and its generation backend
"""
from typing import Optional


class CafeVisionError(Exception):
    """Base class for all CafeVision errors"""


# ==================== Generation backend ====================


class GenerationError(CafeVisionError):
    """A remote generation call did not produce a usable result"""


class TransportError(GenerationError):
    """Backend unreachable, timed out, not configured, or returned a non-success status"""


class ValidationError(GenerationError):
    """
    Backend answered but the payload failed validation.

    `kind` is "unparseable" when the body was not structured data at all and
    "schema" when it parsed but had missing or wrongly shaped fields.
    """

    UNPARSEABLE = "unparseable"
    SCHEMA = "schema"

    def __init__(self, message: str, kind: str = SCHEMA, raw: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.raw = raw


class VisualizationError(GenerationError):
    """An image call succeeded at the transport level but returned no image part"""


# ==================== Workflow ====================


class WorkflowError(CafeVisionError):
    """A user action was rejected by the workflow state machine"""


class WorkflowBusyError(WorkflowError):
    """Another remote operation is already in flight for this session"""


class InvalidTransitionError(WorkflowError):
    """The action is not allowed from the current stage"""


class ConceptNotFoundError(WorkflowError):
    """The requested concept id is not among the session's concepts"""


class InvalidImageError(WorkflowError):
    """The uploaded image is not an accepted, decodable payload"""


class SessionNotFoundError(CafeVisionError):
    """No session exists for the given id"""
