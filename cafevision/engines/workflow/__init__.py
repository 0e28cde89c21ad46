"""
Workflow Engine

Sequences site analysis, concept generation, visualization and refinement for one session.
"""

from .results import Failure, Success, attempt
from .state_machine import DesignWorkflow

__all__ = ["DesignWorkflow", "Success", "Failure", "attempt"]
