"""Orchestration layer: workflow state machine and agent handshake."""

from .handshake import HandshakeProtocol, HandshakeOutcome
from .pacing import PacingStrategy, NoPacing, FixedPacing, HandshakePhase
from .transcript import Transcript
from .workflow import WorkflowController, WorkflowStep, SessionSnapshot

__all__ = [
    "HandshakeProtocol",
    "HandshakeOutcome",
    "PacingStrategy",
    "NoPacing",
    "FixedPacing",
    "HandshakePhase",
    "Transcript",
    "WorkflowController",
    "WorkflowStep",
    "SessionSnapshot"
]
