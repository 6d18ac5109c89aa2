"""Workflow controller sequencing evidence, damage analysis and negotiation."""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..models.claim import ClaimResult
from ..models.evidence import Evidence
from ..models.handshake import HandshakeLog
from ..models.report import DamageReport
from ..plugins.damage_analyzer import AnalysisGateway
from ..utils.errors import AnalysisError, IngestionError, ProtocolInvariantViolation
from ..utils.logging import set_context
from .handshake import HandshakeProtocol
from .transcript import Transcript

logger = logging.getLogger(__name__)


class WorkflowStep(Enum):
    IDLE = "IDLE"
    UPLOADING = "UPLOADING"
    ANALYZING = "ANALYZING"
    NEGOTIATING = "NEGOTIATING"
    COMPLETED = "COMPLETED"


_ALLOWED_TRANSITIONS = {
    WorkflowStep.IDLE: {WorkflowStep.UPLOADING},
    WorkflowStep.UPLOADING: {WorkflowStep.ANALYZING},
    WorkflowStep.ANALYZING: {WorkflowStep.NEGOTIATING, WorkflowStep.IDLE},
    WorkflowStep.NEGOTIATING: {WorkflowStep.COMPLETED},
    WorkflowStep.COMPLETED: {WorkflowStep.IDLE},
}


@dataclass(frozen=True)
class SessionSnapshot:
    """
    Immutable view of the live session handed to subscribers.

    Attributes:
        session_id: Counter identifying the session this view belongs to
        step: Current workflow step
        evidence: Filename, media type and size of the uploaded evidence
        report: Damage report once analysis succeeded
        transcript: Handshake entries appended so far
        result: Claim result once negotiation completed
        error: User-visible message of the last recoverable failure
    """
    session_id: int
    step: WorkflowStep
    evidence: Optional[Dict[str, Any]] = None
    report: Optional[DamageReport] = None
    transcript: Tuple[HandshakeLog, ...] = ()
    result: Optional[ClaimResult] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "step": self.step.value,
            "evidence": self.evidence,
            "report": self.report.to_dict() if self.report else None,
            "transcript": [entry.to_dict() for entry in self.transcript],
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
        }


SessionListener = Callable[[SessionSnapshot], None]


class WorkflowController:
    """
    State machine for a single claim session.

    IDLE -> UPLOADING -> ANALYZING -> NEGOTIATING -> COMPLETED, with
    ANALYZING -> IDLE on analysis failure and reset back to IDLE from any
    step. Only one session is live at a time; uploads arriving while a
    session is in flight are ignored. Work belonging to a session that has
    since been reset is discarded when it completes.

    Attributes:
        gateway: Vision analysis collaborator
        protocol: Handshake protocol run on each damage report
    """

    def __init__(self, gateway: AnalysisGateway, protocol: HandshakeProtocol):
        self.gateway = gateway
        self.protocol = protocol

        self._session_id = 0
        self._step = WorkflowStep.IDLE
        self._evidence: Optional[Evidence] = None
        self._report: Optional[DamageReport] = None
        self._transcript = Transcript(session_id=self._session_id)
        self._result: Optional[ClaimResult] = None
        self._last_error: Optional[str] = None
        self._listeners: List[SessionListener] = []

        logger.info(
            f"Initialized WorkflowController with {gateway.__class__.__name__} "
            f"and threshold {protocol.approval_threshold}"
        )

    @property
    def step(self) -> WorkflowStep:
        return self._step

    @property
    def session_id(self) -> int:
        return self._session_id

    @property
    def evidence(self) -> Optional[Evidence]:
        return self._evidence

    @property
    def report(self) -> Optional[DamageReport]:
        return self._report

    @property
    def transcript(self) -> Tuple[HandshakeLog, ...]:
        return self._transcript.entries

    @property
    def result(self) -> Optional[ClaimResult]:
        return self._result

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self._session_id,
            step=self._step,
            evidence=self._evidence.describe() if self._evidence else None,
            report=self._report,
            transcript=self._transcript.entries,
            result=self._result,
            error=self._last_error,
        )

    def export_transcript(self) -> Dict[str, Any]:
        """Numbered audit transcript of the live session."""
        return self._transcript.export_to_dict()

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a listener called with a snapshot after every change.

        Returns:
            Callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception(f"Session listener {listener!r} failed; continuing")

    def _transition(self, target: WorkflowStep) -> None:
        if target not in _ALLOWED_TRANSITIONS[self._step]:
            raise ProtocolInvariantViolation.order_violation(
                f"Invalid workflow transition {self._step.value} -> {target.value}",
                details={"from": self._step.value, "to": target.value}
            )
        logger.info(f"Session {self._session_id}: {self._step.value} -> {target.value}")
        self._step = target
        set_context(session_id=self._session_id, step=target.value)
        self._notify()

    def _is_live(self, session_id: int) -> bool:
        return session_id == self._session_id

    def _discard_stale(self, session_id: int, what: str) -> None:
        violation = ProtocolInvariantViolation.stale_message(session_id, self._session_id)
        logger.debug(f"Discarding {what}: {violation}")

    def _clear_session(self) -> None:
        self._evidence = None
        self._report = None
        self._transcript = Transcript(session_id=self._session_id)
        self._result = None

    async def submit_upload(
        self,
        filename: Optional[str],
        media_type: Optional[str],
        data: Optional[bytes]
    ) -> Optional[ClaimResult]:
        """
        Entry point for the ingestion step: validate the upload, then run it.

        Missing or non image/video uploads are ignored without any state change.
        """
        try:
            evidence = Evidence.from_upload(filename, media_type, data)
        except IngestionError as e:
            logger.debug(f"Ignoring upload: {e}")
            return None
        return await self.submit_evidence(evidence)

    async def submit_evidence(self, evidence: Optional[Evidence]) -> Optional[ClaimResult]:
        """
        Run one full session for the supplied evidence.

        Args:
            evidence: Damage photo or video; None is ignored

        Returns:
            The ClaimResult, or None when the upload was ignored or the session
            was reset before completing

        Raises:
            AnalysisError: If the vision collaborator failed; the session is
                back in IDLE by the time this propagates
        """
        session_id = self.open_session(evidence)
        if session_id is None:
            return None
        return await self.run_session(session_id, evidence)

    def open_session(self, evidence: Optional[Evidence]) -> Optional[int]:
        """
        Claim the controller for new evidence and move IDLE -> UPLOADING.

        Runs synchronously so callers learn at once whether the upload was
        taken; the rest of the session is driven by run_session.

        Returns:
            Id of the opened session, or None when the upload was ignored
        """
        if evidence is None:
            logger.debug(f"Ignoring upload: {IngestionError.no_evidence()}")
            return None

        try:
            evidence.validate()
        except IngestionError as e:
            logger.debug(f"Ignoring upload: {e}")
            return None

        if self._step is not WorkflowStep.IDLE:
            logger.warning(
                f"Ignoring upload of '{evidence.filename}': session {self._session_id} "
                f"is {self._step.value}"
            )
            return None

        self._session_id += 1
        self._clear_session()
        self._last_error = None
        self._evidence = evidence
        self._transition(WorkflowStep.UPLOADING)
        return self._session_id

    async def run_session(self, session_id: int, evidence: Evidence) -> Optional[ClaimResult]:
        """
        Drive an opened session through analysis and negotiation.

        Returns:
            The ClaimResult, or None when the session was reset meanwhile

        Raises:
            AnalysisError: If the vision collaborator failed
        """
        if not self._is_live(session_id):
            self._discard_stale(session_id, "queued evidence")
            return None

        # Read and encode the payload off the event loop
        encoded = await asyncio.to_thread(evidence.encode)
        if not self._is_live(session_id):
            self._discard_stale(session_id, "encoded evidence")
            return None

        self._transition(WorkflowStep.ANALYZING)
        try:
            report = await self.gateway.analyze(encoded, evidence.media_type)
        except Exception as e:
            if not self._is_live(session_id):
                self._discard_stale(session_id, f"analysis failure ({e})")
                return None

            error = e if isinstance(e, AnalysisError) else AnalysisError.collaborator_failed(evidence.media_type, e)
            logger.warning(f"Analysis failed for '{evidence.filename}': {error}")
            self._clear_session()
            self._last_error = error.user_message
            self._transition(WorkflowStep.IDLE)
            if error is e:
                raise
            raise error from e

        if not self._is_live(session_id):
            self._discard_stale(session_id, "damage report")
            return None

        self._report = report
        self._transition(WorkflowStep.NEGOTIATING)

        def record(entry: HandshakeLog) -> None:
            if not self._is_live(session_id):
                self._discard_stale(session_id, f"{entry.method} message")
                return
            try:
                self._transcript.append(entry)
            except ProtocolInvariantViolation as violation:
                logger.error(f"Dropping out-of-order handshake message: {violation}")
                return
            self._notify()

        outcome = await self.protocol.run(report, on_entry=record)

        if not self._is_live(session_id):
            self._discard_stale(session_id, f"claim result {outcome.result.reference_id}")
            return None

        self._result = outcome.result
        self._transition(WorkflowStep.COMPLETED)
        return outcome.result

    def reset(self) -> SessionSnapshot:
        """
        Discard the current session from any step and return to IDLE.

        Anything still in flight for the discarded session is ignored when
        it completes.
        """
        previous = self._step
        self._session_id += 1
        self._step = WorkflowStep.IDLE
        self._clear_session()
        self._last_error = None
        set_context(session_id=self._session_id, step=self._step.value)

        logger.info(f"Session reset from {previous.value}; now session {self._session_id}")
        self._notify()
        return self.snapshot()
