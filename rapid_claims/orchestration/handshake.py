"""Simulated agent-to-agent claim negotiation and payment initiation."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from ..models.claim import ClaimResult
from ..models.handshake import (
    AgentRole,
    HandshakeLog,
    HandshakeMethod,
    MessageStatus,
    ProtocolTag,
)
from ..models.report import DamageReport
from ..utils.config import NegotiationConfig
from ..utils.logging import with_context
from .pacing import FixedPacing, HandshakePhase, NoPacing, PacingStrategy
from .transcript import Transcript

logger = logging.getLogger(__name__)

AUTO_APPROVE = "AUTO_APPROVE"
REQUIRE_MANUAL_REVIEW = "REQUIRE_MANUAL_REVIEW"

EntryListener = Callable[[HandshakeLog], None]


def is_auto_approved(estimated_cost: float, threshold: float) -> bool:
    """Costs strictly below the threshold are approved; the threshold itself is not."""
    return estimated_cost < threshold


def format_amount(amount: float) -> str:
    """Render a monetary amount without a trailing ``.0`` for whole values."""
    if float(amount).is_integer():
        return f"{int(amount)}"
    return f"{amount:.2f}"


@dataclass(frozen=True)
class HandshakeOutcome:
    """
    Result of one protocol run.

    Attributes:
        transcript: Entries in emission order
        result: Final claim disposition
    """
    transcript: Tuple[HandshakeLog, ...]
    result: ClaimResult


class HandshakeProtocol:
    """
    Drives the fixed negotiation between the requesting and the policy agent.

    Phases:
    1. Proposal: requesting agent sends the damage report to the policy agent
    2. Evaluation: policy agent applies the approval threshold
    3. Settlement: policy agent instructs itself to pay (approved claims only)
    4. Finalization: the ClaimResult is built

    The protocol runs exactly once per report, never loops and always
    terminates. Pacing only adds waits between phases.
    """

    def __init__(
        self,
        approval_threshold: float = 5000.0,
        currency: str = "USD",
        settlement_network: str = "FED_INSTANT_SETTLEMENT",
        agent_version: str = "Vision-Claims-Handshake-V1",
        pacing: Optional[PacingStrategy] = None
    ):
        """
        Initialize the handshake protocol.

        Args:
            approval_threshold: Costs strictly below this are auto-approved
            currency: The single supported settlement currency
            settlement_network: Identifier of the payment rail
            agent_version: Version tag sent with each proposal
            pacing: Delay strategy between phases (defaults to no delay)
        """
        self.approval_threshold = approval_threshold
        self.currency = currency
        self.settlement_network = settlement_network
        self.agent_version = agent_version
        self.pacing = pacing or NoPacing()

        logger.info(
            f"Initialized HandshakeProtocol: threshold={format_amount(approval_threshold)} "
            f"{currency}, pacing={self.pacing.__class__.__name__}"
        )

    @classmethod
    def from_config(cls, negotiation: NegotiationConfig, pacing: Optional[PacingStrategy] = None) -> "HandshakeProtocol":
        return cls(
            approval_threshold=negotiation.approval_threshold,
            currency=negotiation.currency,
            settlement_network=negotiation.settlement_network,
            agent_version=negotiation.agent_version,
            pacing=pacing or FixedPacing.from_config(negotiation.pacing),
        )

    @with_context(component="handshake")
    async def run(
        self,
        report: DamageReport,
        on_entry: Optional[EntryListener] = None
    ) -> HandshakeOutcome:
        """
        Execute the negotiation for a validated damage report.

        Args:
            report: Damage report produced by the vision collaborator
            on_entry: Optional callback invoked with each entry as it is appended

        Returns:
            HandshakeOutcome with the ordered transcript and the claim result
        """
        transcript = Transcript()

        def emit(entry: HandshakeLog) -> None:
            transcript.append(entry)
            if on_entry is not None:
                on_entry(entry)

        # Phase 1: proposal
        emit(self._proposal(report))
        logger.info(
            f"Proposal sent: cost={format_amount(report.estimated_cost)} "
            f"intensity={report.intensity.value}"
        )
        await self.pacing.pause(HandshakePhase.PROPOSAL)

        # Phase 2: policy evaluation
        approved = is_auto_approved(report.estimated_cost, self.approval_threshold)
        emit(self._evaluation(approved))
        logger.info(f"Policy evaluated: {AUTO_APPROVE if approved else REQUIRE_MANUAL_REVIEW}")
        await self.pacing.pause(HandshakePhase.EVALUATION)

        # Phase 3: settlement, approved claims only
        if approved:
            emit(self._settlement(report))
            logger.info(
                f"Payment initiated: {format_amount(report.estimated_cost)} {self.currency} "
                f"via {self.settlement_network}"
            )
        await self.pacing.pause(HandshakePhase.SETTLEMENT)

        # Phase 4: finalization
        result = ClaimResult.finalize(report, approved)
        logger.info(f"Handshake complete: {result.reference_id} -> {result.status.value}")

        return HandshakeOutcome(transcript=transcript.entries, result=result)

    def _proposal(self, report: DamageReport) -> HandshakeLog:
        return HandshakeLog(
            sender=AgentRole.REQUESTING_AGENT,
            recipient=AgentRole.POLICY_AGENT,
            protocol=ProtocolTag.NEGOTIATION,
            status=MessageStatus.SENT,
            payload={
                "method": HandshakeMethod.PROPOSE_CLAIM,
                "params": {
                    "assessment": report.to_dict(),
                    "agent_version": self.agent_version,
                },
            },
        )

    def _evaluation(self, approved: bool) -> HandshakeLog:
        return HandshakeLog(
            sender=AgentRole.POLICY_AGENT,
            recipient=AgentRole.REQUESTING_AGENT,
            protocol=ProtocolTag.NEGOTIATION,
            status=MessageStatus.PROCESSED,
            payload={
                "method": HandshakeMethod.EVALUATE_POLICY,
                "result": AUTO_APPROVE if approved else REQUIRE_MANUAL_REVIEW,
                "threshold_applied": f"${format_amount(self.approval_threshold)}",
            },
        )

    def _settlement(self, report: DamageReport) -> HandshakeLog:
        return HandshakeLog(
            sender=AgentRole.POLICY_AGENT,
            recipient=AgentRole.POLICY_AGENT,
            protocol=ProtocolTag.PAYMENT,
            status=MessageStatus.SENT,
            payload={
                "method": HandshakeMethod.INITIATE_PAYMENT,
                "amount": report.estimated_cost,
                "currency": self.currency,
                "settlement_network": self.settlement_network,
            },
        )
