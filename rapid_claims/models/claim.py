"""Claim disposition data models."""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from .report import DamageReport


class ClaimStatus(Enum):
    APPROVED = "APPROVED"
    MANUAL_REVIEW = "MANUAL_REVIEW"


def new_reference_id() -> str:
    """Fresh claim reference such as ``CLM-3F9A0C21B7``."""
    return f"CLM-{uuid.uuid4().hex[:10].upper()}"


@dataclass(frozen=True)
class ClaimResult:
    """
    Final disposition of one session, created once at handshake completion.

    Attributes:
        status: APPROVED or MANUAL_REVIEW
        payment_initiated: True exactly when status is APPROVED
        reference_id: Unique claim reference for the session
        report: The damage report that produced this result (shared, not copied)
    """
    status: ClaimStatus
    payment_initiated: bool
    reference_id: str
    report: DamageReport

    def __post_init__(self):
        if self.payment_initiated != (self.status is ClaimStatus.APPROVED):
            raise ValueError("payment_initiated must be true exactly when the claim is APPROVED")

    @classmethod
    def finalize(cls, report: DamageReport, approved: bool) -> "ClaimResult":
        return cls(
            status=ClaimStatus.APPROVED if approved else ClaimStatus.MANUAL_REVIEW,
            payment_initiated=approved,
            reference_id=new_reference_id(),
            report=report,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "paymentInitiated": self.payment_initiated,
            "referenceId": self.reference_id,
            "report": self.report.to_dict(),
        }
