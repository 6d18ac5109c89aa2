"""Shared fixtures for the claim agent tests."""

import asyncio
from typing import List, Optional, Tuple

import pytest

from rapid_claims.models.evidence import Evidence
from rapid_claims.models.report import DamageIntensity, DamageReport
from rapid_claims.orchestration.handshake import HandshakeProtocol
from rapid_claims.orchestration.pacing import NoPacing
from rapid_claims.orchestration.workflow import WorkflowController
from rapid_claims.plugins.damage_analyzer import AnalysisGateway


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def make_report(
    cost: float = 3200,
    intensity: DamageIntensity = DamageIntensity.MODERATE,
    items: Tuple[str, ...] = ("drywall", "carpet"),
    summary: str = "Water damage along the lower wall and flooring.",
    structural_risk: bool = False,
) -> DamageReport:
    return DamageReport(
        intensity=intensity,
        estimated_cost=cost,
        identified_items=items,
        summary=summary,
        structural_integrity_risk=structural_risk,
    )


class FakeGateway(AnalysisGateway):
    """Scripted vision gateway: returns a report or raises, recording every call."""

    def __init__(self, report: Optional[DamageReport] = None, error: Optional[Exception] = None):
        self.report = report or make_report()
        self.error = error
        self.calls: List[Tuple[str, str]] = []
        self.gate: Optional[asyncio.Event] = None

    async def analyze(self, encoded_evidence: str, media_type: str) -> DamageReport:
        self.calls.append((encoded_evidence, media_type))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.report


async def wait_until(predicate, attempts: int = 200) -> None:
    """Yield to the event loop until predicate() holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("condition not reached")


@pytest.fixture
def evidence() -> Evidence:
    return Evidence(filename="flooded-kitchen.png", media_type="image/png", data=PNG_BYTES)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def protocol() -> HandshakeProtocol:
    return HandshakeProtocol(approval_threshold=5000, pacing=NoPacing())


@pytest.fixture
def controller(gateway, protocol) -> WorkflowController:
    return WorkflowController(gateway=gateway, protocol=protocol)
