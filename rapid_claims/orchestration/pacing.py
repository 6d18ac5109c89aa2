"""Pacing strategies inserting simulated latency between handshake phases."""

import asyncio
import logging
from enum import Enum
from typing import Dict, Optional

from ..utils.config import PacingConfig

logger = logging.getLogger(__name__)


class HandshakePhase(Enum):
    PROPOSAL = "proposal"
    EVALUATION = "evaluation"
    SETTLEMENT = "settlement"


class PacingStrategy:
    """
    Base pacing strategy: awaited once after each handshake phase.

    Pacing only shapes how observers see the transcript build up; it never
    changes the order or content of the messages.
    """

    async def pause(self, phase: HandshakePhase) -> None:
        raise NotImplementedError


class NoPacing(PacingStrategy):
    """Zero-delay pacing for tests and batch runs."""

    async def pause(self, phase: HandshakePhase) -> None:
        return None


class FixedPacing(PacingStrategy):
    """
    Sleep a fixed number of seconds after each phase.

    Attributes:
        delays: Seconds to wait after each phase (missing phases do not wait)
    """

    def __init__(self, delays: Optional[Dict[HandshakePhase, float]] = None):
        self.delays = dict(delays or {})
        logger.info(
            "Initialized FixedPacing: "
            + ", ".join(f"{phase.value}={seconds}s" for phase, seconds in self.delays.items())
        )

    async def pause(self, phase: HandshakePhase) -> None:
        seconds = self.delays.get(phase, 0.0)
        if seconds > 0:
            logger.debug(f"Pacing {seconds}s after {phase.value} phase")
            await asyncio.sleep(seconds)

    @classmethod
    def from_config(cls, pacing: PacingConfig) -> PacingStrategy:
        """Build the pacing strategy described by configuration."""
        if not pacing.enabled:
            return NoPacing()
        return cls({
            HandshakePhase.PROPOSAL: pacing.proposal_seconds,
            HandshakePhase.EVALUATION: pacing.evaluation_seconds,
            HandshakePhase.SETTLEMENT: pacing.settlement_seconds,
        })
