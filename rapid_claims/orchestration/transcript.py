"""Append-only transcript of handshake messages for one session."""

import logging
from typing import List, Dict, Any, Optional, Tuple

from ..models.handshake import HandshakeLog, MessageStatus, ProtocolTag
from ..utils.errors import ProtocolInvariantViolation

logger = logging.getLogger(__name__)


class Transcript:
    """
    Ordered, append-only record of the messages exchanged during negotiation.

    Every PROCESSED entry must answer an earlier SENT entry from the
    opposite agent; appends that would break this are rejected.

    Attributes:
        session_id: Optional session identifier for logging
    """

    def __init__(self, session_id: Optional[int] = None):
        self.session_id = session_id
        self._entries: List[HandshakeLog] = []

    def append(self, entry: HandshakeLog) -> HandshakeLog:
        """
        Add an entry to the end of the transcript.

        Raises:
            ProtocolInvariantViolation: If a PROCESSED entry has no prior SENT
                entry from the opposite agent
        """
        if entry.status is MessageStatus.PROCESSED and not self._has_prior_send(entry):
            raise ProtocolInvariantViolation.order_violation(
                f"{entry.method or 'message'} from {entry.sender.value} was processed "
                f"without a prior message from {entry.sender.counterpart.value}",
                details={"entry": entry.to_dict()}
            )

        self._entries.append(entry)
        logger.debug(
            f"Transcript entry {len(self._entries)}: {entry.sender.value} -> "
            f"{entry.recipient.value} [{entry.protocol.value}] {entry.method} {entry.status.value}"
        )
        return entry

    def _has_prior_send(self, entry: HandshakeLog) -> bool:
        counterpart = entry.sender.counterpart
        return any(
            prior.status is MessageStatus.SENT
            and prior.sender is counterpart
            and prior.recipient is entry.sender
            for prior in self._entries
        )

    @property
    def entries(self) -> Tuple[HandshakeLog, ...]:
        return tuple(self._entries)

    def get_entries_by_protocol(self, protocol: ProtocolTag) -> List[HandshakeLog]:
        return [entry for entry in self._entries if entry.protocol is protocol]

    def get_latest_entry(self) -> Optional[HandshakeLog]:
        return self._entries[-1] if self._entries else None

    def has_payment_message(self) -> bool:
        return bool(self.get_entries_by_protocol(ProtocolTag.PAYMENT))

    def format_for_display(self) -> List[Dict[str, Any]]:
        """
        Format the transcript for a terminal-style display.

        Returns:
            List of dicts with a 1-based sequence number and the entry fields
        """
        return [
            {"sequence": i, **entry.to_dict()}
            for i, entry in enumerate(self._entries, 1)
        ]

    def export_to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "total_entries": len(self._entries),
            "entries": self.format_for_display(),
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(tuple(self._entries))

    def __repr__(self) -> str:
        return f"Transcript(session_id={self.session_id}, entries={len(self._entries)})"
