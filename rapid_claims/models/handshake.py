"""Agent-to-agent handshake message models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict


class AgentRole(Enum):
    """The two logical parties of the claim negotiation."""
    REQUESTING_AGENT = "RequestingAgent"
    POLICY_AGENT = "PolicyAgent"

    @property
    def counterpart(self) -> "AgentRole":
        if self is AgentRole.REQUESTING_AGENT:
            return AgentRole.POLICY_AGENT
        return AgentRole.REQUESTING_AGENT


class ProtocolTag(Enum):
    NEGOTIATION = "negotiation-protocol"
    PAYMENT = "payment-protocol"


class MessageStatus(Enum):
    SENT = "SENT"
    RECEIVED = "RECEIVED"
    PROCESSED = "PROCESSED"


class HandshakeMethod:
    """Method names carried in handshake payloads."""
    PROPOSE_CLAIM = "PROPOSE_CLAIM"
    EVALUATE_POLICY = "EVALUATE_POLICY"
    INITIATE_PAYMENT = "INITIATE_PAYMENT"


def capture_time() -> str:
    """Wall-clock capture time stamped on each transcript entry."""
    return datetime.now().strftime("%H:%M:%S")


@dataclass(frozen=True)
class HandshakeLog:
    """
    One message of the handshake transcript.

    Attributes:
        sender: Agent that emitted the message
        recipient: Agent the message is addressed to (may equal sender)
        protocol: Protocol the message belongs to
        status: Delivery status at capture time
        payload: Method name plus method-specific parameters (not validated)
        timestamp: Capture-time string
    """
    sender: AgentRole
    recipient: AgentRole
    protocol: ProtocolTag
    status: MessageStatus
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=capture_time)

    @property
    def method(self) -> str:
        return self.payload.get("method", "")

    @property
    def is_self_directed(self) -> bool:
        return self.sender is self.recipient

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "from": self.sender.value,
            "to": self.recipient.value,
            "protocol": self.protocol.value,
            "payload": self.payload,
            "status": self.status.value,
        }
