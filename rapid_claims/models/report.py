"""Damage assessment data models."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple


class DamageIntensity(Enum):
    """Severity scale reported by the vision collaborator, ordered Low < Catastrophic."""

    LOW = "Low"
    MODERATE = "Moderate"
    SEVERE = "Severe"
    CATASTROPHIC = "Catastrophic"

    @property
    def rank(self) -> int:
        return _INTENSITY_ORDER.index(self)

    def __lt__(self, other: "DamageIntensity") -> bool:
        if not isinstance(other, DamageIntensity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: "DamageIntensity") -> bool:
        if not isinstance(other, DamageIntensity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: "DamageIntensity") -> bool:
        if not isinstance(other, DamageIntensity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: "DamageIntensity") -> bool:
        if not isinstance(other, DamageIntensity):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def parse(cls, value: Any) -> "DamageIntensity":
        """
        Resolve a collaborator label (case-insensitive) to a scale level.

        Raises:
            ValueError: If the label is not on the scale
        """
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        raise ValueError(f"Unknown damage intensity: {value!r}")


_INTENSITY_ORDER = list(DamageIntensity)


@dataclass(frozen=True)
class DamageReport:
    """
    Structured output of the vision damage assessment.

    Attributes:
        intensity: Position on the four-level severity scale
        estimated_cost: Non-negative repair estimate in the settlement currency
        identified_items: Labels in detection order (may be empty)
        summary: Non-empty narrative of the assessment
        structural_integrity_risk: Whether the structure itself looks compromised
    """
    intensity: DamageIntensity
    estimated_cost: float
    identified_items: Tuple[str, ...] = field(default_factory=tuple)
    summary: str = ""
    structural_integrity_risk: bool = False

    def __post_init__(self):
        if not isinstance(self.intensity, DamageIntensity):
            object.__setattr__(self, "intensity", DamageIntensity.parse(self.intensity))
        if isinstance(self.estimated_cost, bool) or not isinstance(self.estimated_cost, (int, float)):
            raise ValueError(f"estimated_cost must be numeric, got {self.estimated_cost!r}")
        if not math.isfinite(self.estimated_cost):
            raise ValueError(f"estimated_cost must be finite, got {self.estimated_cost}")
        if self.estimated_cost < 0:
            raise ValueError(f"estimated_cost must be non-negative, got {self.estimated_cost}")
        if not isinstance(self.summary, str) or not self.summary.strip():
            raise ValueError("summary must be a non-empty string")
        object.__setattr__(self, "identified_items", tuple(str(item) for item in self.identified_items))
        object.__setattr__(self, "structural_integrity_risk", bool(self.structural_integrity_risk))

    def to_dict(self) -> Dict[str, Any]:
        """Camel-cased mapping matching the collaborator's report shape."""
        return {
            "intensity": self.intensity.value,
            "estimatedCost": self.estimated_cost,
            "identifiedItems": list(self.identified_items),
            "summary": self.summary,
            "structuralIntegrityRisk": self.structural_integrity_risk,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DamageReport":
        """
        Build a report from a camel- or snake-cased mapping.

        Raises:
            ValueError: If a required field is missing or out of contract
        """
        def pick(*keys):
            for key in keys:
                if key in data:
                    return data[key]
            raise ValueError(f"Missing field: {keys[0]}")

        items = data.get("identifiedItems", data.get("identified_items", []))
        if items is None:
            items = []
        if not isinstance(items, (list, tuple)):
            raise ValueError("identifiedItems must be a list")

        risk = data.get("structuralIntegrityRisk", data.get("structural_integrity_risk", False))
        if not isinstance(risk, bool):
            raise ValueError("structuralIntegrityRisk must be a boolean")

        return cls(
            intensity=DamageIntensity.parse(pick("intensity")),
            estimated_cost=pick("estimatedCost", "estimated_cost"),
            identified_items=tuple(items),
            summary=pick("summary"),
            structural_integrity_risk=risk,
        )
