from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True, slots=True)
class Slot:
    name: str
    type: str
    raw_value: Optional[str] = None
    value: Any = None

    def dict(self) -> Dict[str, Any]:
        return {"name": self.name, "type": self.type, "raw_value": self.raw_value, "value": self.value}


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    utterance: str
    error: Optional[Exception] = None
    intent: Optional[str] = None
    confidence: float = 0.0
    slots: Dict[str, Slot] = field(default_factory=dict)
    context: Dict[str, Any] = field(default_factory=dict)
    # per-slot parser failures; the slot itself stays in `slots` with value=None
    slot_errors: Dict[str, Exception] = field(default_factory=dict)

    @classmethod
    def failed(cls, utterance: str, error: Exception) -> "ClassificationResult":
        return cls(utterance=utterance, error=error)

    def dict(self) -> Dict[str, Any]:
        """Serialize to plain JSON-friendly types."""
        return {
            "utterance": self.utterance,
            "error": _describe(self.error),
            "intent": self.intent,
            "confidence": float(self.confidence),
            "slots": {name: slot.dict() for name, slot in self.slots.items()},
            "context": dict(self.context),
            "slot_errors": {name: _describe(err) for name, err in self.slot_errors.items()},
        }


def _describe(error: Optional[Exception]) -> Optional[str]:
    if error is None:
        return None
    return f"{type(error).__name__}: {error}"
