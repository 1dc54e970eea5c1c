from dataclasses import dataclass, asdict, field
from typing import Any, Optional
import time
import uuid

# Base Event
@dataclass(slots=True)
class Event:
    topic: str
    ts_ms: int = field(default_factory=lambda: int(time.time() * 1000))
    corr_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def dict(self) -> dict[str, Any]:
        return asdict(self)

# Pipeline Events

@dataclass(slots=True)
class STTTranscript(Event):
    topic: str = "stt.transcript"
    text: str = ""
    confidence: Optional[float] = None  # 0..1 optional, from the recognizer

@dataclass(slots=True)
class NLUIntent(Event):
    topic: str = "nlu.intent"
    intent: Optional[str] = None   # None when classification failed
    # slot name -> {"name", "type", "raw_value", "value"}
    slots: dict[str, dict[str, Any]] = field(default_factory=dict)
    confidence: float = 0.0
    original_text: str = ""
    error: Optional[str] = None    # "<ErrorType>: message"
    context: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_result(cls, result) -> "NLUIntent":
        data = result.dict()
        return cls(
            intent=data["intent"],
            slots=data["slots"],
            confidence=data["confidence"],
            original_text=data["utterance"],
            error=data["error"],
            context=data["context"],
        )

@dataclass(slots=True)
class NLUTrace(Event):
    topic: str = "nlu.trace"
    level: str = "INFO"   # "DEBUG","PERF","INFO","WARN","ERROR"
    message: str = ""

# Debugging helper
def same_trace(parent: Event, child: Event) -> Event:
    """Copy corr_id so downstream events stay in the same trace."""
    child.corr_id = parent.corr_id
    return child
