import asyncio
import logging
from typing import Optional

from .engine import NLUEngine
from .tracing import TraceLevel
from .types import ClassificationResult
from ..contracts import STTTranscript, NLUIntent, NLUTrace, same_trace


class NLU:
    """
    Listens on 'stt.transcript' and emits 'nlu.intent'.
    Uses NLUEngine for classification; engine trace events are
    re-published on 'nlu.trace' when forward_traces is set.
    """

    def __init__(self, bus, engine: Optional[NLUEngine] = None, forward_traces: bool = False):
        self.bus = bus
        if engine is None:
            from tagnlu.core.config import Config
            engine = Config.get_nlu_engine()
        self.engine = engine
        self.forward_traces = forward_traces
        self.log = logging.getLogger("nlu")
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    async def start(self):
        self._loop = asyncio.get_running_loop()
        if self.forward_traces:
            self.engine.add_trace_listener(self._on_trace)
        self.bus.subscribe("stt.transcript", self._on_transcript)

    def _on_trace(self, level: TraceLevel, message: str) -> None:
        # called from engine threads
        if self._loop is None or self._loop.is_closed():
            return
        event = NLUTrace(level=level.name, message=message)
        asyncio.run_coroutine_threadsafe(self.bus.publish(event.topic, event.dict()), self._loop)

    async def _on_transcript(self, payload: dict):
        try:
            stt_event = STTTranscript(**payload)
        except TypeError:
            self.log.warning("NLU: Malformed stt.transcript event, skipping")
            return

        text = stt_event.text.strip()
        if not text:
            self.log.debug("NLU: Empty transcript, skipping")
            return

        self.log.info("NLU: Classifying text: '%s'", text)
        result: ClassificationResult = await self.engine.classify(text)
        if result.error is not None:
            self.log.warning("NLU: Classification failed: %s", result.error)
        else:
            self.log.info("NLU: Intent detected: %s (confidence: %.2f)", result.intent, result.confidence)

        nlu_event = NLUIntent.from_result(result)
        same_trace(stt_event, nlu_event)
        await self.bus.publish(nlu_event.topic, nlu_event.dict())

    async def stop(self):
        """Cleans up resources before shutdown"""
        self.log.info("stopping NLU component")
        self.bus.unsubscribe("stt.transcript", self._on_transcript)
        if self.forward_traces:
            self.engine.remove_trace_listener(self._on_trace)
        self.engine.close()
