"""
Classification engine: encode -> validate -> infer -> decode -> parse.

Resources (metadata, model, slot parsers, vocabulary) load in the
background as soon as the engine is built. ``classify`` waits for that load
once and then runs on a small worker pool; only the forward pass itself is
serialized. Nothing that goes wrong while classifying an utterance is
raised: the error is returned inside the ``ClassificationResult``.
"""

import asyncio
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

import numpy as np

from .decoder import decode_intent, decode_slots
from .encoder import EncodedTokens, WordpieceEncoder
from .errors import (
    EncodingError,
    InferenceError,
    LengthLimitError,
    LoadError,
    NLUError,
    ParseError,
    ParserResolutionError,
)
from .metadata import Intent, Metadata, load_metadata
from .model import NLUModel, load_model
from .registry import Binding, ParserRegistry
from .tracing import TraceListener, Tracer
from .types import ClassificationResult, Slot

ModelLoader = Callable[[Union[str, Path]], NLUModel]


@dataclass
class NLUConfig:
    model_path: Optional[str] = None
    metadata_path: Optional[str] = None
    vocab_path: Optional[str] = None
    # None: use the model's input capacity
    max_tokens: Optional[int] = None
    slot_parsers: Dict[str, Binding] = field(default_factory=dict)
    workers: int = 2


class NLUEngine:
    """
    Usage:
        engine = NLUEngine(NLUConfig(model_path=..., metadata_path=..., vocab_path=...))
        result = await engine.classify("set a timer for ten minutes")
    """

    def __init__(
        self,
        config: NLUConfig,
        encoder=None,
        model: Optional[NLUModel] = None,
        metadata: Optional[Metadata] = None,
        model_loader: ModelLoader = load_model,
        trace_listeners: Iterable[TraceListener] = (),
    ):
        """
        Args:
            config: Resource paths, token limit, parser bindings, worker count
            encoder: Anything with ``encode(text) -> EncodedTokens``.
                     Defaults to a WordpieceEncoder over ``config.vocab_path``.
            model: Preloaded inference adapter (skips ``model_loader``)
            metadata: Preloaded metadata (skips reading ``config.metadata_path``)
            model_loader: Builds the adapter from ``config.model_path``
            trace_listeners: Registered before loading starts, so they see load errors
        """
        self.config = config
        self.tracer = Tracer(logger_name="nlu.engine")
        for listener in trace_listeners:
            self.tracer.add_listener(listener)

        self.parsers = ParserRegistry(config.slot_parsers, self.tracer)
        if encoder is None:
            encoder = WordpieceEncoder(config.vocab_path, self.tracer)
        self.encoder = encoder
        self.model = model
        self.metadata = metadata
        self._model_loader = model_loader
        self._load_error: Optional[LoadError] = None

        self._infer_lock = threading.Lock()
        self._closed = False
        self._workers = ThreadPoolExecutor(max_workers=max(1, config.workers), thread_name_prefix="nlu-worker")
        self._loader = ThreadPoolExecutor(max_workers=1, thread_name_prefix="nlu-loader")
        self._ready: Future = self._loader.submit(self._load)

    def add_trace_listener(self, listener: TraceListener) -> None:
        self.tracer.add_listener(listener)

    def remove_trace_listener(self, listener: TraceListener) -> None:
        self.tracer.remove_listener(listener)

    @property
    def ready(self) -> bool:
        return self._ready.done()

    def wait_ready(self) -> None:
        self._ready.result()

    @property
    def max_tokens(self) -> int:
        self.wait_ready()
        limits = self._token_limits()
        return min(limits) if limits else 0

    def _token_limits(self) -> List[int]:
        return [n for n in (self.config.max_tokens, getattr(self.model, "max_tokens", None)) if n]

    def _load(self) -> None:
        start = time.perf_counter()
        if self.metadata is None:
            try:
                self.metadata = load_metadata(self.config.metadata_path)
            except Exception as e:
                err = e if isinstance(e, LoadError) else LoadError(f"error loading NLU metadata: {e!r}")
                self._fail_load(err)
                return
        if self.model is None:
            try:
                self.model = self._model_loader(self.config.model_path)
            except Exception as e:
                err = e if isinstance(e, LoadError) else LoadError(f"error loading NLU model: {e}")
                self._fail_load(err)
                return
        if not self._token_limits():
            self._fail_load(LoadError("no token limit: set max_tokens or use a model with a fixed input size"))
            return
        self.parsers.warm_up(self.metadata.slot_types())
        self.tracer.perf("NLU resources loaded in %.1fms", (time.perf_counter() - start) * 1000)

    def _fail_load(self, error: LoadError) -> None:
        self._load_error = error
        self.tracer.error("Error loading NLU resources: %s", error)

    async def classify(self, utterance: str) -> ClassificationResult:
        """Classify one utterance; errors come back in ``result.error``."""
        if self._closed:
            raise RuntimeError("NLU engine has been closed")
        await asyncio.wrap_future(self._ready)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._workers, self.classify_sync, utterance)

    def classify_sync(self, utterance: str) -> ClassificationResult:
        """Blocking version of ``classify``, run on the worker pool."""
        self.wait_ready()
        if self._load_error is not None:
            return ClassificationResult.failed(utterance, self._load_error)

        start = time.perf_counter()
        try:
            encoded = self.encoder.encode(utterance)
        except Exception as e:
            self.tracer.error("Error encoding %r: %s", utterance, e)
            err = e if isinstance(e, NLUError) else EncodingError(str(e))
            if err is not e:
                err.__cause__ = e
            return ClassificationResult.failed(utterance, err)

        max_tokens = self.max_tokens
        if len(encoded) > max_tokens:
            return ClassificationResult.failed(utterance, LengthLimitError(len(encoded), max_tokens))

        try:
            intent_out, tag_out = self._infer(encoded)
            intent, confidence = decode_intent(self.metadata, intent_out)
            raw_slots = decode_slots(self.metadata, encoded, tag_out)
        except Exception as e:
            self.tracer.error("Inference failed: %s", e)
            err = InferenceError(f"{type(e).__name__}: {e}")
            err.__cause__ = e
            return ClassificationResult.failed(utterance, err)
        self.tracer.debug("Intent: %s (%.3f), raw slots: %s", intent.name, confidence, raw_slots)

        context: Dict[str, Any] = {}
        slots, slot_errors = self._parse_slots(intent, raw_slots, context)
        self.tracer.perf("Classification took %.1fms", (time.perf_counter() - start) * 1000)
        return ClassificationResult(
            utterance=utterance,
            intent=intent.name,
            confidence=confidence,
            slots=slots,
            context=context,
            slot_errors=slot_errors,
        )

    def _infer(self, encoded: EncodedTokens) -> Tuple[np.ndarray, np.ndarray]:
        with self._infer_lock:
            inputs = self.model.inputs(0)
            inputs[:] = 0
            inputs[: len(encoded)] = encoded.ids
            self.model.run()
            return self.model.outputs(0).copy(), self.model.outputs(1).copy()

    def _parse_slots(
        self, intent: Intent, raw_slots: Dict[str, str], context: Dict[str, Any]
    ) -> Tuple[Dict[str, Slot], Dict[str, NLUError]]:
        slots: Dict[str, Slot] = {}
        errors: Dict[str, NLUError] = {}
        for name in raw_slots:
            if intent.slot(name) is None:
                self.tracer.warn('Dropping slot "%s": not declared for intent "%s"', name, intent.name)

        for meta in intent.all_slots:
            raw_value = raw_slots.get(meta.name)
            if raw_value is None:
                if meta.implicit:
                    slots[meta.name] = Slot(meta.name, meta.type, None, meta.value)
                continue
            value = None
            try:
                parser = self.parsers.resolve(meta.type)
                value = parser.parse(meta.facets, raw_value, context)
            except ParserResolutionError as e:
                errors[meta.name] = e
            except Exception as e:
                self.tracer.warn('Error parsing "%s" as %s: %s', raw_value, meta.type, e)
                err = ParseError(f'could not parse "{raw_value}" as {meta.type}: {e}')
                err.__cause__ = e
                errors[meta.name] = err
            slots[meta.name] = Slot(meta.name, meta.type, raw_value, value)
        return slots, errors

    def close(self) -> None:
        """Release worker threads and the model; ``classify`` fails afterwards."""
        if self._closed:
            return
        self._closed = True
        self._workers.shutdown(wait=False)
        self._loader.shutdown(wait=False)
        # runs now if loading is done, otherwise once the loader finishes
        self._ready.add_done_callback(self._close_model)

    def _close_model(self, _ready: Future) -> None:
        if self.model is not None:
            self.model.close()
