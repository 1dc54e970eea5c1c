"""
Inference adapters.

The engine only needs fixed-size numeric buffers and a ``run()`` that does
one forward pass over whatever is currently in the input buffer:

    inputs(0)   int32, shape (max_tokens,)            token ids, zero padded
    outputs(0)  float32, shape (num_intents,)         intent posteriors
    outputs(1)  float32, shape (max_tokens * num_tags,)  tag posteriors, row-major

Buffers are reused between calls and are not safe for concurrent passes.
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

import numpy as np

from .errors import LoadError

logger = logging.getLogger("nlu.model")

Forward = Callable[[np.ndarray], Tuple[np.ndarray, np.ndarray]]


class NLUModel:
    """Protocol for inference adapters - must implement the buffer accessors and run."""

    max_tokens: int

    def inputs(self, index: int = 0) -> np.ndarray:
        raise NotImplementedError

    def outputs(self, index: int) -> np.ndarray:
        raise NotImplementedError

    def run(self) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class NumpyModel(NLUModel):
    """
    Preallocated numpy buffers around a plain Python forward function.

    ``forward`` receives the input ids and returns (intent, tag) posteriors,
    which are copied into the output buffers. With no ``forward``, ``run()``
    leaves the outputs as they are, so callers can fill them directly.
    """

    def __init__(self, max_tokens: int, num_intents: int, num_tags: int, forward: Optional[Forward] = None):
        self.max_tokens = max_tokens
        self.num_intents = num_intents
        self.num_tags = num_tags
        self.forward = forward
        self._inputs: List[np.ndarray] = [np.zeros(max_tokens, dtype=np.int32)]
        self._outputs: List[np.ndarray] = [
            np.zeros(num_intents, dtype=np.float32),
            np.zeros(max_tokens * num_tags, dtype=np.float32),
        ]
        self.runs = 0

    def inputs(self, index: int = 0) -> np.ndarray:
        return self._inputs[index]

    def outputs(self, index: int) -> np.ndarray:
        return self._outputs[index]

    def set_outputs(self, intents, tags) -> None:
        """Fill the output buffers; shorter inputs are zero padded."""
        for buf, values in zip(self._outputs, (intents, tags)):
            values = np.asarray(values, dtype=np.float32).ravel()
            if len(values) > len(buf):
                raise ValueError(f"{len(values)} values do not fit an output buffer of {len(buf)}")
            buf[:] = 0.0
            buf[: len(values)] = values

    def run(self) -> None:
        self.runs += 1
        if self.forward is None:
            return
        intents, tags = self.forward(self._inputs[0])
        self.set_outputs(intents, tags)


class TFLiteModel(NLUModel):
    """
    Adapter for a TensorFlow Lite NLU model.

    The runtime is imported when the first model is loaded, so the rest of
    the package works without it installed.
    """

    def __init__(self, path: Union[str, Path], num_threads: Optional[int] = None):
        try:
            from ai_edge_litert.interpreter import Interpreter
        except ImportError as e:
            raise LoadError("ai-edge-litert is required to run .tflite models") from e

        self.path = str(path)
        self.interpreter = Interpreter(model_path=self.path, num_threads=num_threads)
        self.interpreter.allocate_tensors()
        self._input_details = self.interpreter.get_input_details()
        self._output_details = self.interpreter.get_output_details()
        if len(self._output_details) < 2:
            raise LoadError(f"{self.path}: expected intent and tag outputs, got {len(self._output_details)}")

        input_shape = self._input_details[0]["shape"]
        self.max_tokens = int(input_shape[-1])
        self._inputs = [np.zeros(self.max_tokens, dtype=self._input_details[0]["dtype"])]
        self._outputs = [
            np.zeros(int(np.prod(d["shape"])), dtype=np.float32) for d in self._output_details
        ]
        logger.info("Loaded TFLite model %s (max tokens: %d)", self.path, self.max_tokens)

    def inputs(self, index: int = 0) -> np.ndarray:
        return self._inputs[index]

    def outputs(self, index: int) -> np.ndarray:
        return self._outputs[index]

    def run(self) -> None:
        detail = self._input_details[0]
        self.interpreter.set_tensor(detail["index"], self._inputs[0].reshape(detail["shape"]))
        self.interpreter.invoke()
        for buf, detail in zip(self._outputs, self._output_details):
            buf[:] = self.interpreter.get_tensor(detail["index"]).ravel()


def load_model(path: Union[str, Path]) -> NLUModel:
    """Pick an adapter for ``path`` based on its suffix."""
    path = Path(path)
    if not path.exists():
        raise LoadError(f"model file does not exist: {path}")
    if path.suffix == ".tflite":
        return TFLiteModel(path)
    raise LoadError(f"unsupported model format: {path.suffix or path.name}")
