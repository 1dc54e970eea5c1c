"""Turns raw model outputs into an intent and slot values."""

from typing import Dict, List, Optional, Tuple

import numpy as np

from .encoder import EncodedTokens
from .metadata import BEGIN_PREFIX, OUTSIDE, Intent, Metadata, slot_name


def arg_max(values: np.ndarray) -> int:
    # np.argmax returns the first index on ties
    return int(np.argmax(values))


def decode_intent(metadata: Metadata, output: np.ndarray) -> Tuple[Intent, float]:
    """Return the highest scoring intent and its raw posterior."""
    posteriors = np.asarray(output).ravel()[: len(metadata.intents)]
    index = arg_max(posteriors)
    return metadata.intents[index], float(posteriors[index])


def decode_labels(metadata: Metadata, encoded: EncodedTokens, output: np.ndarray) -> List[str]:
    """Arg-max tag label for each encoded token; padding rows are ignored."""
    num_tags = len(metadata.tags)
    rows = np.asarray(output).ravel()
    rows = rows[: (rows.size // num_tags) * num_tags].reshape(-1, num_tags)[: len(encoded)]
    return [metadata.tags[arg_max(row)] for row in rows]


def slot_spans(labels: List[str]) -> Dict[int, int]:
    """
    Map each slot start index to its exclusive end index.

    ``o`` closes the current slot, ``b_*`` always starts a new one, and any
    other label extends the current slot if there is one. An ``i_*`` with
    no open slot is ignored.
    """
    spans: Dict[int, int] = {}
    start: Optional[int] = None
    for i, label in enumerate(labels):
        if label == OUTSIDE:
            start = None
            continue
        if label.startswith(BEGIN_PREFIX):
            start = i
        if start is not None:
            spans[start] = i + 1
    return spans


def decode_slots(metadata: Metadata, encoded: EncodedTokens, output: np.ndarray) -> Dict[str, str]:
    """
    Extract raw slot strings from the tag output.

    When two spans carry the same slot name, the later one wins.
    """
    labels = decode_labels(metadata, encoded, output)
    return slots_from_labels(labels, encoded)


def slots_from_labels(labels: List[str], encoded: EncodedTokens) -> Dict[str, str]:
    slots: Dict[str, str] = {}
    for start, stop in sorted(slot_spans(labels).items()):
        slots[slot_name(labels[start])] = encoded.decode_range(start, stop)
    return slots
