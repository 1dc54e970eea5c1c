"""Shared fixtures: test metadata, a one-token-per-word encoder and a buffer-backed model."""
import json

import numpy as np
import pytest

from tagnlu.core.nlu.encoder import EncodedTokens, split_words
from tagnlu.core.nlu.engine import NLUConfig, NLUEngine
from tagnlu.core.nlu.metadata import Metadata
from tagnlu.core.nlu.model import NumpyModel

MAX_TOKENS = 100

METADATA = {
    "intents": [
        {"name": "accept", "slots": []},
        {"name": "reject", "slots": []},
        {
            "name": "describe_test",
            "slots": [
                {"name": "noun_phrase", "type": "entity", "facets": "{}"},
                {"name": "test_num", "type": "integer", "facets": "{\"range\": [1, 10]}"},
            ],
        },
        {
            "name": "order",
            "slots": [
                {
                    "name": "size",
                    "type": "selset",
                    "facets": {"selections": [
                        {"name": "small", "aliases": ["little", "tiny"]},
                        {"name": "large", "aliases": ["big"]},
                    ]},
                },
                {"name": "color", "type": "color", "facets": {}},
                {"name": "phone", "type": "digits", "facets": {"count": 3}},
            ],
            "implicit_slots": [
                {"name": "source", "type": "entity", "value": "voice"},
            ],
        },
    ],
    "tags": [
        "o",
        "b_noun_phrase",
        "i_noun_phrase",
        "b_test_num",
        "i_test_num",
        "b_size",
        "b_color",
        "b_phone",
        "i_phone",
    ],
}

VOCAB = [
    "[PAD]", "[UNK]", "[CLS]", "[SEP]",
    "this", "code", "is", "for", "test", "1",
    "play", "music", "un", "##aff", "##able",
    "what", "'", "s", "?", ",", "cafe", "##s", "hello",
]


class FakeEncoder:
    """Encodes every space-separated word as a single token."""

    def encode(self, text: str) -> EncodedTokens:
        if text == "error":
            raise RuntimeError("forced test error")
        encoded = EncodedTokens(text=text, word_spans=split_words(text))
        for i in range(len(encoded.word_spans)):
            encoded.add(0, i)
        return encoded


def intent_output(metadata: Metadata, name: str, score: float = 10.0) -> np.ndarray:
    out = np.zeros(len(metadata.intents), dtype=np.float32)
    out[[i.name for i in metadata.intents].index(name)] = score
    return out


def tag_output(metadata: Metadata, tags: dict, max_tokens: int = MAX_TOKENS) -> np.ndarray:
    """tags: token index -> tag label; untagged tokens decode to "o"."""
    num_tags = len(metadata.tags)
    out = np.zeros(max_tokens * num_tags, dtype=np.float32)
    for token, label in tags.items():
        out[token * num_tags + metadata.tags.index(label)] = 10.0
    return out


@pytest.fixture
def metadata_dict():
    return json.loads(json.dumps(METADATA))


@pytest.fixture
def metadata(metadata_dict):
    return Metadata.from_dict(metadata_dict)


@pytest.fixture
def metadata_file(tmp_path, metadata_dict):
    path = tmp_path / "nlu.json"
    path.write_text(json.dumps(metadata_dict), encoding="utf-8")
    return path


@pytest.fixture
def vocab_file(tmp_path):
    path = tmp_path / "vocab.txt"
    path.write_text("\n".join(VOCAB) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def model(metadata):
    return NumpyModel(MAX_TOKENS, len(metadata.intents), len(metadata.tags))


@pytest.fixture
def traces():
    return []


@pytest.fixture
def engine(metadata, model, traces):
    nlu = NLUEngine(
        NLUConfig(max_tokens=MAX_TOKENS),
        encoder=FakeEncoder(),
        model=model,
        metadata=metadata,
        trace_listeners=[lambda level, message: traces.append((level, message))],
    )
    nlu.wait_ready()
    yield nlu
    nlu.close()
