"""
Wordpiece text encoder.

Normalizes, splits and encodes text with a precomputed wordpiece
vocabulary (one piece per line, line number = token id). The vocabulary is
read on a background thread; the first caller that needs it blocks until
the load is done.

There is no special handling for CJK characters, so output on CJK input
differs from other wordpiece tokenizers.
"""

import re
import unicodedata
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .errors import LoadError
from .tracing import Tracer

UNKNOWN = "[UNK]"
SUFFIX_MARKER = "##"

# id used when the vocabulary could not be loaded at all
FALLBACK_UNKNOWN_ID = 0

_WORD = re.compile(r"\S+")
_STRIPPED_CATEGORIES = frozenset({"Mn", "Mc", "Me", "Cf", "Cc"})


@dataclass
class EncodedTokens:
    """Token ids for one utterance plus their alignment to its words."""

    text: str
    word_spans: List[Tuple[int, int]] = field(default_factory=list)
    ids: List[int] = field(default_factory=list)
    # original_indices[i] is the index of the word token i came from
    original_indices: List[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.ids)

    @property
    def words(self) -> List[str]:
        return [self.text[start:end] for start, end in self.word_spans]

    def add(self, token_id: int, word_index: int) -> None:
        self.ids.append(token_id)
        self.original_indices.append(word_index)

    def decode_range(self, start: int, stop: int) -> str:
        """
        Recover the source text covered by tokens ``start`` to ``stop - 1``.

        The result spans whole words and keeps the original spacing and
        casing.
        """
        if not 0 <= start < stop <= len(self.ids):
            raise IndexError(f"invalid token range [{start}, {stop}) for {len(self.ids)} tokens")
        first = self.word_spans[self.original_indices[start]]
        last = self.word_spans[self.original_indices[stop - 1]]
        return self.text[first[0]:last[1]]


def split_words(text: str) -> List[Tuple[int, int]]:
    return [m.span() for m in _WORD.finditer(text)]


def is_punctuation(ch: str) -> bool:
    return unicodedata.category(ch).startswith("P")


def normalize_and_split(word: str) -> List[str]:
    """
    Drop diacritics and control characters and split punctuation off a word.

    Punctuation characters become their own tokens; everything else is
    lower-cased. Input is expected to contain no whitespace.
    """
    sub_tokens: List[str] = []
    current: List[str] = []
    for ch in unicodedata.normalize("NFD", word):
        if is_punctuation(ch):
            if current:
                sub_tokens.append("".join(current).lower())
                current = []
            sub_tokens.append(ch)
        elif unicodedata.category(ch) not in _STRIPPED_CATEGORIES:
            current.append(ch)
    if current:
        sub_tokens.append("".join(current).lower())
    return sub_tokens


def load_vocabulary(path: Union[str, Path]) -> Dict[str, int]:
    if not path:
        raise LoadError("no wordpiece vocabulary path configured")
    vocab: Dict[str, int] = {}
    with open(path, encoding="utf-8") as f:
        for index, line in enumerate(f):
            vocab[line.rstrip("\r\n")] = index
    if UNKNOWN not in vocab:
        raise LoadError(f"vocabulary {path} has no {UNKNOWN} entry")
    return vocab


class WordpieceEncoder:
    """
    Usage:
        encoder = WordpieceEncoder("vocab.txt")
        encoded = encoder.encode("What's the weather?")
    """

    def __init__(
        self,
        vocab_path: Union[str, Path],
        tracer: Optional[Tracer] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.vocab_path = vocab_path
        self.tracer = tracer or Tracer(logger_name="nlu.encoder")
        self._vocab: Dict[str, int] = {}
        self._unknown_id = FALLBACK_UNKNOWN_ID
        if executor is None:
            own = ThreadPoolExecutor(max_workers=1, thread_name_prefix="vocab-loader")
            self._loaded: Future = own.submit(self._load)
            own.shutdown(wait=False)
        else:
            self._loaded = executor.submit(self._load)

    def _load(self) -> None:
        try:
            vocab = load_vocabulary(self.vocab_path)
        except (OSError, UnicodeDecodeError, LoadError) as e:
            self.tracer.error("Error loading wordpiece vocabulary: %s", e)
            return
        self._vocab = vocab
        self._unknown_id = vocab[UNKNOWN]
        self.tracer.debug("Loaded %d wordpieces from %s", len(vocab), self.vocab_path)

    @property
    def ready(self) -> bool:
        return self._loaded.done()

    def wait_ready(self) -> None:
        self._loaded.result()

    @property
    def vocab_size(self) -> int:
        self.wait_ready()
        return len(self._vocab)

    def encode_single(self, token: str) -> int:
        self.wait_ready()
        return self._vocab.get(token, self._unknown_id)

    def encode(self, text: str) -> EncodedTokens:
        self.wait_ready()
        encoded = EncodedTokens(text=text, word_spans=split_words(text))
        for word_index, (start, end) in enumerate(encoded.word_spans):
            for sub_token in normalize_and_split(text[start:end]):
                for token_id in self._wordpieces(sub_token):
                    encoded.add(token_id, word_index)
        return encoded

    def _wordpieces(self, token: str) -> List[int]:
        # greedy longest match; if any part of the token can't be encoded
        # the whole token becomes [UNK] (there is no ##[UNK])
        ids: List[int] = []
        prefix = ""
        remaining = token
        while remaining:
            combined = prefix + remaining
            for end in range(len(combined), len(prefix), -1):
                token_id = self._vocab.get(combined[:end])
                if token_id is not None:
                    ids.append(token_id)
                    remaining = combined[end:]
                    prefix = SUFFIX_MARKER
                    break
            else:
                return [self._unknown_id]
        return ids
