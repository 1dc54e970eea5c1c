"""Error taxonomy for the NLU engine.

None of these escape ``NLUEngine.classify``; they end up in
``ClassificationResult.error`` or ``ClassificationResult.slot_errors``.
"""


class NLUError(Exception):
    """Base class for all NLU engine errors."""


class LoadError(NLUError):
    """Vocabulary, metadata or model could not be loaded."""


class EncodingError(NLUError):
    """Tokenization failed."""


class LengthLimitError(NLUError):
    """Encoded utterance is longer than the model accepts."""

    def __init__(self, num_tokens: int, max_tokens: int):
        super().__init__(f"input exceeds max token length ({num_tokens} > {max_tokens})")
        self.num_tokens = num_tokens
        self.max_tokens = max_tokens


class InferenceError(NLUError):
    """The model forward pass failed."""


class ParserResolutionError(NLUError):
    """No usable parser for a slot type."""

    def __init__(self, type_name: str, reason: str):
        super().__init__(f'no parser available for "{type_name}" slots: {reason}')
        self.type_name = type_name


class ParseError(NLUError):
    """A slot parser raised while parsing a raw value."""
