"""
Slot type name -> parser resolution.

Bindings map a slot type to a factory (a class or any zero-argument
callable) or to a dotted import path such as ``"mypkg.parsers:ColorParser"``.
Parsers are built on first use and cached. A failed build is traced once,
remembered, and reported as ``ParserResolutionError`` every time that type
is needed again; other types are unaffected.
"""

import importlib
import threading
from typing import Callable, Dict, Iterable, Mapping, Optional, Union

from .errors import ParserResolutionError
from .parsers import DigitsParser, IdentityParser, IntegerParser, SelsetParser, SlotParser
from .tracing import Tracer

ParserFactory = Callable[[], SlotParser]
Binding = Union[str, ParserFactory]

DEFAULT_PARSERS: Dict[str, Binding] = {
    "entity": IdentityParser,
    "integer": IntegerParser,
    "digits": DigitsParser,
    "selset": SelsetParser,
}


def import_factory(path: str) -> ParserFactory:
    """Import ``"pkg.module:Name"`` or ``"pkg.module.Name"``."""
    if ":" in path:
        module_name, _, attr = path.partition(":")
    else:
        module_name, _, attr = path.rpartition(".")
    if not module_name or not attr:
        raise ImportError(f"not a valid import path: {path!r}")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attr)
    except AttributeError as e:
        raise ImportError(f"{module_name} has no attribute {attr!r}") from e


class ParserRegistry:
    def __init__(self, bindings: Optional[Mapping[str, Binding]] = None, tracer: Optional[Tracer] = None):
        self.bindings: Dict[str, Binding] = dict(DEFAULT_PARSERS)
        self.bindings.update(bindings or {})
        self.tracer = tracer or Tracer()
        self._parsers: Dict[str, SlotParser] = {}
        self._failures: Dict[str, ParserResolutionError] = {}
        self._lock = threading.Lock()

    def register(self, type_name: str, binding: Binding) -> None:
        with self._lock:
            self.bindings[type_name] = binding
            self._parsers.pop(type_name, None)
            self._failures.pop(type_name, None)

    def resolve(self, type_name: str) -> SlotParser:
        with self._lock:
            parser = self._parsers.get(type_name)
            if parser is not None:
                return parser
            failure = self._failures.get(type_name)
            if failure is not None:
                raise failure
            try:
                parser = self._build(type_name)
            except ParserResolutionError as e:
                self._failures[type_name] = e
                self.tracer.error("Error loading slot parser: %s", e)
                raise
            self._parsers[type_name] = parser
            return parser

    def warm_up(self, type_names: Iterable[str]) -> None:
        for type_name in type_names:
            try:
                self.resolve(type_name)
            except ParserResolutionError:
                # already traced; surfaces again when a slot needs it
                continue

    def _build(self, type_name: str) -> SlotParser:
        binding = self.bindings.get(type_name)
        if binding is None:
            raise ParserResolutionError(type_name, "no parser registered")
        try:
            factory = import_factory(binding) if isinstance(binding, str) else binding
            parser = factory()
        except Exception as e:
            raise ParserResolutionError(type_name, f"{type(e).__name__}: {e}") from e
        if not callable(getattr(parser, "parse", None)):
            raise ParserResolutionError(type_name, f"{type(parser).__name__} has no parse method")
        return parser
