"""
Static model metadata: intents, slot declarations and BIO tag labels.

Expected JSON layout::

    {
      "intents": [
        {"name": "describe_test",
         "slots": [{"name": "test_num", "type": "integer", "facets": "{\"range\": [1, 10]}"}],
         "implicit_slots": [{"name": "source", "type": "entity", "value": "test"}]}
      ],
      "tags": ["o", "b_test_num", "i_test_num"]
    }

``facets`` may be an object or a JSON-encoded string. A slot with a
``value`` is implicit: it is reported even when nothing in the utterance
was tagged for it.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

from .errors import LoadError

OUTSIDE = "o"
BEGIN_PREFIX = "b_"
INSIDE_PREFIX = "i_"
PREFIX_LEN = 2


@dataclass(frozen=True)
class SlotMeta:
    name: str
    type: str
    facets: Dict[str, Any] = field(default_factory=dict)
    value: Any = None

    @property
    def implicit(self) -> bool:
        return self.value is not None


@dataclass(frozen=True)
class Intent:
    name: str
    slots: Tuple[SlotMeta, ...] = ()
    implicit_slots: Tuple[SlotMeta, ...] = ()

    @property
    def all_slots(self) -> Tuple[SlotMeta, ...]:
        return self.slots + self.implicit_slots

    def slot(self, name: str):
        for meta in self.all_slots:
            if meta.name == name:
                return meta
        return None


@dataclass(frozen=True)
class Metadata:
    intents: Tuple[Intent, ...]
    tags: Tuple[str, ...]

    def slot_types(self) -> List[str]:
        """Distinct slot types in declaration order."""
        seen: Dict[str, None] = {}
        for intent in self.intents:
            for meta in intent.all_slots:
                seen.setdefault(meta.type, None)
        return list(seen)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Metadata":
        try:
            intents = tuple(_intent(raw) for raw in data["intents"])
            tags = tuple(str(tag) for tag in data["tags"])
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise LoadError(f"malformed NLU metadata: {e!r}") from e
        if not intents:
            raise LoadError("NLU metadata declares no intents")
        if not tags:
            raise LoadError("NLU metadata declares no tags")
        for tag in tags:
            if tag != OUTSIDE and not tag.startswith((BEGIN_PREFIX, INSIDE_PREFIX)):
                raise LoadError(f'invalid tag label "{tag}"; expected "o", "b_<slot>" or "i_<slot>"')
        return cls(intents=intents, tags=tags)


def slot_name(label: str) -> str:
    return label[PREFIX_LEN:]


def load_metadata(path: Union[str, Path]) -> Metadata:
    if not path:
        raise LoadError("no NLU metadata path configured")
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise LoadError(f"could not read NLU metadata {path}: {e}") from e
    return Metadata.from_dict(data)


def _intent(raw: Dict[str, Any]) -> Intent:
    return Intent(
        name=raw["name"],
        slots=tuple(_slot(s) for s in raw.get("slots") or ()),
        implicit_slots=tuple(_slot(s) for s in raw.get("implicit_slots") or ()),
    )


def _slot(raw: Dict[str, Any]) -> SlotMeta:
    facets = raw.get("facets") or {}
    if isinstance(facets, str):
        facets = json.loads(facets) if facets.strip() else {}
    if not isinstance(facets, dict):
        raise ValueError(f"facets for slot {raw.get('name')!r} must be an object")
    return SlotMeta(name=raw["name"], type=raw["type"], facets=facets, value=raw.get("value"))
