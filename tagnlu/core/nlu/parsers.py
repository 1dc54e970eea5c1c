"""Built-in slot value parsers."""

import re
from typing import Any, Dict, List, Optional

_NUMBER = re.compile(r"^[+-]?\d{1,3}(,\d{3})*$|^[+-]?\d+$")
_WORD_SPLIT = re.compile(r"[\s\-]+")

UNITS = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11,
    "twelve": 12, "thirteen": 13, "fourteen": 14, "fifteen": 15,
    "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19,
}
TENS = {
    "twenty": 20, "thirty": 30, "forty": 40, "fifty": 50,
    "sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90,
}
SCALES = {"thousand": 1_000, "million": 1_000_000, "billion": 1_000_000_000}
DIGIT_WORDS = {"oh": "0", "o": "0", **{w: str(n) for w, n in UNITS.items() if n < 10}}


class SlotParser:
    """
    Protocol for slot parsers - must implement parse.

    ``parse`` returns the typed value, or None when the raw text is not a
    valid value of the type. It may add entries to ``context``, which ends
    up in ``ClassificationResult.context``.
    """

    def parse(self, facets: Dict[str, Any], raw_value: str, context: Optional[Dict[str, Any]] = None) -> Any:
        raise NotImplementedError


class IdentityParser(SlotParser):
    """Returns the raw value unchanged."""

    def parse(self, facets, raw_value, context=None):
        return raw_value


class IntegerParser(SlotParser):
    """
    Parses integers written as digits or English words.

    Facets:
        range: optional [lo, hi]; values outside lo <= n < hi parse to None
    """

    def parse(self, facets, raw_value, context=None):
        value = parse_integer(raw_value)
        if value is None:
            return None
        bounds = facets.get("range")
        if bounds and not bounds[0] <= value < bounds[1]:
            return None
        return value


class DigitsParser(SlotParser):
    """
    Turns a spoken digit sequence ("four one five", "oh seven") into a
    string of digits.

    Facets:
        count: optional required number of digits
    """

    def parse(self, facets, raw_value, context=None):
        digits = parse_digits(raw_value)
        if digits is None:
            return None
        count = facets.get("count")
        if count and len(digits) != count:
            return None
        return digits


class SelsetParser(SlotParser):
    """
    Maps a raw value onto one of a fixed set of selections.

    Facets:
        selections: [{"name": "small", "aliases": ["little", "tiny"]}, ...]
    """

    def parse(self, facets, raw_value, context=None):
        needle = raw_value.strip().lower()
        for selection in facets.get("selections") or ():
            name = selection["name"]
            if needle == name.lower():
                return name
            for alias in selection.get("aliases") or ():
                if needle == alias.lower():
                    return name
        return None


def parse_integer(text: str) -> Optional[int]:
    text = text.strip()
    if _NUMBER.match(text):
        return int(text.replace(",", ""))
    return _parse_number_words(_WORD_SPLIT.split(text.lower()))


def _parse_number_words(words: List[str]) -> Optional[int]:
    total = 0
    current = 0
    # kind of the previous word: None, "unit", "tens" or "scale"
    last = None
    for word in words:
        if not word or word == "and":
            continue
        if word.isdigit() or word == "a" or word in UNITS:
            value = int(word) if word.isdigit() else 1 if word == "a" else UNITS[word]
            # a unit never follows a unit, and only 1-9 may follow a tens word
            if last == "unit" or (last == "tens" and not 0 < value < 10):
                return None
            current += value
            last = "unit"
        elif word in TENS:
            if last in ("unit", "tens"):
                return None
            current += TENS[word]
            last = "tens"
        elif word == "hundred":
            current = (current or 1) * 100
            last = "scale"
        elif word in SCALES:
            total += (current or 1) * SCALES[word]
            current = 0
            last = "scale"
        else:
            return None
    return total + current if last is not None else None


def parse_digits(text: str) -> Optional[str]:
    out: List[str] = []
    after_tens = False
    for word in _WORD_SPLIT.split(text.strip().lower()):
        if not word:
            continue
        if word in TENS:
            out.append(str(TENS[word]))
            after_tens = True
            continue
        if after_tens and 0 < UNITS.get(word, 0) < 10:
            # "twenty three" -> "23"
            out[-1] = out[-1][0] + str(UNITS[word])
        elif word.isdigit():
            out.append(word)
        elif word in DIGIT_WORDS:
            out.append(DIGIT_WORDS[word])
        elif word in UNITS:
            out.append(str(UNITS[word]))
        elif word == "hundred" and out:
            out.append("00")
        else:
            return None
        after_tens = False
    return "".join(out) if out else None
