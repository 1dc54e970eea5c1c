import pytest

from tagnlu.core.nlu.errors import ParserResolutionError
from tagnlu.core.nlu.parsers import (
    DigitsParser,
    IdentityParser,
    IntegerParser,
    SelsetParser,
    parse_digits,
    parse_integer,
)
from tagnlu.core.nlu.registry import ParserRegistry, import_factory
from tagnlu.core.nlu.tracing import Tracer


def test_identity():
    assert IdentityParser().parse({}, "Big Red Dog") == "Big Red Dog"


@pytest.mark.parametrize("text,expected", [
    ("1", 1),
    ("-4", -4),
    ("1,200", 1200),
    ("zero", 0),
    ("seventeen", 17),
    ("twenty one", 21),
    ("twenty-one", 21),
    ("a hundred and five", 105),
    ("three thousand four hundred", 3400),
    ("two million", 2_000_000),
    ("blue", None),
    ("one two", None),
    ("twenty twelve", None),
    ("twenty thirty", None),
    ("five hundred twenty two", 522),
    ("", None),
])
def test_parse_integer(text, expected):
    assert parse_integer(text) == expected


def test_integer_range():
    parser = IntegerParser()
    assert parser.parse({"range": [1, 10]}, "nine") == 9
    assert parser.parse({"range": [1, 10]}, "10") is None
    assert parser.parse({"range": [1, 10]}, "0") is None
    assert parser.parse({}, "one hundred") == 100
    assert parser.parse({}, "lots") is None


@pytest.mark.parametrize("text,expected", [
    ("four one five", "415"),
    ("oh seven", "07"),
    ("twenty three", "23"),
    ("twenty", "20"),
    ("12 34", "1234"),
    ("eight hundred", "800"),
    ("nineteen eighty four", "1984"),
    ("call me", None),
])
def test_parse_digits(text, expected):
    assert parse_digits(text) == expected


def test_digits_count():
    parser = DigitsParser()
    assert parser.parse({"count": 3}, "four one five") == "415"
    assert parser.parse({"count": 4}, "four one five") is None
    assert parser.parse({}, "four one five") == "415"


def test_selset():
    facets = {"selections": [
        {"name": "small", "aliases": ["little", "tiny"]},
        {"name": "large", "aliases": ["big", "huge"]},
    ]}
    parser = SelsetParser()
    assert parser.parse(facets, "Tiny") == "small"
    assert parser.parse(facets, " large ") == "large"
    assert parser.parse(facets, "medium") is None
    assert parser.parse({}, "small") is None


def test_registry_defaults_are_cached():
    registry = ParserRegistry()
    parser = registry.resolve("integer")
    assert isinstance(parser, IntegerParser)
    assert registry.resolve("integer") is parser
    assert isinstance(registry.resolve("entity"), IdentityParser)


def test_registry_failure_traced_once():
    errors = []
    tracer = Tracer()
    tracer.add_listener(lambda level, msg: errors.append(msg))
    registry = ParserRegistry(tracer=tracer)

    for _ in range(3):
        with pytest.raises(ParserResolutionError) as info:
            registry.resolve("color")
        assert info.value.type_name == "color"
    assert len(errors) == 1


def test_registry_dotted_paths():
    registry = ParserRegistry({
        "colon": "tagnlu.core.nlu.parsers:SelsetParser",
        "dotted": "tagnlu.core.nlu.parsers.DigitsParser",
        "missing_module": "tagnlu.nope:Parser",
        "missing_attr": "tagnlu.core.nlu.parsers:NopeParser",
    })
    assert isinstance(registry.resolve("colon"), SelsetParser)
    assert isinstance(registry.resolve("dotted"), DigitsParser)
    with pytest.raises(ParserResolutionError):
        registry.resolve("missing_module")
    with pytest.raises(ParserResolutionError):
        registry.resolve("missing_attr")


def test_registry_bad_constructor_and_bad_parser():
    class NoInit:
        def __init__(self):
            raise RuntimeError("boom")

    class NoParse:
        pass

    registry = ParserRegistry({"a": NoInit, "b": NoParse, "c": IdentityParser})
    registry.warm_up(["a", "b", "c"])
    with pytest.raises(ParserResolutionError, match="boom"):
        registry.resolve("a")
    with pytest.raises(ParserResolutionError, match="no parse method"):
        registry.resolve("b")
    assert isinstance(registry.resolve("c"), IdentityParser)


def test_registry_register_replaces_failure():
    registry = ParserRegistry()
    with pytest.raises(ParserResolutionError):
        registry.resolve("color")
    registry.register("color", IdentityParser)
    assert isinstance(registry.resolve("color"), IdentityParser)


def test_import_factory_rejects_bare_names():
    with pytest.raises(ImportError):
        import_factory("Parser")
