import pytest

from tagnlu.core.nlu.errors import LoadError
from tagnlu.core.nlu.metadata import Metadata, load_metadata, slot_name


def test_load_metadata(metadata_file):
    metadata = load_metadata(metadata_file)
    assert [i.name for i in metadata.intents] == ["accept", "reject", "describe_test", "order"]
    assert metadata.tags[0] == "o"

    describe = metadata.intents[2]
    assert [s.name for s in describe.slots] == ["noun_phrase", "test_num"]
    # facets given as a JSON string are decoded
    assert describe.slot("test_num").facets == {"range": [1, 10]}
    assert describe.slot("noun_phrase").facets == {}
    assert describe.slot("missing") is None


def test_implicit_slots(metadata):
    order = metadata.intents[3]
    source = order.slot("source")
    assert source.implicit
    assert source.value == "voice"
    assert not order.slot("size").implicit
    assert [s.name for s in order.all_slots] == ["size", "color", "phone", "source"]


def test_slot_types(metadata):
    assert metadata.slot_types() == ["entity", "integer", "selset", "color", "digits"]


def test_slot_name():
    assert slot_name("b_noun_phrase") == "noun_phrase"
    assert slot_name("i_x") == "x"


def test_bad_tag_label(metadata_dict):
    metadata_dict["tags"].append("noun_phrase")
    with pytest.raises(LoadError, match="noun_phrase"):
        Metadata.from_dict(metadata_dict)


def test_missing_sections():
    with pytest.raises(LoadError):
        Metadata.from_dict({"tags": ["o"]})
    with pytest.raises(LoadError):
        Metadata.from_dict({"intents": [], "tags": ["o"]})
    with pytest.raises(LoadError):
        Metadata.from_dict({"intents": [{"name": "x"}], "tags": []})


def test_unreadable_files(tmp_path):
    with pytest.raises(LoadError):
        load_metadata(tmp_path / "missing.json")
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(LoadError):
        load_metadata(bad)
    with pytest.raises(LoadError):
        load_metadata(None)


@pytest.mark.parametrize("data", [
    {"intents": [{"name": "x", "slots": ["oops"]}], "tags": ["o"]},
    {"intents": ["x"], "tags": ["o"]},
    {"intents": [{"name": "x", "slots": [{"name": "s", "type": "entity", "facets": "[1]"}]}], "tags": ["o"]},
])
def test_non_object_entries_are_load_errors(data):
    with pytest.raises(LoadError, match="malformed"):
        Metadata.from_dict(data)


def test_malformed_file_is_load_error(tmp_path):
    path = tmp_path / "nlu.json"
    path.write_text('{"intents": [{"name": "x", "slots": ["oops"]}], "tags": ["o"]}', encoding="utf-8")
    with pytest.raises(LoadError):
        load_metadata(path)
