"""
Unit tests for TagNormalizer.
"""

import random

import pytest

from sematext_client.errors import ConfigurationError
from sematext_client.models import Tag
from sematext_client.tags import HOST_TAG, MAX_TAGS, TOKEN_TAG, TagNormalizer

from conftest import HOST, TOKEN


@pytest.fixture
def normalizer():
    return TagNormalizer(TOKEN, HOST)


MANDATORY = [Tag(HOST_TAG, HOST), Tag(TOKEN_TAG, TOKEN)]


@pytest.mark.parametrize(
    "tags, expected",
    [
        ({}, MANDATORY),
        (None, MANDATORY),
        ({"k": "v"}, [Tag("k", "v")] + MANDATORY),
        ({"": "v"}, MANDATORY),
        ({"k": ""}, MANDATORY),
        ({"z": "1", "a": "2"}, [Tag("a", "2"), Tag(HOST_TAG, HOST), Tag(TOKEN_TAG, TOKEN), Tag("z", "1")]),
    ],
)
def test_normalize(normalizer, tags, expected):
    assert normalizer.normalize(tags) == expected


def test_mandatory_tags_overwrite_caller_values(normalizer):
    """Caller-supplied token / os.host never reach the wire."""
    out = normalizer.normalize({TOKEN_TAG: "spoofed", HOST_TAG: "", "k": "v"})
    assert out == [Tag("k", "v")] + MANDATORY


def test_output_sorted_and_clean(normalizer):
    tags = {"b": "1", "": "x", "a": "", "c": "3", "A": "4"}
    out = normalizer.normalize(tags)
    keys = [t.k for t in out]
    assert keys == sorted(keys)
    assert all(t.k and t.v for t in out)
    assert [t.k for t in out] == ["A", "b", "c", HOST_TAG, TOKEN_TAG]


def test_input_not_mutated(normalizer):
    tags = {"k": "v"}
    normalizer.normalize(tags)
    assert tags == {"k": "v"}


def test_seventeen_tags_kept():
    """Under the cap nothing is dropped."""
    norm = TagNormalizer(TOKEN, HOST)
    tags = {f"k{i:02d}": f"v{i:02d}" for i in range(17)}
    out = norm.normalize(tags)
    assert len(out) == 19


def test_cardinality_cap_keeps_first_keys_in_order(log_messages):
    norm = TagNormalizer(TOKEN, HOST)
    tags = {f"k{i:02d}": f"v{i:02d}" for i in range(25)}
    out = norm.normalize(tags)

    assert len(out) == MAX_TAGS
    assert Tag(TOKEN_TAG, TOKEN) in out
    assert Tag(HOST_TAG, HOST) in out
    caller = [t.k for t in out if t.k not in (TOKEN_TAG, HOST_TAG)]
    assert caller == [f"k{i:02d}" for i in range(18)]
    assert any("cardinality" in m and "k24" in m for m in log_messages)


def test_cardinality_cap_is_deterministic():
    """Insertion order of the input does not change which tags survive."""
    norm = TagNormalizer(TOKEN, HOST)
    items = [(f"key{i}", str(i)) for i in range(40)]
    expected = norm.normalize(dict(items))
    rng = random.Random(7)
    for _ in range(20):
        rng.shuffle(items)
        assert norm.normalize(dict(items)) == expected


def test_empty_drops_are_reported(normalizer, log_messages):
    normalizer.normalize({"": "v", "k": ""})
    assert "empty tag key" in log_messages
    assert "empty tag value key=k" in log_messages


def test_empty_token_rejected():
    with pytest.raises(ConfigurationError):
        TagNormalizer("", HOST)


def test_empty_hostname_falls_back():
    out = TagNormalizer(TOKEN, "").normalize({})
    assert Tag(HOST_TAG, "unknown") in out


def test_custom_cap_leaves_room_for_mandatory_tags():
    norm = TagNormalizer(TOKEN, HOST, max_tags=4)
    assert norm.max_caller_tags == 2
    out = norm.normalize({"a": "1", "b": "2", "c": "3"})
    assert [t.k for t in out] == ["a", "b", HOST_TAG, TOKEN_TAG]


def test_cap_too_small_rejected():
    with pytest.raises(ConfigurationError):
        TagNormalizer(TOKEN, HOST, max_tags=1)


def test_non_string_values_converted_none_dropped(normalizer, log_messages):
    out = normalizer.normalize({"core": 0, "up": False, "gone": None})
    assert Tag("core", "0") in out
    assert Tag("up", "False") in out
    assert all(t.k != "gone" for t in out)
    assert "empty tag value key=gone" in log_messages
