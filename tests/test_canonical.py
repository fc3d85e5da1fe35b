import hashlib

import pytest

from ebuskit.determinism.canonical import canonical_clone, canonical_hash, canonical_json
from ebuskit.errors import InvalidPayloadError


def test_stable_across_map_order():
    first = {"z": 1, "a": {"k2": "v2", "k1": "v1"}, "l": ["b", 3, True]}
    second = {"l": ["b", 3, True], "a": {"k1": "v1", "k2": "v2"}, "z": 1}

    assert canonical_json(first) == canonical_json(second)
    assert canonical_hash(first) == canonical_hash(second)


def test_canonical_form_is_compact_and_sorted():
    value = {"z": 1, "a": {"k2": "v2", "k1": "v1"}, "l": ["b", 3, True]}
    assert canonical_json(value) == b'{"a":{"k1":"v1","k2":"v2"},"l":["b",3,true],"z":1}'


def test_hash_is_sha256_of_canonical_json():
    value = {"b": None, "a": [1, 2]}
    assert canonical_hash(value) == hashlib.sha256(b'{"a":[1,2],"b":null}').hexdigest()


def test_clone_is_deep_copy():
    source = {"obj": {"v": "x"}, "arr": [1, "a"]}
    cloned = canonical_clone(source)
    assert isinstance(cloned, dict)

    cloned["obj"]["v"] = "changed"
    cloned["arr"][0] = "changed"

    assert source == {"obj": {"v": "x"}, "arr": [1, "a"]}
    assert canonical_json(source) != canonical_json(cloned)
    assert canonical_json(source) == canonical_json(canonical_clone(source))


@pytest.mark.parametrize("func", [canonical_json, canonical_clone, canonical_hash])
def test_errors_wrap_invalid_payload(func):
    with pytest.raises(InvalidPayloadError):
        func({"fn": lambda: None})


def test_nan_is_invalid_payload():
    with pytest.raises(InvalidPayloadError):
        canonical_json({"n": float("nan")})


def test_circular_reference_is_invalid_payload():
    loop = []
    loop.append(loop)
    with pytest.raises(InvalidPayloadError):
        canonical_clone(loop)


def test_clone_preserves_equivalent_content():
    value = {"n": 1, "b": True, "s": "x", "a": [1, 2, 3]}
    assert canonical_clone(value) == canonical_clone(value)
    assert canonical_clone(value) == value


def test_integral_floats_match_ints():
    assert canonical_json({"a": 1.0}) == canonical_json({"a": 1}) == b'{"a":1}'
    assert canonical_hash([2.0, 0.5]) == canonical_hash([2, 0.5])


def test_html_characters_are_escaped():
    assert canonical_json({"k": "<&>"}) == b'{"k":"\\u003c\\u0026\\u003e"}'


def test_tuples_encode_as_arrays():
    assert canonical_json({"t": (1, "x")}) == canonical_json({"t": [1, "x"]})