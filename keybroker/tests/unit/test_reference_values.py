import json

import pytest

from keybroker.attestation.reference_values import ReferenceValues, load_reference_values
from keybroker.errors import ReferenceValuesError
from keybroker.utils.b64 import std_b64e

DIGEST = bytes(range(32))


def test_load_collection(tmp_path):
    path = tmp_path / "rims.json"
    path.write_text(json.dumps({"reference-values": [std_b64e(DIGEST)]}))
    values = load_reference_values(path)
    assert DIGEST in values
    assert len(values) == 1
    assert values.contains_b64(std_b64e(DIGEST))
    assert not values.contains_b64(std_b64e(bytes(32)))
    assert not values.contains_b64("not base64!")
    assert not values.contains_b64(42)


def test_load_bare_list(tmp_path):
    path = tmp_path / "rims.json"
    path.write_text(json.dumps([std_b64e(DIGEST), std_b64e(bytes(32))]))
    assert len(load_reference_values(path)) == 2


@pytest.mark.parametrize(
    "content",
    [
        json.dumps({"reference-values": []}),
        json.dumps({"reference-values": [std_b64e(b"short")]}),
        json.dumps({"reference-values": ["***"]}),
        json.dumps({"other": []}),
        "{not json",
    ],
)
def test_malformed_files(tmp_path, content):
    path = tmp_path / "rims.json"
    path.write_text(content)
    with pytest.raises(ReferenceValuesError):
        load_reference_values(path)


def test_missing_file(tmp_path):
    with pytest.raises(ReferenceValuesError):
        load_reference_values(tmp_path / "absent.json")


def test_requires_entries():
    with pytest.raises(ReferenceValuesError):
        ReferenceValues([])
