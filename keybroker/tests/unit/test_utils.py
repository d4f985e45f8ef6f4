import pytest

from keybroker.logging import level_from_verbosity
from keybroker.utils import (
    b64d,
    b64e,
    constant_time_compare,
    media_type_in,
    normalize_media_type,
    resolve_and_check_path,
    std_b64d,
)


@pytest.mark.parametrize(
    "left,right",
    [
        ('application/eat-collection; profile="http://arm.com/CCA-SSD/1.0.0"',
         "application/eat-collection;profile=http://arm.com/CCA-SSD/1.0.0"),
        ("Application/Example-Attestation-Token", "application/example-attestation-token"),
        ("a/b; y=2; x=1", "a/b; x=1; y=2"),
    ],
)
def test_equivalent_media_types(left, right):
    assert normalize_media_type(left) == normalize_media_type(right)


def test_media_type_membership():
    assert media_type_in("a/b", ("c/d", "A/B"))
    assert not media_type_in("a/b; p=1", ("a/b",))
    assert not media_type_in("", ("a/b",))


def test_urlsafe_b64_tolerates_missing_padding():
    assert b64d(b64e(b"\xfb\xff")) == b"\xfb\xff"
    assert "=" not in b64e(b"\x01")


def test_std_b64_is_strict():
    with pytest.raises(ValueError):
        std_b64d("not base64!")


def test_constant_time_compare():
    assert constant_time_compare(b"abc", "abc")
    assert not constant_time_compare(b"abc", b"abd")


@pytest.mark.parametrize(
    "verbosity,quiet,expected",
    [(0, False, "warn"), (1, False, "info"), (2, False, "debug"), (3, False, "trace"), (7, False, "trace"), (2, True, "quiet")],
)
def test_level_from_verbosity(verbosity, quiet, expected):
    assert level_from_verbosity(verbosity, quiet) == expected


def test_path_validation(tmp_path):
    target = tmp_path / "rims.json"
    target.write_text("[]")
    assert resolve_and_check_path(target, must_exist=True, require_file=True) == target.resolve()
    with pytest.raises(ValueError):
        resolve_and_check_path("../escape.json")
    with pytest.raises(ValueError):
        resolve_and_check_path(tmp_path / "absent.json", must_exist=True)
    with pytest.raises(ValueError):
        resolve_and_check_path(tmp_path, require_file=True)
