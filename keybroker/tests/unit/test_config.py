from pathlib import Path

import pytest
import yaml

from keybroker.attestation.mock import EXAMPLE_TOKEN_MEDIA_TYPE
from keybroker.config import AppConfig, config_search_paths, dump_default_config, load_config
from keybroker.errors import ConfigurationError
from keybroker.keystore import KeyStore


def test_defaults():
    config = AppConfig()
    assert config.server.port == 8088
    assert config.challenges.ttl_seconds == 300
    assert config.challenges.nonce_size == 32
    assert [binding.media_type for binding in config.attestation.policies] == [EXAMPLE_TOKEN_MEDIA_TYPE]
    assert config.keys["skywalker"].data == "May the force be with you."


def test_load_explicit_file_anchors_relative_paths(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "logging": {"level": "WARNING"},
                "challenges": {"ttl_seconds": 5},
                "attestation": {
                    "reference_values": "rims.json",
                    "policies": [{"media_type": "application/x", "policy": "policies/custom.yaml"}],
                },
                "keys": {"k": {"data": "c2VjcmV0", "encoding": "base64"}},
            }
        )
    )
    config = load_config(path)
    assert config.logging.level == "warn"
    assert config.challenges.ttl_seconds == 5
    assert config.attestation.reference_values == tmp_path / "rims.json"
    assert config.attestation.policies[0].policy == str(tmp_path / "policies" / "custom.yaml")
    assert "skywalker" not in config.keys


def test_builtin_policy_names_are_not_anchored(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"attestation": {"policies": [{"media_type": "a/b", "policy": "example"}]}}))
    assert load_config(path).attestation.policies[0].policy == "example"


def test_missing_explicit_file(tmp_path: Path):
    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "absent.yaml")


@pytest.mark.parametrize(
    "document",
    [
        "logging: {level: chatty}\n",
        "server: {port: 0}\n",
        "attestation: {policies: []}\n",
        "keys: {k: {data: x, encoding: hex}}\n",
        "server: [unclosed\n",
    ],
)
def test_invalid_documents(tmp_path: Path, document: str):
    path = tmp_path / "config.yaml"
    path.write_text(document)
    with pytest.raises(ConfigurationError, match="config.yaml"):
        load_config(path)


def test_search_order_prefers_explicit(tmp_path: Path):
    explicit = tmp_path / "mine.yaml"
    assert list(config_search_paths(explicit)) == [explicit]
    implicit = list(config_search_paths())
    assert implicit[0] == Path.cwd() / ".keybroker" / "config.yaml"
    assert implicit[1].name == "config.yaml"


def test_dump_default_config_round_trips(tmp_path: Path):
    target = tmp_path / "out" / "config.yaml"
    dump_default_config(target)
    assert load_config(target) == AppConfig()


def test_keystore_from_config():
    config = AppConfig.model_validate({"keys": {"raw": {"data": "AAEC", "encoding": "base64"}, "text": {"data": "hi"}}})
    store = KeyStore.from_config(config.keys)
    assert list(store.names()) == ["raw", "text"]


def test_keystore_rejects_bad_base64():
    config = AppConfig.model_validate({"keys": {"raw": {"data": "%%%", "encoding": "base64"}}})
    with pytest.raises(ConfigurationError):
        KeyStore.from_config(config.keys)
