import pytest
from fastapi.testclient import TestClient

from keybroker.api.main import create_app
from keybroker.broker.engine import KeyBroker
from keybroker.config import AppConfig
from keybroker_client.client import KeyBrokerClient


@pytest.fixture
def broker() -> KeyBroker:
    config = AppConfig()
    config.verifier.mock = True
    return KeyBroker.from_config(config)


@pytest.fixture
def http(broker) -> TestClient:
    return TestClient(create_app(broker))


@pytest.fixture
def client(http) -> KeyBrokerClient:
    return KeyBrokerClient("http://testserver", http_client=http, key_bits=2048)
