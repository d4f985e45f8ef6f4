import pytest

from keybroker.attestation.mock import EXAMPLE_TOKEN_MEDIA_TYPE, MockVerifier
from keybroker.attestation.orchestrator import AttestationOrchestrator
from keybroker.attestation.policy import builtin_policy
from keybroker.broker.engine import KeyBroker
from keybroker.challenge.store import ChallengeStore
from keybroker.crypto.wrapping import WrappingKeyPair
from keybroker.keystore import KeyStore

SKYWALKER = b"May the force be with you."


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def key_pair() -> WrappingKeyPair:
    return WrappingKeyPair.generate(bits=2048)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def keystore() -> KeyStore:
    store = KeyStore()
    store.store_key("skywalker", SKYWALKER)
    return store


@pytest.fixture
def make_broker(clock, keystore):
    def factory(verifier=None, *, policies=None, reference_values=None, ttl: float = 300.0) -> KeyBroker:
        orchestrator = AttestationOrchestrator(
            verifier or MockVerifier(),
            policies or {EXAMPLE_TOKEN_MEDIA_TYPE: builtin_policy("example")},
            reference_values,
        )
        return KeyBroker(ChallengeStore(ttl=ttl, clock=clock), orchestrator, keystore)

    return factory
