import httpx
import pytest

from keybroker.attestation.mock import EXAMPLE_TOKEN_MEDIA_TYPE
from keybroker.config import CCA_MEDIA_TYPE
from keybroker.crypto.wrapping import WrappingKeyPair
from keybroker_client.client import KeyBrokerClient
from keybroker_client.errors import (
    AttestationFailure,
    ChallengeLengthError,
    ConnectionFailed,
    MissingLocation,
    NoAcceptableEvidenceType,
    UnexpectedResponse,
    UnwrapError,
)
from keybroker_client.evidence import ExampleTokenProducer, StaticEvidenceProducer


class WrongNonceProducer(ExampleTokenProducer):
    def produce(self, nonce, media_type):
        return super().produce(bytes(len(nonce)), media_type)


def test_get_key(client):
    assert client.get_key("skywalker", ExampleTokenProducer()) == b"May the force be with you."


def test_step_by_step(client):
    key_pair = WrappingKeyPair.generate(bits=2048)
    challenge = client.request_key("skywalker", key_pair.public_jwk())
    assert len(challenge.nonce) == 32
    assert challenge.accept == [EXAMPLE_TOKEN_MEDIA_TYPE]
    evidence = ExampleTokenProducer().produce(challenge.nonce, EXAMPLE_TOKEN_MEDIA_TYPE)
    wrapped = client.submit_evidence(challenge.location, evidence, EXAMPLE_TOKEN_MEDIA_TYPE)
    assert key_pair.unwrap(wrapped) == b"May the force be with you."

    with pytest.raises(UnexpectedResponse) as excinfo:
        client.submit_evidence(challenge.location, evidence, EXAMPLE_TOKEN_MEDIA_TYPE)
    assert excinfo.value.status == 409


def test_attestation_failure(client):
    with pytest.raises(AttestationFailure) as excinfo:
        client.get_key("skywalker", WrongNonceProducer())
    assert excinfo.value.detail == "The attestation failed."


def test_unknown_key_is_an_attestation_failure(client):
    with pytest.raises(AttestationFailure):
        client.get_key("vader", ExampleTokenProducer())


def test_no_acceptable_evidence_type(client, tmp_path):
    token = tmp_path / "token.cbor"
    token.write_bytes(b"\xd9\x01\x8f")
    with pytest.raises(NoAcceptableEvidenceType):
        client.get_key("skywalker", StaticEvidenceProducer.from_file(token, CCA_MEDIA_TYPE))


def test_challenge_length_mismatch(client):
    producer = StaticEvidenceProducer(b"token", EXAMPLE_TOKEN_MEDIA_TYPE, expected_nonce=b"n" * 64)
    with pytest.raises(ChallengeLengthError) as excinfo:
        client.get_key("skywalker", producer)
    assert (excinfo.value.expected, excinfo.value.actual) == (64, 32)


def _client_for(handler) -> KeyBrokerClient:
    return KeyBrokerClient(
        "http://broker.test",
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        key_bits=2048,
    )


def test_connection_failure():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ConnectionFailed):
        _client_for(handler).get_key("skywalker", ExampleTokenProducer())


def test_missing_location():
    def handler(request):
        return httpx.Response(201, json={"challenge": "AAAA", "accept": [EXAMPLE_TOKEN_MEDIA_TYPE]})

    with pytest.raises(MissingLocation):
        _client_for(handler).get_key("skywalker", ExampleTokenProducer())


def test_non_problem_error_body():
    def handler(request):
        return httpx.Response(500, text="Internal Server Error")

    with pytest.raises(UnexpectedResponse) as excinfo:
        _client_for(handler).get_key("skywalker", ExampleTokenProducer())
    assert excinfo.value.status == 500


def test_garbage_wrapped_key():
    def handler(request):
        if "/key/" in request.url.path:
            return httpx.Response(
                201,
                headers={"Location": "/keys/v1/evidence/abc"},
                json={"challenge": "AAAA", "accept": [EXAMPLE_TOKEN_MEDIA_TYPE]},
            )
        return httpx.Response(200, json={"data": "AAAA"})

    with pytest.raises(UnwrapError):
        _client_for(handler).get_key("skywalker", ExampleTokenProducer())
