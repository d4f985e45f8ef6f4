"""Attester-side client for the key broker."""
from .client import KeyBrokerClient, KeyChallenge
from .errors import AttestationFailure, ClientError, ClientRuntimeError
from .evidence import EvidenceProducer, ExampleTokenProducer, StaticEvidenceProducer

__all__ = [
    "KeyBrokerClient",
    "KeyChallenge",
    "AttestationFailure",
    "ClientError",
    "ClientRuntimeError",
    "EvidenceProducer",
    "ExampleTokenProducer",
    "StaticEvidenceProducer",
]
