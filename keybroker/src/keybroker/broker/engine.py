"""Key broker protocol engine.

A session starts when a client asks for a key and ends when evidence for its
challenge reaches one of four terminal states: accepted, rejected, expired or
error. The engine owns no mutable state besides the challenge store it is
handed, so one instance serves any number of concurrent requests.
"""
from __future__ import annotations

import structlog

from ..attestation.mock import MockVerifier
from ..attestation.orchestrator import AttestationOrchestrator
from ..attestation.policy import resolve_policy
from ..attestation.reference_values import load_reference_values
from ..attestation.verifier import VeraisonVerifier, Verifier
from ..challenge.store import CCA_EXAMPLE_TOKEN_NONCE, ChallengeStore
from ..config import AppConfig
from ..crypto.wrapping import public_key_from_jwk
from ..errors import RejectedError, SessionError
from ..keystore import KeyStore
from ..messages import PublicWrappingKey
from ..metrics import CHALLENGES, SESSIONS, VERIFIER_LAT
from ..models import Challenge, Evidence, SessionState

logger = structlog.get_logger(__name__)


class KeyBroker:
    def __init__(
        self,
        store: ChallengeStore,
        orchestrator: AttestationOrchestrator,
        keystore: KeyStore,
    ) -> None:
        self.store = store
        self.orchestrator = orchestrator
        self.keystore = keystore

    @classmethod
    def from_config(cls, config: AppConfig, *, verifier: Verifier | None = None) -> "KeyBroker":
        """Wire a broker from configuration; any problem is a :class:`ConfigurationError`."""

        challenges = config.challenges
        mock_nonce = None
        if challenges.mock_challenge:
            logger.warning("challenge.mock_enabled", nonce_size=len(CCA_EXAMPLE_TOKEN_NONCE))
            mock_nonce = CCA_EXAMPLE_TOKEN_NONCE
        store = ChallengeStore(
            ttl=challenges.ttl_seconds,
            nonce_size=challenges.nonce_size,
            mock_nonce=mock_nonce,
        )

        if verifier is None:
            if config.verifier.mock:
                logger.warning("verifier.mock_enabled")
                verifier = MockVerifier()
            else:
                verifier = VeraisonVerifier(
                    config.verifier.url,
                    timeout=config.verifier.timeout,
                    poll_attempts=config.verifier.poll_attempts,
                    poll_interval=config.verifier.poll_interval,
                )

        reference_values = None
        if config.attestation.reference_values is not None:
            reference_values = load_reference_values(config.attestation.reference_values)
            logger.info("reference_values.loaded", count=len(reference_values))
        policies = {
            binding.media_type: resolve_policy(binding.policy)
            for binding in config.attestation.policies
        }
        orchestrator = AttestationOrchestrator(verifier, policies, reference_values)
        return cls(store, orchestrator, KeyStore.from_config(config.keys))

    def request_key(self, key_name: str, wrapping_key: PublicWrappingKey) -> Challenge:
        """Issue a challenge for ``key_name``.

        Anyone may ask for any key; the wrapping key is validated here so that
        an unusable key never gets a challenge. Whether the key exists is not
        revealed until evidence has been appraised.
        """

        public_key_from_jwk(wrapping_key)
        challenge = self.store.create(key_name, wrapping_key, self.orchestrator.accepted_types)
        CHALLENGES.inc()
        logger.info("session.challenge_issued", challenge_id=challenge.id, key_name=key_name)
        return challenge

    def submit_evidence(self, challenge_id: str, evidence: Evidence) -> bytes:
        """Appraise ``evidence`` and return the wrapped key on success.

        The content type is checked before the challenge is taken, so a
        mistyped submission leaves the challenge usable. Once taken, the
        challenge is spent whatever the outcome, including verifier failure.
        """

        try:
            pending = self.store.get(challenge_id)
            self.orchestrator.check_evidence_type(pending, evidence)
            challenge = self.store.take(challenge_id)
            with VERIFIER_LAT.time():
                verdict = self.orchestrator.verify(challenge, evidence)
            if not verdict.trusted:
                raise RejectedError(verdict.reason)
            wrapped = self.keystore.wrap_key(challenge.key_name, challenge.wrapping_key)
        except SessionError as exc:
            self._record(exc.terminal_state, challenge_id, exc)
            raise
        self._record(SessionState.ACCEPTED, challenge_id)
        return wrapped

    def _record(self, state: SessionState, challenge_id: str, exc: SessionError | None = None) -> None:
        SESSIONS.labels(state.value).inc()
        if exc is None:
            logger.info("session.accepted", challenge_id=challenge_id)
        elif isinstance(exc, RejectedError):
            logger.warning("session.rejected", challenge_id=challenge_id, reason=exc.reason)
        else:
            logger.warning(
                f"session.{state.value}",
                challenge_id=challenge_id,
                problem=exc.problem,
                error=str(exc),
            )


__all__ = ["KeyBroker"]
