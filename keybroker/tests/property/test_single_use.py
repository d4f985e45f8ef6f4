import threading
from concurrent.futures import ThreadPoolExecutor

from keybroker.attestation.ear import EAR_PROFILE, Appraisal, AttestationResult, TrustTier
from keybroker.attestation.mock import EXAMPLE_TOKEN_MEDIA_TYPE
from keybroker.challenge.store import ChallengeStore
from keybroker.errors import ChallengeAlreadyConsumed, SessionError
from keybroker.models import Evidence

WORKERS = 16


class CountingVerifier:
    def __init__(self) -> None:
        self.calls = 0
        self._lock = threading.Lock()

    def verify(self, request):
        with self._lock:
            self.calls += 1
        return AttestationResult(
            profile=EAR_PROFILE,
            issued_at=0,
            verifier_id={},
            submods={"EXAMPLE": Appraisal(status=TrustTier.AFFIRMING)},
        )


def test_concurrent_take_has_one_winner(key_pair):
    store = ChallengeStore()
    challenge = store.create("skywalker", key_pair.public_jwk(), (EXAMPLE_TOKEN_MEDIA_TYPE,))
    barrier = threading.Barrier(WORKERS)

    def attempt(_):
        barrier.wait()
        try:
            store.take(challenge.id)
            return "won"
        except ChallengeAlreadyConsumed:
            return "lost"

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        outcomes = list(pool.map(attempt, range(WORKERS)))
    assert outcomes.count("won") == 1
    assert outcomes.count("lost") == WORKERS - 1


def test_concurrent_submissions_reach_verifier_once(make_broker, key_pair):
    verifier = CountingVerifier()
    broker = make_broker(verifier)
    challenge = broker.request_key("skywalker", key_pair.public_jwk())
    evidence = Evidence(data=b"{}", content_type=EXAMPLE_TOKEN_MEDIA_TYPE)
    barrier = threading.Barrier(WORKERS)

    def attempt(_):
        barrier.wait()
        try:
            return broker.submit_evidence(challenge.id, evidence)
        except SessionError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        outcomes = list(pool.map(attempt, range(WORKERS)))

    wrapped = [item for item in outcomes if isinstance(item, bytes)]
    assert len(wrapped) == 1
    assert verifier.calls == 1
    assert all(isinstance(item, ChallengeAlreadyConsumed) for item in outcomes if not isinstance(item, bytes))
