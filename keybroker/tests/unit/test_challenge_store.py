import pytest

from keybroker.challenge.store import CCA_EXAMPLE_TOKEN_NONCE, ChallengeStore
from keybroker.errors import ChallengeAlreadyConsumed, ChallengeExpired, ChallengeNotFound
from keybroker.models import ChallengeState

ACCEPT = ("application/example-attestation-token",)


@pytest.fixture
def store(clock):
    return ChallengeStore(ttl=60.0, clock=clock)


def test_create_issues_random_nonce_and_id(store, key_pair):
    first = store.create("skywalker", key_pair.public_jwk(), ACCEPT)
    second = store.create("skywalker", key_pair.public_jwk(), ACCEPT)
    assert len(first.nonce) == 32
    assert first.nonce != second.nonce
    assert first.id != second.id
    assert first.state is ChallengeState.PENDING
    assert first.accepted_types == ACCEPT


def test_take_consumes_once(store, key_pair):
    challenge = store.create("skywalker", key_pair.public_jwk(), ACCEPT)
    taken = store.take(challenge.id)
    assert taken.state is ChallengeState.CONSUMED
    assert taken.nonce == challenge.nonce
    with pytest.raises(ChallengeAlreadyConsumed):
        store.take(challenge.id)
    with pytest.raises(ChallengeAlreadyConsumed):
        store.get(challenge.id)


def test_get_does_not_consume(store, key_pair):
    challenge = store.create("skywalker", key_pair.public_jwk(), ACCEPT)
    store.get(challenge.id)
    store.get(challenge.id)
    assert store.take(challenge.id).id == challenge.id


def test_returned_copies_are_detached(store, key_pair):
    challenge = store.create("skywalker", key_pair.public_jwk(), ACCEPT)
    challenge.state = ChallengeState.CONSUMED
    assert store.get(challenge.id).state is ChallengeState.PENDING


def test_unknown_id(store):
    with pytest.raises(ChallengeNotFound):
        store.take("no-such-challenge")


def test_lazy_expiry(store, clock, key_pair):
    challenge = store.create("skywalker", key_pair.public_jwk(), ACCEPT)
    clock.advance(60.5)
    with pytest.raises(ChallengeExpired):
        store.take(challenge.id)
    with pytest.raises(ChallengeExpired):
        store.get(challenge.id)


def test_challenge_within_ttl_is_usable(store, clock, key_pair):
    challenge = store.create("skywalker", key_pair.public_jwk(), ACCEPT)
    clock.advance(59.0)
    assert store.take(challenge.id).state is ChallengeState.CONSUMED


def test_sweep_reclaims_stale_entries(store, clock, key_pair):
    old = store.create("skywalker", key_pair.public_jwk(), ACCEPT)
    clock.advance(61.0)
    fresh = store.create("skywalker", key_pair.public_jwk(), ACCEPT)
    assert len(store) == 1
    assert store.take(fresh.id).id == fresh.id


def test_swept_pending_challenge_still_reports_expired(store, clock, key_pair):
    old = store.create("skywalker", key_pair.public_jwk(), ACCEPT)
    clock.advance(61.0)
    store.create("leia", key_pair.public_jwk(), ACCEPT)
    with pytest.raises(ChallengeExpired):
        store.take(old.id)
    with pytest.raises(ChallengeExpired):
        store.get(old.id)


def test_swept_consumed_challenge_still_reports_consumed(store, clock, key_pair):
    used = store.create("skywalker", key_pair.public_jwk(), ACCEPT)
    store.take(used.id)
    clock.advance(61.0)
    assert store.sweep() == 1
    with pytest.raises(ChallengeAlreadyConsumed):
        store.take(used.id)


def test_tombstones_are_forgotten_after_retention(clock, key_pair):
    store = ChallengeStore(ttl=60.0, retention=120.0, clock=clock)
    old = store.create("skywalker", key_pair.public_jwk(), ACCEPT)
    clock.advance(61.0)
    store.sweep()
    with pytest.raises(ChallengeExpired):
        store.take(old.id)
    clock.advance(60.0)
    store.sweep()
    with pytest.raises(ChallengeNotFound):
        store.take(old.id)


def test_explicit_sweep_count(store, clock, key_pair):
    for _ in range(3):
        store.create("skywalker", key_pair.public_jwk(), ACCEPT)
    clock.advance(30.0)
    assert store.sweep() == 0
    clock.advance(31.0)
    assert store.sweep() == 3
    assert len(store) == 0


def test_mock_nonce_keeps_ids_random(clock, key_pair):
    store = ChallengeStore(clock=clock, mock_nonce=CCA_EXAMPLE_TOKEN_NONCE)
    first = store.create("skywalker", key_pair.public_jwk(), ACCEPT)
    second = store.create("skywalker", key_pair.public_jwk(), ACCEPT)
    assert first.nonce == second.nonce == CCA_EXAMPLE_TOKEN_NONCE
    assert len(first.nonce) == 64
    assert first.id != second.id


def test_ttl_must_be_positive():
    with pytest.raises(ValueError):
        ChallengeStore(ttl=0)
