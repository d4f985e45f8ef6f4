"""Prometheus metrics exported on ``/metrics``."""
from __future__ import annotations

from prometheus_client import Counter, Histogram

REQS = Counter("keybroker_requests_total", "Total API requests", ["path", "method"])
LAT = Histogram("keybroker_request_seconds", "Request latency", ["path", "method"])
SESSIONS = Counter("keybroker_sessions_total", "Key broker sessions by terminal state", ["state"])
CHALLENGES = Counter("keybroker_challenges_issued_total", "Challenges issued")
VERIFIER_LAT = Histogram("keybroker_verifier_seconds", "Time spent waiting on the verifier")

__all__ = ["REQS", "LAT", "SESSIONS", "CHALLENGES", "VERIFIER_LAT"]
