"""HTTP surface of the key broker."""
from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..broker.engine import KeyBroker
from ..errors import MalformedRequest, SessionError
from ..messages import (
    API_PREFIX,
    PROBLEM_MEDIA_TYPE,
    AttestationChallenge,
    BackgroundCheckKeyRequest,
    ErrorInformation,
    WrappedKeyData,
)
from ..metrics import LAT, REQS
from ..models import Evidence
from ..utils.b64 import std_b64e
from ..version import __version__

logger = structlog.get_logger(__name__)

_PROBLEM_RESPONSES = {
    status: {"model": ErrorInformation, "content": {PROBLEM_MEDIA_TYPE: {}}}
    for status in (400, 403, 404, 409, 410, 415, 502, 504)
}


def problem_response(exc: SessionError) -> JSONResponse:
    body = ErrorInformation(type=exc.problem_type, detail=exc.public_detail)
    return JSONResponse(
        status_code=exc.http_status,
        content=body.model_dump(),
        media_type=PROBLEM_MEDIA_TYPE,
    )


def create_app(broker: KeyBroker) -> FastAPI:
    app = FastAPI(title="Key Broker API", version=__version__)
    app.state.broker = broker

    @app.exception_handler(SessionError)
    async def session_error_handler(_request: Request, exc: SessionError) -> JSONResponse:
        return problem_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("request.malformed", path=request.url.path, errors=len(exc.errors()))
        return problem_response(MalformedRequest())

    @app.middleware("http")
    async def record_metrics(request: Request, call_next):
        route = request.scope.get("route")
        start = time.perf_counter()
        response = await call_next(request)
        route = request.scope.get("route") or route
        path = getattr(route, "path", "unmatched")
        REQS.labels(path, request.method).inc()
        LAT.labels(path, request.method).observe(time.perf_counter() - start)
        return response

    @app.post(
        API_PREFIX + "/key/{key_id}",
        status_code=201,
        response_model=AttestationChallenge,
        responses=_PROBLEM_RESPONSES,
    )
    def request_key(key_id: str, body: BackgroundCheckKeyRequest, request: Request, response: Response):
        challenge = broker.request_key(key_id, body.pubkey)
        response.headers["Location"] = str(
            request.url_for("submit_evidence", challenge_id=challenge.id)
        )
        return AttestationChallenge(
            challenge=std_b64e(challenge.nonce),
            accept=list(challenge.accepted_types),
        )

    @app.post(
        API_PREFIX + "/evidence/{challenge_id}",
        response_model=WrappedKeyData,
        responses=_PROBLEM_RESPONSES,
        name="submit_evidence",
    )
    async def submit_evidence(challenge_id: str, request: Request):
        evidence = Evidence(
            data=await request.body(),
            content_type=request.headers.get("content-type", ""),
        )
        wrapped = await run_in_threadpool(broker.submit_evidence, challenge_id, evidence)
        return WrappedKeyData(data=std_b64e(wrapped))

    @app.get("/healthz")
    def healthz():
        return {"status": "ok", "ts": int(time.time())}

    @app.get("/metrics")
    def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


__all__ = ["create_app", "problem_response"]
