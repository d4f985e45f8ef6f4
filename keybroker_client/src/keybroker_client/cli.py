"""Typer-based command line interface for the attester client.

Exit codes: 0 when the key was released, 1 when the broker rejected the
attestation, 2 for any other failure.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import structlog
import typer

from keybroker.config import CCA_MEDIA_TYPE
from keybroker.logging import configure_logging, level_from_verbosity
from keybroker.utils.b64 import std_b64d, std_b64e

from .client import KeyBrokerClient
from .errors import AttestationFailure, ClientError, EvidenceGenerationError
from .evidence import EvidenceProducer, ExampleTokenProducer, StaticEvidenceProducer

app = typer.Typer(help="Key broker attester client")
logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_ATTESTATION_FAILURE = 1
EXIT_ERROR = 2


def _producer(
    evidence_file: Optional[Path],
    evidence_type: str,
    cca_example: bool,
    measurement: Optional[str],
) -> EvidenceProducer:
    if evidence_file is None:
        if not measurement:
            return ExampleTokenProducer()
        try:
            digest = std_b64d(measurement)
        except ValueError as exc:
            raise EvidenceGenerationError(f"--measurement is not base64: {exc}") from exc
        return ExampleTokenProducer(measurement=digest)
    if cca_example:
        return StaticEvidenceProducer.cca_example(evidence_file)
    return StaticEvidenceProducer.from_file(evidence_file, evidence_type)


@app.command("get-key")
def get_key(
    key_name: str = typer.Argument(..., help="Name of the key to request"),
    endpoint: str = typer.Option("http://127.0.0.1:8088", "-e", "--endpoint", help="Key broker base URL"),
    evidence_file: Optional[Path] = typer.Option(
        None, "--evidence-file", exists=True, dir_okay=False, readable=True, help="Replay recorded evidence"
    ),
    evidence_type: str = typer.Option(CCA_MEDIA_TYPE, "--evidence-type", help="Media type of --evidence-file"),
    cca_example: bool = typer.Option(
        False, "--cca-example", help="--evidence-file is the published CCA example token"
    ),
    measurement: Optional[str] = typer.Option(
        None, "--measurement", help="Base64 measurement reported by the example token"
    ),
    timeout: float = typer.Option(10.0, "--timeout", min=0.1, help="HTTP timeout in seconds"),
    verbose: int = typer.Option(0, "-v", "--verbose", count=True, help="Increase log verbosity"),
    quiet: bool = typer.Option(False, "-q", "--quiet", help="Silence all output"),
) -> None:
    """Attest to the broker and print the released key."""
    configure_logging(level_from_verbosity(verbose, quiet), json=False, stream=typer.get_text_stream("stderr"))

    try:
        producer = _producer(evidence_file, evidence_type, cca_example, measurement)
        with KeyBrokerClient(endpoint, timeout=timeout) as client:
            key = client.get_key(key_name, producer)
    except AttestationFailure as exc:
        logger.info("attestation.failure", reason=exc.reason, detail=exc.detail)
        if not quiet:
            typer.echo(str(exc), err=True)
        raise typer.Exit(code=EXIT_ATTESTATION_FAILURE) from exc
    except ClientError as exc:
        logger.error("key_request.failed", error=str(exc))
        if not quiet:
            typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=EXIT_ERROR) from exc

    logger.info("attestation.success", key_name=key_name, size=len(key))
    try:
        typer.echo(key.decode("utf-8"))
    except UnicodeDecodeError:
        typer.echo(std_b64e(key))


@app.command()
def version() -> None:
    from keybroker.version import __version__

    typer.echo(__version__)


__all__ = ["app", "EXIT_OK", "EXIT_ATTESTATION_FAILURE", "EXIT_ERROR"]


if __name__ == "__main__":  # pragma: no cover
    app()
