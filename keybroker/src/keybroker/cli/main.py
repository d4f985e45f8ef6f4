"""Typer-based command line interface for the key broker server."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import structlog
import typer

from ..config import AppConfig, dump_default_config, load_config
from ..errors import ConfigurationError
from ..logging import configure_logging, level_from_verbosity

app = typer.Typer(help="Attestation-gated key broker")
logger = structlog.get_logger(__name__)


def _load(config: Optional[Path]) -> AppConfig:
    try:
        return load_config(config)
    except ConfigurationError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2) from exc


@app.command()
def serve(
    config: Optional[Path] = typer.Option(None, "--config", metavar="PATH", help="Override config path"),
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", min=1, max=65535, help="Bind port"),
    verifier_url: Optional[str] = typer.Option(None, "--verifier-url", help="Veraison verification service"),
    mock_verifier: bool = typer.Option(False, "--mock-verifier", help="Appraise example tokens in-process"),
    mock_challenge: bool = typer.Option(
        False, "--mock-challenge", help="Issue the CCA example token nonce (development only)"
    ),
    reference_values: Optional[Path] = typer.Option(
        None, "--reference-values", exists=True, dir_okay=False, readable=True, help="Reference values JSON file"
    ),
    verbose: int = typer.Option(0, "-v", "--verbose", count=True, help="Increase log verbosity"),
    quiet: bool = typer.Option(False, "-q", "--quiet", help="Disable logging"),
) -> None:
    """Run the key broker HTTP API."""
    import uvicorn

    from ..api.main import create_app
    from ..broker.engine import KeyBroker

    app_config = _load(config)
    if host:
        app_config.server.host = host
    if port:
        app_config.server.port = port
    if verifier_url:
        app_config.verifier.url = verifier_url
    if mock_verifier:
        app_config.verifier.mock = True
    if mock_challenge:
        app_config.challenges.mock_challenge = True
    if reference_values:
        app_config.attestation.reference_values = reference_values

    level = app_config.logging.normalized_level()
    if verbose or quiet:
        level = level_from_verbosity(verbose, quiet)
    configure_logging(level)

    try:
        broker = KeyBroker.from_config(app_config)
    except ConfigurationError as exc:
        logger.error("startup.failed", error=str(exc))
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2) from exc

    logger.info(
        "server.starting",
        host=app_config.server.host,
        port=app_config.server.port,
        keys=list(broker.keystore.names()),
        evidence_types=list(broker.orchestrator.accepted_types),
    )
    uvicorn.run(
        create_app(broker),
        host=app_config.server.host,
        port=app_config.server.port,
        log_config=None,
    )


@app.command("config-dump")
def config_dump(
    output: Path = typer.Option(Path("config.yaml"), "-o", "--output", help="Where to write the defaults"),
) -> None:
    """Write the default configuration as YAML."""
    dump_default_config(output)
    typer.echo(f"Default configuration written to {output}")


@app.command()
def version() -> None:
    from ..version import __version__

    typer.echo(__version__)


if __name__ == "__main__":  # pragma: no cover
    app()
