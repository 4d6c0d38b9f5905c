"""
Application entry point — wires dependencies and runs one inspection.

Composition root: creates the concrete adapters, runs the pipeline inside
a logging + timeout execution context, and renders the outcome.

This is the ONLY place where concrete classes are instantiated.
Everything else depends on Protocol interfaces.

Responsibilities:
  1. Load and validate configuration from environment
  2. Configure structlog (human-readable, to stderr)
  3. Create the source (file or keychain), parser and enricher
  4. Run the inspection under a timeout
  5. Render text / field / extension list / JSON to stdout
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import click
import structlog
from railway import LoggingExecutionContext, TimeoutExecutionContext
from railway.failure import FailureDescription
from railway.result import Result

from mdm_cert_inspector import __version__
from mdm_cert_inspector.adapters.certificate_source import (
    FileCertificateSource,
    KeychainCertificateSource,
)
from mdm_cert_inspector.adapters.extension_decoder import IntuneExtensionEnricher
from mdm_cert_inspector.adapters.x509_parser import X509CertificateParser
from mdm_cert_inspector.config import AppSettings
from mdm_cert_inspector.domain.models import CertificateRecord
from mdm_cert_inspector.domain.ports import CertificateSource
from mdm_cert_inspector.pipeline import run_inspection
from mdm_cert_inspector.rendering import (
    extract_field,
    render_extension_list,
    render_json,
    render_text,
)


def _stderr_logger_factory(*args: Any) -> structlog.PrintLogger:
    # sys.stderr is looked up per logger so redirected streams are honored
    return structlog.PrintLogger(sys.stderr)


def configure_structlog(log_level: str = "WARNING") -> None:
    """
    Configure structlog for human-readable console logging on stderr.

    stdout is reserved for the report so `--json` and `--field` output
    stays machine-readable.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.WARNING)
        ),
        context_class=dict,
        logger_factory=_stderr_logger_factory,
        cache_logger_on_first_use=False,
    )


type _Adapters = tuple[CertificateSource, X509CertificateParser, IntuneExtensionEnricher]


def _create_adapters(settings: AppSettings, cert_file: Path | None) -> _Adapters:
    """
    Instantiate the concrete adapters.

    An explicit certificate file replaces the keychain lookup.
    """
    source: CertificateSource
    if cert_file is not None:
        source = FileCertificateSource(cert_file)
    else:
        source = KeychainCertificateSource(
            command=settings.keychain.command,
            keychains=settings.keychain.paths,
            timeout=settings.inspection_timeout_seconds,
        )
    return source, X509CertificateParser(), IntuneExtensionEnricher()


def _render(
    record: CertificateRecord,
    as_json: bool,
    field: str | None,
    list_extensions: bool,
    values_only: bool,
    verbose: bool,
) -> Result[str]:
    if as_json:
        return Result.success(render_json(record))
    if field is not None:
        return extract_field(record, field)
    if list_extensions:
        return Result.success(render_extension_list(record, values_only, verbose))
    return Result.success(render_text(record, verbose))


def _fail(error: FailureDescription, verbose: bool) -> None:
    if verbose:
        click.echo(f"Error details: {error}", err=True)
    else:
        click.echo(f"Error: {error.message}", err=True)
    sys.exit(1)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "-c",
    "--file",
    "cert_file",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Inspect a DER/PEM certificate file instead of searching the keychain.",
)
@click.option("-j", "--json", "as_json", is_flag=True, help="Output in JSON format.")
@click.option(
    "-f",
    "--field",
    default=None,
    help="Extract a specific field (commonName, serialNumber, tenantId, etc.).",
)
@click.option("--list-extensions", is_flag=True, help="List all available extensions.")
@click.option("--values-only", is_flag=True, help="Show only extension values without names.")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output.")
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Give up after this many seconds (default from settings: 5).",
)
@click.version_option(__version__, prog_name="mdm-cert-inspector")
def main(
    cert_file: Path | None,
    as_json: bool,
    field: str | None,
    list_extensions: bool,
    values_only: bool,
    verbose: bool,
    timeout: float | None,
) -> None:
    """Inspect the Intune MDM device certificate."""
    try:
        settings = AppSettings()
    except Exception as e:
        click.echo(f"FATAL: Configuration error — {e}", err=True)
        sys.exit(1)

    configure_structlog("INFO" if verbose else settings.log_level)
    log = structlog.get_logger()

    source, parser, enricher = _create_adapters(settings, cert_file)
    timeout_seconds = timeout or settings.inspection_timeout_seconds

    if verbose:
        target = str(cert_file) if cert_file is not None else "keychain"
        click.echo(f"Searching for MDM certificate in {target}...", err=True)

    ctx = LoggingExecutionContext(
        inner=TimeoutExecutionContext(timeout_seconds),
        operation="MdmCertificateInspection",
    )
    result = ctx.execute(
        lambda: run_inspection(source, parser, enricher, require_intune=cert_file is None)
    )

    result.peek(
        lambda record: log.info(
            "inspection.complete",
            common_name=record.common_name,
            extensions=len(record.extensions),
        )
    ).peek_failure(
        lambda error: log.info("inspection.failed", code=error.code.value, error=error.message)
    )

    output = result.flat_map(
        lambda record: _render(record, as_json, field, list_extensions, values_only, verbose)
    )
    output.either(
        on_success=click.echo,
        on_failure=lambda error: _fail(error, verbose),
    )


if __name__ == "__main__":
    main()
