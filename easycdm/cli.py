"""
Command-line interface for easycdm.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from easycdm.client.infrastructure.device_loader import load_device_files, load_wvd
from easycdm.client.infrastructure.transport import LicenseTransport
from easycdm.client.session import open_session
from easycdm.common.config import Config
from easycdm.common.exceptions import CdmError
from easycdm.common.logging_utils import setup_logger
from easycdm.common.messages import LicenseType
from easycdm.common.models import ClientConfig
from easycdm.common.pssh import parse_pssh
from easycdm.common.trust import verify_service_certificate


def _read_certificate(value: str) -> bytes | str:
    """A certificate argument is either a file path or base64 text."""
    path = Path(value)
    if path.is_file():
        return path.read_bytes()
    return value


def _parse_headers(values: tuple[str, ...]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            msg = f"Header must look like 'Name: value', got {value!r}"
            raise click.BadParameter(msg, param_hint="--header")
        headers[name.strip()] = content.strip()
    return headers


@click.group()
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level (default: from EASYCDM_LOG_LEVEL env or INFO)",
)
def cli(log_level: str | None) -> None:
    """easycdm content license client"""
    level = (
        logging.getLevelName(log_level.upper()) if log_level else Config().LOG_LEVEL
    )
    setup_logger(logging.getLogger("easycdm"), level)


@cli.command("license")
@click.option("--device", "device_path", default=None, help="Path to a .wvd device")
@click.option("--key", "key_path", default=None, help="Path to the device private key")
@click.option(
    "--client-id", "client_id_path", default=None, help="Path to the client id blob"
)
@click.option("--pssh", required=True, help="PSSH box or init data, base64")
@click.option("--url", required=True, help="License server URL")
@click.option("--header", "headers", multiple=True, help="Extra 'Name: value' header")
@click.option("--privacy", is_flag=True, help="Encrypt the client id")
@click.option(
    "--certificate",
    default=None,
    help="Service certificate (base64 or file); fetched from the server if omitted",
)
@click.option(
    "--license-type",
    type=click.Choice([t.name for t in LicenseType], case_sensitive=False),
    default=LicenseType.STREAMING.name,
    show_default=True,
)
def license_command(  # noqa: PLR0913
    device_path: str | None,
    key_path: str | None,
    client_id_path: str | None,
    pssh: str,
    url: str,
    headers: tuple[str, ...],
    privacy: bool,  # noqa: FBT001
    certificate: str | None,
    license_type: str,
) -> None:
    """Request a license and print kid:key pairs"""
    config = ClientConfig(
        license_url=url,
        headers=_parse_headers(headers),
        privacy_mode=privacy,
        service_certificate=certificate,
        license_type=LicenseType[license_type.upper()],
    )

    if not device_path and not (key_path and client_id_path):
        msg = "Pass --device, or both --key and --client-id"
        raise click.UsageError(msg)

    try:
        device = (
            load_wvd(device_path)
            if device_path
            else load_device_files(key_path or "", client_id_path or "")
        )
        transport = LicenseTransport(
            config.license_url, config.headers, config.request_timeout
        )
        service_cert = None
        if config.privacy_mode:
            raw_cert = (
                _read_certificate(config.service_certificate)
                if config.service_certificate
                else transport.get_service_certificate()
            )
            service_cert = verify_service_certificate(raw_cert)

        with open_session(device, config.protocol_version) as session:
            challenge = session.get_license_challenge(
                parse_pssh(pssh),
                privacy_mode=config.privacy_mode,
                service_cert=service_cert,
                license_type=config.license_type,
            )
            session.ingest_response(transport.post(challenge))
            for kid, key in session.keys().items():
                click.echo(f"{kid.hex()}:{key.hex()}")
    except CdmError as err:
        raise click.ClickException(err.message) from err


@cli.command("verify-cert")
@click.argument("cert")
def verify_cert(cert: str) -> None:
    """Verify a service certificate against the root"""
    try:
        trusted = verify_service_certificate(_read_certificate(cert))
    except CdmError as err:
        raise click.ClickException(err.message) from err
    click.echo(f"Provider: {trusted.provider_id}")
    click.echo(f"Serial: {trusted.serial_number.hex()}")


if __name__ == "__main__":
    cli()
