"""Command-line interface for skynet-utils."""

from __future__ import annotations

import argparse
import json
import logging
import re
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from typing import Sequence

from skynet_utils.cli.config import CLIConfig, ConfigError, load_cli_config
from skynet_utils.client import PortalClient
from skynet_utils.crypto.keys import DerivedKeys, derive_keys_from_phrase
from skynet_utils.dictionary import DICTIONARY_VERSION
from skynet_utils.errors import (
    FileTooLargeError,
    IntegrityError,
    PhraseError,
    PortalUnavailableError,
)
from skynet_utils.mnemonic import generate_seed, seed_to_phrase
from skynet_utils.skylink import Skylink
from skynet_utils.transport import RequestsTransport
from skynet_utils.upload import file_skylink

EXIT_SUCCESS = 0
EXIT_VALIDATION_ERROR = 1
EXIT_NETWORK_ERROR = 2
EXIT_VERIFICATION_FAILED = 4

_SENSITIVE_FIELDS = (
    "api_key",
    "skynet-api-key",
    "authorization",
    "token",
    "secret",
)


def _sdk_version() -> str:
    try:
        return pkg_version("skynet-utils")
    except PackageNotFoundError:
        return "0.0.0+local"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="skynet-utils")
    parser.add_argument(
        "--version",
        action="version",
        version=f"skynet-utils {_sdk_version()}",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to CLI config TOML (default: ~/.skynet_utils/config.toml)",
    )
    parser.add_argument("--portal", default=None, help="Portal URL (overrides config)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    version = sub.add_parser("version", help="Show CLI version")
    version.add_argument("--json", action="store_true", help="Print version details as JSON")

    sub.add_parser(
        "generate-seed",
        aliases=["g", "s", "gs"],
        help="Generate a secure seed phrase",
    )

    v2 = sub.add_parser(
        "generate-v2skylink",
        aliases=["p", "v2"],
        help="Derive the V2 skylink for a seed phrase and salt",
    )
    v2.add_argument("salt")
    v2.add_argument("phrase", nargs="+", help="The 15 words of the seed phrase")
    v2.add_argument("--json", action="store_true")

    upload = sub.add_parser(
        "upload-file",
        aliases=["u", "uf"],
        help="Upload a file and verify the returned skylink",
    )
    upload.add_argument("path")

    upload_dry = sub.add_parser(
        "upload-file-dry",
        aliases=["ud", "ufd"],
        help="Print the skylink for a file without uploading it",
    )
    upload_dry.add_argument("path")

    publish = sub.add_parser(
        "upload-to-v2skylink",
        aliases=["u2", "u2v2", "utv", "utv2"],
        help="Point the V2 skylink for a seed phrase and salt at a V1 skylink",
    )
    publish.add_argument("skylink")
    publish.add_argument("salt")
    publish.add_argument("phrase", nargs="+", help="The 15 words of the seed phrase")

    pin = sub.add_parser("pin", help="Pin a skylink on the portal")
    pin.add_argument("skylink")
    return parser


_ALIASES = {
    "g": "generate-seed",
    "s": "generate-seed",
    "gs": "generate-seed",
    "p": "generate-v2skylink",
    "v2": "generate-v2skylink",
    "u": "upload-file",
    "uf": "upload-file",
    "ud": "upload-file-dry",
    "ufd": "upload-file-dry",
    "u2": "upload-to-v2skylink",
    "u2v2": "upload-to-v2skylink",
    "utv": "upload-to-v2skylink",
    "utv2": "upload-to-v2skylink",
}


def _sanitize_error_text(value: str) -> str:
    redacted = value
    for field in _SENSITIVE_FIELDS:
        redacted = re.sub(
            rf"(?i)({field}\s*[=:]\s*)([^,\s]+)",
            r"\1[REDACTED]",
            redacted,
        )
    return redacted


def _print_error(stderr, prefix: str, message: str, *, code: int) -> int:
    print(f"{prefix}: {_sanitize_error_text(message)}", file=stderr)
    return code


def _build_portal_client(config: CLIConfig, portal_url: str | None) -> PortalClient:
    transport = RequestsTransport(
        portal_url=portal_url or config.portal_url,
        api_key=config.api_key,
        user_agent=config.user_agent,
        timeout=config.timeout,
        retries=config.retries,
    )
    return PortalClient(transport)


def _derive_keys(salt: str, words: Sequence[str]) -> DerivedKeys:
    return derive_keys_from_phrase(" ".join(words), salt)


def _run_version(*, as_json: bool, stdout) -> int:
    payload = {
        "cli": "skynet-utils",
        "sdk_version": _sdk_version(),
        "dictionary_version": DICTIONARY_VERSION,
    }
    if as_json:
        print(json.dumps(payload, sort_keys=True), file=stdout)
    else:
        print(f"skynet-utils {payload['sdk_version']}", file=stdout)
        print(f"dictionary: {payload['dictionary_version']}", file=stdout)
    return EXIT_SUCCESS


def _run_generate_seed(*, stdout) -> int:
    print(seed_to_phrase(generate_seed()), file=stdout)
    return EXIT_SUCCESS


def _run_generate_v2skylink(*, args, stdout, stderr) -> int:
    try:
        keys = _derive_keys(args.salt, args.phrase)
    except PhraseError as exc:
        return _print_error(stderr, "invalid seed", str(exc), code=EXIT_VALIDATION_ERROR)

    skylink = str(Skylink.v2(keys.keypair.public_key_bytes, keys.lookup_key))
    if args.json:
        payload = {
            "skylink": skylink,
            "public_key": keys.keypair.sia_public_key,
            "data_key": keys.lookup_key.hex(),
        }
        print(json.dumps(payload, sort_keys=True), file=stdout)
        return EXIT_SUCCESS
    print(skylink, file=stdout)
    return EXIT_SUCCESS


def _run_upload_file(*, args, config: CLIConfig, stdout, stderr) -> int:
    client = _build_portal_client(config, args.portal)
    try:
        skylink = client.upload_file_secure(args.path)
    except (FileTooLargeError, OSError, ValueError) as exc:
        return _print_error(stderr, "upload failed", str(exc), code=EXIT_VALIDATION_ERROR)
    except IntegrityError as exc:
        return _print_error(stderr, "upload failed", str(exc), code=EXIT_VERIFICATION_FAILED)
    except PortalUnavailableError as exc:
        return _print_error(stderr, "upload failed", str(exc), code=EXIT_NETWORK_ERROR)
    print(skylink, file=stdout)
    return EXIT_SUCCESS


def _run_upload_file_dry(*, args, stdout, stderr) -> int:
    try:
        skylink = file_skylink(args.path)
    except (FileTooLargeError, OSError, ValueError) as exc:
        return _print_error(
            stderr, "unable to determine skylink", str(exc), code=EXIT_VALIDATION_ERROR
        )
    print(skylink, file=stdout)
    return EXIT_SUCCESS


def _run_upload_to_v2skylink(*, args, config: CLIConfig, stdout, stderr) -> int:
    try:
        keys = _derive_keys(args.salt, args.phrase)
    except PhraseError as exc:
        return _print_error(stderr, "invalid seed", str(exc), code=EXIT_VALIDATION_ERROR)

    client = _build_portal_client(config, args.portal)
    try:
        v2 = client.publish_to_v2(args.skylink, keys.keypair.private_key_bytes, keys.lookup_key)
    except IntegrityError as exc:
        return _print_error(stderr, "registry error", str(exc), code=EXIT_VERIFICATION_FAILED)
    except PortalUnavailableError as exc:
        return _print_error(stderr, "registry error", str(exc), code=EXIT_NETWORK_ERROR)
    except ValueError as exc:
        return _print_error(stderr, "invalid skylink", str(exc), code=EXIT_VALIDATION_ERROR)
    print(v2, file=stdout)
    return EXIT_SUCCESS


def _run_pin(*, args, config: CLIConfig, stdout, stderr) -> int:
    client = _build_portal_client(config, args.portal)
    try:
        pinned = client.pin_skylink(args.skylink)
    except PortalUnavailableError as exc:
        return _print_error(stderr, "pin failed", str(exc), code=EXIT_NETWORK_ERROR)
    print(pinned, file=stdout)
    return EXIT_SUCCESS


def main(argv: Sequence[str] | None = None, *, stdout=sys.stdout, stderr=sys.stderr) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    command = _ALIASES.get(args.command, args.command)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if command == "version":
        return _run_version(as_json=args.json, stdout=stdout)

    if command == "generate-seed":
        return _run_generate_seed(stdout=stdout)

    if command == "generate-v2skylink":
        return _run_generate_v2skylink(args=args, stdout=stdout, stderr=stderr)

    if command == "upload-file-dry":
        return _run_upload_file_dry(args=args, stdout=stdout, stderr=stderr)

    try:
        config = load_cli_config(args.config)
    except ConfigError as exc:
        return _print_error(stderr, "config error", str(exc), code=EXIT_VALIDATION_ERROR)

    if command == "upload-file":
        return _run_upload_file(args=args, config=config, stdout=stdout, stderr=stderr)

    if command == "upload-to-v2skylink":
        return _run_upload_to_v2skylink(args=args, config=config, stdout=stdout, stderr=stderr)

    if command == "pin":
        return _run_pin(args=args, config=config, stdout=stdout, stderr=stderr)

    parser.print_help(stderr)
    return EXIT_VALIDATION_ERROR


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
