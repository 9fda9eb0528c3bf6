#!/usr/bin/env python3
"""
Verify a device attestation from files on disk.

Exit codes:
    0  attestation verified
    1  verification failed
    2  usage or configuration error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dac_common.config import AttestationConfig, get_config
from dac_common.crypto.certificate_codec import load_certificate_der
from dac_common.exceptions import AttestationError
from dac_common.logging_config import setup_logging
from device_attestation.factory import create_verifier
from device_attestation.results import AttestationRequest

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_VERIFICATION_FAILED = 1
EXIT_USAGE_ERROR = 2


def _hex_bytes(value: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid hex value: {value!r}") from exc


def _read_certificate(path: Path) -> bytes:
    """Read a PEM or DER certificate. DER content is passed through unparsed."""
    data = path.read_bytes()
    if data.lstrip().startswith(b"-----BEGIN"):
        return load_certificate_der(data)
    return data


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dac-verify", description="Verify a device attestation chain and signature"
    )
    parser.add_argument("--payload", type=Path, required=True, help="TLV attestation elements file")
    parser.add_argument("--challenge", type=_hex_bytes, required=True, help="Attestation challenge (hex)")
    parser.add_argument("--signature", type=Path, required=True, help="Raw 64-byte signature file")
    parser.add_argument("--dac", type=Path, required=True, help="Device attestation certificate")
    parser.add_argument("--pai", type=Path, help="Product attestation intermediate certificate")
    parser.add_argument("--nonce", type=_hex_bytes, required=True, help="Expected nonce (hex)")
    parser.add_argument("--config", type=Path, help="YAML configuration file")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = AttestationConfig.from_file(args.config) if args.config else get_config()
    except AttestationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return EXIT_USAGE_ERROR

    setup_logging(
        service_name=config.logging.service_name,
        level=config.logging.level,
        log_format=config.logging.format,
    )

    try:
        request = AttestationRequest(
            payload=args.payload.read_bytes(),
            challenge=args.challenge,
            signature=args.signature.read_bytes(),
            leaf_cert=_read_certificate(args.dac),
            intermediate_cert=_read_certificate(args.pai) if args.pai else None,
            expected_nonce=args.nonce,
        )
        verifier = create_verifier(config)
    except OSError as e:
        print(f"Unable to read input: {e}", file=sys.stderr)
        return EXIT_USAGE_ERROR
    except AttestationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_USAGE_ERROR

    result = verifier.verify(request)
    print(result.name)
    logger.debug("Attestation outcome %s (category %s)", result.name, result.category.value)
    return EXIT_SUCCESS if result.is_success else EXIT_VERIFICATION_FAILED


if __name__ == "__main__":
    sys.exit(main())
