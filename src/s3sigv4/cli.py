"""CLI entry point for s3sigv4."""

import argparse
import json
import logging
import sys
from pathlib import Path

from s3sigv4 import metrics
from s3sigv4.config import load_config
from s3sigv4.errors import InvalidArgument, SigV4Error
from s3sigv4.logging_config import configure_logging
from s3sigv4.request import Signer
from s3sigv4.signing import parse_amz_date


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        prog="s3sigv4",
        description="s3sigv4 - sign S3 requests with AWS Signature Version 4",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("s3sigv4.yaml"),
        help="Path to YAML configuration file (default: s3sigv4.yaml)",
    )
    parser.add_argument(
        "--region",
        type=str,
        default=None,
        help="Signing region (overrides config)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config, default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        default=None,
        choices=["text", "json"],
        help="Log format: 'text' (human-readable) or 'json' (structured)",
    )
    parser.add_argument(
        "--date",
        type=str,
        default=None,
        help="Signing timestamp as YYYYMMDDTHHMMSSZ (default: now)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    sign_cmd = commands.add_parser("sign", help="Print a signed request as JSON")
    sign_cmd.add_argument("url", help="Absolute request URL")
    sign_cmd.add_argument("--method", default="GET", help="HTTP method (default: GET)")
    sign_cmd.add_argument(
        "--body-file", type=Path, default=None, help="File whose contents are the body"
    )
    sign_cmd.add_argument(
        "--content-length", type=int, default=None, help="Content-Length to send"
    )
    sign_cmd.add_argument(
        "--header",
        action="append",
        default=[],
        metavar="NAME:VALUE",
        help="Extra header to send and sign (repeatable)",
    )

    presign_cmd = commands.add_parser("presign", help="Print a presigned URL")
    presign_cmd.add_argument("url", help="Absolute request URL")
    presign_cmd.add_argument("--method", default="GET", help="HTTP method (default: GET)")
    presign_cmd.add_argument(
        "--expires", type=int, default=None, help="Validity in seconds (overrides config)"
    )
    return parser.parse_args(argv)


def _parse_headers(values: list[str]) -> list[tuple[str, str]]:
    headers = []
    for item in values:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            raise InvalidArgument(f"Header must be NAME:VALUE, got {item!r}")
        headers.append((name.strip(), value.strip()))
    return headers


def _run(args: argparse.Namespace, signer: Signer) -> str:
    now = parse_amz_date(args.date) if args.date else None

    if args.command == "presign":
        return signer.presign(args.method, args.url, expires=args.expires, now=now)

    headers = _parse_headers(args.header)
    if args.body_file is not None:
        with open(args.body_file, "rb") as body:
            request = signer.sign(
                args.method,
                args.url,
                body=body,
                content_length=args.content_length,
                headers=headers,
                now=now,
            )
    else:
        request = signer.sign(
            args.method,
            args.url,
            content_length=args.content_length,
            headers=headers,
            now=now,
        )
    # Repeated headers are comma-joined.
    sent: dict[str, str] = {}
    for name, value in request.headers.multi_items():
        sent[name] = f"{sent[name]},{value}" if name in sent else value
    return json.dumps(
        {"method": request.method, "url": str(request.url), "headers": sent},
        indent=2,
    )


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the s3sigv4 CLI.

    Loads configuration, applies CLI overrides, signs, and prints the result
    to stdout. Errors are logged and exit with status 1.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].
    """
    args = parse_args(argv)

    # Use a basic stderr logger for config-loading errors
    logging.basicConfig(level=logging.INFO, stream=sys.stderr)
    logger = logging.getLogger("s3sigv4")

    try:
        config = load_config(args.config)
    except FileNotFoundError:
        logger.error("Config file not found: %s", args.config)
        sys.exit(1)
    except Exception as exc:
        logger.error("Failed to load config: %s", exc)
        sys.exit(1)

    if args.region is not None:
        config.signer.region = args.region
    if args.log_level is not None:
        config.logging.level = args.log_level
    if args.log_format is not None:
        config.logging.format = args.log_format

    configure_logging(level=config.logging.level, fmt=config.logging.format)
    if config.metrics.enabled:
        metrics.init_metrics()

    try:
        output = _run(args, Signer.from_config(config))
    except SigV4Error as exc:
        logger.error("%s: %s", exc.code, exc.message)
        sys.exit(1)
    except OSError as exc:
        logger.error("Failed to open body file: %s", exc)
        sys.exit(1)
    print(output)


if __name__ == "__main__":
    main()
