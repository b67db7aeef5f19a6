"""Command line entry point: ``gh-uploader <asset-url> <local-file> [options]``."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import NoReturn, Sequence

import httpx
from loguru import logger

from gh_uploader.client import LocalFile, UploadOptions, upload
from gh_uploader.exceptions import ConfigurationError, UploaderError, UsageError
from gh_uploader.logging_config import setup_logging
from gh_uploader.schemas import AssetUploaded, UploadFailed
from gh_uploader.settings import Settings, get_settings
from gh_uploader.target import resolve_target

PROG = "gh-uploader"


class UploaderArgumentParser(argparse.ArgumentParser):
    """Argument parser that raises :class:`UsageError` instead of exiting."""

    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def build_parser() -> UploaderArgumentParser:
    parser = UploaderArgumentParser(
        prog=PROG,
        usage=f"{PROG} asseturl localfile [options]",
        description="Upload a local file as a release asset.",
        allow_abbrev=False,
    )
    parser.add_argument("asset_url", nargs="?", help="Release asset upload URL, full or partial")
    parser.add_argument("local_file", nargs="?", help="Path of the file to upload")
    parser.add_argument("--token", "-token", default="", help="Your access token")
    parser.add_argument(
        "--name",
        "-name",
        default="",
        help="A custom file name for the asset.  Defaults to the local file's base name",
    )
    parser.add_argument(
        "--content_type",
        "--content-type",
        "-content_type",
        dest="content_type",
        default="",
        help="The local file's content type",
    )
    parser.add_argument("--config", type=Path, default=None, help="Optional YAML settings file")
    return parser


def resolve_options(args: argparse.Namespace, settings: Settings) -> UploadOptions:
    """Turn parsed arguments into an :class:`UploadOptions` record.

    Raises:
        UsageError: If the asset URL or local file is missing, or the URL is invalid.
        LocalFileError: If the local file cannot be stat'd.
    """
    if not args.asset_url:
        raise UsageError("No asset URL specified.")
    target = resolve_target(
        args.asset_url,
        default_host=settings.upload_host,
        default_scheme=settings.default_scheme,
    )

    if not args.local_file:
        raise UsageError("No local file specified.")
    local_file = LocalFile.stat(args.local_file)

    token = args.token
    if not token and settings.env_token:
        logger.debug("Using access token from {env}", env=settings.token_env)
        token = settings.env_token

    return UploadOptions(
        target=target,
        local_file=local_file,
        token=token,
        name=args.name or local_file.name,
        content_type=args.content_type or settings.default_content_type,
    )


def _configure_logging(settings: Settings) -> None:
    json_logging = os.getenv("JSON_LOGGING", str(settings.logging.json_format)).lower() in {"true", "1", "yes"}
    log_level = os.getenv("LOG_LEVEL", settings.logging.level).upper()
    log_file = os.getenv("LOG_FILE") or settings.logging.file
    try:
        setup_logging(
            level=log_level,
            json_format=json_logging,
            log_file=Path(log_file) if log_file else None,
        )
    except (ValueError, OSError) as exc:
        raise ConfigurationError(
            f"Invalid logging configuration: {exc}",
            {"level": log_level, "file": str(log_file or "")},
        ) from exc


def print_usage_and_fail(parser: argparse.ArgumentParser, message: str = "") -> int:
    if message:
        print(f"{message}\n")
    print(parser.format_help())
    return 1


def format_failure(result: UploadFailed) -> str:
    lines = [f"{result.status_code}: {result.message}", f"Request ID: {result.request_id or ''}"]
    if result.documentation_url:
        lines.append(f"Documentation: {result.documentation_url}")
    lines.extend(f"  - {error.describe()}" for error in result.errors)
    return "\n".join(lines)


def main(argv: Sequence[str] | None = None, *, client: httpx.Client | None = None) -> int:
    """Run one upload and return the process exit status."""
    parser = build_parser()
    try:
        args = parser.parse_args(list(sys.argv[1:] if argv is None else argv))
        settings = get_settings(str(args.config) if args.config else None)
        _configure_logging(settings)
    except UploaderError as exc:
        return print_usage_and_fail(parser, exc.message)

    try:
        options = resolve_options(args, settings)
        print(f"Sending {options.local_file.path} ({options.local_file.size} bytes) to {options.request_url}")
        result = upload(options, settings=settings, client=client)
    except UploaderError as exc:
        logger.debug("{type}: {message}", type=type(exc).__name__, message=exc.message, details=exc.details)
        return print_usage_and_fail(parser, exc.message)

    if isinstance(result, AssetUploaded):
        print(f"Successfully uploaded to {result.url}")
        return 0

    logger.debug("Upload rejected with HTTP {status}", status=result.status_code)
    return print_usage_and_fail(parser, format_failure(result))


__all__ = [
    "UploaderArgumentParser",
    "build_parser",
    "format_failure",
    "main",
    "print_usage_and_fail",
    "resolve_options",
]
