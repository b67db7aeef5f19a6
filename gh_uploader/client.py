"""Single-request uploader for release assets."""

from __future__ import annotations

import base64
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
from loguru import logger

from gh_uploader.exceptions import LocalFileError, RequestBuildError, UploadTransportError
from gh_uploader.schemas import ApiError, Asset, AssetUploaded, UploadFailed, UploadResult, decode_body
from gh_uploader.settings import Settings
from gh_uploader.target import UploadTarget

MANIFOLD_PREVIEW = "application/vnd.github.manifold-preview"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class LocalFile:
    path: Path
    size: int

    @property
    def name(self) -> str:
        return self.path.name

    @classmethod
    def stat(cls, path: str | os.PathLike[str]) -> "LocalFile":
        local = Path(path)
        try:
            info = local.stat()
        except OSError as exc:
            raise LocalFileError(f"Error opening local file: {exc}", {"path": str(local)}) from exc
        return cls(path=local, size=info.st_size)


@dataclass(frozen=True)
class UploadOptions:
    target: UploadTarget
    local_file: LocalFile
    token: str = ""
    name: str = ""
    content_type: str = DEFAULT_CONTENT_TYPE

    @property
    def asset_name(self) -> str:
        return self.name or self.local_file.name

    @property
    def upload_target(self) -> UploadTarget:
        return self.target.with_name(self.asset_name)

    @property
    def request_url(self) -> str:
        # Userinfo would make httpx send its own Basic auth in place of the token
        return self.upload_target.without_userinfo().url


def basic_credential(token: str) -> str:
    # The whole token is the credential blob; there is no user:password pair.
    return "basic " + base64.b64encode(token.encode("utf-8")).decode("ascii")


def build_headers(options: UploadOptions, *, accept: str = MANIFOLD_PREVIEW) -> dict[str, str]:
    return {
        "Authorization": basic_credential(options.token),
        "Accept": accept,
        "Content-Type": options.content_type or DEFAULT_CONTENT_TYPE,
        "Content-Length": str(options.local_file.size),
    }


def _read_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


def interpret_response(response: httpx.Response) -> UploadResult:
    """Map an upload response onto :class:`AssetUploaded` or :class:`UploadFailed`."""
    payload = _read_json(response)
    if response.status_code == 201:
        asset = decode_body(Asset, payload)
        return AssetUploaded(url=asset.url)
    error = decode_body(ApiError, payload)
    return UploadFailed.from_api_error(response.status_code, error)


def upload(
    options: UploadOptions,
    *,
    settings: Settings | None = None,
    client: httpx.Client | None = None,
) -> UploadResult:
    """Send the local file to the upload target in one POST request.

    Args:
        options: Resolved target, file and credentials.
        settings: Settings supplying the Accept header and timeout. Defaults
            to built-in defaults.
        client: Optional HTTP client. When omitted a client is created and
            closed around the request.

    Returns:
        ``AssetUploaded`` for a 201 response, ``UploadFailed`` otherwise.

    Raises:
        LocalFileError: If the local file cannot be opened.
        RequestBuildError: If the request cannot be constructed.
        UploadTransportError: If no response is received.
    """
    settings = settings or Settings()
    url = options.request_url
    headers = build_headers(options, accept=settings.accept)

    logger.info("Uploading {path} as {name}", path=str(options.local_file.path), name=options.asset_name)
    logger.debug(
        "POST {url} content_type={content_type} content_length={size}",
        url=url,
        content_type=headers["Content-Type"],
        size=options.local_file.size,
    )

    owns_client = client is None
    if client is None:
        client = httpx.Client(timeout=settings.timeout_seconds)

    try:
        with options.local_file.path.open("rb") as body:
            try:
                request = client.build_request("POST", url, headers=headers, content=body)
            except (httpx.InvalidURL, httpx.UnsupportedProtocol, ValueError, TypeError) as exc:
                raise RequestBuildError(f"Error creating POST request: {exc}", {"url": url}) from exc
            try:
                response = client.send(request)
            except httpx.UnsupportedProtocol as exc:
                raise RequestBuildError(f"Error creating POST request: {exc}", {"url": url}) from exc
            except httpx.HTTPError as exc:
                raise UploadTransportError(f"POST response error: {exc}", {"url": url}) from exc
    except OSError as exc:
        raise LocalFileError(
            f"Error opening {options.local_file.path}: {exc}",
            {"path": str(options.local_file.path)},
        ) from exc
    finally:
        if owns_client:
            client.close()

    logger.info("Upload finished with HTTP {status}", status=response.status_code)
    return interpret_response(response)


__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "LocalFile",
    "MANIFOLD_PREVIEW",
    "UploadOptions",
    "basic_credential",
    "build_headers",
    "interpret_response",
    "upload",
]
