"""Upload target URLs: parsing and normalization against the upload host."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from gh_uploader.exceptions import UsageError

DEFAULT_UPLOAD_HOST = "uploads.github.com"
DEFAULT_SCHEME = "https"


@dataclass(frozen=True)
class UploadTarget:
    scheme: str
    host: str
    path: str
    query: dict[str, str] = field(default_factory=dict)

    @property
    def url(self) -> str:
        return urlunsplit((self.scheme, self.host, self.path, urlencode(sorted(self.query.items())), ""))

    def with_query(self, key: str, value: str) -> "UploadTarget":
        return replace(self, query={**self.query, key: value})

    def with_name(self, name: str) -> "UploadTarget":
        return self.with_query("name", name)

    def without_userinfo(self) -> "UploadTarget":
        return replace(self, host=self.host.rpartition("@")[2])


def parse_target(raw: str) -> UploadTarget:
    """Split a full or partial URL into an un-normalized :class:`UploadTarget`."""
    try:
        parts = urlsplit(raw)
        # Port validation is lazy in urlsplit
        parts.port
    except ValueError as exc:
        raise UsageError(f"Invalid URL: {exc}", {"url": raw}) from exc
    return UploadTarget(
        scheme=parts.scheme,
        host=parts.netloc,
        path=parts.path,
        query=dict(parse_qsl(parts.query, keep_blank_values=True)),
    )


def normalize_target(
    target: UploadTarget,
    *,
    default_host: str = DEFAULT_UPLOAD_HOST,
    default_scheme: str = DEFAULT_SCHEME,
) -> UploadTarget:
    """Fill in a missing scheme, host or leading slash.

    A path without a leading slash and without a host is read as
    ``host/path``, so ``uploads.example.com/repos/o/r/releases/1/assets``
    resolves to that host. A target with neither gets ``default_host``.
    """
    scheme, host, path = target.scheme, target.host, target.path

    if not path.startswith("/"):
        if not host:
            head, _, rest = path.partition("/")
            host, path = head, rest
        path = "/" + path

    if not host:
        host = default_host

    if not scheme:
        scheme = default_scheme

    return replace(target, scheme=scheme, host=host, path=path)


def resolve_target(
    raw: str,
    *,
    default_host: str = DEFAULT_UPLOAD_HOST,
    default_scheme: str = DEFAULT_SCHEME,
) -> UploadTarget:
    return normalize_target(parse_target(raw), default_host=default_host, default_scheme=default_scheme)


__all__ = [
    "DEFAULT_SCHEME",
    "DEFAULT_UPLOAD_HOST",
    "UploadTarget",
    "normalize_target",
    "parse_target",
    "resolve_target",
]
