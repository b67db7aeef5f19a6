from __future__ import annotations

import base64
from pathlib import Path

import httpx
import pytest
from loguru import logger

from gh_uploader.cli import build_parser, format_failure, main, resolve_options
from gh_uploader.exceptions import LocalFileError, UsageError
from gh_uploader.schemas import ApiFieldError, UploadFailed
from gh_uploader.settings import CONFIG_ENV, Settings, get_settings


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for name in (CONFIG_ENV, "GITHUB_TOKEN", "LOG_LEVEL", "LOG_FILE", "JSON_LOGGING"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def asset(tmp_path: Path) -> Path:
    path = tmp_path / "tool-1.0.tar.gz"
    path.write_bytes(b"x" * 1234)
    return path


def _client(captured: list[httpx.Request], status: int, body: dict) -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(status, json=body)

    return httpx.Client(transport=httpx.MockTransport(handler))


def _resolve(argv: list[str], settings: Settings | None = None):
    args = build_parser().parse_args(argv)
    return resolve_options(args, settings or Settings())


def test_success_prints_asset_url(asset: Path, capsys):
    captured: list[httpx.Request] = []
    client = _client(captured, 201, {"url": "http://x/y"})

    code = main(["owner/repo/releases/1/assets", str(asset), "--token", "t0k"], client=client)

    out = capsys.readouterr().out
    assert code == 0
    assert "Successfully uploaded to http://x/y" in out
    assert f"Sending {asset} (1234 bytes) to https://owner/repo/releases/1/assets?name=tool-1.0.tar.gz" in out
    assert len(captured) == 1
    assert captured[0].headers["Authorization"] == "basic " + base64.b64encode(b"t0k").decode()
    assert captured[0].headers["Content-Length"] == "1234"


def test_api_error_exits_non_zero(asset: Path, capsys):
    captured: list[httpx.Request] = []
    client = _client(captured, 422, {"message": "Validation Failed", "request_id": "abc"})

    code = main(["/repos/o/r/releases/1/assets", str(asset)], client=client)

    out = capsys.readouterr().out
    assert code == 1
    assert "422: Validation Failed" in out
    assert "Request ID: abc" in out
    assert "usage: gh-uploader asseturl localfile [options]" in out


def test_single_dash_flags(asset: Path):
    captured: list[httpx.Request] = []
    client = _client(captured, 201, {"url": "http://x/y"})

    code = main(
        [
            "https://uploads.github.com/repos/o/r/releases/1/assets",
            str(asset),
            "-token=secret",
            "-name",
            "custom.tgz",
            "-content_type",
            "application/gzip",
        ],
        client=client,
    )

    assert code == 0
    request = captured[0]
    assert request.url.params["name"] == "custom.tgz"
    assert request.headers["Content-Type"] == "application/gzip"
    assert request.headers["Authorization"] == "basic " + base64.b64encode(b"secret").decode()


def test_missing_asset_url(capsys):
    assert main([]) == 1
    out = capsys.readouterr().out
    assert out.startswith("No asset URL specified.")
    assert "--content_type" in out


def test_missing_local_file(capsys):
    assert main(["/repos/o/r/releases/1/assets"]) == 1
    assert "No local file specified." in capsys.readouterr().out


def test_unreadable_local_file(tmp_path: Path, capsys):
    assert main(["/assets", str(tmp_path / "nope.bin")]) == 1
    assert "Error opening local file" in capsys.readouterr().out


def test_invalid_url(asset: Path, capsys):
    assert main(["http://[::1/assets", str(asset)]) == 1
    assert "Invalid URL" in capsys.readouterr().out


def test_unknown_flag_is_usage_error(asset: Path, capsys):
    assert main(["/assets", str(asset), "--label", "x"]) == 1
    assert "unrecognized arguments" in capsys.readouterr().out


def test_transport_failure(asset: Path, capsys):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    assert main(["/assets", str(asset)], client=client) == 1
    assert "POST response error" in capsys.readouterr().out


def test_bad_config_file(asset: Path, tmp_path: Path, capsys):
    config = tmp_path / "bad.yaml"
    config.write_text("timeout_seconds: -1\n", encoding="utf-8")
    assert main(["/assets", str(asset), "--config", str(config)]) == 1
    assert "Invalid configuration" in capsys.readouterr().out


def test_config_changes_default_host(asset: Path, tmp_path: Path):
    config = tmp_path / "ghe.yaml"
    config.write_text("upload_host: uploads.ghe.example.com\n", encoding="utf-8")
    captured: list[httpx.Request] = []
    client = _client(captured, 201, {"url": "http://x/y"})

    assert main(["/assets", str(asset), "--config", str(config)], client=client) == 0
    assert captured[0].url.host == "uploads.ghe.example.com"


def test_resolve_options_defaults(asset: Path):
    options = _resolve(["/assets", str(asset)])
    assert options.token == ""
    assert options.name == "tool-1.0.tar.gz"
    assert options.content_type == "application/octet-stream"
    assert options.local_file.size == 1234
    assert options.upload_target.query == {"name": "tool-1.0.tar.gz"}


def test_resolve_options_explicit_name(asset: Path):
    options = _resolve(["/assets", str(asset), "--name", "release.tgz"])
    assert options.upload_target.query["name"] == "release.tgz"


def test_empty_flag_values_fall_back_to_defaults(asset: Path):
    options = _resolve(["/assets", str(asset), "--name", "", "--content_type", ""])
    assert options.name == "tool-1.0.tar.gz"
    assert options.content_type == "application/octet-stream"


def test_token_falls_back_to_environment(asset: Path, monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "from-env")
    assert _resolve(["/assets", str(asset)]).token == "from-env"
    assert _resolve(["/assets", str(asset), "--token", "flag"]).token == "flag"


def test_resolve_options_errors(asset: Path, tmp_path: Path):
    with pytest.raises(UsageError, match="No asset URL specified"):
        _resolve([])
    with pytest.raises(UsageError, match="No local file specified"):
        _resolve(["/assets"])
    with pytest.raises(LocalFileError):
        _resolve(["/assets", str(tmp_path / "missing")])


def test_format_failure_includes_details():
    result = UploadFailed(
        status_code=422,
        message="Validation Failed",
        request_id=None,
        documentation_url="https://docs.github.com/rest/releases",
        errors=[ApiFieldError(resource="ReleaseAsset", code="already_exists", field="name", message="taken")],
    )
    assert format_failure(result).splitlines() == [
        "422: Validation Failed",
        "Request ID: ",
        "Documentation: https://docs.github.com/rest/releases",
        "  - ReleaseAsset.name: already_exists (taken)",
    ]


def test_userinfo_in_url_keeps_token_header(asset: Path, capsys):
    captured: list[httpx.Request] = []
    client = _client(captured, 201, {"url": "http://x/y"})

    code = main(["https://u:p@uploads.github.com/assets", str(asset), "--token", "T"], client=client)

    assert code == 0
    assert captured[0].headers.get_list("Authorization") == ["basic VA=="]
    out = capsys.readouterr().out
    assert "u:p@" not in out
    assert "to https://uploads.github.com/assets?name=tool-1.0.tar.gz" in out


def test_unknown_log_level_in_config(asset: Path, tmp_path: Path, capsys):
    config = tmp_path / "loud.yaml"
    config.write_text("logging:\n  level: loud\n", encoding="utf-8")

    assert main(["/assets", str(asset), "--config", str(config)]) == 1
    out = capsys.readouterr().out
    assert "Invalid configuration" in out
    assert "usage: gh-uploader" in out


def test_unknown_log_level_in_environment(asset: Path, monkeypatch, capsys):
    monkeypatch.setenv("LOG_LEVEL", "verbose")

    assert main(["/assets", str(asset)]) == 1
    out = capsys.readouterr().out
    assert "Invalid logging configuration" in out
    assert "usage: gh-uploader" in out


def test_unwritable_log_file(asset: Path, tmp_path: Path, monkeypatch, capsys):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    monkeypatch.setenv("LOG_FILE", str(blocker / "uploader.log"))

    assert main(["/assets", str(asset)]) == 1
    assert "Invalid logging configuration" in capsys.readouterr().out


def test_environment_token_use_is_logged(asset: Path, monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "from-env")
    messages: list[str] = []
    handler_id = logger.add(messages.append, level="DEBUG", format="{message}")
    try:
        _resolve(["/assets", str(asset)])
        _resolve(["/assets", str(asset), "--token", "flag"])
    finally:
        logger.remove(handler_id)

    logged = [message for message in messages if "access token" in message]
    assert logged == ["Using access token from GITHUB_TOKEN\n"]
    assert all("from-env" not in message for message in messages)
