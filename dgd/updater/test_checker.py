from pathlib import Path

import httpx
import pytest

from dgd.updater.checker import UpdateChecker, backoff_delay
from dgd.updater.checksum import sha256_hex
from dgd.updater.errors import (
    ChecksumMismatchError,
    DownloadError,
    PlatformNotSupportedError,
    UpdateCheckError,
)
from dgd.updater.manifest import ReleaseRecord

UPDATE_URL = "https://updates.example/latest.json"
BINARY = b"\x7fELF new build"


class RecordingReplacer:
    def __init__(self) -> None:
        self.applied: list[tuple[bytes, Path]] = []

    def apply(self, data: bytes, target: Path) -> None:
        self.applied.append((data, target))

    def cleanup(self, target: Path) -> None:
        pass


def _checker(handler, **kwargs) -> UpdateChecker:
    kwargs.setdefault("binary_name", "dgd-linux-amd64")
    kwargs.setdefault("backoff", lambda attempt: 0)
    return UpdateChecker(UPDATE_URL, transport=httpx.MockTransport(handler), **kwargs)


def _manifest(version: str) -> dict[str, str]:
    return {"version": version, "url": f"https://dl.example/dgd-{version}", "checksum": "abc123"}


def test_backoff_is_attempt_squared() -> None:
    assert [backoff_delay(i) for i in range(4)] == [0.0, 1.0, 4.0, 9.0]


@pytest.mark.asyncio
async def test_newer_version_available() -> None:
    checker = _checker(lambda request: httpx.Response(200, json=_manifest("0.3.0")))

    latest = await checker.check_for_updates("0.2.0")

    assert latest == ReleaseRecord("0.3.0", "https://dl.example/dgd-0.3.0", "abc123")


@pytest.mark.asyncio
@pytest.mark.parametrize("served", ["0.2.0", "0.1.0"])
async def test_no_update_when_server_is_not_newer(served: str) -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=_manifest(served))

    checker = _checker(handler)

    assert await checker.check_for_updates("0.2.0") is None
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_server_error_exhausts_retries() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500, text="Internal Server Error")

    checker = _checker(handler, max_retries=2)

    with pytest.raises(UpdateCheckError) as excinfo:
        await checker.check_for_updates("0.2.0")

    assert "failed after 2 attempts" in str(excinfo.value)
    assert "update server returned status 500" in str(excinfo.value)
    assert excinfo.value.attempts == 2
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_recovers_on_second_attempt() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(503)
        return httpx.Response(200, json=_manifest("0.3.0"))

    checker = _checker(handler)

    latest = await checker.check_for_updates("0.2.0")

    assert latest is not None
    assert latest.version == "0.3.0"
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_backoff_schedule_is_consulted_before_each_attempt() -> None:
    seen: list[int] = []

    def backoff(attempt: int) -> float:
        seen.append(attempt)
        return 0

    checker = _checker(lambda request: httpx.Response(500), max_retries=3, backoff=backoff)

    with pytest.raises(UpdateCheckError):
        await checker.check_for_updates("0.2.0")

    assert seen == [0, 1, 2]


@pytest.mark.asyncio
async def test_transport_failure_is_retried() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    checker = _checker(handler, max_retries=3)

    with pytest.raises(UpdateCheckError, match="failed to fetch update info"):
        await checker.check_for_updates("0.2.0")
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_unparseable_payload_is_retried() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, text="<html>maintenance</html>")

    checker = _checker(handler, max_retries=2)

    with pytest.raises(UpdateCheckError, match="failed to parse update info"):
        await checker.check_for_updates("0.2.0")
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_hosted_release_resolves_platform_asset() -> None:
    release = {
        "tag_name": "v0.5.0",
        "assets": [
            {"name": "dgd-linux-amd64", "browser_download_url": "https://dl.example/linux"},
            {"name": "dgd-windows-amd64.exe", "browser_download_url": "https://dl.example/win"},
        ],
    }
    checker = _checker(lambda request: httpx.Response(200, json=release))

    latest = await checker.check_for_updates("v0.4.9")

    assert latest == ReleaseRecord("v0.5.0", "https://dl.example/linux", "")


@pytest.mark.asyncio
async def test_missing_platform_asset_is_not_retried() -> None:
    calls: list[httpx.Request] = []
    release = {"tag_name": "v0.5.0", "assets": [{"name": "dgd-macos-arm64", "browser_download_url": "u"}]}

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=release)

    checker = _checker(handler)

    with pytest.raises(PlatformNotSupportedError):
        await checker.check_for_updates("0.4.0")
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_draft_release_is_not_offered() -> None:
    release = {
        "tag_name": "v0.5.0",
        "draft": True,
        "assets": [{"name": "dgd-linux-amd64", "browser_download_url": "u"}],
    }
    checker = _checker(lambda request: httpx.Response(200, json=release))

    assert await checker.check_for_updates("0.4.0") is None


# ── download & apply ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_download_and_apply_verifies_and_replaces(tmp_path: Path) -> None:
    replacer = RecordingReplacer()
    checker = _checker(lambda request: httpx.Response(200, content=BINARY), replacer=replacer)
    record = ReleaseRecord("0.3.0", "https://dl.example/dgd", sha256_hex(BINARY).upper())

    await checker.download_and_apply(record, tmp_path / "dgd")

    assert replacer.applied == [(BINARY, tmp_path / "dgd")]


@pytest.mark.asyncio
async def test_checksum_mismatch_never_applies(tmp_path: Path) -> None:
    replacer = RecordingReplacer()
    checker = _checker(lambda request: httpx.Response(200, content=BINARY), replacer=replacer)
    record = ReleaseRecord("0.3.0", "https://dl.example/dgd", "0" * 64)

    with pytest.raises(ChecksumMismatchError) as excinfo:
        await checker.download_and_apply(record, tmp_path / "dgd")

    assert excinfo.value.expected == "0" * 64
    assert excinfo.value.actual == sha256_hex(BINARY)
    assert replacer.applied == []


@pytest.mark.asyncio
async def test_empty_checksum_skips_verification(tmp_path: Path) -> None:
    replacer = RecordingReplacer()
    checker = _checker(lambda request: httpx.Response(200, content=BINARY), replacer=replacer)

    await checker.download_and_apply(ReleaseRecord("0.3.0", "https://dl.example/dgd", ""), tmp_path / "dgd")

    assert len(replacer.applied) == 1


@pytest.mark.asyncio
async def test_download_status_error(tmp_path: Path) -> None:
    replacer = RecordingReplacer()
    checker = _checker(lambda request: httpx.Response(404), replacer=replacer)

    with pytest.raises(DownloadError, match="download server status 404") as excinfo:
        await checker.download_and_apply(ReleaseRecord("0.3.0", "https://dl.example/dgd", "abc"), tmp_path / "dgd")

    assert excinfo.value.status_code == 404
    assert replacer.applied == []


@pytest.mark.asyncio
async def test_malformed_download_url_is_a_download_error(tmp_path: Path) -> None:
    replacer = RecordingReplacer()
    checker = _checker(lambda request: httpx.Response(200, content=BINARY), replacer=replacer)

    with pytest.raises(DownloadError, match="failed to download update"):
        await checker.download_and_apply(ReleaseRecord("0.3.0", "http://[::1", "abc"), tmp_path / "dgd")

    assert replacer.applied == []


@pytest.mark.asyncio
async def test_malformed_update_url_fails_the_check() -> None:
    checker = UpdateChecker(
        "http://[::1",
        binary_name="dgd-linux-amd64",
        backoff=lambda attempt: 0,
        max_retries=2,
        transport=httpx.MockTransport(lambda request: httpx.Response(200)),
    )

    with pytest.raises(UpdateCheckError, match="failed to fetch update info"):
        await checker.check_for_updates("0.2.0")
