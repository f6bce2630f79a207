"""Release-source payloads and their mapping onto :class:`ReleaseRecord`.

The update URL may point at either of two JSON shapes and the payload does
not say which one it is:

* a flat manifest ``{"version", "url", "checksum"}`` served by our own
  update endpoint;
* a GitHub Releases API object (``tag_name`` + ``assets``), which never
  carries a checksum.

:func:`probe_release_source` tries them in that order and returns the first
variant that parses with a non-empty version.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from dgd.updater.errors import PlatformNotSupportedError, UpdateFormatError


@dataclass(frozen=True, slots=True)
class ReleaseRecord:
    """A release newer than the running build, ready to download."""

    version: str
    download_url: str
    checksum: str = ""


# ── source variants ─────────────────────────────────────────────────────────


class FlatManifest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    kind: Literal["flat"] = "flat"
    version: str = ""
    url: str = ""
    checksum: str = ""

    @field_validator("version", "url", "checksum", mode="before")
    @classmethod
    def _null_as_empty(cls, v: Any) -> Any:
        # JSON null reads the same as an absent field
        return "" if v is None else v

    def to_record(self, binary_name: str) -> ReleaseRecord:
        return ReleaseRecord(version=self.version, download_url=self.url, checksum=self.checksum)


class ReleaseAsset(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    browser_download_url: str = ""

    @field_validator("name", "browser_download_url", mode="before")
    @classmethod
    def _null_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class HostedRelease(BaseModel):
    model_config = ConfigDict(extra="ignore")

    kind: Literal["hosted"] = "hosted"
    tag_name: str = ""
    draft: bool = False
    prerelease: bool = False
    assets: list[ReleaseAsset] = Field(default_factory=list)

    @field_validator("tag_name", mode="before")
    @classmethod
    def _null_tag(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("draft", "prerelease", mode="before")
    @classmethod
    def _null_flag(cls, v: Any) -> Any:
        return False if v is None else v

    @field_validator("assets", mode="before")
    @classmethod
    def _null_assets(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def is_published(self) -> bool:
        return not (self.draft or self.prerelease)

    def to_record(self, binary_name: str) -> ReleaseRecord:
        """Pick the asset named exactly *binary_name*.

        GitHub publishes no digest, so the record's checksum is empty and the
        download will not be verified.
        """
        for asset in self.assets:
            if asset.name == binary_name:
                return ReleaseRecord(
                    version=self.tag_name,
                    download_url=asset.browser_download_url,
                    checksum="",
                )
        raise PlatformNotSupportedError(binary_name)


ReleaseSource = FlatManifest | HostedRelease


# ── probing ─────────────────────────────────────────────────────────────────


def _decode(payload: bytes | str) -> dict[str, Any]:
    try:
        data = json.loads(payload)
    except (TypeError, ValueError) as exc:
        raise UpdateFormatError(f"failed to parse update info: {exc}") from exc
    if not isinstance(data, dict):
        raise UpdateFormatError("failed to parse update info: unknown format")
    return data


def probe_release_source(payload: bytes | str) -> ReleaseSource:
    data = _decode(payload)
    # the discriminator is ours, never the server's
    data.pop("kind", None)

    try:
        flat = FlatManifest.model_validate(data)
    except ValidationError:
        flat = None
    if flat is not None and flat.version:
        return flat

    try:
        hosted = HostedRelease.model_validate(data)
    except ValidationError:
        hosted = None
    if hosted is not None and hosted.tag_name:
        return hosted

    raise UpdateFormatError("failed to parse update info: unknown format")


def parse_release(payload: bytes | str, binary_name: str) -> ReleaseRecord:
    return probe_release_source(payload).to_record(binary_name)
