from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CDN_TEMPLATE = "https://cdn.bsky.app/img/feed_thumbnail/plain/{did}/{link}@{ext}"

_CDN_PLACEHOLDERS = ("{did}", "{link}", "{ext}")

PositiveInt = Annotated[int, Field(ge=1)]
PositiveFloat = Annotated[float, Field(gt=0)]


def _strip_trailing_slash(value: str) -> str:
    v = (value or "").strip().rstrip("/")
    if not v:
        raise ValueError("must be non-empty")
    return v


class FeedConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    api_base: str = "https://public.api.bsky.app"
    timeout_secs: PositiveFloat = 30.0
    user_agent: str = "skeet-unroll/0.1"

    @field_validator("api_base")
    @classmethod
    def _api_base_must_be_http(cls, v: str) -> str:
        base = _strip_trailing_slash(v)
        if not base.startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return base


class PageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    did_selector: str = "p#bsky_did"
    timeout_secs: PositiveFloat = 30.0

    @field_validator("did_selector")
    @classmethod
    def _selector_must_be_set(cls, v: str) -> str:
        s = (v or "").strip()
        if not s:
            raise ValueError("must be a non-empty CSS selector")
        return s


class NormalizeConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    cdn_template: str = DEFAULT_CDN_TEMPLATE

    @field_validator("cdn_template")
    @classmethod
    def _template_has_placeholders(cls, v: str) -> str:
        missing = [p for p in _CDN_PLACEHOLDERS if p not in (v or "")]
        if missing:
            raise ValueError(f"missing placeholders: {', '.join(missing)}")
        return v


class CacheConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str = "thread_cache.sqlite"

    @field_validator("path")
    @classmethod
    def _path_must_be_set(cls, v: str) -> str:
        p = (v or "").strip()
        if not p:
            raise ValueError("must be a file path or ':memory:'")
        return p


class ServerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    host: str = "127.0.0.1"
    port: PositiveInt = 8000
    endpoint: str = "/bskyunroll"
    cors_origin: str = "*"
    request_log: str | None = None  # None logs to stdout

    @field_validator("endpoint")
    @classmethod
    def _endpoint_must_be_absolute(cls, v: str) -> str:
        e = (v or "").strip()
        if not e.startswith("/") or e == "/":
            raise ValueError("must be an absolute path such as /bskyunroll")
        return e.rstrip("/")


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    feed: FeedConfig = Field(default_factory=FeedConfig)
    page: PageConfig = Field(default_factory=PageConfig)
    normalize: NormalizeConfig = Field(default_factory=NormalizeConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
