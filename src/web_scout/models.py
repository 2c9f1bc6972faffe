"""Protocols and lightweight model types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, Protocol, TypeVar

from .errors import StateError

T = TypeVar("T")


class Platform(str, Enum):
    """Social platforms recognized by the extractor."""

    INSTAGRAM = "instagram"
    TWITTER = "twitter"
    FACEBOOK = "facebook"
    LINKEDIN = "linkedin"
    TIKTOK = "tiktok"
    YOUTUBE = "youtube"
    PINTEREST = "pinterest"
    THREADS = "threads"
    SNAPCHAT = "snapchat"
    REDDIT = "reddit"
    WHATSAPP = "whatsapp"
    TELEGRAM = "telegram"
    DISCORD = "discord"
    LINKTREE = "linktree"


class ResultStatus(str, Enum):
    PENDING = "pending"
    FOUND = "found"
    NONE = "none"
    ERROR = "error"


class BatchMode(str, Enum):
    DOMAINS = "domains"
    EMAILS = "emails"


@dataclass(frozen=True)
class FetchResult:
    """One HTTP GET outcome. Not retained past the call that requested it."""

    url: str
    status_ok: bool
    body: str
    fetched_at: datetime


@dataclass(frozen=True)
class SocialLink:
    """A social profile link normalized to scheme, host and path."""

    platform: Platform
    url: str

    def to_dict(self) -> dict[str, str]:
        return {"platform": self.platform.value, "url": self.url}


@dataclass(frozen=True)
class EnrichmentResult:
    """Contact signals found for one seed URL or domain."""

    domain: str
    emails: tuple[str, ...] = ()
    socials: tuple[SocialLink, ...] = ()
    status: ResultStatus = ResultStatus.NONE
    error: str | None = None

    @property
    def has_signals(self) -> bool:
        return bool(self.emails or self.socials)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "domain": self.domain,
            "emails": list(self.emails),
            "socials": [social.to_dict() for social in self.socials],
            "status": self.status.value,
        }
        if self.error:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True)
class CacheEntry:
    """A cached value with the time it was stored and its content validator."""

    key: str
    value: Any
    stored_at: float
    validator: str


@dataclass
class BatchItem:
    """One input of a batch run. ``result is None`` means the item is pending."""

    index: int
    input: str
    normalized_url: str | None
    result: EnrichmentResult | None = None
    email: str | None = None
    first_name: str | None = None

    @property
    def status(self) -> ResultStatus:
        if self.result is None:
            return ResultStatus.PENDING
        return self.result.status

    @property
    def done(self) -> bool:
        return self.result is not None

    def complete(
        self,
        result: EnrichmentResult,
        *,
        email: str | None = None,
        first_name: str | None = None,
    ) -> None:
        """Move the item to its terminal state. Terminal states are write-once."""
        if self.result is not None:
            raise StateError(f"Batch item {self.index} ({self.input}) is already complete.")
        if result.status is ResultStatus.PENDING:
            raise StateError("A batch item cannot be completed with a pending result.")
        self.result = result
        self.email = email
        self.first_name = first_name

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "input": self.input,
            "domain": self.result.domain if self.result else self.input,
            "status": self.status.value,
        }
        if self.email:
            payload["email"] = self.email
        if self.first_name:
            payload["firstName"] = self.first_name
        if self.result is not None:
            if self.result.socials:
                payload["socials"] = [social.to_dict() for social in self.result.socials]
            if self.result.error:
                payload["error"] = self.result.error
        return payload


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Tagged result of one unit of work: a value, or an error kind with detail."""

    ok: bool
    value: T | None = None
    error_kind: str | None = None
    detail: str = ""

    @classmethod
    def success(cls, value: T) -> Outcome[T]:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, kind: str, detail: str) -> Outcome[T]:
        return cls(ok=False, error_kind=kind, detail=detail)


@dataclass
class CrawlReport:
    """What a crawl produced, plus how it got there."""

    result: EnrichmentResult
    budget_exceeded: bool = False
    from_cache: bool = False
    candidates: list[str] = field(default_factory=list)
    candidate_outcomes: list[Outcome[FetchResult]] = field(default_factory=list)


class Fetcher(Protocol):
    """Contract for HTML fetchers."""

    def fetch(self, url: str, timeout: float) -> FetchResult:
        """Return the fetched page or raise a FetchError subclass."""
