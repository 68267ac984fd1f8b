from __future__ import annotations

import re
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from hcp.config import PING_BASE_URL

# Wider than RFC 4122: any ASCII alphanumeric is accepted, not only hex.
_JOB_ID_RE = re.compile(
    r"[0-9A-Za-z]{8}-[0-9A-Za-z]{4}-[0-9A-Za-z]{4}-[0-9A-Za-z]{4}-[0-9A-Za-z]{12}"
)


class JobId(BaseModel):
    """Healthcheck identifier, validated on construction."""

    model_config = ConfigDict(frozen=True, strict=True)

    value: str

    @field_validator("value")
    @classmethod
    def _check_form(cls, value: str) -> str:
        if _JOB_ID_RE.fullmatch(value) is None:
            raise ValueError("expected XXXXXXXX-XXXX-XXXX-XXXX-XXXXXXXXXXXX")
        return value

    @classmethod
    def parse(cls, text: str) -> JobId | None:
        try:
            return cls(value=text)
        except ValidationError:
            return None

    def __str__(self) -> str:
        return self.value


class PingUrls(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_url: str
    success_url: str
    fail_url: str

    @classmethod
    def for_job(cls, job_id: JobId, base_url: str = PING_BASE_URL) -> PingUrls:
        base = f"{base_url}{job_id}"
        return cls(start_url=f"{base}/start", success_url=base, fail_url=f"{base}/fail")


class RunConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    job_id: JobId
    tee_to_terminal: bool = False
    ignore_child_exit_code: bool = False
    command: list[str] = Field(default_factory=list)


class OutcomeKind(str, Enum):
    exited = "exited"
    exited_no_code = "exited_no_code"
    spawn_failed = "spawn_failed"
    wait_failed = "wait_failed"
    stream_read_failed = "stream_read_failed"


class RunOutcome(BaseModel):
    """How a supervised run ended, before it is turned into a report."""

    kind: OutcomeKind
    exit_code: int | None = None
    error: str | None = None
    stream: Literal["stdout", "stderr"] | None = None
    stdout_tail: bytes = b""
    stderr_tail: bytes = b""

    @property
    def is_normal(self) -> bool:
        return self.kind in (OutcomeKind.exited, OutcomeKind.exited_no_code)
