import logging
import sys
from pathlib import Path
from typing import NamedTuple

import pytest
from fastapi import FastAPI, Request, Response
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from hcp.config import SUPERVISOR_ENV_VARS  # noqa: E402
from hcp.models import JobId  # noqa: E402
from hcp.reporter import Reporter  # noqa: E402

VALID_ID = "abcdefgh-1234-5678-9012-ijklmnopqrst"


class Ping(NamedTuple):
    method: str
    path: str
    body: bytes


class PingService:
    """In-process stand-in for hc-ping.com that records every ping."""

    def __init__(self) -> None:
        self.pings: list[Ping] = []
        self.statuses: list[int] = []
        self.app = FastAPI()

        @self.app.api_route("/{path:path}", methods=["GET", "POST"])
        async def ping(request: Request, path: str) -> Response:
            self.pings.append(Ping(request.method, request.url.path, await request.body()))
            status = self.statuses.pop(0) if self.statuses else 200
            return Response(content=b"OK", status_code=status)

        self.client = TestClient(self.app, base_url="https://hc-ping.com")

    def terminal_pings(self) -> list[Ping]:
        return [p for p in self.pings if p.method == "POST"]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's own HCP_* settings out of the tests."""
    for name in SUPERVISOR_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger("hcp")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def job_id():
    return JobId.parse(VALID_ID)


@pytest.fixture
def ping_service():
    return PingService()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def reporter(job_id, ping_service, sleeps):
    return Reporter(job_id, client=ping_service.client, sleep=sleeps.append)
