from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Settings:
    hcp_id: str | None = field(default_factory=lambda: os.getenv("HCP_ID"))
    tee: bool = field(default_factory=lambda: "HCP_TEE" in os.environ)
    ignore_code: bool = field(
        default_factory=lambda: "HCP_IGNORE_CODE" in os.environ
    )


def get_settings() -> Settings:
    return Settings()
