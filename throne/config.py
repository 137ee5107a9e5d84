"""Process configuration read from the environment.

A repo-level `.env` is loaded (without overriding real environment variables)
the first time settings are requested.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv


_ENV_PATH = Path(__file__).resolve().parents[1] / ".env"


def _parse_admin_ids(raw: str) -> frozenset[int]:
    ids: set[int] = set()
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            ids.add(int(part))
        except ValueError:
            raise ValueError(f"THRONE_ADMIN_IDS must be comma separated integers, got {part!r}") from None
    return frozenset(ids)


@dataclass(frozen=True, slots=True)
class Settings:
    data_path: Path = Path("./data.json")
    starting_balance: int = 1000
    notice_delete_after_seconds: float = 3.0
    house_edge: float = 0.0
    admin_ids: frozenset[int] = field(default_factory=frozenset)
    image_ref: str | None = None
    log_level: str = "INFO"
    redis_url: str = "redis://localhost:6379/0"


def load_settings(env: dict[str, str] | None = None) -> Settings:
    e = os.environ if env is None else env
    return Settings(
        data_path=Path(e.get("THRONE_DATA_PATH", "./data.json")),
        starting_balance=int(e.get("THRONE_STARTING_BALANCE", "1000")),
        notice_delete_after_seconds=float(e.get("THRONE_NOTICE_DELETE_AFTER_SECONDS", "3.0")),
        house_edge=float(e.get("THRONE_HOUSE_EDGE", "0")),
        admin_ids=_parse_admin_ids(e.get("THRONE_ADMIN_IDS", "")),
        image_ref=e.get("THRONE_IMAGE_REF") or None,
        log_level=e.get("THRONE_LOG_LEVEL", "INFO").upper(),
        redis_url=e.get("REDIS_URL", "redis://localhost:6379/0"),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    if _ENV_PATH.exists():
        load_dotenv(dotenv_path=_ENV_PATH, override=False)
    return load_settings()
