"""
Session configuration.

Reads settings from the environment (optionally from a `.env` file next to the
project) and builds the storage-backed RecordStore for a session.

Environment variables (all optional):
- SHOP_DATA_DIR: directory holding products.json / sales.json / purchases.json.
  When unset, records live in memory for the lifetime of the session.
- SHOP_TIMEZONE: IANA timezone (e.g. "Asia/Karachi") used for new timestamps and
  for "today" / "this month" reporting. When unset, the host's local timezone.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from domain.time import Clock, system_clock
from repositories.record_store import RecordStore
from repositories.storage import InMemoryStorage, JsonFileStorage, StorageBackend

# Look for .env in the project directory
ENV_PATH = Path(__file__).parent.parent / ".env"


@dataclass(frozen=True, slots=True)
class Settings:
    data_dir: Optional[Path] = None
    timezone: Optional[ZoneInfo] = None


def load_settings(env_path: Optional[Path] = ENV_PATH) -> Settings:
    """
    Build Settings from the environment.

    Raises:
        RuntimeError: SHOP_TIMEZONE names an unknown timezone.
    """

    if env_path is not None:
        load_dotenv(dotenv_path=env_path)

    data_dir: str | None = os.getenv("SHOP_DATA_DIR")
    tz_name: str | None = os.getenv("SHOP_TIMEZONE")

    zone: Optional[ZoneInfo] = None
    if tz_name:
        try:
            zone = ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise RuntimeError(
                f"Invalid SHOP_TIMEZONE: {tz_name!r}. "
                "Set SHOP_TIMEZONE to an IANA timezone name such as 'Asia/Karachi'."
            ) from exc

    return Settings(data_dir=Path(data_dir) if data_dir else None, timezone=zone)


def create_storage(settings: Settings) -> StorageBackend:
    if settings.data_dir is None:
        return InMemoryStorage()
    return JsonFileStorage(settings.data_dir)


def open_record_store(settings: Settings) -> RecordStore:
    return RecordStore(create_storage(settings))


def shop_clock(settings: Settings) -> Clock:
    return system_clock(settings.timezone)


__all__ = ["Settings", "load_settings", "create_storage", "open_record_store", "shop_clock"]
