import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

TRUTHY = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in TRUTHY


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring {name}={value!r}, expected an integer (using {default})")
        return default


@dataclass
class Config:
    """Runtime settings. Built from the environment (and `.env`), then adjusted by CLI flags."""

    email: str | None = None
    password: str | None = None
    otp_key: str | None = None
    headless: bool = True
    dryrun: bool = False
    debug: bool = False
    timeout: int = 60  # seconds, for every wait except interactive sign-in
    width: int = 1280
    height: int = 1280
    data_dir: Path = Path("data")

    @property
    def timeout_ms(self) -> int:
        return self.timeout * 1000

    @property
    def browser_dir(self) -> Path:
        return self.data_dir / "browser"

    @property
    def screenshots_dir(self) -> Path:
        return self.data_dir / "screenshots"

    @property
    def db_path(self) -> Path:
        return self.data_dir / "prime-gaming.json"

    @classmethod
    def from_env(cls) -> "Config":
        """Load settings from environment variables, reading `.env` from the working directory first."""
        load_dotenv(find_dotenv(usecwd=True))
        return cls(
            email=os.environ.get("PG_EMAIL") or None,
            password=os.environ.get("PG_PASSWORD") or None,
            otp_key=os.environ.get("PG_OTPKEY") or None,
            headless=not _env_bool("SHOW"),
            dryrun=_env_bool("DRYRUN"),
            debug=_env_bool("DEBUG"),
            timeout=_env_int("TIMEOUT", 60),
            width=_env_int("WIDTH", 1280),
            height=_env_int("HEIGHT", 1280),
            data_dir=Path(os.environ.get("PG_DATA_DIR", "data")),
        )
