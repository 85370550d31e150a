import re
from datetime import datetime
from pathlib import Path

# characters not allowed in file names on at least one common file system
_RESERVED_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def timestamp(now: datetime | None = None) -> str:
    """Local time formatted like `2024-01-31 18:04:05.123`, used for claim records and run screenshots."""
    now = now or datetime.now()
    return now.strftime("%Y-%m-%d %H:%M:%S.") + f"{now.microsecond // 1000:03d}"


def filenamify(name: str, replacement: str = "!", max_length: int = 100) -> str:
    """Turn an offer title into something usable as a file name."""
    cleaned = _RESERVED_CHARS.sub(replacement, name).strip().strip(".")
    cleaned = re.sub(r"\s+", " ", cleaned)
    return cleaned[:max_length] or replacement


def screenshot_path(screenshots_dir: Path, *parts: str) -> Path:
    """Path below `<screenshots>/prime-gaming/`, the last part being a sanitized file stem."""
    *dirs, stem = parts
    return Path(screenshots_dir, "prime-gaming", *dirs, f"{filenamify(stem)}.png")
