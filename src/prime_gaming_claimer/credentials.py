import asyncio
import getpass
import logging
import re
from typing import Callable

import pyotp

from .config import Config

logger = logging.getLogger(__name__)

OTP_PATTERN = re.compile(r"\d{6}")


def validate_otp(value: str) -> str | None:
    """Return an error message unless `value` is exactly 6 digits."""
    # kept as a string: codes can start with 0
    if OTP_PATTERN.fullmatch(value):
        return None
    return "The code must be 6 digits!"


async def prompt(
    message: str,
    secret: bool = False,
    validate: Callable[[str], str | None] | None = None,
) -> str:
    """
    Ask the operator for a non-empty value on the terminal.

    Runs in a worker thread so browser watchers keep going while waiting for input.
    Returns an empty string if input is closed (EOF / Ctrl+D), which means "skip".
    """
    reader = getpass.getpass if secret else input
    while True:
        try:
            value = (await asyncio.to_thread(reader, f"{message}: ")).strip()
        except EOFError:
            return ""
        if not value:
            continue
        error = validate(value) if validate else None
        if error is None:
            return value
        print(error)


async def get_email(config: Config) -> str:
    return config.email or await prompt("Enter email")


async def get_password(config: Config) -> str:
    return config.password or await prompt("Enter password", secret=True)


async def get_otp(config: Config) -> str:
    """6-digit sign-in code, generated from the configured TOTP seed or typed in by the operator."""
    if config.otp_key:
        return pyotp.TOTP(config.otp_key).now()
    return await prompt("Enter two-factor sign in code", validate=validate_otp)
