"""Telegram session handling for the watcher and the Telegram notifiers.

Credentials come from the environment (python-dotenv). Authorization is only
interactive when the stored session is missing or expired.
"""

from __future__ import annotations

from getpass import getpass
import logging
import os
import sys

from dotenv import load_dotenv
import qrcode
from telethon import TelegramClient, errors

LOGGER = logging.getLogger(__name__)

LOGIN_METHODS = ("qr", "phone")
QR_TIMEOUT_SECONDS = 120


def build_client() -> TelegramClient:
    """Create a Telethon client from API_ID, API_HASH and SESSION_NAME."""

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    session_name = os.getenv("SESSION_NAME", "paynotify")

    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")

    LOGGER.info("Initializing Telegram client for session %s", session_name)
    return TelegramClient(session_name, int(api_id), api_hash)


def _login_method() -> str:
    configured = (os.getenv("LOGIN_METHOD") or "").strip().lower()
    if configured in LOGIN_METHODS:
        return configured
    if not sys.stdin.isatty():
        raise RuntimeError("Telegram session is not authorized; set LOGIN_METHOD or run `paynotify login`")

    # Prompts go to stderr; stdout is reserved for transaction output.
    while True:
        print("\nLogin methods:\n[1] QR code\n[2] Phone code\n[3] Exit", file=sys.stderr)
        choice = input("paynotify > ").strip()
        if choice in ("1", "2"):
            return LOGIN_METHODS[int(choice) - 1]
        if choice == "3":
            raise SystemExit(0)
        print("Invalid option. Please choose 1, 2, or 3.", file=sys.stderr)


def _two_factor_password() -> str:
    return os.getenv("2FA") or getpass("2FA password: ")


async def _login_with_qr(client: TelegramClient) -> None:
    login = await client.qr_login()
    code = qrcode.QRCode(border=1)
    code.add_data(login.url)
    code.make(fit=True)
    code.print_ascii(out=sys.stderr, invert=True)
    await login.wait(timeout=QR_TIMEOUT_SECONDS)


async def _login_with_phone(client: TelegramClient) -> None:
    phone = os.getenv("PHONE") or input("Phone number (international format): ").strip()
    await client.send_code_request(phone)
    await client.sign_in(phone=phone, code=input("Login code: ").strip())


async def authorize(client: TelegramClient) -> None:
    """Log the connected client in unless its session is already authorized."""

    if await client.is_user_authorized():
        return

    method = _login_method()
    LOGGER.info("Authorizing Telegram session via %s", method)
    try:
        if method == "phone":
            await _login_with_phone(client)
        else:
            await _login_with_qr(client)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_two_factor_password())
