"""
Export utilities for the time tracker.
Handles the export directory and plain or encrypted export files.
"""
import base64
import os
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..settings import ENV_ENCRYPTION_KEY, ENV_EXPORT_PATH
from .errors import ExportError

_ENC_HEADER = b"TTENC1"  # Simple header to identify encrypted exports
_SALT_SIZE = 16
_KDF_ITERATIONS = 200_000


def get_export_directory() -> str:
    """
    Determine where exports should be written.

    Priority:
    1. `TIMETRACKER_EXPORT_PATH` environment variable (expanded)
    2. Local `exports/` directory in the working directory
    """
    env_path = os.getenv(ENV_EXPORT_PATH)
    if env_path:
        target = os.path.expanduser(env_path)
    else:
        target = os.path.join(os.getcwd(), 'exports')

    os.makedirs(target, exist_ok=True)
    return target


def write_file(data: bytes, target_path: str) -> str:
    """
    Write data to target_path.

    Args:
        data: Raw bytes to write.
        target_path: Destination path (will be created).

    Returns:
        The path written to.
    """
    try:
        os.makedirs(os.path.dirname(target_path) or ".", exist_ok=True)
        with open(target_path, "wb") as f:
            f.write(data)
    except OSError as e:
        raise ExportError(f"Could not write {target_path}: {e}") from e
    return target_path


def derive_key(passphrase: str, salt: bytes, iterations: int = _KDF_ITERATIONS) -> bytes:
    """Derive a Fernet key from a human passphrase."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=iterations,
    )
    return base64.urlsafe_b64encode(kdf.derive(passphrase.encode('utf-8')))


def get_export_passphrase() -> str:
    """
    Read the export encryption passphrase from environment.
    Raises ExportError if missing.
    """
    passphrase = os.getenv(ENV_ENCRYPTION_KEY)
    if not passphrase:
        raise ExportError(
            f"Export passphrase missing. Set {ENV_ENCRYPTION_KEY} or pass --key."
        )
    return passphrase


def is_encrypted_payload(data: bytes) -> bool:
    return data.startswith(_ENC_HEADER)


def encrypt_bytes(data: bytes, passphrase: str) -> bytes:
    """Encrypt arbitrary bytes using Fernet with a PBKDF2-derived key."""
    salt = os.urandom(_SALT_SIZE)
    key = derive_key(passphrase, salt)
    token = Fernet(key).encrypt(data)
    return _ENC_HEADER + salt + token


def decrypt_bytes(payload: bytes, passphrase: str) -> bytes:
    """Reverse :func:`encrypt_bytes`. Raises ExportError on a bad passphrase."""
    if not is_encrypted_payload(payload):
        raise ExportError("Data is not an encrypted export")
    offset = len(_ENC_HEADER)
    salt = payload[offset:offset + _SALT_SIZE]
    token = payload[offset + _SALT_SIZE:]
    try:
        return Fernet(derive_key(passphrase, salt)).decrypt(token)
    except InvalidToken as e:
        raise ExportError("Wrong passphrase or corrupted export") from e


def write_encrypted_file(data: bytes, target_path: str, passphrase: Optional[str] = None) -> str:
    """
    Encrypt data and write to target_path.

    Args:
        data: Raw bytes to encrypt.
        target_path: Destination path (will be created).
        passphrase: Optional override; otherwise read from env.

    Returns:
        The path written to.
    """
    passphrase = passphrase or get_export_passphrase()
    return write_file(encrypt_bytes(data, passphrase), target_path)


def read_export_file(source_path: str, passphrase: Optional[str] = None) -> bytes:
    """Read an export, decrypting it when it carries the encryption header."""
    try:
        with open(source_path, "rb") as f:
            payload = f.read()
    except OSError as e:
        raise ExportError(f"Could not read {source_path}: {e}") from e
    if is_encrypted_payload(payload):
        return decrypt_bytes(payload, passphrase or get_export_passphrase())
    return payload
