"""
Access service: three-tier access levels, the admin credential and
per-feature permissions.

Levels:
    employee       default for everyone
    company_admin  requested via ``?setup``, ``?config=<token>`` or
                   ``#admin-setup`` and unlocked with the admin passphrase
    developer      ``?dev=<token>`` matching TIMETRACKER_DEV_TOKEN
"""
import base64
import functools
import hmac
import logging
import os
from typing import Optional
from urllib.parse import parse_qs, urlparse

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..data.database import ADMIN_CREDENTIAL_KEY, delete_blob, read_blob, write_blob
from ..settings import get_admin_token, get_dev_token
from ..utils.errors import AccessDeniedError, AuthenticationError
from ..utils.time_utils import now_iso

logger = logging.getLogger(__name__)

EMPLOYEE = 'employee'
COMPANY_ADMIN = 'company_admin'
DEVELOPER = 'developer'

_EMPLOYEE_FEATURES = (
    'timer',
    'view_own_entries',
    'export_own_data',
    'edit_own_entries',
)
_ADMIN_FEATURES = _EMPLOYEE_FEATURES + (
    'view_all_entries',
    'configure_company',
    'manage_pay_periods',
    'manage_holidays',
    'export_team_data',
    'data_cleanup',
)
_DEVELOPER_FEATURES = _ADMIN_FEATURES + (
    'developer_tools',
    'force_settings',
    'system_reset',
)

PERMISSIONS = {
    EMPLOYEE: frozenset(_EMPLOYEE_FEATURES),
    COMPANY_ADMIN: frozenset(_ADMIN_FEATURES),
    DEVELOPER: frozenset(_DEVELOPER_FEATURES),
}

MIN_PASSPHRASE_LENGTH = 8
_KDF_ITERATIONS = 390_000
_SALT_SIZE = 16


def has_access(level: str, feature: str) -> bool:
    return feature in PERMISSIONS.get(level, PERMISSIONS[EMPLOYEE])


def _matches(supplied: Optional[str], expected: Optional[str]) -> bool:
    if not supplied or not expected:
        return False
    return hmac.compare_digest(supplied.encode('utf-8'), expected.encode('utf-8'))


def parse_access_request(url: Optional[str]) -> str:
    """Access level a URL asks for. Unknown or missing tokens mean employee."""
    if not url:
        return EMPLOYEE
    parsed = urlparse(url)
    params = parse_qs(parsed.query, keep_blank_values=True)

    dev = params.get('dev', [None])[0]
    if dev is not None:
        if _matches(dev, get_dev_token()):
            return DEVELOPER
        logger.warning("Developer access requested with an invalid token")

    config = params.get('config', [None])[0]
    if 'setup' in params or parsed.fragment == 'admin-setup' or _matches(config, get_admin_token()):
        return COMPANY_ADMIN
    return EMPLOYEE


def _derive(passphrase: str, salt: bytes, iterations: int) -> PBKDF2HMAC:
    return PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=salt, iterations=iterations)


class AccessService:
    """Tracks the current access level and guards the admin credential"""

    def __init__(self):
        self.level = EMPLOYEE
        self.requested = EMPLOYEE

    @property
    def is_admin(self) -> bool:
        return self.level in (COMPANY_ADMIN, DEVELOPER)

    def has_access(self, feature: str) -> bool:
        return has_access(self.level, feature)

    def check(self, feature: str):
        if not self.has_access(feature):
            raise AccessDeniedError(
                f"Access denied. '{feature}' requires a higher access level than {self.level}")

    def request(self, url: Optional[str]) -> str:
        """
        Handle an access URL.

        A developer token grants access at once. A company admin request is
        only recorded; :meth:`authenticate_admin` completes it.
        """
        self.requested = parse_access_request(url)
        if self.requested == DEVELOPER:
            self.level = DEVELOPER
            logger.info("Developer access granted")
        elif self.requested == COMPANY_ADMIN:
            logger.info("Company admin access requested - authentication required")
        return self.requested

    # --- credential ---

    def has_credential(self) -> bool:
        data = read_blob(ADMIN_CREDENTIAL_KEY, default=None)
        return isinstance(data, dict) and bool(data.get('hash'))

    def enroll_admin(self, passphrase: str) -> bool:
        """Store a salted PBKDF2-SHA256 hash of the admin passphrase."""
        if not passphrase or len(passphrase) < MIN_PASSPHRASE_LENGTH:
            raise AuthenticationError(
                f"Passphrase must be at least {MIN_PASSPHRASE_LENGTH} characters")
        if self.has_credential():
            raise AuthenticationError("An admin credential is already enrolled")

        salt = os.urandom(_SALT_SIZE)
        digest = _derive(passphrase, salt, _KDF_ITERATIONS).derive(passphrase.encode('utf-8'))
        saved = write_blob(ADMIN_CREDENTIAL_KEY, {
            'algorithm': 'pbkdf2-sha256',
            'iterations': _KDF_ITERATIONS,
            'salt': base64.b64encode(salt).decode('ascii'),
            'hash': base64.b64encode(digest).decode('ascii'),
            'createdAt': now_iso(),
        })
        if not saved:
            raise AuthenticationError("Could not store the admin credential")
        logger.info("Admin credential enrolled")
        return True

    def verify_passphrase(self, passphrase: str) -> bool:
        data = read_blob(ADMIN_CREDENTIAL_KEY, default=None)
        if not isinstance(data, dict) or not data.get('hash'):
            return False
        try:
            salt = base64.b64decode(data['salt'])
            expected = base64.b64decode(data['hash'])
            iterations = int(data.get('iterations', _KDF_ITERATIONS))
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Stored admin credential is corrupt: {e}")
            return False
        try:
            _derive(passphrase or '', salt, iterations).verify((passphrase or '').encode('utf-8'), expected)
            return True
        except InvalidKey:
            return False

    def authenticate_admin(self, passphrase: str) -> str:
        """Unlock company admin mode; raises AuthenticationError on failure."""
        if not self.has_credential():
            raise AuthenticationError("No admin credential enrolled. Run 'admin enroll' first")
        if not self.verify_passphrase(passphrase):
            logger.warning("Admin authentication failed")
            raise AuthenticationError("Authentication failed")
        if self.level != DEVELOPER:
            self.level = COMPANY_ADMIN
        logger.info(f"Admin authenticated ({self.level})")
        return self.level

    def reset_admin_credential(self) -> bool:
        removed = delete_blob(ADMIN_CREDENTIAL_KEY)
        if removed:
            logger.info("Admin credential removed")
        return removed

    def exit_admin(self):
        self.level = EMPLOYEE
        self.requested = EMPLOYEE


def requires(feature: str):
    """
    Guard a method of an object exposing ``self.access`` (an AccessService).

    Raises AccessDeniedError when the current level lacks ``feature``.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            self.access.check(feature)
            return func(self, *args, **kwargs)
        return wrapper
    return decorator
