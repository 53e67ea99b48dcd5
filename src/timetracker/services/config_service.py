"""
Configuration service: the admin-edited AppConfig blob and the employee
display-name settings.
"""
import logging
import re
from typing import Optional
from urllib.parse import urlparse

from ..data.database import APP_CONFIG_KEY, EMPLOYEE_SETTINGS_KEY, read_blob, write_blob
from ..data.records import AppConfig, EmployeeSettings
from ..utils.errors import ValidationError
from ..utils.time_utils import now_iso

logger = logging.getLogger(__name__)

LOGO_HOSTS = (
    'imgur.com', 'i.imgur.com',
    'github.com', 'githubusercontent.com',
    'cloudinary.com', 'res.cloudinary.com',
    'images.unsplash.com', 'unsplash.com',
)
_IMAGE_PATH = re.compile(r'\.(jpg|jpeg|png|gif|svg|webp)(\?.*)?$', re.IGNORECASE)

_FLAG_FIELDS = ('allow_edit', 'allow_delete', 'allow_employee_edit', 'allow_employee_delete')
_LICENSE_FIELDS = ('is_licensed', 'licensed_company', 'license_key')


def validate_logo_url(url: Optional[str]) -> bool:
    """
    An empty URL is valid (use the default logo). Anything else must be https
    and either served from a known image host or end in an image extension.
    """
    if not url or not url.strip():
        return True
    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme != 'https' or not parsed.netloc:
        logger.debug(f"Logo URL rejected, not https: {url}")
        return False
    host = parsed.hostname or ''
    on_known_host = any(host == h or host.endswith('.' + h) for h in LOGO_HOSTS)
    if on_known_host or _IMAGE_PATH.search(url):
        return True
    logger.debug(f"Logo URL rejected, unknown host or file type: {url}")
    return False


class ConfigService:
    """Loads, updates and persists AppConfig and EmployeeSettings"""

    def __init__(self):
        self.config = AppConfig()
        self.employee_settings = EmployeeSettings()

    def load(self) -> AppConfig:
        """Merge the stored blob over the defaults."""
        data = read_blob(APP_CONFIG_KEY, default=None)
        if data is not None and not isinstance(data, dict):
            logger.warning("Stored app configuration is not an object, using defaults")
            data = None
        self.config = AppConfig.from_dict(data)
        return self.config

    def save(self) -> bool:
        return write_blob(APP_CONFIG_KEY, self.config.to_dict())

    def update(self, **changes) -> AppConfig:
        """
        Apply admin settings changes.

        A blank company name is ignored. A logo URL must pass
        :func:`validate_logo_url`.
        """
        unknown = set(changes) - set(AppConfig.field_names())
        if unknown:
            raise ValidationError(f"Unknown setting(s): {', '.join(sorted(unknown))}")

        if 'logo_url' in changes:
            logo_url = (changes['logo_url'] or '').strip()
            if not validate_logo_url(logo_url):
                raise ValidationError(
                    "Logo URL must be https and point to an image host or image file",
                    [logo_url])
            self.config.logo_url = logo_url

        name = changes.get('company_name')
        if name is not None and name.strip():
            self.config.company_name = name.strip()

        for flag in _FLAG_FIELDS + ('is_licensed',):
            if flag in changes and changes[flag] is not None:
                setattr(self.config, flag, bool(changes[flag]))
        for text_field in ('licensed_company', 'license_key'):
            if text_field in changes and changes[text_field] is not None:
                setattr(self.config, text_field, str(changes[text_field]).strip())

        self.save()
        logger.info("Application settings saved")
        return self.config

    def reset_to_defaults(self) -> AppConfig:
        """Restore defaults, keeping the license fields."""
        kept = {name: getattr(self.config, name) for name in _LICENSE_FIELDS}
        self.config = AppConfig(**kept)
        self.save()
        logger.info("Application settings reset to defaults")
        return self.config

    @property
    def display_name(self) -> str:
        """Licensed company name takes priority over the configured name."""
        if self.config.is_licensed and self.config.licensed_company:
            return self.config.licensed_company
        return self.config.company_name or AppConfig().company_name

    # --- employee settings ---

    def load_employee_settings(self) -> EmployeeSettings:
        data = read_blob(EMPLOYEE_SETTINGS_KEY, default=None)
        if data is not None and not isinstance(data, dict):
            data = None
        self.employee_settings = EmployeeSettings.from_dict(data)
        return self.employee_settings

    def save_employee_name(self, name: str) -> EmployeeSettings:
        self.employee_settings.employee_name = (name or '').strip()
        self.employee_settings.last_updated = now_iso()
        write_blob(EMPLOYEE_SETTINGS_KEY, self.employee_settings.to_dict())
        return self.employee_settings
