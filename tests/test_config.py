import pytest

from timetracker.data.database import APP_CONFIG_KEY, write_blob
from timetracker.services.config_service import ConfigService, validate_logo_url
from timetracker.utils.errors import ValidationError


@pytest.fixture
def config(storage):
    service = ConfigService()
    service.load()
    return service


def test_defaults_when_nothing_stored(config):
    assert config.config.company_name == "CAND, LLC"
    assert config.config.allow_edit is True
    assert config.display_name == "CAND, LLC"


def test_non_object_blob_falls_back(storage):
    write_blob(APP_CONFIG_KEY, ["not", "a", "dict"])
    service = ConfigService()
    assert service.load().company_name == "CAND, LLC"


def test_stored_values_merge_over_defaults(storage):
    write_blob(APP_CONFIG_KEY, {"companyName": "Acme", "allowDelete": False, "unknownKey": 1})
    service = ConfigService()
    loaded = service.load()
    assert loaded.company_name == "Acme"
    assert loaded.allow_delete is False
    assert loaded.allow_employee_delete is True


def test_update_persists(config):
    config.update(company_name="  Acme Corp ", allow_employee_edit=False)
    fresh = ConfigService()
    fresh.load()
    assert fresh.config.company_name == "Acme Corp"
    assert fresh.config.allow_employee_edit is False


def test_blank_company_name_is_ignored(config):
    config.update(company_name="Acme")
    config.update(company_name="   ")
    assert config.config.company_name == "Acme"


def test_update_rejects_unknown_setting(config):
    with pytest.raises(ValidationError):
        config.update(theme="dark")


@pytest.mark.parametrize("url, ok", [
    ("", True),
    ("https://i.imgur.com/abc123", True),
    ("https://raw.githubusercontent.com/acme/logo/main/logo", True),
    ("https://cdn.example.com/brand/logo.PNG", True),
    ("https://cdn.example.com/brand/logo.svg?v=2", True),
    ("http://i.imgur.com/abc.png", False),
    ("https://example.com/page", False),
    ("javascript:alert(1)", False),
])
def test_validate_logo_url(url, ok):
    assert validate_logo_url(url) is ok


def test_bad_logo_url_is_rejected(config):
    with pytest.raises(ValidationError):
        config.update(logo_url="http://example.com/logo.png")
    assert config.config.logo_url == ""


def test_reset_keeps_license(config):
    config.update(company_name="Acme", is_licensed=True, licensed_company="Acme Holdings",
                  allow_edit=False)
    assert config.display_name == "Acme Holdings"

    reset = config.reset_to_defaults()
    assert reset.company_name == "CAND, LLC"
    assert reset.allow_edit is True
    assert reset.is_licensed is True
    assert reset.licensed_company == "Acme Holdings"


def test_employee_name_is_remembered(config):
    config.save_employee_name("  Jane Smith ")
    fresh = ConfigService()
    assert fresh.load_employee_settings().employee_name == "Jane Smith"
    assert fresh.employee_settings.daily_target == 8.0
