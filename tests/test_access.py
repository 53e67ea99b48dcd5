import pytest

from timetracker.services.access_service import (
    COMPANY_ADMIN,
    DEVELOPER,
    EMPLOYEE,
    AccessService,
    has_access,
    parse_access_request,
)
from timetracker.utils.errors import AccessDeniedError, AuthenticationError, ValidationError

PASSPHRASE = "correct horse battery"


def test_permission_tiers():
    assert has_access(EMPLOYEE, "timer")
    assert not has_access(EMPLOYEE, "view_all_entries")
    assert has_access(COMPANY_ADMIN, "manage_pay_periods")
    assert not has_access(COMPANY_ADMIN, "developer_tools")
    assert has_access(DEVELOPER, "system_reset")
    assert has_access("nonsense", "timer")


def test_parse_access_request(monkeypatch):
    monkeypatch.setenv("TIMETRACKER_DEV_TOKEN", "dev-secret")
    assert parse_access_request(None) == EMPLOYEE
    assert parse_access_request("https://tracker.local/") == EMPLOYEE
    assert parse_access_request("https://tracker.local/?setup") == COMPANY_ADMIN
    assert parse_access_request("https://tracker.local/#admin-setup") == COMPANY_ADMIN
    assert parse_access_request("?config=x7k9m") == COMPANY_ADMIN
    assert parse_access_request("?config=wrong") == EMPLOYEE
    assert parse_access_request("?dev=dev-secret") == DEVELOPER
    assert parse_access_request("?dev=guess") == EMPLOYEE


def test_dev_access_needs_configured_token():
    assert parse_access_request("?dev=") == EMPLOYEE
    assert parse_access_request("?dev=anything") == EMPLOYEE


def test_admin_token_comes_from_environment(monkeypatch):
    monkeypatch.setenv("TIMETRACKER_ADMIN_TOKEN", "company42")
    assert parse_access_request("?config=company42") == COMPANY_ADMIN
    assert parse_access_request("?config=x7k9m") == EMPLOYEE


def test_enroll_and_authenticate(storage):
    access = AccessService()
    assert not access.has_credential()
    access.request("?setup")
    assert access.requested == COMPANY_ADMIN
    assert access.level == EMPLOYEE

    access.enroll_admin(PASSPHRASE)
    assert access.has_credential()
    assert access.authenticate_admin(PASSPHRASE) == COMPANY_ADMIN
    assert access.is_admin

    access.exit_admin()
    assert access.level == EMPLOYEE


def test_wrong_passphrase_fails(storage):
    access = AccessService()
    access.enroll_admin(PASSPHRASE)
    assert not access.verify_passphrase("not the passphrase")
    with pytest.raises(AuthenticationError):
        access.authenticate_admin("not the passphrase")
    assert access.level == EMPLOYEE


def test_enrollment_rules(storage):
    access = AccessService()
    with pytest.raises(AuthenticationError):
        access.enroll_admin("short")
    with pytest.raises(AuthenticationError):
        access.authenticate_admin(PASSPHRASE)
    access.enroll_admin(PASSPHRASE)
    with pytest.raises(AuthenticationError):
        access.enroll_admin("another passphrase")
    assert access.reset_admin_credential()
    assert not access.has_credential()


def test_app_methods_are_guarded(app):
    with pytest.raises(AccessDeniedError):
        app.all_entries()
    with pytest.raises(AccessDeniedError):
        app.configure(company_name="Acme")

    app.access.enroll_admin(PASSPHRASE)
    app.login(PASSPHRASE)
    assert app.configure(company_name="Acme").company_name == "Acme"
    with pytest.raises(AccessDeniedError):
        app.inspect_storage()


def test_developer_login(app, monkeypatch):
    monkeypatch.setenv("TIMETRACKER_DEV_TOKEN", "dev-secret")
    assert app.developer_login("wrong") == EMPLOYEE
    assert app.developer_login("dev-secret") == DEVELOPER
    assert isinstance(app.inspect_storage(), list)


def test_employees_only_touch_their_own_entries(app, make_entry):
    theirs = app.entries.add(make_entry(employee="Bob Johnson"))
    with pytest.raises(ValidationError):
        app.delete_entry(theirs.id)

    app.set_employee_name("Jane Smith")
    with pytest.raises(ValidationError):
        app.edit_entry(theirs.id, description="changed")
    mine = app.entries.add(make_entry())
    assert app.edit_entry(mine.id, description="changed").description == "changed"
    app.delete_entry(mine.id)
    assert app.entries.entries == [theirs]

    app.access.enroll_admin(PASSPHRASE)
    app.login(PASSPHRASE)
    app.delete_entry(theirs.id)
    assert app.entries.entries == []
