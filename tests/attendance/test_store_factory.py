from types import SimpleNamespace

from src.attendance_sync.attendance_sync.attendance.factory import AttendanceStoreFactory
from src.attendance_sync.attendance_sync.attendance.mysql_attendance_repository import MySQLAttendanceStore
from src.attendance_sync.attendance_sync.attendance.rest_attendance_repository import (
    CallerScopedAttendanceStore,
    ServiceRoleAttendanceStore,
)

DB_CONFIG = {"host": "db", "port": 3306, "user": "app", "password": "secret", "database": "attendance_sync"}


class FakeConnection:
    def __init__(self, config):
        self.config = config


def _factory(**kwargs):
    return AttendanceStoreFactory(
        connection_factory=FakeConnection,
        session_factory=lambda: object(),
        **kwargs,
    )


def test_database_config_selects_direct_tier_even_with_service_key():
    store = _factory(
        db_config=DB_CONFIG,
        supabase_url="https://db.example.test",
        service_role_key="service-key",
        anon_key="anon-key",
    ).create()

    assert isinstance(store, MySQLAttendanceStore)


def test_service_key_selects_privileged_tier():
    store = _factory(supabase_url="https://db.example.test", service_role_key="service-key", anon_key="anon").create()

    assert isinstance(store, ServiceRoleAttendanceStore)


def test_anon_key_selects_caller_tier():
    store = _factory(supabase_url="https://db.example.test", anon_key="anon-key").create()

    assert isinstance(store, CallerScopedAttendanceStore)


def test_nothing_configured_gives_no_store():
    assert _factory(service_role_key="service-key").create() is None


def test_from_settings_reads_settings_module_attributes():
    settings = SimpleNamespace(
        DB_CONFIG=None,
        SUPABASE_URL="https://db.example.test",
        SUPABASE_SERVICE_ROLE_KEY=None,
        SUPABASE_ANON_KEY="anon-key",
        HTTP_TIMEOUT_SECONDS=3,
    )

    factory = AttendanceStoreFactory.from_settings(settings)

    assert factory.anon_key == "anon-key"
    assert factory.http_timeout == 3.0
