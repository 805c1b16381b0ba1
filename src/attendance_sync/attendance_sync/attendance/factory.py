from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from ..core.constants import DEFAULT_HTTP_TIMEOUT_SECONDS
from ..database.connection import DBConfig, DatabaseConnection
from .mysql_attendance_repository import MySQLAttendanceStore
from .repository import AttendanceStore
from .rest_attendance_repository import CallerScopedAttendanceStore, ServiceRoleAttendanceStore

_logger = logging.getLogger(__name__)


@dataclass
class AttendanceStoreFactory:
    """Factory Pattern: pick the backing-store tier from configuration.

    The choice is made once, at startup, from which settings are present:
    a database config selects the direct tier, a service role key the
    privileged tier, an anon key the caller-scoped tier. A failing tier is
    never swapped for another one at request time.
    """

    db_config: Optional[dict] = None
    supabase_url: Optional[str] = None
    service_role_key: Optional[str] = None
    anon_key: Optional[str] = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    connection_factory: Callable[[DBConfig], DatabaseConnection] = DatabaseConnection
    session_factory: Callable[[], requests.Session] = requests.Session

    @classmethod
    def from_settings(cls, settings) -> "AttendanceStoreFactory":
        return cls(
            db_config=getattr(settings, "DB_CONFIG", None),
            supabase_url=getattr(settings, "SUPABASE_URL", None),
            service_role_key=getattr(settings, "SUPABASE_SERVICE_ROLE_KEY", None),
            anon_key=getattr(settings, "SUPABASE_ANON_KEY", None),
            http_timeout=float(getattr(settings, "HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT_SECONDS)),
        )

    def create(self) -> Optional[AttendanceStore]:
        if self.db_config:
            conn = self.connection_factory(DBConfig.from_dict(self.db_config))
            return MySQLAttendanceStore(conn)

        if self.supabase_url and self.service_role_key:
            return ServiceRoleAttendanceStore(
                self.supabase_url,
                self.service_role_key,
                session=self.session_factory(),
                timeout=self.http_timeout,
            )

        if self.supabase_url and self.anon_key:
            return CallerScopedAttendanceStore(
                self.supabase_url,
                self.anon_key,
                session=self.session_factory(),
                timeout=self.http_timeout,
            )

        _logger.warning(
            "No attendance store configured; set DB_HOST/DATABASE_URL, or SUPABASE_URL with a service role or anon key"
        )
        return None
