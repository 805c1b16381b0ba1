from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.factory import AttendanceStoreFactory
from .attendance.repository import AttendanceStore
from .attendance.service import AttendanceGateway


@dataclass(frozen=True)
class Container:
    attendance_store: Optional[AttendanceStore]
    attendance_gateway: AttendanceGateway


def build_container(settings, *, store_factory: Optional[AttendanceStoreFactory] = None) -> Container:
    factory = store_factory or AttendanceStoreFactory.from_settings(settings)
    store = factory.create()
    return Container(
        attendance_store=store,
        attendance_gateway=AttendanceGateway(store),
    )
