from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .common.datetime_utils import now_local
from .database.connection import DatabaseConnection, DBConfig
from .deadlines.reminder import MealReminderService
from .duty.mysql_duty_repository import MySQLDutyRepository
from .duty.repository import DutyRepository
from .duty.service import DutyService
from .permissions.mysql_feature_repository import MySQLFeatureRepository
from .permissions.mysql_group_repository import MySQLPermissionGroupRepository
from .permissions.mysql_permission_repository import MySQLPermissionRepository
from .permissions.repository import FeatureRepository, PermissionGroupRepository, PermissionRepository
from .permissions.service import PermissionService
from .reports.mysql_report_repository import MySQLReportRepository
from .reports.repository import ReportRepository
from .reports.service import ReportService
from .students.mysql_student_repository import MySQLClassRepository, MySQLStudentRepository
from .students.repository import ClassRepository, StudentRepository
from .students.service import StudentService
from .users.mysql_auth_gateway import MySQLAuthGateway
from .users.mysql_user_repository import MySQLProfileRepository
from .users.repository import AuthGateway, ProfileRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    clock: Callable[[], datetime]

    auth_service: AuthService
    user_service: UserService
    permission_service: PermissionService
    student_service: StudentService
    report_service: ReportService
    reminder_service: MealReminderService
    duty_service: DutyService


def assemble_container(
    *,
    students: StudentRepository,
    classes: ClassRepository,
    reports: ReportRepository,
    duties: DutyRepository,
    profiles: ProfileRepository,
    auth_gateway: AuthGateway,
    permissions: PermissionRepository,
    groups: PermissionGroupRepository,
    features: FeatureRepository,
    conn: Optional[DatabaseConnection] = None,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    return Container(
        conn=conn,
        clock=clock,
        auth_service=AuthService(auth_gateway, profiles, permissions),
        user_service=UserService(profiles, auth_gateway, permissions),
        permission_service=PermissionService(permissions, groups, features, profiles),
        student_service=StudentService(students, classes),
        report_service=ReportService(reports, students, classes),
        reminder_service=MealReminderService(reports),
        duty_service=DutyService(duties),
    )


def build_container(*, db_config: dict) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return assemble_container(
        students=MySQLStudentRepository(conn),
        classes=MySQLClassRepository(conn),
        reports=MySQLReportRepository(conn),
        duties=MySQLDutyRepository(conn),
        profiles=MySQLProfileRepository(conn),
        auth_gateway=MySQLAuthGateway(conn),
        permissions=MySQLPermissionRepository(conn),
        groups=MySQLPermissionGroupRepository(conn),
        features=MySQLFeatureRepository(conn),
        conn=conn,
    )
