from __future__ import annotations

from typing import Sequence

from ..core.enums import BoardingSession, MealType, ReportType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_date, db_cursor, fetchall, from_json, to_json
from .model import AbsentEntry, AttendanceReport, ReportFilter
from .repository import ReportRepository


def _to_report(r: dict) -> AttendanceReport:
    return AttendanceReport(
        report_id=int(r["report_id"]),
        report_date=as_date(r["report_date"]),
        report_type=ReportType(r["report_type"]),
        session=BoardingSession(r["session"]) if r.get("session") else None,
        meal_type=MealType(r["meal_type"]) if r.get("meal_type") else None,
        class_id=r.get("class_id"),
        total_students=int(r["total_students"]),
        present_count=int(r["present_count"]),
        absent_count=int(r["absent_count"]),
        absent_students=tuple(AbsentEntry.from_dict(e) for e in from_json(r.get("absent_students"), [])),
        notes=r.get("notes"),
        reporter_id=int(r["reporter_id"]) if r.get("reporter_id") is not None else None,
        reporter_name=r.get("reporter_name"),
        created_at=r.get("created_at"),
    )


class MySQLReportRepository(ReportRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list(self, report_filter: ReportFilter) -> Sequence[AttendanceReport]:
        clauses: list[str] = []
        params: list[object] = []
        f = report_filter
        if f.start is not None:
            clauses.append("report_date >= %s")
            params.append(f.start)
        if f.end is not None:
            clauses.append("report_date <= %s")
            params.append(f.end)
        if f.report_type is not None:
            clauses.append("report_type = %s")
            params.append(ReportType(f.report_type).value)
        if f.session is not None:
            clauses.append("session = %s")
            params.append(BoardingSession(f.session).value)
        if f.meal_type is not None:
            clauses.append("meal_type = %s")
            params.append(MealType(f.meal_type).value)
        if f.class_id:
            # Báo cáo của lớp, hoặc báo cáo toàn trường có học sinh lớp này vắng.
            clauses.append(
                "(class_id = %s OR JSON_CONTAINS(absent_students, JSON_OBJECT('class_id', %s)))"
            )
            params.extend([f.class_id, f.class_id])

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        limit = f"LIMIT {int(f.limit)}" if f.limit else ""

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT report_id, report_date, report_type, session, meal_type, class_id,
                       total_students, present_count, absent_count, absent_students,
                       notes, reporter_id, reporter_name, created_at
                FROM attendance_reports
                {where}
                ORDER BY created_at DESC, report_id DESC
                {limit}
                """,
                tuple(params),
            )
            return [_to_report(r) for r in fetchall(cur)]

    def insert(self, report: AttendanceReport) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_reports(
                    report_date, report_type, session, meal_type, class_id,
                    total_students, present_count, absent_count, absent_students,
                    notes, reporter_id, reporter_name
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    report.report_date,
                    report.report_type.value,
                    report.session.value if report.session else None,
                    report.meal_type.value if report.meal_type else None,
                    report.class_id,
                    int(report.total_students),
                    int(report.present_count),
                    int(report.absent_count),
                    to_json([e.as_dict() for e in report.absent_students]),
                    report.notes,
                    report.reporter_id,
                    report.reporter_name,
                ),
            )
            return int(cur.lastrowid)

    def delete(self, *, report_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance_reports WHERE report_id=%s", (int(report_id),))
            return cur.rowcount > 0
