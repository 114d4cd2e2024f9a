from __future__ import annotations

from typing import Protocol, Sequence

from .model import AttendanceReport, ReportFilter


class ReportRepository(Protocol):
    """Giao diện repository cho báo cáo điểm danh (chỉ thêm / đọc / xoá, không sửa)."""

    def list(self, report_filter: ReportFilter) -> Sequence[AttendanceReport]:
        """Newest first."""

        raise NotImplementedError

    def insert(self, report: AttendanceReport) -> int:
        """Persist a report. Storage assigns report_id and created_at."""

        raise NotImplementedError

    def delete(self, *, report_id: int) -> bool:
        raise NotImplementedError
