from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from ..common.datetime_utils import month_bounds, previous_month
from ..common.results import BulkResult
from ..common.validators import optional_text, require_non_empty, validate_month
from ..core.constants import DUTY_EXPECTED_STAFF, DUTY_MANAGER_GROUP_NAME, FEATURE_DUTY
from ..core.exceptions import DomainError, ValidationError
from ..permissions.evaluator import EffectivePermissions
from .model import DutyEntry, DutyRoster
from .repository import DutyRepository
from .shift_resolver import resolve_active_shift, staffing_status

logger = logging.getLogger(__name__)

DutySelection = tuple[str, date]


def _normalize_selections(selections: Iterable[DutySelection]) -> list[DutySelection]:
    """Bỏ tên rỗng và cặp (tên, ngày) trùng lặp, giữ thứ tự xuất hiện."""
    seen: set[DutySelection] = set()
    out: list[DutySelection] = []
    for name, duty_date in selections:
        name = (name or "").strip()
        if not name:
            continue
        key = (name, duty_date)
        if key in seen:
            continue
        seen.add(key)
        out.append(key)
    return out


class DutyService:
    """Use case: lịch trực nội trú (xem ca đang trực, quản lý lịch theo tháng)."""

    def __init__(self, duties: DutyRepository, *, expected_staff: int = DUTY_EXPECTED_STAFF):
        self._duties = duties
        self._expected_staff = expected_staff

    @staticmethod
    def can_manage(actor: EffectivePermissions) -> bool:
        return actor.is_admin or actor.in_group(DUTY_MANAGER_GROUP_NAME) or actor.can_edit(FEATURE_DUTY)

    def _require_manager(self, actor: EffectivePermissions) -> None:
        actor.require(self.can_manage(actor), "Bạn không có quyền quản lý lịch trực")

    def current_roster(self, *, now: datetime) -> DutyRoster:
        shift = resolve_active_shift(now)
        entries = tuple(self._duties.list_for_date(duty_date=shift.shift_date))
        return DutyRoster(
            shift=shift,
            entries=entries,
            staffing=staffing_status(len(entries), self._expected_staff),
        )

    def list_month(self, *, year: int, month: int) -> Sequence[DutyEntry]:
        start, end = month_bounds(int(year), validate_month(month))
        return self._duties.list_range(start=start, end=end)

    def list_for_date(self, *, duty_date: date) -> Sequence[DutyEntry]:
        return self._duties.list_for_date(duty_date=duty_date)

    def add(
        self, actor: EffectivePermissions, *, teacher_name: str, duty_date: date, notes: Optional[str] = None
    ) -> int:
        self._require_manager(actor)
        teacher_name = require_non_empty(teacher_name, "Tên giáo viên")
        return self._duties.insert(
            teacher_name=teacher_name, duty_date=duty_date, notes=optional_text(notes), created_by=actor.user_id
        )

    def update(
        self, actor: EffectivePermissions, *, duty_id: int, teacher_name: str, notes: Optional[str] = None
    ) -> None:
        self._require_manager(actor)
        teacher_name = require_non_empty(teacher_name, "Tên giáo viên")
        if not self._duties.get_by_id(int(duty_id)):
            raise ValidationError("Lịch trực không tồn tại")
        self._duties.update(duty_id=int(duty_id), teacher_name=teacher_name, notes=optional_text(notes))

    def delete(self, actor: EffectivePermissions, *, duty_id: int) -> None:
        self._require_manager(actor)
        if not self._duties.delete(duty_id=int(duty_id)):
            raise ValidationError("Lịch trực không tồn tại")

    def bulk_assign(self, actor: EffectivePermissions, selections: Iterable[DutySelection]) -> BulkResult:
        """Thêm nhiều lượt trực; cặp (tên, ngày) đã có sẽ được bỏ qua thay vì nhân bản."""
        self._require_manager(actor)
        result = BulkResult()
        for name, duty_date in _normalize_selections(selections):
            try:
                if self._duties.insert_if_absent(teacher_name=name, duty_date=duty_date, created_by=actor.user_id):
                    result.ok()
                else:
                    result.skip()
            except DomainError as e:
                logger.warning("Duty insert failed for %s on %s: %s", name, duty_date, e)
                result.fail(f"{name} ({duty_date:%d/%m/%Y}): {e}")
        return result

    def replace_month(
        self, actor: EffectivePermissions, *, year: int, month: int, selections: Iterable[DutySelection]
    ) -> BulkResult:
        """Lưu lịch cả tháng: xoá lịch cũ trong tháng rồi ghi lại các lựa chọn."""
        self._require_manager(actor)
        start, end = month_bounds(int(year), validate_month(month))
        rows = _normalize_selections(selections)
        outside = [d for _, d in rows if not start <= d <= end]
        if outside:
            raise ValidationError("Có ngày trực nằm ngoài tháng đang chọn")

        removed = self._duties.delete_range(start=start, end=end)
        logger.info("User %s cleared %d duty rows of %02d/%d", actor.user_id, removed, month, year)
        return self.bulk_assign(actor, rows)

    def copy_previous_month(
        self, *, year: int, month: int, current: Iterable[DutySelection] = ()
    ) -> list[DutySelection]:
        """Đề xuất lịch tháng này từ tháng trước (cùng ngày trong tháng), gộp với lựa chọn hiện có.

        Ngày không tồn tại ở tháng đích (vd 31) bị bỏ qua.
        """
        prev_year, prev_month = previous_month(int(year), validate_month(month))
        prev_start, prev_end = month_bounds(prev_year, prev_month)
        _, target_end = month_bounds(int(year), int(month))

        proposals = list(current)
        for entry in self._duties.list_range(start=prev_start, end=prev_end):
            day = entry.duty_date.day
            if day > target_end.day:
                continue
            proposals.append((entry.teacher_name, date(int(year), int(month), day)))
        return _normalize_selections(proposals)
