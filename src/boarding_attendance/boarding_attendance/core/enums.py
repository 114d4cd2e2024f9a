from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Vai trò người dùng dùng cho phân quyền."""

    ADMIN = "admin"
    TEACHER = "teacher"
    CLASS_TEACHER = "class_teacher"
    ACCOUNTANT = "accountant"
    KITCHEN = "kitchen"


class ReportType(str, Enum):
    """Loại báo cáo điểm danh."""

    EVENING_STUDY = "evening_study"
    BOARDING = "boarding"
    MEAL = "meal"


class BoardingSession(str, Enum):
    """Buổi kiểm tra nội trú (chỉ dùng cho báo cáo loại boarding)."""

    MORNING_EXERCISE = "morning_exercise"
    NOON_NAP = "noon_nap"
    EVENING_SLEEP = "evening_sleep"
    RANDOM = "random"


class MealType(str, Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"


class AbsencePermission(str, Enum):
    """P = có phép, KP = không phép."""

    EXCUSED = "P"
    UNEXCUSED = "KP"


class PermissionAction(str, Enum):
    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"


class StatsDimension(str, Enum):
    """Chiều chia nhỏ số liệu thống kê."""

    NONE = "none"
    CLASS = "class"
    MEAL_GROUP = "meal_group"


class GroupAssignMode(str, Enum):
    """Cách gán nhóm quyền hàng loạt: thêm vào hoặc thay thế nhóm hiện có."""

    APPEND = "append"
    REPLACE = "replace"
