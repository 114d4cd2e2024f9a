"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from .enums import MealType

# Giờ chốt báo cơm: đóng khi giờ hiện tại >= giờ chốt (bữa sáng là cho ngày mai).
MEAL_CUTOFF_HOURS = {
    MealType.BREAKFAST: 22,
    MealType.LUNCH: 8,
    MealType.DINNER: 15,
}
NEAR_DEADLINE_MINUTES = 60

RICE_KG_PER_MEAL = 0.2

DUTY_SHIFT_BOUNDARY_HOUR = 6
DUTY_EXPECTED_STAFF = 3
DUTY_MANAGER_GROUP_NAME = "Quản lí nội trú"

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 100

DEFAULT_SESSION_DAYS = 7
DEFAULT_HISTORY_LIMIT = 200

# Mã chức năng (feature code) dùng trong bảng phân quyền.
FEATURE_ATTENDANCE = "attendance"
FEATURE_MEALS = "meals"
FEATURE_STATISTICS = "statistics"
FEATURE_STUDENTS = "students"
FEATURE_DUTY = "duty"
FEATURE_USERS = "users"

SCHOOL_NAME = "Trường PTDTNT THCS&THPT Xín Mần"
