import os


def get_settings_module() -> str:
    # Lấy giá trị môi trường từ biến APP_ENV, mặc định là 'development'
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "boarding_attendance.config.production"

    if env in {"test", "testing"}:
        return "boarding_attendance.config.testing"

    # Mặc định trả về Development cho tất cả các trường hợp còn lại
    return "boarding_attendance.config.development"
