from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s - [%(name)s] - %(levelname)s - %(message)s"


def setup_logging(*, level: str = "INFO", log_dir: str | Path | None = "logs") -> None:
    """Cấu hình logging dùng chung cho cả ứng dụng.

    Log được ghi ra console và (nếu có log_dir) vào file app.log xoay vòng
    khi vượt quá 5MB, giữ tối đa 5 file cũ.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    # Bỏ handler mặc định (vd của Flask/werkzeug) để dùng chung một format.
    if root.hasHandlers():
        root.handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(stdout_handler)

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path / "app.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(file_handler)
