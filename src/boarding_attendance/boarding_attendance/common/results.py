from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class BulkResult:
    """Kết quả thao tác hàng loạt kiểu best-effort: từng phần tử được thử, lỗi không dừng vòng lặp."""

    success: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    def ok(self) -> None:
        self.success += 1

    def fail(self, message: str) -> None:
        self.failed += 1
        self.errors.append(message)

    def skip(self) -> None:
        self.skipped += 1

    @property
    def total(self) -> int:
        return self.success + self.failed + self.skipped

    def as_dict(self) -> dict:
        return {
            "success": self.success,
            "failed": self.failed,
            "skipped": self.skipped,
            "errors": list(self.errors),
        }
