from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    STORAGE = "storage"
    SYSTEM = "system"


class JournalError(Exception):
    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        resource_id: Optional[str] = None,
    ) -> None:
        self.message = message
        self.category = category
        self.resource_id = resource_id
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [f"[{self.category.value}] {self.message}"]
        if self.resource_id:
            parts.append(f"id: {self.resource_id}")
        return " | ".join(parts)


class ValidationError(JournalError):
    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorCategory.VALIDATION)


class NotFoundError(JournalError):
    def __init__(self, message: str, resource_id: Optional[str] = None) -> None:
        super().__init__(message, ErrorCategory.NOT_FOUND, resource_id)


class ProgressNotFoundError(NotFoundError):
    """Raised instead of synthesising a fresh record over real history."""

    def __init__(self, user_id: str) -> None:
        super().__init__("User progress not found", user_id)


class InvalidCheckInError(JournalError):
    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorCategory.VALIDATION)


class CheckInAlreadyRecordedError(JournalError):
    def __init__(self, user_id: str, date: str) -> None:
        super().__init__(f"Check-in already recorded for {date}", ErrorCategory.CONFLICT, user_id)
        self.date = date


class StorageError(JournalError):
    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorCategory.STORAGE)


class ProgressConflictError(JournalError):
    def __init__(self, user_id: str) -> None:
        super().__init__("Progress changed since it was read", ErrorCategory.CONFLICT, user_id)
