# app/domain/errors.py
from __future__ import annotations

from typing import Optional


class CatalogFetchError(Exception):
    """Listing call to the vendor failed; the current sync run ends with a failed summary."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RecommendationError(Exception):
    pass


class UserNotFoundError(RecommendationError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class FormNotFilledError(RecommendationError):
    def __init__(self, message: str = "User has not filled the health profile form"):
        super().__init__(message)
