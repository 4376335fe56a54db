"""Shared application helpers."""

from ticket_assistant.shared.application.pagination import (
    PageRequest,
    PageWindow,
    page_window,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
)

__all__ = ["PageRequest", "PageWindow", "page_window", "DEFAULT_PAGE_SIZE", "MAX_PAGE_SIZE"]
