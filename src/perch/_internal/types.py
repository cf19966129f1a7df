"""Shared types used across perch modules."""

from enum import StrEnum
from typing import TypeAlias


class FetchMethod(StrEnum):
    """How a URL's content is acquired.

    ``APP`` invokes the application in-process; ``HTTP`` issues a real
    request against the running site.
    """

    APP = "app"
    HTTP = "http"

    @classmethod
    def _missing_(cls, value: object) -> "FetchMethod | None":
        if isinstance(value, str):
            lowered = value.lower()
            if lowered == "curl":
                return cls.HTTP
            for member in cls:
                if member.value == lowered:
                    return member
        return None


# An explicit URL, optionally paired with a fetch method override
UrlEntry: TypeAlias = tuple[str, FetchMethod | None]
