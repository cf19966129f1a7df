"""Request/response shapes exchanged with in-process handlers."""

from perch.http.request import Request
from perch.http.response import Handler, Response

__all__ = ["Handler", "Request", "Response"]
