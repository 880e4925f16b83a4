"""
Uniform JSON wrapper used for every response body.
"""

from typing import Any

from pydantic import BaseModel


class Envelope(BaseModel):
    """``{code, data, error, success}``; ``success`` is true iff ``error`` is empty."""

    code: int
    data: Any = None
    error: str = ""
    success: bool = True

    @classmethod
    def build(cls, status_code: int, data: Any = None, error: str = "") -> "Envelope":
        return cls(code=status_code, data=data, error=error, success=error == "")
