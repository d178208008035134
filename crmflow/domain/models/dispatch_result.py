"""Result model shared by the integration and agent dispatch interfaces."""

from typing import Any

from pydantic import BaseModel


class DispatchResult(BaseModel):
    """Outcome of a collaborator call. Ordinary failures are ``ok=False``, never raised."""

    ok: bool
    output: Any = None
    error: str | None = None

    @classmethod
    def success(cls, output: Any = None) -> "DispatchResult":
        return cls(ok=True, output=output)

    @classmethod
    def failure(cls, error: str) -> "DispatchResult":
        return cls(ok=False, error=error)
