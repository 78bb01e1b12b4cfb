"""Error envelope returned by every failing API call."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class ErrorEnvelope(BaseModel):
    """Structured error body.

    ``status`` tells a failed call (``"error"``) apart from one that partially
    succeeded (``"partial"``).  For partial batch failures ``failed_index``
    and ``processed`` say how far the batch got.
    """

    status: str = "error"
    error: bool = True
    message: str
    failed_index: Optional[int] = None
    processed: Optional[int] = None

    def to_content(self) -> dict:
        return self.model_dump(exclude_none=True)
