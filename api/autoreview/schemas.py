"""
Autoreview response models.
"""

from __future__ import annotations

from pydantic import BaseModel


class AutoReviewResult(BaseModel):
    title: str
    pageid: int | None = None
    oldid: int | None = None
    issues: list[str]


class AutoReviewResponse(BaseModel):
    # "statue" is what the AfC helper gadget reads.
    statue: int
    result: AutoReviewResult | None = None
    error: str | None = None
