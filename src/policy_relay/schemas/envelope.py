"""Uniform response envelopes returned by the relay."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel


class SuccessEnvelope(BaseModel):
    success: Literal[True] = True
    data: Any = None


class ErrorEnvelope(BaseModel):
    success: Literal[False] = False
    message: str
    error: Any = None
