"""Typed result envelopes returned by every Portal SDK operation."""

from __future__ import annotations

from typing import Any, Generic, Literal, TypeAlias, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

from packages.portal_shared.errors import ErrorDetail


T = TypeVar("T")


class Success(BaseModel, Generic[T]):
    """Envelope variant for a call the remote answered with a 2xx status."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    success: Literal[True] = True
    data: T
    status: int
    headers: dict[str, str] = Field(default_factory=dict)


class Failure(BaseModel):
    """Envelope variant for any expected failure path."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    success: Literal[False] = False
    error: ErrorDetail


Envelope: TypeAlias = Union[Success[Any], Failure]
