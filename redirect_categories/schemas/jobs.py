from typing import Any, Literal

from pydantic import BaseModel, Field


class JobOut(BaseModel):
    id: str
    kind: str
    target_type: str
    target_id: str | None = None
    inputs_json: dict[str, Any] = Field(default_factory=dict)
    status: str
    dedupe_key: str | None = None
    attempt: int = 0
    result_json: dict[str, Any] | None = None
    error_json: dict[str, Any] | None = None


class ClaimRequest(BaseModel):
    lease_seconds: int | None = None


class ResultRequest(BaseModel):
    result_json: dict[str, Any] | None = None
    error_json: dict[str, Any] | None = None
    status: Literal["done", "failed", "dead_letter"]


class ReapResult(BaseModel):
    requeued: int
