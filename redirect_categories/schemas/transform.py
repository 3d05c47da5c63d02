from pydantic import BaseModel, Field


class PreSaveTransformRequest(BaseModel):
    title: str
    text: str


class ReplacementOut(BaseModel):
    original: str
    replacement: str
    target: str


class PreSaveTransformResult(BaseModel):
    text: str
    changed: bool
    replacements: list[ReplacementOut] = Field(default_factory=list)


class PageSavedEvent(BaseModel):
    title: str


class PageSavedAccepted(BaseModel):
    enqueued: bool
    reason: str
    job_id: str | None = None
    category_key: str | None = None
