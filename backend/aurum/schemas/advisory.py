"""Advisory Schemas — chat request body."""

from pydantic import BaseModel, Field, field_validator


class ChatRequest(BaseModel):
    """Chat message — 1-1000 chars after stripping."""
    message: str = Field(min_length=1, max_length=1000)
    user_id: int | None = Field(None, gt=0)

    @field_validator("message")
    @classmethod
    def strip_message(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("message cannot be empty or whitespace")
        return v
