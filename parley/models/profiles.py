from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class ScriptedQuestion(BaseModel):
    question_id: str
    question: str
    answers: list[str] = Field(default_factory=list)


class CounterpartProfile(BaseModel):
    """Static configuration for one counterpart.

    ``profile_key`` is a counterpart kind on the messenger surface and a
    contact id on the direct-message surface.
    """

    profile_key: str = Field(min_length=1)
    instructions: str
    introduction: str | None = None
    questions: list[ScriptedQuestion] = Field(default_factory=list)

    @field_validator("instructions")
    @classmethod
    def _validate_instructions(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("instructions must not be empty")
        return cleaned


class ReplyPayload(BaseModel):
    """Shape a provider response must parse into."""

    model_config = ConfigDict(extra="ignore")

    reply: str = Field(validation_alias=AliasChoices("reply", "responseText"))

    @field_validator("reply")
    @classmethod
    def _validate_reply(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("reply must not be empty")
        return value.strip()


__all__ = ["CounterpartProfile", "ReplyPayload", "ScriptedQuestion"]
