# =============================================================================
# core/models/registration.py - Registration Gate Schemas
# =============================================================================
# New sign-ups must answer a few questions only clan members would know.
# The public question shape deliberately has no correct_answer field.
# =============================================================================

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PublicQuestion(BaseModel):
    """A verification question as served to a registrant."""

    id: str
    question: str
    hint: str | None = None


class QuestionsResponse(BaseModel):
    questions: list[PublicQuestion]


class QuizAnswer(BaseModel):
    """
    One submitted answer.

    Example:
        {"questionId": "0b7c...", "answer": "Phạm Văn Tổ"}
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    question_id: str = Field(..., min_length=1)
    answer: str = ""


class VerifyQuizRequest(BaseModel):
    answers: list[QuizAnswer] | None = None


class VerifyQuizResponse(BaseModel):
    passed: bool
