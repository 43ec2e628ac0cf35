# =============================================================================
# app/routers/registration.py - Registration Gate Endpoints
# =============================================================================
# Public (unauthenticated) endpoints used by the sign-up page:
#   GET  /questions    -> up to 3 random active questions, no answers
#   POST /verify-quiz  -> {"passed": bool}
# =============================================================================

import json
import logging

from fastapi import APIRouter, Request
from pydantic import ValidationError

from app.dependencies import RegistrationServiceDep
from app.exceptions import InvalidInputError
from core.models import QuestionsResponse, VerifyQuizRequest, VerifyQuizResponse

logger = logging.getLogger(__name__)

router = APIRouter()

INVALID_ANSWERS = "Dữ liệu không hợp lệ"


@router.get("/questions", response_model=QuestionsResponse)
async def get_questions(service: RegistrationServiceDep):
    """Draw verification questions for the registration form."""
    return QuestionsResponse(questions=service.fetch_questions())


@router.post("/verify-quiz", response_model=VerifyQuizResponse)
async def verify_quiz(request: Request, service: RegistrationServiceDep):
    """
    Check the registrant's answers.

    Malformed JSON, a missing/empty `answers` list or malformed items are
    a 400 whose body still carries `passed: false` for the web client.
    """
    try:
        body = VerifyQuizRequest.model_validate(await request.json())
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
        logger.info(f"Rejected malformed quiz submission: {type(e).__name__}")
        raise InvalidInputError(INVALID_ANSWERS, extra={"passed": False})

    if not body.answers:
        raise InvalidInputError(INVALID_ANSWERS, extra={"passed": False})

    return VerifyQuizResponse(passed=service.verify(body.answers))
