# =============================================================================
# core/services/registration_service.py - Registration Gate
# =============================================================================
# Serves a few random verification questions and checks submitted answers.
#
# The two reads select different columns on purpose: the public fetch never
# loads correct_answer, and the answer-key fetch only runs here, against the
# service-role repository.
# =============================================================================

import logging
import random

from app.config import settings
from app.exceptions import UpstreamError
from core.models import PublicQuestion, QuizAnswer
from lib.repository import Repository, RepositoryError

logger = logging.getLogger(__name__)

QUESTIONS_TABLE = "family_questions"


def normalize_answer(value: str | None) -> str:
    """Trim and case-fold for comparison ("  Phạm  " == "phạm")."""
    return (value or "").strip().casefold()


class RegistrationService:
    """Service for the quiz that gates registration."""

    def __init__(self, repo: Repository, rng: random.Random | None = None):
        self.repo = repo
        self.rng = rng or random.SystemRandom()

    def fetch_questions(self, count: int | None = None) -> list[PublicQuestion]:
        """
        Draw up to `count` active questions uniformly without replacement.

        Returns:
            [] when no active questions exist
        """
        limit = count or settings.QUIZ_QUESTION_COUNT
        try:
            rows = self.repo.find_many(
                QUESTIONS_TABLE,
                columns="id, question, hint",
                eq={"is_active": True},
            )
        except RepositoryError as e:
            raise UpstreamError("fetch verification questions", e)

        picked = self.rng.sample(rows, min(limit, len(rows)))
        return [PublicQuestion(**row) for row in picked]

    def verify(self, answers: list[QuizAnswer]) -> bool:
        """
        True only if answers is non-empty and every answer is correct.

        Unknown or inactive question ids, and questions without a stored
        answer, count as wrong.
        """
        if not answers:
            return False

        question_ids = sorted({a.question_id for a in answers})
        try:
            rows = self.repo.find_many(
                QUESTIONS_TABLE,
                columns="id, correct_answer",
                eq={"is_active": True},
                in_={"id": question_ids},
            )
        except RepositoryError as e:
            raise UpstreamError("verify quiz answers", e)

        answer_key = {}
        for row in rows:
            key = normalize_answer(row.get("correct_answer"))
            # A question with no stored answer can never be answered correctly
            if key:
                answer_key[str(row["id"])] = key

        passed = all(
            a.question_id in answer_key and normalize_answer(a.answer) == answer_key[a.question_id]
            for a in answers
        )
        logger.info(f"Quiz verification: {len(answers)} answer(s), passed={passed}")
        return passed
