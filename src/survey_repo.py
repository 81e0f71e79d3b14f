"""
Repository for surveys, their questions and user submissions.

All persistence goes through an injected ``DocumentStore``.  The store enforces no
references between collections, so ``delete_survey`` is responsible for removing the
questions and submissions that point at a survey before and after the survey itself.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Dict, Iterable, List, Mapping, Optional

from document_store import (
    QUESTIONS,
    SUBMISSIONS,
    SURVEYS,
    DocumentStore,
    NotFoundError,
    StoreError,
)
from survey_models import Question, Submission, Survey, now_iso

logger = logging.getLogger(__name__)


def _as_list(data: Mapping[str, Any], name: str) -> List[Any]:
    value = data[name]
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"{name} must be a list, got {type(value).__name__}")
    return list(value)


def _as_str(data: Mapping[str, Any], name: str) -> str:
    value = data[name]
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string, got {type(value).__name__}")
    return value


async def settle_all(operations: Iterable[Awaitable[Any]]) -> int:
    """
    Run ``operations`` concurrently and wait until every one has finished.

    Returns the number of operations.  If any of them failed, the first failure (in
    issue order) is raised once all the others have settled; nothing is undone.
    """
    results = await asyncio.gather(*operations, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return len(results)


class SurveyRepo:
    """Survey, question and submission operations over a document store."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    # ===== Surveys =====

    async def create_survey(self, data: Mapping[str, Any]) -> str:
        """Insert a survey and return its id."""
        try:
            return await self.store.insert(SURVEYS, {
                "name": data["name"],
                "topics": _as_list(data, "topics"),
                "createdAt": now_iso(),
            })
        except StoreError:
            logger.exception("Error adding survey")
            raise

    async def get_all_surveys(self) -> List[Survey]:
        try:
            items = await self.store.list_all(SURVEYS)
        except StoreError:
            logger.exception("Error getting surveys")
            raise
        return [Survey.from_item(item) for item in items]

    async def find_survey(self, survey_id: str) -> Optional[Survey]:
        """Return the survey with ``survey_id``, or None if there is none."""
        try:
            item = await self.store.get_by_id(SURVEYS, survey_id)
        except StoreError:
            logger.exception("Error getting survey %s", survey_id)
            raise
        return Survey.from_item(item) if item is not None else None

    async def get_survey_by_id(self, survey_id: str) -> Survey:
        """
        Return the survey with ``survey_id``.

        Raises:
            NotFoundError: If the survey does not exist.
            StoreReadError: If the store could not be read.
        """
        survey = await self.find_survey(survey_id)
        if survey is None:
            logger.error("Error getting survey %s: not found", survey_id)
            raise NotFoundError("Survey not found")
        return survey

    async def delete_survey(self, survey_id: str) -> bool:
        """
        Delete a survey along with every question and submission that references it.

        Dependents are looked up first.  Questions are deleted concurrently and all of
        them must settle before the survey is deleted; submissions are deleted last.
        A failure in any phase stops the later phases and is raised to the caller.
        Deletions that already went through stay deleted, and calling this again
        finishes the job.
        """
        try:
            questions, submissions = await asyncio.gather(
                self.store.query_equals(QUESTIONS, "surveyId", survey_id),
                self.store.query_equals(SUBMISSIONS, "surveyId", survey_id),
            )
            await settle_all(self.store.delete_by_id(QUESTIONS, q["id"]) for q in questions)
            await self.store.delete_by_id(SURVEYS, survey_id)
            await settle_all(self.store.delete_by_id(SUBMISSIONS, s["id"]) for s in submissions)
        except StoreError:
            logger.exception("Error deleting survey %s and associated data", survey_id)
            raise
        logger.info(
            "Deleted survey %s with %d questions and %d user submissions",
            survey_id, len(questions), len(submissions),
        )
        return True

    # ===== Questions =====

    async def add_question(self, survey_id: str, data: Mapping[str, Any]) -> str:
        """Insert a question for ``survey_id``.  The survey is not checked for existence."""
        try:
            return await self.store.insert(QUESTIONS, {
                "surveyId": survey_id,
                "question": data["question"],
                "buttons": _as_list(data, "buttons"),
                "createdAt": now_iso(),
            })
        except StoreError:
            logger.exception("Error adding question to survey %s", survey_id)
            raise

    async def get_questions_for_survey(self, survey_id: str) -> List[Question]:
        try:
            items = await self.store.query_equals(QUESTIONS, "surveyId", survey_id)
        except StoreError:
            logger.exception("Error getting questions for survey %s", survey_id)
            raise
        return [Question.from_item(item, self.find_survey) for item in items]

    async def update_question(self, question_id: str, data: Mapping[str, Any]) -> bool:
        """
        Replace the text and buttons of a question and stamp ``updatedAt``.

        Raises:
            NotFoundError: If the question does not exist.
        """
        try:
            await self.store.update(QUESTIONS, question_id, {
                "question": data["question"],
                "buttons": _as_list(data, "buttons"),
                "updatedAt": now_iso(),
            })
        except StoreError:
            logger.exception("Error updating question %s", question_id)
            raise
        return True

    async def delete_question(self, question_id: str) -> bool:
        try:
            await self.store.delete_by_id(QUESTIONS, question_id)
        except StoreError:
            logger.exception("Error deleting question %s", question_id)
            raise
        return True

    # ===== Submissions =====

    async def save_user_survey_submission(self, data: Mapping[str, Any]) -> str:
        """Insert a completed submission and return its id."""
        fields: Dict[str, Any] = {
            "surveyId": _as_str(data, "surveyId"),
            "surveyName": data.get("surveyName"),
            "userName": data.get("userName"),
            "userEmail": data.get("userEmail"),
            "topicResults": data.get("topicResults"),
            "answerHistory": data.get("answerHistory"),
            "finalResult": data.get("finalResult"),
            "submittedAt": now_iso(),
        }
        try:
            submission_id = await self.store.insert(SUBMISSIONS, fields)
        except StoreError:
            logger.exception("Error saving user survey submission")
            raise
        logger.info("User survey submission saved with ID %s", submission_id)
        return submission_id

    async def get_survey_submissions(self, survey_id: str) -> List[Submission]:
        try:
            items = await self.store.query_equals(SUBMISSIONS, "surveyId", survey_id)
        except StoreError:
            logger.exception("Error getting submissions for survey %s", survey_id)
            raise
        return [Submission.from_item(item, self.find_survey) for item in items]
