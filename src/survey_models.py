"""
Data models for the survey store.

This module defines lightweight data classes for surveys, their questions and user
submissions.  Attribute names match the persisted field names so ``to_item`` and
``from_item`` are straight mappings.  Questions and submissions point back at their
survey through a ``SurveyRef`` rather than holding the survey itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

SurveyResolver = Callable[[str], Awaitable[Optional["Survey"]]]


def now_iso() -> str:
    """Return the current UTC time as an ISO 8601 formatted string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Survey:
    """
    A survey definition.

    Attributes:
        id: Store-assigned identifier.
        name: Display name of the survey.
        topics: Ordered topic names results are scored against.
        createdAt: ISO timestamp when the survey was created.
    """

    id: str
    name: str
    topics: List[str]
    createdAt: str

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "Survey":
        return cls(
            id=item["id"],
            name=item.get("name"),
            topics=list(item.get("topics") or []),
            createdAt=item.get("createdAt"),
        )

    def to_item(self) -> Dict[str, Any]:
        """Convert the survey into a stored record (dictionary)."""
        return {
            "id": self.id,
            "name": self.name,
            "topics": list(self.topics),
            "createdAt": self.createdAt,
        }


@dataclass(frozen=True)
class SurveyRef:
    """
    Non-owning reference to a survey by id.

    The store does not enforce the reference, so ``resolve`` may return None for a
    survey that was deleted or never existed.
    """

    id: str
    resolver: Optional[SurveyResolver] = field(default=None, repr=False, compare=False)

    async def resolve(self) -> Optional[Survey]:
        if self.resolver is None:
            return None
        return await self.resolver(self.id)


@dataclass
class Question:
    """
    A question attached to a survey.

    Attributes:
        id: Store-assigned identifier.
        survey: Reference to the owning survey (persisted as ``surveyId``).
        question: Question text.
        buttons: Ordered answer buttons, either labels or ``{"label": ...}`` mappings.
        createdAt: ISO timestamp when the question was added.
        updatedAt: ISO timestamp of the last edit, if any.
    """

    id: str
    survey: SurveyRef
    question: str
    buttons: List[Any]
    createdAt: str
    updatedAt: Optional[str] = None

    @property
    def surveyId(self) -> str:
        return self.survey.id

    @classmethod
    def from_item(cls, item: Dict[str, Any], resolver: Optional[SurveyResolver] = None) -> "Question":
        return cls(
            id=item["id"],
            survey=SurveyRef(item.get("surveyId"), resolver),
            question=item.get("question"),
            buttons=list(item.get("buttons") or []),
            createdAt=item.get("createdAt"),
            updatedAt=item.get("updatedAt"),
        )

    def to_item(self) -> Dict[str, Any]:
        item: Dict[str, Any] = {
            "id": self.id,
            "surveyId": self.survey.id,
            "question": self.question,
            "buttons": list(self.buttons),
            "createdAt": self.createdAt,
        }
        if self.updatedAt is not None:
            item["updatedAt"] = self.updatedAt
        return item


@dataclass
class Submission:
    """
    One user's completed run through a survey.

    ``surveyName`` is copied from the survey at submission time and is not kept in
    sync if the survey is renamed later.
    """

    id: str
    survey: SurveyRef
    surveyName: Optional[str]
    userName: Optional[str]
    userEmail: Optional[str]
    topicResults: Any
    answerHistory: Any
    finalResult: Any
    submittedAt: str

    @property
    def surveyId(self) -> str:
        return self.survey.id

    @classmethod
    def from_item(cls, item: Dict[str, Any], resolver: Optional[SurveyResolver] = None) -> "Submission":
        return cls(
            id=item["id"],
            survey=SurveyRef(item.get("surveyId"), resolver),
            surveyName=item.get("surveyName"),
            userName=item.get("userName"),
            userEmail=item.get("userEmail"),
            topicResults=item.get("topicResults"),
            answerHistory=item.get("answerHistory"),
            finalResult=item.get("finalResult"),
            submittedAt=item.get("submittedAt"),
        )

    def to_item(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "surveyId": self.survey.id,
            "surveyName": self.surveyName,
            "userName": self.userName,
            "userEmail": self.userEmail,
            "topicResults": self.topicResults,
            "answerHistory": self.answerHistory,
            "finalResult": self.finalResult,
            "submittedAt": self.submittedAt,
        }
