import pytest

from survey_models import Question, Submission, Survey, SurveyRef, now_iso


def test_now_iso_is_utc():
    assert now_iso().endswith("+00:00")


def test_question_item_uses_survey_id():
    item = {"id": "Q1", "surveyId": "S1", "question": "Like cats?", "buttons": ["yes", "no"], "createdAt": "t0"}

    question = Question.from_item(item)

    assert question.surveyId == "S1"
    assert question.to_item() == item


def test_updated_at_is_kept_when_set():
    item = {"id": "Q1", "surveyId": "S1", "question": "q", "buttons": [], "createdAt": "t0", "updatedAt": "t1"}
    assert Question.from_item(item).to_item()["updatedAt"] == "t1"


def test_submission_item_round_trip():
    item = {
        "id": "U1", "surveyId": "S1", "surveyName": "Pets", "userName": "A", "userEmail": None,
        "topicResults": {"cat": 2}, "answerHistory": [], "finalResult": "cat", "submittedAt": "t0",
    }
    assert Submission.from_item(item).to_item() == item


def test_refs_compare_by_id_only():
    async def lookup(_):
        return None

    assert SurveyRef("S1", lookup) == SurveyRef("S1")


@pytest.mark.asyncio
async def test_ref_without_resolver_resolves_to_none():
    assert await SurveyRef("S1").resolve() is None


@pytest.mark.asyncio
async def test_ref_resolves_through_lookup():
    survey = Survey(id="S1", name="Pets", topics=["cat"], createdAt="t0")

    async def lookup(survey_id):
        return survey if survey_id == "S1" else None

    assert await SurveyRef("S1", lookup).resolve() is survey
    assert await SurveyRef("S2", lookup).resolve() is None
