import asyncio
import base64
import json
import logging
import os

from ddb_store import DynamoDocumentStore
from document_store import NotFoundError, StoreError
from survey_repo import SurveyRepo

# ========= ENV =========
# Table / index names are read by StoreConfig.from_env()
ALLOW_ORIGIN = os.environ.get("ALLOW_ORIGIN", "*")

logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Required body fields per resource, name -> type
SURVEY_FIELDS = {"name": str, "topics": list}
QUESTION_FIELDS = {"question": str, "buttons": list}
SUBMISSION_FIELDS = {"surveyId": str}
_TYPE_NAMES = {str: "string", list: "list"}

_REPO = None


class BadRequest(Exception):
    pass


def _get_repo() -> SurveyRepo:
    """Build the repository once and reuse it across warm invocations."""
    global _REPO
    if _REPO is None:
        _REPO = SurveyRepo(DynamoDocumentStore.from_env())
    return _REPO


def _cors_headers():
    return {
        "Access-Control-Allow-Origin": ALLOW_ORIGIN,
        "Access-Control-Allow-Headers": "content-type",
        "Access-Control-Allow-Methods": "GET,POST,PUT,DELETE,OPTIONS",
    }


def _resp(status: int, body: dict) -> dict:
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json", **_cors_headers()},
        "body": json.dumps(body),
    }


def _json_body(event, fields: dict) -> dict:
    """
    Parse the JSON body and check that each of ``fields`` (name -> type) is present
    with the right type.
    """
    raw_body = event.get("body") or "{}"
    if event.get("isBase64Encoded"):
        raw_body = base64.b64decode(raw_body).decode("utf-8", errors="replace")
    try:
        data = json.loads(raw_body)
    except ValueError:
        raise BadRequest("Invalid JSON body")
    if not isinstance(data, dict):
        raise BadRequest("JSON body must be an object")
    for name, kind in fields.items():
        if name not in data:
            raise BadRequest(f"Missing field {name}")
        if not isinstance(data[name], kind):
            raise BadRequest(f"Field {name} must be a {_TYPE_NAMES[kind]}")
    return data


def _path_param(params: dict, name: str) -> str:
    value = params.get(name)
    if not value:
        raise BadRequest(f"Missing path parameter {name}")
    return value


async def _dispatch(repo: SurveyRepo, route: str, params: dict, event) -> tuple:
    """Run the repository operation for ``route``; returns (status, body)."""
    if route == "GET /surveys":
        surveys = await repo.get_all_surveys()
        return 200, {"ok": True, "surveys": [s.to_item() for s in surveys]}
    if route == "POST /surveys":
        survey_id = await repo.create_survey(_json_body(event, SURVEY_FIELDS))
        return 201, {"ok": True, "id": survey_id}
    if route == "GET /surveys/{surveyId}":
        survey = await repo.get_survey_by_id(_path_param(params, "surveyId"))
        return 200, {"ok": True, "survey": survey.to_item()}
    if route == "DELETE /surveys/{surveyId}":
        deleted = await repo.delete_survey(_path_param(params, "surveyId"))
        return 200, {"ok": deleted}
    if route == "GET /surveys/{surveyId}/questions":
        questions = await repo.get_questions_for_survey(_path_param(params, "surveyId"))
        return 200, {"ok": True, "questions": [q.to_item() for q in questions]}
    if route == "POST /surveys/{surveyId}/questions":
        question_id = await repo.add_question(_path_param(params, "surveyId"), _json_body(event, QUESTION_FIELDS))
        return 201, {"ok": True, "id": question_id}
    if route == "PUT /questions/{questionId}":
        updated = await repo.update_question(_path_param(params, "questionId"), _json_body(event, QUESTION_FIELDS))
        return 200, {"ok": updated}
    if route == "DELETE /questions/{questionId}":
        deleted = await repo.delete_question(_path_param(params, "questionId"))
        return 200, {"ok": deleted}
    if route == "GET /surveys/{surveyId}/submissions":
        submissions = await repo.get_survey_submissions(_path_param(params, "surveyId"))
        return 200, {"ok": True, "submissions": [s.to_item() for s in submissions]}
    if route == "POST /submissions":
        submission_id = await repo.save_user_survey_submission(_json_body(event, SUBMISSION_FIELDS))
        return 201, {"ok": True, "id": submission_id}
    return 404, {"ok": False, "error": f"Unknown route {route}"}


def lambda_handler(event, context):
    # Preflight
    if event.get("requestContext", {}).get("http", {}).get("method") == "OPTIONS":
        return {"statusCode": 200, "headers": _cors_headers(), "body": ""}

    route = event.get("routeKey", "")
    params = event.get("pathParameters") or {}

    try:
        status, body = asyncio.run(_dispatch(_get_repo(), route, params, event))
    except BadRequest as e:
        return _resp(400, {"ok": False, "error": str(e)})
    except NotFoundError as e:
        return _resp(404, {"ok": False, "error": str(e)})
    except StoreError:
        logger.exception("store_failure route=%s", route)
        return _resp(502, {"ok": False, "error": "Storage error"})

    return _resp(status, body)
