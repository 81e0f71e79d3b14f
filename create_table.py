import os
import sys

import boto3
from botocore.exceptions import ClientError

# === CONFIG ===
REGION = os.environ.get("AWS_REGION", "us-east-1")
ENDPOINT_URL = os.environ.get("DYNAMODB_ENDPOINT_URL") or None

SURVEYS_TABLE = os.environ.get("SURVEYS_TABLE", "surveys")
QUESTIONS_TABLE = os.environ.get("QUESTIONS_TABLE", "questions")
SUBMISSIONS_TABLE = os.environ.get("SUBMISSIONS_TABLE", "users")
SURVEY_ID_INDEX = os.environ.get("SURVEY_ID_INDEX", "surveyId-index")


def table_definition(name, survey_index=None):
    """Return create_table kwargs: hash key ``id`` and an optional GSI on ``surveyId``."""
    attrs = [{"AttributeName": "id", "AttributeType": "S"}]
    params = {
        "TableName": name,
        "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
        "BillingMode": "PAY_PER_REQUEST",
    }
    if survey_index:
        attrs.append({"AttributeName": "surveyId", "AttributeType": "S"})
        params["GlobalSecondaryIndexes"] = [
            {
                "IndexName": survey_index,
                "KeySchema": [{"AttributeName": "surveyId", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
            }
        ]
    params["AttributeDefinitions"] = attrs
    return params


def create_tables(client):
    definitions = [
        table_definition(SURVEYS_TABLE),
        table_definition(QUESTIONS_TABLE, SURVEY_ID_INDEX),
        table_definition(SUBMISSIONS_TABLE, SURVEY_ID_INDEX),
    ]
    created = []
    for params in definitions:
        name = params["TableName"]
        try:
            client.create_table(**params)
        except ClientError as e:
            if e.response["Error"]["Code"] != "ResourceInUseException":
                raise
            print(f"{name}: already exists")
            continue
        client.get_waiter("table_exists").wait(TableName=name)
        print(f"{name}: created")
        created.append(name)
    return created


if __name__ == "__main__":
    ddb_client = boto3.client("dynamodb", region_name=REGION, endpoint_url=ENDPOINT_URL)
    try:
        create_tables(ddb_client)
    except ClientError as e:
        print(f"create_table failed: {e}", file=sys.stderr)
        sys.exit(1)
