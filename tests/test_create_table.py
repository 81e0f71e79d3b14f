import importlib.util
from pathlib import Path

from botocore.exceptions import ClientError

_module_path = Path(__file__).resolve().parents[1] / "create_table.py"
_spec = importlib.util.spec_from_file_location("create_table", _module_path)
_mod = importlib.util.module_from_spec(_spec)
_spec.loader.exec_module(_mod)


class FakeWaiter:
    def __init__(self, client):
        self.client = client

    def wait(self, TableName):
        self.client.waited.append(TableName)


class FakeClient:
    def __init__(self, existing=()):
        self.existing = set(existing)
        self.created = []
        self.waited = []

    def create_table(self, **params):
        if params["TableName"] in self.existing:
            raise ClientError({"Error": {"Code": "ResourceInUseException", "Message": "exists"}}, "CreateTable")
        self.created.append(params)

    def get_waiter(self, name):
        assert name == "table_exists"
        return FakeWaiter(self)


def test_survey_table_has_no_index():
    params = _mod.table_definition("surveys")
    assert params["KeySchema"] == [{"AttributeName": "id", "KeyType": "HASH"}]
    assert "GlobalSecondaryIndexes" not in params


def test_dependent_tables_get_survey_index():
    params = _mod.table_definition("questions", "surveyId-index")
    (gsi,) = params["GlobalSecondaryIndexes"]
    assert gsi["IndexName"] == "surveyId-index"
    assert gsi["KeySchema"] == [{"AttributeName": "surveyId", "KeyType": "HASH"}]
    assert {"AttributeName": "surveyId", "AttributeType": "S"} in params["AttributeDefinitions"]


def test_create_tables_skips_existing():
    client = FakeClient(existing={_mod.SURVEYS_TABLE})

    created = _mod.create_tables(client)

    assert created == [_mod.QUESTIONS_TABLE, _mod.SUBMISSIONS_TABLE]
    assert client.waited == created
