# tests/conftest.py
# ------------------------------------------------------------
# Purpose: Shared fixtures. A dummy config dict pointing at tmp files and
# a tiny fake of requests.Session so no test ever reaches the WHO API.
# ------------------------------------------------------------

import json
import re
import types

import pytest
import requests

BASE_URL = "https://id.who.int/icd/release/2025-01/mms"
AUTH_URL = "https://icdaccessmanagement.who.int/connect/token"


class FakeResponse:
    """Just enough of requests.Response for the client."""

    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeSession:
    """
    Routes GETs by exact URL. A route value may be a FakeResponse or an
    exception instance to raise (e.g. requests.Timeout()).
    """

    def __init__(self, token_response=None, routes=None):
        self.token_response = token_response or FakeResponse(payload={"access_token": "abcdefghijklmnop"})
        self.routes = routes or {}
        self.posts = []
        self.gets = []

    def post(self, url, data=None, headers=None, timeout=None):
        self.posts.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        if isinstance(self.token_response, Exception):
            raise self.token_response
        return self.token_response

    def get(self, url, headers=None, timeout=None):
        self.gets.append({"url": url, "headers": dict(headers or {}), "timeout": timeout})
        route = self.routes.get(url, FakeResponse(status_code=404, payload={"error": "not found"}))
        if isinstance(route, Exception):
            raise route
        return route


@pytest.fixture
def api_settings():
    # Same shape as the who_icd11 section of config/dev.yaml
    return {
        "auth_url": AUTH_URL,
        "client_id": "client-id",
        "client_secret": "client-secret",
        "base_api_url": "https://id.who.int/icd",
        "release_id": "2025-01",
        "linearization": "mms",
    }


@pytest.fixture
def cfg(tmp_path, api_settings):
    return {
        "environment": "test",
        "log_level": "WARNING",
        "mms_version_id": 1,
        "who_icd11": api_settings,
        "files": {
            "input_codes": str(tmp_path / "codes.json"),
            "output_sql": str(tmp_path / "out" / "categoria.sql"),
        },
    }


@pytest.fixture
def ca40_detail():
    """Trimmed MMS entity for CA40 (pneumonia, organism unspecified)."""
    return {
        "@id": "http://id.who.int/icd/release/11/2025-01/mms/142052508/unspecified",
        "code": "CA40",
        "source": "http://id.who.int/icd/entity/142052508",
        "title": {"@language": "es", "@value": "Neumonía, organismo no especificado"},
        "browserUrl": "https://icd.who.int/browse/2025-01/mms/es#142052508/unspecified",
        "parent": ["http://id.who.int/icd/release/11/2025-01/mms/142052508"],
    }


@pytest.fixture
def http():
    """Access to the fakes from tests: http.Session(...), http.Response(...)."""
    return types.SimpleNamespace(Session=FakeSession, Response=FakeResponse, base_url=BASE_URL)


def _parse_insert(statement):
    m = re.match(r"INSERT INTO (\w+)\s*\((.*?)\)\s*VALUES\s*\((.*)\);$", statement.strip(), re.S)
    assert m, statement
    table, cols, vals = m.groups()
    columns = [c.strip() for c in cols.split(",")]
    values = re.findall(r"'(?:[^']|'')*'|[^,\s]+", vals)  # quoted literals may hold commas
    assert len(columns) == len(values)
    return table, dict(zip(columns, values))


@pytest.fixture
def parse_insert():
    """Split an INSERT into (table, {column: value}) for assertions."""
    return _parse_insert
