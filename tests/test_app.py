import pytest

from workload_inspector.config.base import HttpConfig
from workload_inspector.inspector import Inspector
from workload_inspector.web import create_app
from workload_inspector.web.app import REQUEST_ID_HEADER
from workload_inspector.web.models import EXPECTED_REQUEST_FORMAT


@pytest.fixture
def inspector():
    return Inspector(environ={"FOO": "bar", "EMPTY": ""})


@pytest.fixture
def client(inspector):
    app = create_app(inspector)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def auth_client(inspector):
    app = create_app(inspector, HttpConfig(use_auth=True), token="s3cret")
    return app.test_client()


def test_ping(client):
    response = client.get("/ping")
    assert response.status_code == 200
    assert response.data == b"PONG"


def test_env(client):
    response = client.get("/env")
    assert response.status_code == 200
    assert response.get_json() == {"FOO": "bar", "EMPTY": ""}


def test_run_success(client):
    response = client.post("/run", json={"command": "echo hello | wc -l | xargs"})
    assert response.status_code == 200
    assert response.get_json() == {"stdout": "1\n", "stderr": "", "code": 0}


def test_run_empty_command(client):
    response = client.post("/run", json={"command": ""})
    assert response.status_code == 200
    assert response.get_json() == {"stdout": "", "stderr": "", "code": 0}


def test_run_ignores_content_type(client):
    response = client.post(
        "/run",
        data='{"command": "echo hi"}',
        content_type="application/x-www-form-urlencoded",
    )
    assert response.status_code == 200
    assert response.get_json() == {"stdout": "hi\n", "stderr": "", "code": 0}


@pytest.mark.parametrize(
    "kwargs",
    [
        {"data": "not json", "content_type": "application/json"},
        {"json": {"cmd": "echo"}},
        {"json": {"command": 42}},
        {"json": ["echo"]},
    ],
)
def test_run_malformed_body(client, kwargs):
    response = client.post("/run", **kwargs)
    assert response.status_code == 400
    assert response.get_json() == {"error": EXPECTED_REQUEST_FORMAT}


def test_run_spawn_failure(client):
    response = client.post("/run", json={"command": "bleh"})
    assert response.status_code == 500
    body = response.get_json()
    assert body["error"].startswith('error starting command "bleh"')
    assert "stdout" not in body


def test_run_parse_failure(client):
    response = client.post("/run", json={"command": "echo 'hello"})
    assert response.status_code == 500
    assert response.get_json() == {
        "error": "error parsing command \"echo 'hello\": unterminated quote"
    }


def test_run_stage_failure_includes_partial_result(client):
    response = client.post("/run", json={"command": "sh -c 'echo out; echo err >&2; exit 2'"})
    assert response.status_code == 500
    body = response.get_json()
    assert body["stdout"] == "out\n"
    assert body["stderr"] == "err\n"
    assert body["code"] == 2
    assert body["error"].endswith("exit status 2")


def test_request_id_header(client):
    first = client.get("/ping").headers[REQUEST_ID_HEADER]
    second = client.get("/ping").headers[REQUEST_ID_HEADER]
    assert first and second and first != second


def test_unknown_route_is_json(client):
    response = client.get("/nope")
    assert response.status_code == 404
    assert "error" in response.get_json()


def test_wrong_method(client):
    assert client.get("/run").status_code == 405


def test_auth_required(auth_client):
    response = auth_client.get("/ping")
    assert response.status_code == 401
    assert response.data == b"Unauthorized"

    response = auth_client.get("/ping", headers={"Authorization": "Bearer wrong"})
    assert response.status_code == 401


def test_auth_accepts_token(auth_client):
    response = auth_client.post(
        "/run",
        json={"command": "echo hello"},
        headers={"Authorization": "Bearer s3cret"},
    )
    assert response.status_code == 200
    assert response.get_json()["stdout"] == "hello\n"


def test_auth_generates_token_when_missing(inspector):
    app = create_app(inspector, HttpConfig(use_auth=True))
    token = app.config["API_TOKEN"]
    assert token

    client = app.test_client()
    assert client.get("/ping", headers={"Authorization": f"Bearer {token}"}).status_code == 200
