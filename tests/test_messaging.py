import json

import pytest

from workload_inspector.core.exceptions import LinkCreationError, RequestError
from workload_inspector.inspector import Inspector
from workload_inspector.messaging import service


class FakeRequest:
    """Stands in for a nats micro request."""

    def __init__(self, data=b"", subject="INSP.RUN"):
        self.data = data
        self.subject = subject
        self.responses = []
        self.errors = []

    async def respond(self, data=b"", headers=None):
        self.responses.append(data)

    async def respond_error(self, code, description, data=b"", headers=None):
        self.errors.append((code, description, data))


class FakeService:
    def __init__(self, fail_on=None):
        self.endpoints = {}
        self.stopped = False
        self.fail_on = fail_on

    async def add_endpoint(self, **kwargs):
        if kwargs["name"] == self.fail_on:
            raise RuntimeError("boom")
        self.endpoints[kwargs["name"]] = kwargs

    async def stop(self):
        self.stopped = True


@pytest.fixture
def inspector():
    return Inspector(environ={"HOME": "/root"})


@pytest.mark.asyncio
async def test_ping(inspector):
    request = FakeRequest(subject="INSP.PING")
    await service.ping(request, inspector)
    assert request.responses == [b"PONG"]


@pytest.mark.asyncio
async def test_env(inspector):
    request = FakeRequest(subject="INSP.ENV")
    await service.get_environment(request, inspector)
    assert json.loads(request.responses[0]) == {"HOME": "/root"}


@pytest.mark.asyncio
async def test_run_success(inspector):
    request = FakeRequest(json.dumps({"command": "echo hello"}).encode())
    await service.run_command(request, inspector)

    assert request.errors == []
    assert json.loads(request.responses[0]) == {"stdout": "hello\n", "stderr": "", "code": 0}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "data, message",
    [
        (b"{not json", "run request error: "),
        (b"", "run request error: command is required"),
        (b'{"command": ""}', "run request error: command is required"),
        (b'{"other": "x"}', "run request error: command is required"),
        (b'{"command": 1}', "run request error: command must be a string"),
    ],
)
async def test_run_bad_request(inspector, data, message):
    request = FakeRequest(data)
    await service.run_command(request, inspector)

    assert request.responses == []
    ((code, description, _),) = request.errors
    assert code == "100"
    assert description.startswith(message)


@pytest.mark.asyncio
async def test_run_spawn_failure_has_no_data(inspector):
    request = FakeRequest(b'{"command": "bleh"}')
    await service.run_command(request, inspector)

    ((code, description, data),) = request.errors
    assert code == "100"
    assert description.startswith('error starting command "bleh"')
    assert data == b""


@pytest.mark.asyncio
async def test_run_link_failure_replies_with_error(inspector, monkeypatch):
    def fail(command):
        raise LinkCreationError(0, "[Errno 24] Too many open files")

    monkeypatch.setattr(inspector, "run_command", fail)
    request = FakeRequest(b'{"command": "echo a | cat"}')
    await service.run_command(request, inspector)

    assert request.responses == []
    ((code, description, data),) = request.errors
    assert code == "100"
    assert description == "error creating pipe: [Errno 24] Too many open files"
    assert data == b""


@pytest.mark.asyncio
async def test_run_stage_failure_carries_partial_result(inspector):
    request = FakeRequest(b'{"command": "sh -c \'echo partial; exit 5\'"}')
    await service.run_command(request, inspector)

    ((code, description, data),) = request.errors
    assert code == "100"
    assert description.endswith("exit status 5")
    assert json.loads(data) == {
        "stdout": "partial\n",
        "stderr": "",
        "code": 5,
        "error": "exit status 5",
    }


def test_parse_run_request():
    assert service.parse_run_request(b'{"command": "ls -l"}') == "ls -l"
    with pytest.raises(RequestError):
        service.parse_run_request(b"[]")


@pytest.mark.asyncio
async def test_log_handler_contains_errors(inspector, caplog):
    async def broken(request, svc):
        raise RuntimeError("respond failed")

    handler = service.log_handler(inspector, broken)
    request = FakeRequest(subject="INSP.PING")
    with caplog.at_level("INFO"):
        await handler(request)

    assert "INSP.PING received request" in caplog.text
    assert "respond failed" in caplog.text


@pytest.mark.asyncio
async def test_start_micro_service_registers_endpoints(inspector, monkeypatch):
    fake = FakeService()
    calls = {}

    async def add_service(nc, **kwargs):
        calls.update(kwargs)
        return fake

    monkeypatch.setattr(service.nats.micro, "add_service", add_service)

    svc = await service.start_micro_service(object(), inspector)

    assert svc is fake
    assert calls["name"] == "WorkloadInspector"
    assert calls["version"] == "0.0.1"
    assert {name: ep["subject"] for name, ep in fake.endpoints.items()} == {
        "PING": "INSP.PING",
        "ENV": "INSP.ENV",
        "RUN": "INSP.RUN",
    }
    assert fake.endpoints["RUN"]["metadata"] == {"request": '{"command": "string"}'}

    request = FakeRequest(subject="INSP.PING")
    await fake.endpoints["PING"]["handler"](request)
    assert request.responses == [b"PONG"]


@pytest.mark.asyncio
async def test_start_micro_service_endpoint_failure(inspector, monkeypatch):
    fake = FakeService(fail_on="ENV")

    async def add_service(nc, **kwargs):
        return fake

    monkeypatch.setattr(service.nats.micro, "add_service", add_service)

    with pytest.raises(Exception, match="error adding ENV endpoint: boom"):
        await service.start_micro_service(object(), inspector)
    assert fake.stopped
