import pytest

from dispatcher.constant import Status
from dispatcher.exception import RuntimeUnavailable, UnsupportedLanguage
from dispatcher.result_factory import make_case_result, make_summary


@pytest.fixture
def sandbox_app():
    import app as sandbox_app
    return sandbox_app


@pytest.fixture
def client(sandbox_app):
    return sandbox_app.app.test_client()


def _headers(sandbox_app):
    return {"X-Sandbox-Token": sandbox_app.SANDBOX_TOKEN}


def _payload(**kwargs):
    payload = {
        "language": "python",
        "code": "def add(a, b):\n    return a + b\n",
        "testCases": [{
            "input": "1, 2",
            "expectedOutput": "3"
        }],
    }
    payload.update(kwargs)
    return payload


def test_execute_returns_summary(sandbox_app, client, monkeypatch):
    received = []

    def execute(request):
        received.append(request)
        result = make_case_result(request.testCases[0],
                                  Status.AC,
                                  actual="3",
                                  exec_time=12)
        return make_summary(request.testCases, [result])

    monkeypatch.setattr(sandbox_app.DISPATCHER, "execute", execute)
    rv = client.post("/execute",
                     json=_payload(),
                     headers=_headers(sandbox_app))

    assert rv.status_code == 200
    payload = rv.get_json()
    assert payload["status"] == "ok"
    data = payload["data"]
    assert data["success"] is True
    assert data["allPassed"] is True
    assert data["results"][0]["status"] == "AC"
    assert data["results"][0]["executionTimeMs"] == 12
    assert received[0].language == "python"


def test_execute_accepts_form_token(sandbox_app, client, monkeypatch):
    monkeypatch.setattr(
        sandbox_app.DISPATCHER, "execute", lambda request: make_summary(
            request.testCases,
            [make_case_result(request.testCases[0], Status.WA, actual="4")]))
    rv = client.post(f"/execute?token={sandbox_app.SANDBOX_TOKEN}",
                     json=_payload())
    assert rv.status_code == 200
    assert rv.get_json()["data"]["allPassed"] is False


def test_execute_rejects_invalid_token(client):
    rv = client.post("/execute",
                     json=_payload(),
                     headers={"X-Sandbox-Token": "wrong"})
    assert rv.status_code == 403


def test_execute_rejects_non_json(sandbox_app, client):
    rv = client.post("/execute",
                     data="not json",
                     headers=_headers(sandbox_app))
    assert rv.status_code == 400
    assert rv.get_json()["status"] == "err"


def test_execute_rejects_invalid_request(sandbox_app, client):
    rv = client.post("/execute",
                     json=_payload(testCases=[]),
                     headers=_headers(sandbox_app))
    assert rv.status_code == 400
    payload = rv.get_json()
    assert payload["status"] == "err"
    assert payload["data"][0]["loc"] == ["testCases"]


def test_execute_unsupported_language(sandbox_app, client, monkeypatch):

    def execute(request):
        raise UnsupportedLanguage(request.language)

    monkeypatch.setattr(sandbox_app.DISPATCHER, "execute", execute)
    rv = client.post("/execute",
                     json=_payload(language="cobol"),
                     headers=_headers(sandbox_app))
    assert rv.status_code == 400
    assert "cobol" in rv.get_json()["msg"]


def test_execute_runtime_unavailable(sandbox_app, client, monkeypatch):

    def execute(request):
        raise RuntimeUnavailable("docker daemon unreachable")

    monkeypatch.setattr(sandbox_app.DISPATCHER, "execute", execute)
    rv = client.post("/execute",
                     json=_payload(),
                     headers=_headers(sandbox_app))
    assert rv.status_code == 503
    assert rv.get_json()["status"] == "err"


def test_status_without_token(client):
    rv = client.get("/status")
    assert rv.status_code == 200
    assert set(rv.get_json()) == {"load"}


def test_status_with_token(sandbox_app, client):
    rv = client.get("/status", headers=_headers(sandbox_app))
    payload = rv.get_json()
    assert payload["load"] == 0
    assert payload["containerCount"] == 0
    assert payload["maxContainerCount"] == sandbox_app.DISPATCHER.MAX_CONTAINER_SIZE
    assert payload["executions"] == []
    assert "python" in payload["languages"]
