import json

import httpx
import pytest

from app.client import CRMClient, CRMClientError, Session, error_message


def make_client(handler, session=None):
    return CRMClient(
        "http://crm.test", session=session, transport=httpx.MockTransport(handler)
    )


def test_session_save_and_load(tmp_path):
    path = tmp_path / "session.json"
    Session(token="abc", user={"id": 1, "username": "alice"}).save(path)

    loaded = Session.load(path)
    assert loaded.token == "abc"
    assert loaded.user["username"] == "alice"
    assert loaded.is_authenticated


def test_load_without_saved_session_is_empty(tmp_path):
    session = Session.load(tmp_path / "missing.json")
    assert session.token is None
    assert not session.is_authenticated


def test_login_stores_token_and_sends_it_afterwards():
    seen = []

    def handler(request):
        seen.append(request)
        if request.url.path == "/auth/login":
            return httpx.Response(
                200,
                json={"token": "t0k3n", "user": {"id": 3, "username": "alice"}},
            )
        return httpx.Response(200, json=[])

    session = Session()
    with make_client(handler, session) as client:
        user = client.login("alice", "pw123")
        client.list_tasks()

    assert user["id"] == 3
    assert session.token == "t0k3n"
    assert "authorization" not in seen[0].headers
    assert json.loads(seen[0].content) == {"username": "alice", "password": "pw123"}
    assert seen[1].headers["authorization"] == "Bearer t0k3n"


def test_logout_clears_session():
    session = Session(token="abc", user={"id": 1})
    client = make_client(lambda request: httpx.Response(204), session)
    client.logout()
    assert not session.is_authenticated
    client.close()


def test_update_returns_none_on_no_content():
    def handler(request):
        assert request.method == "PUT"
        assert request.url.path == "/tasks/7"
        return httpx.Response(204)

    with make_client(handler, Session(token="x")) as client:
        assert client.update_task(7, {"title": "t"}) is None


def test_search_is_sent_as_query_parameter():
    def handler(request):
        assert request.url.params["search"] == "doe"
        return httpx.Response(200, json=[{"id": 1}])

    with make_client(handler, Session(token="x")) as client:
        assert client.list_customers("doe") == [{"id": 1}]


def test_validation_errors_are_flattened():
    response = httpx.Response(
        400,
        json={
            "title": "One or more validation errors occurred.",
            "errors": {"email": ["value is not a valid email address"], "phone": "required"},
        },
    )
    assert error_message(response, "create customer") == (
        "email: value is not a valid email address; phone: required"
    )


def test_server_detail_is_shown_verbatim():
    response = httpx.Response(403, json={"detail": "You can only edit tasks assigned to you."})
    assert error_message(response, "update task") == (
        "You can only edit tasks assigned to you."
    )


def test_plain_text_body_is_used():
    response = httpx.Response(400, text="Username already exists")
    assert error_message(response, "register") == "Username already exists"


def test_generic_message_when_server_says_nothing():
    assert error_message(httpx.Response(500), "delete project") == (
        "Failed to delete project"
    )
    assert error_message(httpx.Response(500, json={}), "load tasks") == (
        "Failed to load tasks"
    )


def test_failed_request_raises_client_error():
    def handler(request):
        return httpx.Response(404, json={"detail": "Task not found"})

    with make_client(handler, Session(token="x")) as client:
        with pytest.raises(CRMClientError) as excinfo:
            client.get_task(1)
    assert excinfo.value.message == "Task not found"
    assert excinfo.value.status_code == 404


def test_transport_failure_uses_generic_message():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with make_client(handler) as client:
        with pytest.raises(CRMClientError) as excinfo:
            client.list_projects(customer_id=4)
    assert excinfo.value.message == "Failed to load projects"
