"""
Python client for the Roofing CRM API.

Handles the bearer session and API requests. The session is an explicit
object handed to the client rather than ambient global state, with
``load``/``save`` hooks for keeping it across process runs.
"""
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx


class CRMClientError(Exception):
    """Request failed; ``message`` is what a user should be shown."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def error_message(response: httpx.Response, action: str) -> str:
    """
    Build a user-facing message for a failed response.

    Validation error maps are flattened into ``field: message`` strings
    joined by ``; ``. Otherwise the server's ``title`` or ``detail`` is
    used, then a plain-text body, then ``Failed to <action>``.
    """
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text or f"Failed to {action}"

    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, dict) and errors:
            parts = []
            for name, messages in errors.items():
                if isinstance(messages, list):
                    messages = ", ".join(str(m) for m in messages)
                parts.append(f"{name}: {messages}")
            return "; ".join(parts)
        for key in ("title", "detail"):
            if isinstance(body.get(key), str) and body[key]:
                return body[key]
    if isinstance(body, str) and body:
        return body
    return f"Failed to {action}"


@dataclass
class Session:
    """Bearer token and the user it belongs to."""

    token: Optional[str] = None
    user: Optional[Dict[str, Any]] = field(default=None)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def clear(self) -> None:
        self.token = None
        self.user = None

    @classmethod
    def load(cls, path) -> "Session":
        """Read a saved session, or return an empty one if none exists."""
        path = Path(path)
        if not path.exists():
            return cls()
        data = json.loads(path.read_text(encoding="utf-8"))
        return cls(token=data.get("token"), user=data.get("user"))

    def save(self, path) -> None:
        Path(path).write_text(
            json.dumps({"token": self.token, "user": self.user}), encoding="utf-8"
        )


class CRMClient:
    """Client for the Roofing CRM REST API"""

    def __init__(
        self,
        base_url: str,
        session: Optional[Session] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or Session()
        self._http = httpx.Client(
            base_url=self.base_url, transport=transport, timeout=timeout
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "CRMClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _headers(self) -> Dict[str, str]:
        if self.session.token:
            return {"Authorization": f"Bearer {self.session.token}"}
        return {}

    def _request(self, method: str, path: str, action: str, **kwargs) -> Any:
        """Send a request and return the decoded body, or ``None`` for 204."""
        headers = self._headers()
        headers.update(kwargs.pop("headers", {}))
        try:
            response = self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise CRMClientError(f"Failed to {action}") from exc
        if response.is_error:
            raise CRMClientError(
                error_message(response, action), status_code=response.status_code
            )
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # Auth

    def _start_session(self, body: Dict[str, Any]) -> Dict[str, Any]:
        self.session.token = body["token"]
        self.session.user = body["user"]
        return body["user"]

    def login(self, username: str, password: str) -> Dict[str, Any]:
        body = self._request(
            "POST",
            "/auth/login",
            "log in",
            json={"username": username, "password": password},
        )
        return self._start_session(body)

    def register(self, username: str, email: str, password: str) -> Dict[str, Any]:
        body = self._request(
            "POST",
            "/auth/register",
            "register",
            json={"username": username, "email": email, "password": password},
        )
        return self._start_session(body)

    def logout(self) -> None:
        self.session.clear()

    # Users

    def list_users(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/users", "load users")

    def me(self) -> Dict[str, Any]:
        return self._request("GET", "/users/me", "load profile")

    # Customers

    def list_customers(self, search: str = "") -> List[Dict[str, Any]]:
        params = {"search": search} if search else None
        return self._request("GET", "/customers", "load customers", params=params)

    def get_customer(self, customer_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/customers/{customer_id}", "load customer")

    def create_customer(self, customer: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/customers", "create customer", json=customer)

    def update_customer(self, customer_id: int, customer: Dict[str, Any]) -> None:
        self._request(
            "PUT", f"/customers/{customer_id}", "update customer", json=customer
        )

    def delete_customer(self, customer_id: int) -> None:
        self._request("DELETE", f"/customers/{customer_id}", "delete customer")

    # Projects

    def list_projects(self, customer_id: Optional[int] = None) -> List[Dict[str, Any]]:
        path = "/projects" if customer_id is None else f"/projects/customer/{customer_id}"
        return self._request("GET", path, "load projects")

    def get_project(self, project_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/projects/{project_id}", "load project")

    def create_project(self, project: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/projects", "create project", json=project)

    def update_project(self, project_id: int, project: Dict[str, Any]) -> None:
        self._request("PUT", f"/projects/{project_id}", "update project", json=project)

    def delete_project(self, project_id: int) -> None:
        self._request("DELETE", f"/projects/{project_id}", "delete project")

    # Tasks

    def list_tasks(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/tasks", "load tasks")

    def get_task(self, task_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/tasks/{task_id}", "load task")

    def create_task(self, task: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/tasks", "create task", json=task)

    def update_task(self, task_id: int, task: Dict[str, Any]) -> None:
        self._request("PUT", f"/tasks/{task_id}", "update task", json=task)

    def delete_task(self, task_id: int) -> None:
        self._request("DELETE", f"/tasks/{task_id}", "delete task")
