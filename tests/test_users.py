from fastapi import status

from app import crud, models
from app.auth import get_password_hash
from app.schemas import RegisterRequest


def create_user(db_session, username, role=models.UserRole.STAFF):
    user = crud.create_user(
        db_session,
        RegisterRequest(
            username=username, email=f"{username}@example.com", password="secret123"
        ),
        get_password_hash("secret123"),
    )
    if role != models.UserRole.STAFF:
        user = crud.update_user_role(db_session, user, role)
    return user


def login(client, username):
    resp = client.post(
        "/auth/login", json={"username": username, "password": "secret123"}
    )
    assert resp.status_code == status.HTTP_200_OK
    return {"Authorization": f"Bearer {resp.json()['token']}"}


def test_user_list_exposes_only_public_fields(client, db_session):
    create_user(db_session, "staff")
    create_user(db_session, "boss", role=models.UserRole.ADMIN)
    response = client.get("/users", headers=login(client, "staff"))
    assert response.status_code == status.HTTP_200_OK
    users = response.json()
    assert [u["username"] for u in users] == ["staff", "boss"]
    for user in users:
        assert set(user) == {"id", "username", "email"}


def test_me_includes_current_role(client, db_session):
    create_user(db_session, "boss", role=models.UserRole.ADMIN)
    body = client.get("/users/me", headers=login(client, "boss")).json()
    assert body["username"] == "boss"
    assert body["role"] == int(models.UserRole.ADMIN)
    assert "hashedPassword" not in body


def test_role_change_requires_admin(client, db_session):
    staff = create_user(db_session, "staff")
    create_user(db_session, "other")
    response = client.put(
        f"/users/{staff.id}/role",
        json={"role": int(models.UserRole.ADMIN)},
        headers=login(client, "other"),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN

    create_user(db_session, "boss", role=models.UserRole.ADMIN)
    admin = login(client, "boss")
    promoted = client.put(
        f"/users/{staff.id}/role",
        json={"role": int(models.UserRole.ADMIN)},
        headers=admin,
    )
    assert promoted.status_code == status.HTTP_200_OK
    assert promoted.json()["role"] == int(models.UserRole.ADMIN)

    missing = client.put(
        "/users/999/role", json={"role": 0}, headers=admin
    )
    assert missing.status_code == status.HTTP_404_NOT_FOUND
