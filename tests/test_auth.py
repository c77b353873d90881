from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from core import config
from core.security import get_current_user
from main import app
from models.user import PinDevice
from services.auth_service import AuthService

DEVICE_ID = "android-7f3a91"


@pytest.fixture
def inspector_client(anon_client: TestClient, inspector):
    app.dependency_overrides[get_current_user] = lambda: inspector
    return anon_client


def test_login_returns_token_and_cookie(anon_client: TestClient, inspector):
    response = anon_client.post("/api/auth/login", json={
        "email": "thomas.mushi@example.com",
        "password": "depot-pass-123",
    })
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["success"] is True
    assert body["user"]["name"] == "Thomas Mushi"
    assert body["user"]["role"] == "INSPECTOR"
    assert body["accessToken"]
    assert "access_token" in response.cookies

    me = anon_client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['accessToken']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "thomas.mushi@example.com"


@pytest.mark.parametrize(
    "payload,status_code,error",
    [
        ({"email": "thomas.mushi@example.com"}, 400, "Email and password are required"),
        ({"email": "nobody@example.com", "password": "whatever1"}, 401, "Invalid email address"),
        ({"email": "thomas.mushi@example.com", "password": "wrong-pass"}, 401, "Invalid password"),
    ],
)
def test_login_failures(anon_client: TestClient, inspector, payload, status_code, error):
    response = anon_client.post("/api/auth/login", json=payload)
    assert response.status_code == status_code
    assert response.json() == {"success": False, "error": error}


def test_deactivated_account_cannot_login(anon_client: TestClient, inspector, db_session):
    inspector.is_active = False
    db_session.commit()

    response = anon_client.post("/api/auth/login", json={
        "email": "thomas.mushi@example.com",
        "password": "depot-pass-123",
    })
    assert response.status_code == 401
    assert "deactivated" in response.json()["error"]


def test_pin_setup_check_and_login(inspector_client: TestClient, inspector):
    setup = inspector_client.post("/api/auth/setup-pin", json={
        "userId": str(inspector.id),
        "deviceId": DEVICE_ID,
        "pin": "4821",
        "deviceName": "Depot tablet",
    })
    assert setup.status_code == 200, setup.text

    check = inspector_client.post("/api/auth/check-pin", json={"userId": str(inspector.id), "deviceId": DEVICE_ID})
    assert check.json()["hasPinSetup"] is True

    login = inspector_client.post("/api/auth/login-pin", json={"deviceId": DEVICE_ID, "pin": "4821"})
    assert login.status_code == 200, login.text
    assert login.json()["user"]["email"] == "thomas.mushi@example.com"


def test_pin_must_be_four_digits(inspector_client: TestClient, inspector):
    response = inspector_client.post("/api/auth/setup-pin", json={
        "userId": str(inspector.id),
        "deviceId": DEVICE_ID,
        "pin": "12a4",
    })
    assert response.status_code == 422
    assert "PIN must be exactly 4 digits" in response.json()["error"]


def test_pin_setup_for_other_user_forbidden(inspector_client: TestClient):
    response = inspector_client.post("/api/auth/setup-pin", json={
        "userId": "00000000-0000-0000-0000-000000000042",
        "deviceId": DEVICE_ID,
        "pin": "1234",
    })
    assert response.status_code == 403


def test_unknown_device_cannot_pin_login(anon_client: TestClient):
    response = anon_client.post("/api/auth/login-pin", json={"deviceId": "ghost", "pin": "1234"})
    assert response.status_code == 401
    assert "PIN not set up" in response.json()["error"]


def test_wrong_pin_counts_down_then_locks(anon_client: TestClient, inspector, db_session):
    AuthService.setup_pin(inspector.id, DEVICE_ID, "4821", None, db_session)

    for expected_remaining in range(config.PIN_MAX_ATTEMPTS - 1, 0, -1):
        response = anon_client.post("/api/auth/login-pin", json={"deviceId": DEVICE_ID, "pin": "0000"})
        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "error": "Invalid PIN",
            "attemptsRemaining": expected_remaining,
        }

    locking = anon_client.post("/api/auth/login-pin", json={"deviceId": DEVICE_ID, "pin": "0000"})
    assert locking.status_code == 429
    assert locking.json()["lockoutMinutes"] == config.PIN_LOCKOUT_MINUTES

    # Even the right PIN is refused while locked
    locked = anon_client.post("/api/auth/login-pin", json={"deviceId": DEVICE_ID, "pin": "4821"})
    assert locked.status_code == 429
    assert locked.json()["success"] is False


def test_expired_lock_allows_login_and_resets_counters(anon_client: TestClient, inspector, db_session):
    device = AuthService.setup_pin(inspector.id, DEVICE_ID, "4821", None, db_session)
    device.failed_attempts = 3
    device.locked_until = datetime.utcnow() - timedelta(minutes=1)
    db_session.commit()

    response = anon_client.post("/api/auth/login-pin", json={"deviceId": DEVICE_ID, "pin": "4821"})
    assert response.status_code == 200, response.text

    db_session.refresh(device)
    assert device.failed_attempts == 0
    assert device.locked_until is None


def test_setup_rebinds_device_to_new_user(anon_client: TestClient, inspector, db_session):
    from schemas.user import UserCreate

    other = AuthService.register_user(
        UserCreate(email="amina@example.com", first_name="Amina", last_name="Ally", password="another-pass-9"),
        db_session,
    )
    AuthService.setup_pin(inspector.id, DEVICE_ID, "4821", None, db_session)
    AuthService.setup_pin(other.id, DEVICE_ID, "7777", "Gate phone", db_session)

    devices = db_session.query(PinDevice).filter(PinDevice.device_id == DEVICE_ID).all()
    assert len(devices) == 1
    assert devices[0].user_id == other.id
    assert AuthService.check_pin(inspector.id, DEVICE_ID, db_session) is False

    response = anon_client.post("/api/auth/login-pin", json={"deviceId": DEVICE_ID, "pin": "7777"})
    assert response.json()["user"]["email"] == "amina@example.com"


def test_remove_pin(inspector_client: TestClient, inspector, db_session):
    AuthService.setup_pin(inspector.id, DEVICE_ID, "4821", None, db_session)

    response = inspector_client.post("/api/auth/remove-pin", json={"userId": str(inspector.id), "deviceId": DEVICE_ID})
    assert response.status_code == 200
    again = inspector_client.post("/api/auth/remove-pin", json={"userId": str(inspector.id), "deviceId": DEVICE_ID})
    assert again.status_code == 404


def test_change_password(inspector_client: TestClient, inspector):
    wrong = inspector_client.post("/api/auth/change-password", json={
        "userId": str(inspector.id),
        "currentPassword": "not-my-pass",
        "newPassword": "fresh-pass-456",
    })
    assert wrong.status_code == 401

    ok = inspector_client.post("/api/auth/change-password", json={
        "userId": str(inspector.id),
        "currentPassword": "depot-pass-123",
        "newPassword": "fresh-pass-456",
    })
    assert ok.status_code == 200

    login = inspector_client.post("/api/auth/login", json={
        "email": "thomas.mushi@example.com",
        "password": "fresh-pass-456",
    })
    assert login.status_code == 200


def test_register_requires_admin(client: TestClient):
    response = client.post("/api/auth/register", json={
        "email": "new@example.com",
        "firstName": "New",
        "lastName": "Inspector",
        "password": "password-123",
    })
    assert response.status_code == 403
