"""Tests for admin login, lockout and session endpoints."""

from __future__ import annotations

from datetime import timedelta

ADMIN_PASSCODE = "correct-horse-battery"


def _login(client, passcode: str, caller: str | None = None):
    headers = {"X-Test-Client": caller} if caller else None
    return client.post("/api/admin/login", json={"passcode": passcode}, headers=headers)


def _bearer(response) -> dict[str, str]:
    return {"Authorization": f"Bearer {response.json()['session_token']}"}


class TestLogin:
    def test_successful_login_returns_token(self, client):
        response = _login(client, ADMIN_PASSCODE)

        assert response.status_code == 200
        body = response.json()
        assert body["authenticated"] is True
        assert body["session_token"]
        assert body["expires_at"] is not None
        assert body["remaining_attempts"] == 3

    def test_token_is_not_echoed_by_session_endpoint(self, client):
        headers = _bearer(_login(client, ADMIN_PASSCODE))

        body = client.get("/api/admin/session", headers=headers).json()

        assert body["authenticated"] is True
        assert body["session_token"] is None

    def test_wrong_passcode_counts_down(self, client):
        first = _login(client, "wrong")
        second = _login(client, "wrong")

        assert first.status_code == 401
        assert first.json()["detail"]["remaining_attempts"] == 2
        assert second.json()["detail"]["remaining_attempts"] == 1
        assert second.json()["detail"]["locked"] is False

    def test_three_failures_lock_out_even_the_right_passcode(self, client):
        for _ in range(3):
            response = _login(client, "wrong")
        assert response.json()["detail"]["locked"] is True

        locked = _login(client, ADMIN_PASSCODE)

        assert locked.status_code == 423
        assert locked.json()["locked"] is True
        assert int(locked.headers["Retry-After"]) > 0
        assert client.get("/api/admin/session").json()["authenticated"] is False

    def test_lockout_cannot_be_cleared_anonymously(self, client):
        for _ in range(3):
            _login(client, "wrong")

        assert client.post("/api/admin/login/reset").status_code in (404, 405)
        assert client.delete("/api/admin/lockouts").status_code == 401
        assert _login(client, ADMIN_PASSCODE).status_code == 423

    def test_repeated_guessing_stays_locked(self, client):
        statuses = [_login(client, f"guess-{i}").status_code for i in range(10)]

        assert statuses[:3] == [401, 401, 401]
        assert set(statuses[3:]) == {423}

    def test_lockout_is_per_client(self, client):
        for _ in range(3):
            _login(client, "wrong", caller="attacker")

        assert _login(client, ADMIN_PASSCODE, caller="attacker").status_code == 423
        assert _login(client, ADMIN_PASSCODE, caller="studio-owner").status_code == 200

    def test_lockout_expires(self, client, services):
        for _ in range(3):
            _login(client, "wrong")
        services.login_guard.clock = lambda: services.session.clock() + timedelta(minutes=16)

        assert _login(client, ADMIN_PASSCODE).status_code == 200

    def test_admin_can_clear_lockouts(self, client):
        admin_headers = _bearer(_login(client, ADMIN_PASSCODE, caller="studio-owner"))
        for _ in range(3):
            _login(client, "wrong", caller="assistant")

        cleared = client.delete("/api/admin/lockouts", headers=admin_headers)

        assert cleared.json() == {"cleared": True}
        assert _login(client, ADMIN_PASSCODE, caller="assistant").status_code == 200

    def test_success_resets_failure_count(self, client):
        _login(client, "wrong")
        _login(client, "wrong")

        response = _login(client, ADMIN_PASSCODE)

        assert response.json()["remaining_attempts"] == 3


class TestSession:
    def test_session_starts_logged_out(self, client):
        body = client.get("/api/admin/session").json()
        assert body["authenticated"] is False
        assert body["expires_at"] is None

    def test_extend_requires_session(self, client):
        assert client.post("/api/admin/extend").status_code == 401

    def test_extend_and_logout(self, admin_client):
        assert admin_client.post("/api/admin/extend").status_code == 200

        body = admin_client.post("/api/admin/logout").json()

        assert body["authenticated"] is False
        assert admin_client.get("/api/requests").status_code == 401

    def test_other_caller_does_not_share_the_session(self, admin_client, other_client):
        assert admin_client.get("/api/admin/session").json()["authenticated"] is True

        assert other_client.get("/api/admin/session").json()["authenticated"] is False
        assert other_client.post("/api/admin/extend").status_code == 401

    def test_malformed_authorization_header_is_ignored(self, admin_client, other_client):
        response = other_client.get("/api/requests", headers={"Authorization": "Token abc"})
        assert response.status_code == 401

    def test_logout_ends_only_that_session(self, admin_client, client):
        second = _bearer(_login(client, ADMIN_PASSCODE))

        admin_client.post("/api/admin/logout")

        assert client.get("/api/requests", headers=second).status_code == 200
