"""Тесты HTTP и WebSocket интерфейса."""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from conftest import FailingReadStore

from copyit.api.ws.sync import SESSION_ENDED_CLOSE_CODE


def sign_in(client, email, password="secret1"):
    """Регистрация и вход; возвращает заголовки с токеном"""
    response = client.post("/auth/register", json={"email": email, "password": password})
    assert response.status_code == 201
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def titles(body):
    return [entry["title"] for entry in body["entries"]]


def notices(body):
    return [(n["title"], n["description"]) for n in body["notifications"]]


class TestDemoMode:
    def test_root_and_health_report_demo_mode(self, demo_client):
        assert demo_client.get("/").json()["demo_mode"] is True

        health = demo_client.get("/health").json()
        assert health["status"] == "healthy"
        assert health["mode"] == "demo"

    def test_lists_demo_entries_oldest_first(self, demo_client):
        body = demo_client.get("/entries/").json()

        assert titles(body) == ["Welcome to CopyIt!", "How to use", "Example JavaScript Snippet"]
        assert body["sort"] == "oldest"
        assert body["demo_mode"] is True
        assert all(entry["user_id"].startswith("mock-user-") for entry in body["entries"])

    def test_search_and_sort(self, demo_client):
        assert titles(demo_client.get("/entries/", params={"search": "wel"}).json()) == ["Welcome to CopyIt!"]

        latest = demo_client.get("/entries/", params={"sort": "latest"}).json()
        assert titles(latest)[0] == "Example JavaScript Snippet"

        alphabetical = demo_client.get("/entries/", params={"sort": "alphabetical"}).json()
        assert titles(alphabetical) == ["Example JavaScript Snippet", "How to use", "Welcome to CopyIt!"]

        empty = demo_client.get("/entries/", params={"search": "zzz"}).json()
        assert empty["entries"] == []
        assert empty["empty_message"] == 'No results for "zzz".'

    def test_changes_use_demo_notifications(self, demo_client):
        response = demo_client.post("/entries/", json={"title": "Mine", "content": "x"})

        assert response.status_code == 201
        assert notices(response.json()) == [("Success (Demo)", "Entry added in demo mode.")]

        response = demo_client.delete("/entries/1", params={"confirm": "true"})
        assert notices(response.json()) == [("Success (Demo)", "Entry deleted in demo mode.")]
        assert "Welcome to CopyIt!" not in titles(demo_client.get("/entries/").json())

    def test_credentials_are_rejected(self, demo_client):
        response = demo_client.post("/auth/login", json={"email": "a@example.com", "password": "secret1"})

        assert response.status_code == 503
        assert response.json()["notifications"][0]["title"] == "Backend Not Configured"

        screen = demo_client.get("/auth/login").json()
        assert screen["configured"] is False

    def test_live_view_sends_demo_snapshot(self, demo_client):
        with demo_client.websocket_connect("/entries/ws") as websocket:
            message = websocket.receive_json()

        assert message["type"] == "snapshot"
        assert len(message["data"]["entries"]) == 3
        assert message["data"]["demo_mode"] is True

    def test_visitors_do_not_share_demo_entries(self, demo_client):
        demo_client.post("/entries/", json={"title": "A private note", "content": "x"})
        demo_client.delete("/entries/1", params={"confirm": "true"})
        other = TestClient(demo_client.app)

        assert "A private note" in titles(demo_client.get("/entries/").json())
        assert titles(other.get("/entries/").json()) == [
            "Welcome to CopyIt!", "How to use", "Example JavaScript Snippet"
        ]
        assert other.cookies["copyit_demo"] != demo_client.cookies["copyit_demo"]
        assert demo_client.get("/health").json()["demo_visitors"] == 2

    def test_visitor_cookie_is_reused(self, demo_client):
        first = demo_client.get("/entries/")
        assert "copyit_demo" in first.cookies

        second = demo_client.get("/entries/")
        assert "copyit_demo" not in second.cookies
        assert second.json()["entries"][0]["user_id"] == f"mock-user-{demo_client.cookies['copyit_demo']}"

    def test_live_view_uses_visitor_sandbox(self, demo_client):
        demo_client.post("/entries/", json={"title": "Mine", "content": "x"})

        with demo_client.websocket_connect("/entries/ws") as websocket:
            message = websocket.receive_json()

        assert "Mine" in titles(message["data"])


class TestAuthApi:
    def test_entries_require_session(self, live_client):
        response = live_client.get("/entries/")

        assert response.status_code == 401
        assert response.headers["location"] == "/login"

    def test_register_redirects_to_login(self, live_client):
        response = live_client.post("/auth/register", json={"email": "alice@example.com", "password": "secret1"})

        assert response.status_code == 201
        body = response.json()
        assert body["redirect"] == "/login"
        assert notices(body) == [("Account Created", "You have successfully signed up. Redirecting to sign in...")]

    def test_register_errors(self, live_client):
        live_client.post("/auth/register", json={"email": "alice@example.com", "password": "secret1"})

        duplicate = live_client.post("/auth/register", json={"email": "alice@example.com", "password": "secret1"})
        assert duplicate.status_code == 400
        assert duplicate.json()["code"] == "auth/email-already-in-use"
        assert duplicate.json()["message"] == "This email is already in use. Please sign in."

        invalid = live_client.post("/auth/register", json={"email": "nope", "password": "secret1"})
        assert invalid.json()["message"] == "Please enter a valid email address."

    def test_login_errors(self, live_client):
        live_client.post("/auth/register", json={"email": "alice@example.com", "password": "secret1"})

        response = live_client.post("/auth/login", json={"email": "alice@example.com", "password": "wrong!"})

        assert response.status_code == 401
        body = response.json()
        assert body["code"] == "auth/wrong-password"
        assert body["message"] == "Incorrect password. Please try again."
        assert body["notifications"][0]["title"] == "Authentication Error"

    def test_login_screen_sends_signed_in_user_home(self, live_client):
        headers = sign_in(live_client, "alice@example.com")

        assert live_client.get("/auth/login", headers=headers).json()["redirect"] == "/"
        assert live_client.get("/auth/register").json()["redirect"] is None

    def test_logout_ends_session(self, live_client):
        headers = sign_in(live_client, "alice@example.com")
        assert live_client.get("/auth/me", headers=headers).json()["email"] == "alice@example.com"

        response = live_client.post("/auth/logout", headers=headers)

        assert response.json()["redirect"] == "/login"
        assert live_client.get("/auth/me", headers=headers).status_code == 401


class TestEntriesApi:
    def test_entry_lifecycle(self, live_client):
        headers = sign_in(live_client, "alice@example.com")

        created = live_client.post("/entries/", json={"title": " Snippet ", "content": "a\nb"}, headers=headers)
        assert created.status_code == 201
        assert notices(created.json()) == [("Success", "Entry added successfully.")]
        entry_id = created.json()["id"]

        entry = live_client.get(f"/entries/{entry_id}", headers=headers).json()
        assert (entry["title"], entry["content"]) == ("Snippet", "a\nb")

        updated = live_client.put(f"/entries/{entry_id}", json={"title": "Edited", "content": "c"}, headers=headers)
        assert updated.status_code == 200
        assert notices(updated.json()) == [("Success", "Entry updated successfully.")]

        copied = live_client.post(f"/entries/{entry_id}/copy", headers=headers).json()
        assert copied["clipboard"] == "c"
        assert notices(copied) == [("Copied to clipboard!", '"Edited" content has been copied.')]

        assert titles(live_client.get("/entries/", headers=headers).json()) == ["Edited"]

    def test_form_errors(self, live_client):
        headers = sign_in(live_client, "alice@example.com")

        response = live_client.post("/entries/", json={"title": "", "content": ""}, headers=headers)

        assert response.status_code == 422
        assert response.json()["errors"] == {"title": "Title is required.", "content": "Content is required."}
        assert live_client.get("/entries/", headers=headers).json()["entries"] == []

    def test_delete_requires_confirmation(self, live_client):
        headers = sign_in(live_client, "alice@example.com")
        entry_id = live_client.post("/entries/", json={"title": "Old", "content": "x"}, headers=headers).json()["id"]

        pending = live_client.delete(f"/entries/{entry_id}", headers=headers)
        assert pending.status_code == 428
        assert pending.json()["description"] == (
            'This action cannot be undone. This will permanently delete your entry titled "Old".'
        )

        confirmed = live_client.delete(f"/entries/{entry_id}", params={"confirm": "true"}, headers=headers)
        assert confirmed.status_code == 200
        assert notices(confirmed.json()) == [("Success", "Entry deleted successfully.")]

        again = live_client.delete(f"/entries/{entry_id}", params={"confirm": "true"}, headers=headers)
        assert again.status_code == 200
        assert again.json()["notifications"] == []

    def test_entries_are_private(self, live_client):
        alice = sign_in(live_client, "alice@example.com")
        bob = sign_in(live_client, "bob@example.com")
        entry_id = live_client.post("/entries/", json={"title": "Secret", "content": "x"}, headers=alice).json()["id"]

        assert live_client.get("/entries/", headers=bob).json()["entries"] == []
        assert live_client.get(f"/entries/{entry_id}", headers=bob).status_code == 404
        assert live_client.put(
            f"/entries/{entry_id}", json={"title": "Mine", "content": "y"}, headers=bob
        ).status_code == 404

        live_client.delete(f"/entries/{entry_id}", params={"confirm": "true"}, headers=bob)
        assert titles(live_client.get("/entries/", headers=alice).json()) == ["Secret"]

    def test_unknown_entry(self, live_client):
        headers = sign_in(live_client, "alice@example.com")

        assert live_client.get("/entries/missing", headers=headers).status_code == 404
        response = live_client.put("/entries/missing", json={"title": "t", "content": "c"}, headers=headers)
        assert response.status_code == 404

    def test_read_failure_is_reported_without_details(self, live_client):
        headers = sign_in(live_client, "alice@example.com")
        live_client.app.state.store = FailingReadStore()

        response = live_client.get("/entries/", headers=headers)

        assert response.status_code == 503
        assert response.json()["notifications"] == [
            {"title": "Error", "description": "Could not fetch entries.", "variant": "destructive"}
        ]
        assert "refused" not in response.text
        assert live_client.get("/entries/some-id", headers=headers).status_code == 503


class TestLiveView:
    def test_rejects_missing_session(self, live_client):
        with live_client.websocket_connect("/entries/ws?token=garbage") as websocket:
            assert websocket.receive_json() == {"type": "redirect", "data": {"location": "/login"}}
            with pytest.raises(WebSocketDisconnect) as exc_info:
                websocket.receive_json()

        assert exc_info.value.code == SESSION_ENDED_CLOSE_CODE

    def test_pushes_snapshot_on_every_change(self, live_client):
        headers = sign_in(live_client, "alice@example.com")
        token = headers["Authorization"].split()[1]

        with live_client.websocket_connect(f"/entries/ws?token={token}") as websocket:
            initial = websocket.receive_json()
            assert initial["type"] == "snapshot"
            assert initial["data"]["empty_message"] == 'Click "Add New" to create your first entry.'
            assert live_client.get("/health").json()["live_subscriptions"] == 1

            entry_id = live_client.post("/entries/", json={"title": "Live", "content": "x"}, headers=headers).json()["id"]
            assert titles(websocket.receive_json()["data"]) == ["Live"]

            live_client.put(f"/entries/{entry_id}", json={"title": "Renamed", "content": "y"}, headers=headers)
            assert titles(websocket.receive_json()["data"]) == ["Renamed"]

        assert live_client.get("/health").json()["live_subscriptions"] == 0

    def test_search_and_sort_messages(self, live_client):
        headers = sign_in(live_client, "alice@example.com")
        token = headers["Authorization"].split()[1]
        for title in ("beta", "Alpha"):
            live_client.post("/entries/", json={"title": title, "content": "x"}, headers=headers)

        with live_client.websocket_connect(f"/entries/ws?token={token}&sort=alphabetical") as websocket:
            assert titles(websocket.receive_json()["data"]) == ["Alpha", "beta"]

            websocket.send_json({"type": "search", "data": {"text": "BET"}})
            assert titles(websocket.receive_json()["data"]) == ["beta"]

            websocket.send_json({"type": "sort", "data": {"order": "sideways"}})
            message = websocket.receive_json()
            assert message["type"] == "notification"
            assert message["data"]["variant"] == "destructive"

            websocket.send_json({"type": "ping"})
            assert websocket.receive_json() == {"type": "pong"}

    def test_sign_out_redirects_open_view(self, live_client):
        headers = sign_in(live_client, "alice@example.com")
        token = headers["Authorization"].split()[1]

        with live_client.websocket_connect(f"/entries/ws?token={token}") as websocket:
            websocket.receive_json()

            live_client.post("/auth/logout", headers=headers)

            assert websocket.receive_json() == {"type": "redirect", "data": {"location": "/login"}}
            with pytest.raises(WebSocketDisconnect) as exc_info:
                websocket.receive_json()

        assert exc_info.value.code == SESSION_ENDED_CLOSE_CODE

    def test_read_failure_notifies_open_view(self, live_client):
        headers = sign_in(live_client, "alice@example.com")
        token = headers["Authorization"].split()[1]
        live_client.app.state.store = FailingReadStore()

        with live_client.websocket_connect(f"/entries/ws?token={token}") as websocket:
            message = websocket.receive_json()
            assert message == {
                "type": "notification",
                "data": {"title": "Error", "description": "Could not fetch entries.", "variant": "destructive"}
            }

            websocket.send_json({"type": "ping"})
            assert websocket.receive_json() == {"type": "pong"}

    def test_ignores_messages_that_are_not_objects(self, demo_client):
        with demo_client.websocket_connect("/entries/ws") as websocket:
            assert websocket.receive_json()["type"] == "snapshot"

            websocket.send_text('"hello"')
            websocket.send_text("[1]")
            websocket.send_text("not json")
            websocket.send_json({"type": "search", "data": "x"})

            websocket.send_json({"type": "ping"})
            assert websocket.receive_json() == {"type": "pong"}
