import asyncio
import threading
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from src.webapp.main import create_app
from src.webapp.settings import ConfigurationError, Settings

BASE = "/api/v1/todos"


@pytest.fixture
def client(store):
    with TestClient(create_app(store=store)) as c:
        yield c


def submit(client, text="Buy milk", priority="medium"):
    res = client.post(f"{BASE}/", json={"text": text, "priority": priority})
    assert res.status_code == 201
    return res.json()


def parse_ts(value: str) -> datetime:
    # Pydantic serializes UTC as a trailing "Z"
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def assert_item_shape(item: dict):
    for key in ["id", "text", "completed", "priority", "delete_flag", "created_at", "updated_at", "icon"]:
        assert key in item
    assert isinstance(item["id"], str)
    assert isinstance(item["completed"], bool)
    assert item["delete_flag"] is False
    assert item["priority"] in ("low", "medium", "high")
    parse_ts(item["created_at"])


class TestHealth:
    def test_health_check(self, client):
        res = client.get("/")
        assert res.status_code == 200
        data = res.json()
        assert data["message"] == "Healthy"
        assert data["backend"] == "memory"


class TestScenario:
    def test_buy_milk_lifecycle(self, client, store):
        view = submit(client, "Buy milk", "medium")
        assert len(view["items"]) == 1
        item = view["items"][0]
        assert_item_shape(item)
        assert item["text"] == "Buy milk"
        assert item["completed"] is False
        assert item["icon"] == "🟡"
        assert view["stats"]["summary"] == "待完成：1 | 已完成：0"

        res_toggle = client.post(f"{BASE}/{item['id']}/toggle")
        assert res_toggle.status_code == 200
        toggled = res_toggle.json()
        assert len(toggled["items"]) == 1
        assert toggled["items"][0]["completed"] is True
        assert toggled["items"][0]["icon"] == "✅"

        res_del = client.delete(f"{BASE}/{item['id']}")
        assert res_del.status_code == 200
        after = res_del.json()
        assert after["items"] == []
        assert after["stats"]["summary"] == "待完成：0 | 已完成：0"

        # Soft delete keeps the row in the store
        kept = store.get(item["id"])
        assert kept is not None
        assert kept.delete_flag is True


class TestSubmit:
    @pytest.mark.parametrize("priority,icon", [("low", "🟢"), ("medium", "🟡"), ("high", "🔴")])
    def test_submit_adds_exactly_one_row(self, client, priority, icon):
        submit(client, "Existing")
        view = submit(client, f"Task {priority}", priority)
        matching = [i for i in view["items"] if i["text"] == f"Task {priority}"]
        assert len(matching) == 1
        assert matching[0]["priority"] == priority
        assert matching[0]["completed"] is False
        assert matching[0]["icon"] == icon
        assert len(view["items"]) == 2

    def test_submit_blank_text_is_rejected_without_store_call(self, client, store):
        submit(client, "Keep me")
        calls_before = list(store.calls)

        res = client.post(f"{BASE}/", json={"text": "   ", "priority": "high"})
        assert res.status_code == 422
        body = res.json()
        assert body.get("error") == "ValidationError"
        assert body.get("message") == "Request validation failed"
        assert isinstance(body.get("detail"), list)

        assert store.calls == calls_before
        assert [i["text"] for i in client.get(f"{BASE}/").json()["items"]] == ["Keep me"]

    def test_submit_invalid_priority(self, client):
        res = client.post(f"{BASE}/", json={"text": "Oops", "priority": "urgent"})
        assert res.status_code == 422
        assert res.json().get("error") == "ValidationError"

    def test_submit_uses_and_clears_draft(self, client):
        res_draft = client.put(f"{BASE}/draft", json={"text": "From draft", "priority": "high"})
        assert res_draft.status_code == 200
        assert res_draft.json()["draft"] == {"text": "From draft", "priority": "high"}

        res = client.post(f"{BASE}/", json={})
        assert res.status_code == 201
        view = res.json()
        assert view["items"][0]["text"] == "From draft"
        assert view["items"][0]["priority"] == "high"
        # Text is cleared, the chosen priority stays selected
        assert view["draft"] == {"text": "", "priority": "high"}

    def test_submit_failure_leaves_state_untouched(self, client, store):
        submit(client, "Existing")
        client.put(f"{BASE}/draft", json={"text": "Unsaved"})
        store.failing.add("insert")

        res = client.post(f"{BASE}/", json={})
        assert res.status_code == 502
        body = res.json()
        assert body["error"] == "RemoteError"
        assert body["message"] == "添加失败，请重试"
        assert body["detail"] == "insert unavailable"

        view = client.get(f"{BASE}/").json()
        assert [i["text"] for i in view["items"]] == ["Existing"]
        assert view["draft"]["text"] == "Unsaved"
        assert view["last_error"] == "添加失败，请重试"


class TestToggle:
    def test_toggle_flips_only_target(self, client):
        first = submit(client, "First")["items"][0]
        second = submit(client, "Second")["items"][0]

        view = client.post(f"{BASE}/{first['id']}/toggle").json()
        by_id = {i["id"]: i for i in view["items"]}
        assert by_id[first["id"]]["completed"] is True
        assert by_id[second["id"]]["completed"] is False
        assert by_id[second["id"]]["text"] == "Second"

        view = client.post(f"{BASE}/{first['id']}/toggle").json()
        assert all(i["completed"] is False for i in view["items"])

    def test_toggle_unknown_id(self, client, store):
        res = client.post(f"{BASE}/does-not-exist/toggle")
        assert res.status_code == 404
        assert res.json()["detail"] == "Todo not found"
        assert "set_completed" not in store.calls

    def test_toggle_failure_keeps_stale_state(self, client, store):
        item = submit(client, "Sticky")["items"][0]
        store.failing.add("set_completed")

        res = client.post(f"{BASE}/{item['id']}/toggle")
        assert res.status_code == 502
        assert res.json()["message"] == "更新任务失败"
        assert client.get(f"{BASE}/").json()["items"][0]["completed"] is False


class TestDelete:
    def test_delete_hides_row_and_keeps_others(self, client, store):
        gone = submit(client, "Gone")["items"][0]
        submit(client, "Stays")

        view = client.delete(f"{BASE}/{gone['id']}").json()
        assert [i["text"] for i in view["items"]] == ["Stays"]
        assert store.get(gone["id"]).delete_flag is True

    def test_delete_unknown_id(self, client, store):
        submit(client, "Only")
        res = client.delete(f"{BASE}/missing-id")
        assert res.status_code == 404
        assert res.json()["detail"] == "Todo not found"
        assert "soft_delete" not in store.calls
        assert [i["text"] for i in client.get(f"{BASE}/").json()["items"]] == ["Only"]

    def test_delete_failure(self, client, store):
        item = submit(client, "Survivor")["items"][0]
        store.failing.add("soft_delete")

        res = client.delete(f"{BASE}/{item['id']}")
        assert res.status_code == 502
        assert res.json()["message"] == "删除任务失败"
        assert store.get(item["id"]).delete_flag is False


class TestListing:
    def test_items_newest_first(self, client):
        for i in range(4):
            submit(client, f"Task {i}")
        items = client.get(f"{BASE}/").json()["items"]
        assert [i["text"] for i in items] == ["Task 3", "Task 2", "Task 1", "Task 0"]
        created = [parse_ts(i["created_at"]) for i in items]
        assert created == sorted(created, reverse=True)

    def test_refresh_picks_up_rows_written_elsewhere(self, client, store):
        asyncio.run(store.insert("Written by another tab", "low"))
        assert client.get(f"{BASE}/").json()["items"] == []

        res = client.post(f"{BASE}/refresh")
        assert res.status_code == 200
        assert [i["text"] for i in res.json()["items"]] == ["Written by another tab"]

    def test_refresh_failure(self, client, store):
        store.failing.add("list_active")
        res = client.post(f"{BASE}/refresh")
        assert res.status_code == 502
        assert res.json()["message"] == "获取任务失败，请检查网络连接"


class TestStartup:
    def test_initial_load_populates_list(self, store):
        asyncio.run(store.insert("Preexisting", "high"))
        with TestClient(create_app(store=store)) as c:
            items = c.get(f"{BASE}/").json()["items"]
        assert [i["text"] for i in items] == ["Preexisting"]

    def test_initial_load_failure_starts_empty(self, store):
        asyncio.run(store.insert("Unreachable", "high"))
        store.failing.add("list_active")
        with TestClient(create_app(store=store)) as c:
            view = c.get(f"{BASE}/").json()
        assert view["items"] == []
        assert view["last_error"] == "获取任务失败，请检查网络连接"

    def test_missing_connection_config_is_fatal(self, monkeypatch):
        for name in (
            "SUPABASE_URL",
            "SUPABASE_ANON_KEY",
            "NEXT_PUBLIC_SUPABASE_URL",
            "NEXT_PUBLIC_SUPABASE_ANON_KEY",
        ):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("TODO_STORE_BACKEND", "supabase")

        with pytest.raises(ConfigurationError):
            with TestClient(create_app()):
                pass

    def test_explicit_settings_without_connection_are_fatal(self):
        settings = Settings(
            store_backend="supabase",
            supabase_url=None,
            supabase_anon_key=None,
            supabase_timeout=10.0,
            cors_allow_origins=["*"],
            log_level="INFO",
        )

        with pytest.raises(ConfigurationError):
            with TestClient(create_app(settings=settings)):
                pass


class TestEventLoop:
    def test_controller_is_only_touched_on_the_event_loop(self, client):
        controller = client.app.state.controller
        threads = {}
        original_set_draft = controller.set_draft
        original_load = controller.load
        original_stats = controller.stats

        def set_draft(*args, **kwargs):
            threads["set_draft"] = threading.get_ident()
            return original_set_draft(*args, **kwargs)

        async def load():
            threads["load"] = threading.get_ident()
            return await original_load()

        def stats():
            threads["view"] = threading.get_ident()
            return original_stats()

        controller.set_draft = set_draft
        controller.load = load
        controller.stats = stats

        assert client.put(f"{BASE}/draft", json={"text": "x"}).status_code == 200
        assert client.post(f"{BASE}/refresh").status_code == 200
        assert client.get(f"{BASE}/").status_code == 200

        assert len(set(threads.values())) == 1
        assert set(threads) == {"set_draft", "load", "view"}
