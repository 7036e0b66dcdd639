"""Tests for the webhook application."""

from fastapi.testclient import TestClient

from botrunner.api.server import create_app
from botrunner.config.schema import Config
from botrunner.main import echo
from botrunner.runtime.bot import Bot

from conftest import FakeClient


UPDATE = {"update_id": 1, "message": {"message_id": 1, "chat": {"id": 42}, "text": "hi"}}


def make_app(config=None, identity=None, client=None):
    client = client or FakeClient()
    bot = Bot(client, identity=identity)
    bot.on("message", echo)
    return create_app(bot, config or Config()), bot, client


class TestHealth:
    """Test health endpoint."""

    def test_health(self, identity):
        app, bot, client = make_app(identity=identity)

        with TestClient(app) as http:
            response = http.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "bot": "test_bot",
            "running": False,
            "polling_status": "stopped",
        }

    def test_startup_fetches_identity(self):
        app, bot, client = make_app()

        with TestClient(app) as http:
            response = http.get("/api/health")

        assert client.get_me_calls == 1
        assert response.json()["bot"] == "test_bot"


class TestWebhook:
    """Test update delivery over HTTP."""

    def test_reply_in_response_body(self, identity):
        config = Config(webhook={"reply_methods": ["sendMessage"]})
        app, bot, client = make_app(config=config, identity=identity)

        with TestClient(app) as http:
            response = http.post("/webhook", json=UPDATE)

        assert response.status_code == 200
        assert response.json() == {"method": "sendMessage", "chat_id": 42, "text": "hi"}
        assert client.calls == []

    def test_reply_disabled_by_default(self, identity):
        app, bot, client = make_app(identity=identity)

        with TestClient(app) as http:
            response = http.post("/webhook", json=UPDATE)

        assert response.status_code == 200
        assert response.json() == {}
        assert client.calls == [("sendMessage", {"chat_id": 42, "text": "hi"})]

    def test_unlisted_method_sent_directly(self, identity):
        client = FakeClient()
        client.call_results["getChat"] = {"id": 42, "title": "chat"}
        bot = Bot(client, identity=identity)
        seen = []

        async def lookup(ctx, next_):
            seen.append(await ctx.api.call("getChat", {"chat_id": 42}))
            await ctx.api.call("sendMessage", {"chat_id": 42, "text": "hi"})

        bot.register(lookup)
        app = create_app(bot, Config(webhook={"reply_methods": ["sendMessage"]}))

        with TestClient(app) as http:
            response = http.post("/webhook", json=UPDATE)

        assert seen == [{"id": 42, "title": "chat"}]
        assert client.calls == [("getChat", {"chat_id": 42})]
        assert response.json() == {"method": "sendMessage", "chat_id": 42, "text": "hi"}

    def test_no_reply_gives_empty_object(self, identity):
        app, bot, client = make_app(identity=identity)

        with TestClient(app) as http:
            response = http.post("/webhook", json={"update_id": 2, "poll": {"id": "p"}})

        assert response.status_code == 200
        assert response.json() == {}

    def test_secret_token(self, identity):
        config = Config(webhook={"secret_token": "s3cret"})
        app, bot, client = make_app(config=config, identity=identity)

        with TestClient(app) as http:
            missing = http.post("/webhook", json=UPDATE)
            wrong = http.post("/webhook", json=UPDATE, headers={"X-Telegram-Bot-Api-Secret-Token": "nope"})
            right = http.post("/webhook", json=UPDATE, headers={"X-Telegram-Bot-Api-Secret-Token": "s3cret"})

        assert missing.status_code == 401
        assert wrong.status_code == 401
        assert right.status_code == 200

    def test_invalid_payload(self, identity):
        app, bot, client = make_app(identity=identity)

        with TestClient(app) as http:
            not_json = http.post("/webhook", content=b"not json", headers={"Content-Type": "application/json"})
            no_id = http.post("/webhook", json={"message": {}})
            not_object = http.post("/webhook", json=[1, 2, 3])

        assert not_json.status_code == 400
        assert no_id.status_code == 400
        assert not_object.status_code == 400

    def test_pipeline_error_is_500(self, identity):
        client = FakeClient()
        bot = Bot(client, identity=identity)

        async def failing(ctx, next_):
            raise ValueError("broken handler")

        bot.register(failing)
        app = create_app(bot, Config())

        with TestClient(app) as http:
            response = http.post("/webhook", json=UPDATE)

        assert response.status_code == 500
        assert "ValueError in middleware" in response.json()["detail"]

    def test_custom_path(self, identity):
        app, bot, client = make_app(config=Config(webhook={"path": "hooks/bot"}), identity=identity)

        with TestClient(app) as http:
            response = http.post("/hooks/bot", json=UPDATE)

        assert response.status_code == 200

    def test_set_webhook_on_startup(self, identity):
        config = Config(webhook={"public_url": "https://bot.example.org/", "secret_token": "s3cret"})
        app, bot, client = make_app(config=config, identity=identity)

        with TestClient(app):
            pass

        assert client.calls == [
            (
                "setWebhook",
                {"url": "https://bot.example.org/webhook", "secret_token": "s3cret", "allowed_updates": None},
            )
        ]
