"""Tests for the producer entry point and delivery through the notifier."""

from datetime import datetime, timedelta

from conftest import RecordingDispatcher, auth_for

from herald.db.base import as_utc
from herald.models.enums import Channel
from herald.services.delivery.notifier import Notifier

PUBLISH = "/api/v1/notifications"


def body(type="security", user_id="usr_alice", message="New sign-in from Firefox"):
    return {"user_id": user_id, "type": type, "message": message}


class TestPublish:
    async def test_requires_producer_role(self, client, alice_headers):
        resp = await client.post(PUBLISH, json=body(), headers=alice_headers)
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "AUTHORIZATION_ERROR"

    async def test_requires_authentication(self, client):
        resp = await client.post(PUBLISH, json=body())
        assert resp.status_code == 401

    async def test_publish_stores_and_dispatches(self, client, producer_headers, alice_headers, notifier, dispatcher):
        resp = await client.post(PUBLISH, json=body(), headers=producer_headers)
        assert resp.status_code == 201
        data = resp.json()
        nid = data["notification"]["notification_id"]
        assert nid.startswith("ntf_")
        assert data["notification"]["read"] is False
        outcomes = {c["channel"]: c["outcome"] for c in data["decision"]["channels"]}
        assert outcomes == {"email": "deliver_now", "in_app": "deliver_now"}

        await notifier.drain()
        assert sorted(dispatcher.sent) == [
            ("email", "usr_alice", nid),
            ("in_app", "usr_alice", nid),
        ]

        feed = (await client.get("/api/v1/notifications", headers=alice_headers)).json()
        assert [n["notification_id"] for n in feed["items"]] == [nid]

    async def test_suppressed_notification_is_still_stored(self, client, producer_headers, alice_headers, notifier, dispatcher):
        resp = await client.post(PUBLISH, json=body(type="marketing"), headers=producer_headers)
        assert resp.status_code == 201
        assert resp.json()["decision"]["channels"] == []

        await notifier.drain()
        assert dispatcher.sent == []
        count = (await client.get("/api/v1/notifications/unread-count", headers=alice_headers)).json()
        assert count == {"unread": 1}

    async def test_transport_failure_does_not_fail_publish(self, app, client, producer_headers):
        failing = Notifier(RecordingDispatcher(fail=True))
        app.state.notifier = failing

        resp = await client.post(PUBLISH, json=body(), headers=producer_headers)
        assert resp.status_code == 201
        await failing.drain()

    async def test_rejects_empty_message(self, client, producer_headers):
        resp = await client.post(PUBLISH, json=body(message=""), headers=producer_headers)
        assert resp.status_code == 400


class TestDigestFlow:
    async def test_daily_digest_collects_and_flushes(self, client, producer_headers, alice_headers, notifier, dispatcher):
        resp = await client.put(
            "/api/v1/preferences",
            headers=alice_headers,
            json={"email_frequency": "daily", "digest_enabled": True, "email_types": ["system"]},
        )
        assert resp.status_code == 200

        ids = []
        until = None
        for i in range(3):
            resp = await client.post(
                PUBLISH, json=body(type="system", message=f"Job {i} finished"), headers=producer_headers
            )
            data = resp.json()
            ids.append(data["notification"]["notification_id"])
            email = next(c for c in data["decision"]["channels"] if c["channel"] == "email")
            assert email["outcome"] == "enqueue"
            until = email["until"]

        await notifier.drain()
        assert all(channel != "email" for channel, _, _ in dispatcher.sent)
        assert notifier.digest.pending("usr_alice") == {Channel.EMAIL: ids}

        boundary = as_utc(datetime.fromisoformat(until))
        assert await notifier.tick(boundary - timedelta(seconds=1)) == []
        payloads = await notifier.tick(boundary)
        await notifier.drain()
        assert len(payloads) == 1
        assert dispatcher.digests == [("email", "usr_alice", ids)]
        assert await notifier.tick(boundary + timedelta(days=1)) == []

    async def test_deleting_a_buffered_notification_drops_it(self, client, producer_headers, alice_headers, notifier):
        await client.put(
            "/api/v1/preferences",
            headers=alice_headers,
            json={"email_frequency": "hourly", "digest_enabled": True},
        )
        first = (await client.post(PUBLISH, json=body(), headers=producer_headers)).json()
        second = (await client.post(PUBLISH, json=body(), headers=producer_headers)).json()
        first_id = first["notification"]["notification_id"]
        second_id = second["notification"]["notification_id"]

        resp = await client.delete(f"/api/v1/notifications/{first_id}", headers=alice_headers)
        assert resp.status_code == 200
        assert notifier.digest.pending("usr_alice") == {Channel.EMAIL: [second_id]}

    async def test_other_users_cannot_touch_notification(self, client, producer_headers):
        created = (await client.post(PUBLISH, json=body(), headers=producer_headers)).json()
        nid = created["notification"]["notification_id"]
        resp = await client.post(f"/api/v1/notifications/{nid}/read", headers=auth_for("usr_bob"))
        assert resp.status_code == 404
