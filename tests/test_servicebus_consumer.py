import json

import pytest

from internhub.infra import servicebus_consumer
from internhub.infra.servicebus_consumer import consume_notifications, consumer_status, decode_body


class FakeMessage:
    def __init__(self, payload):
        raw = json.dumps(payload).encode("utf-8")
        self.body = iter([raw[:5], raw[5:]])


def test_decode_body_joins_sections():
    assert decode_body(FakeMessage({"type": "new_application", "userId": "sh-1"})) == {
        "type": "new_application",
        "userId": "sh-1",
    }


@pytest.mark.asyncio
async def test_consumer_disabled_without_connection_string(store, monkeypatch, caplog):
    monkeypatch.setattr(servicebus_consumer.config, "SB_CONN_STR", None)

    await consume_notifications(store)

    assert "consumer disabled" in caplog.text
    status = consumer_status()
    assert status["hasConnectionString"] is False
    assert status["queue"] == servicebus_consumer.config.SB_QUEUE
