# internhub/infra/servicebus_consumer.py
import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from azure.servicebus import TransportType
from azure.servicebus.aio import ServiceBusClient

from internhub.core import config
from internhub.infra.base import RowStore
from internhub.services.notification_handler import process_notification

logger = logging.getLogger(__name__)

_status: Dict[str, Any] = {
    "startedAt": None,
    "lastMessageAt": None,
    "lastError": None,
    "processed": 0,
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def consumer_status() -> Dict[str, Any]:
    return {
        **_status,
        "queue": config.SB_QUEUE,
        "hasConnectionString": bool(config.SB_CONN_STR),
    }


def decode_body(msg) -> dict:
    # the body arrives as an iterable of byte sections
    body_bytes = b"".join(part for part in msg.body)
    return json.loads(body_bytes.decode("utf-8"))


async def consume_notifications(store: RowStore, backoff: int = 5):
    """
    Async Azure Service Bus consumer:
      - AMQP over WebSocket (443) so it works on App Service.
      - Persists every message through process_notification.
      - Completes a message only once it was stored.
      - Reconnects with backoff when the connection drops.
    """
    if not config.SB_CONN_STR:
        logger.warning("AZURE_SERVICE_BUS_CONNECTION_STRING is not set, queue consumer disabled")
        return
    if not config.SB_QUEUE:
        logger.warning("AZURE_SERVICE_BUS_QUEUE_NAME is not set, queue consumer disabled")
        return

    _status["startedAt"] = _now()

    while True:
        try:
            logger.info("Connecting to Service Bus queue %s over WebSockets", config.SB_QUEUE)
            async with ServiceBusClient.from_connection_string(
                config.SB_CONN_STR,
                transport_type=TransportType.AmqpOverWebsocket,
            ) as sb_client:
                receiver = sb_client.get_queue_receiver(
                    queue_name=config.SB_QUEUE,
                    max_wait_time=20,
                )
                async with receiver:
                    logger.info("Listening on queue %s", config.SB_QUEUE)
                    while True:
                        messages = await receiver.receive_messages(
                            max_message_count=10,
                            max_wait_time=10,
                        )
                        if not messages:
                            await asyncio.sleep(0.5)
                            continue

                        for msg in messages:
                            try:
                                await process_notification(decode_body(msg), store)
                                await receiver.complete_message(msg)
                                _status["lastMessageAt"] = _now()
                                _status["processed"] += 1
                            except Exception as e:
                                # left incomplete: redelivered, or dead-lettered after MaxDeliveryCount
                                _status["lastError"] = str(e)
                                logger.exception("Failed to process queue message %s", msg.message_id)

            await asyncio.sleep(1)

        except asyncio.CancelledError:
            logger.info("Queue consumer stopped")
            raise
        except Exception as e:
            _status["lastError"] = str(e)
            logger.error("Service Bus connection error, retrying in %ss: %s", backoff, e)
            await asyncio.sleep(backoff)
