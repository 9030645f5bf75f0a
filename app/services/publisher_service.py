import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Awaitable, Dict, Optional

import aio_pika
from aio_pika.abc import AbstractExchange, AbstractRobustConnection
from aio_pika.exceptions import AMQPError

logger = logging.getLogger("classroom.publisher")


def _json_default(value: Any):
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Tipo non serializzabile: {type(value).__name__}")


class AssignmentPublisher:
    """Pubblica gli eventi di assignment e submission su un topic exchange."""

    def __init__(self, rabbitmq_url: str, exchange: str = "elearning.reports", heartbeat: int = 30):
        self.rabbitmq_url = rabbitmq_url
        self.exchange_name = exchange
        self.heartbeat = heartbeat
        self._connection: Optional[AbstractRobustConnection] = None
        self._exchange: Optional[AbstractExchange] = None

    async def connect(self, max_retries: int = 10, delay: float = 5) -> None:
        for attempt in range(1, max_retries + 1):
            try:
                self._connection = await aio_pika.connect_robust(
                    self.rabbitmq_url, heartbeat=self.heartbeat
                )
                channel = await self._connection.channel()
                self._exchange = await channel.declare_exchange(
                    self.exchange_name, aio_pika.ExchangeType.TOPIC, durable=True
                )
                logger.info("Connesso a RabbitMQ, exchange %s", self.exchange_name)
                return
            except (AMQPError, OSError) as e:
                logger.warning("RabbitMQ non raggiungibile (tentativo %d/%d): %s", attempt, max_retries, e)
                if attempt == max_retries:
                    raise
                await asyncio.sleep(delay)

    async def _publish(self, routing_key: str, payload: Dict[str, Any]) -> None:
        if self._exchange is None:
            raise RuntimeError("Publisher non connesso")
        message = aio_pika.Message(
            body=json.dumps(payload, default=_json_default).encode(),
            content_type="application/json",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
        )
        await self._exchange.publish(message, routing_key=routing_key)
        logger.debug("Pubblicato %s: %s", routing_key, payload)

    async def publish_assignment_status(
        self, assignmentId: str, teacherId: Optional[str], status: str, timestamp: datetime
    ) -> None:
        await self._publish(
            "assignments.status",
            {"assignmentId": assignmentId, "teacherId": teacherId, "status": status, "timestamp": timestamp},
        )

    async def publish_submission(
        self, submissionId: str, assignmentId: str, studentId: str, createdAt: datetime
    ) -> None:
        await self._publish(
            "submissions.created",
            {"submissionId": submissionId, "assignmentId": assignmentId, "studentId": studentId, "createdAt": createdAt},
        )

    async def publish_review(self, submissionId: str, assignmentId: str, reviewedAt: datetime) -> None:
        await self._publish(
            "submissions.reviewed",
            {"submissionId": submissionId, "assignmentId": assignmentId, "reviewedAt": reviewedAt},
        )

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            self._exchange = None


async def safe_publish(event: Awaitable[None]) -> None:
    """Attende la pubblicazione senza far fallire la richiesta: lo stato è già salvato."""
    try:
        await event
    except Exception:
        logger.exception("Publish fallito")
