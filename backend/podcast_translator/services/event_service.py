"""
Service for publishing podcast status change events to Kafka.
Lets clients react to finished transcriptions without polling.
"""

import json
import uuid
from datetime import datetime
from typing import Optional

from kafka import KafkaProducer
from kafka.errors import KafkaError

from podcast_translator.config import get_settings
from podcast_translator.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


class EventPublishError(Exception):
    """Raised when an event cannot be delivered to Kafka."""
    pass


class PodcastEventPublisher:
    """
    Kafka producer for ``podcast.status_changed`` events.

    Events are keyed by podcast id so a consumer sees one podcast's
    transitions in order.
    """

    def __init__(self) -> None:
        """Initialize Kafka producer."""
        self.producer: Optional[KafkaProducer] = None
        self._initialize_producer()

    def _initialize_producer(self) -> None:
        """
        Initialize Kafka producer with error handling.

        Raises:
            EventPublishError: If unable to connect to Kafka
        """
        try:
            self.producer = KafkaProducer(
                bootstrap_servers=settings.kafka_bootstrap_servers.split(','),
                value_serializer=lambda v: json.dumps(v).encode('utf-8'),
                key_serializer=lambda k: str(k).encode('utf-8') if k else None,
                acks='all',
                retries=3,
                retry_backoff_ms=100
            )

            logger.info("Kafka producer initialized",
                        bootstrap_servers=settings.kafka_bootstrap_servers)

        except Exception as e:
            logger.error("Failed to initialize Kafka producer", error=str(e))
            raise EventPublishError(f"Cannot connect to Kafka: {str(e)}")

    def publish_status_change(self, podcast_id: uuid.UUID, user_id: str, status: str,
                              previous_status: Optional[str] = None,
                              error_message: Optional[str] = None) -> bool:
        """
        Publish a podcast status transition.

        Returns:
            True if the message was acknowledged

        Raises:
            EventPublishError: If publishing fails
        """
        if not self.producer:
            raise EventPublishError("Kafka producer not initialized")

        message = {
            "event": "podcast.status_changed",
            "event_id": str(uuid.uuid4()),
            "podcast_id": str(podcast_id),
            "user_id": user_id,
            "status": status,
            "previous_status": previous_status,
            "error_message": error_message,
            "occurred_at": datetime.utcnow().isoformat(),
        }

        try:
            future = self.producer.send(
                topic=settings.kafka_topic_podcast_events,
                key=str(podcast_id),
                value=message
            )
            record_metadata = future.get(timeout=10)

            logger.info("Podcast event published",
                        podcast_id=podcast_id,
                        status=status,
                        topic=record_metadata.topic,
                        partition=record_metadata.partition,
                        offset=record_metadata.offset)
            return True

        except KafkaError as e:
            logger.error("Kafka publish error", podcast_id=podcast_id, error=str(e))
            raise EventPublishError(f"Failed to publish message: {str(e)}")

        except Exception as e:
            logger.error("Unexpected error publishing to Kafka", podcast_id=podcast_id, error=str(e))
            raise EventPublishError(f"Unexpected error: {str(e)}")

    def close(self) -> None:
        """Close the Kafka producer connection."""
        if self.producer:
            try:
                self.producer.close(timeout=5)
                logger.info("Kafka producer closed")
            except Exception as e:
                logger.error("Error closing Kafka producer", error=str(e))

    def __enter__(self) -> "PodcastEventPublisher":
        return self

    def __exit__(self, exc_type: Optional[type], exc_val: Optional[BaseException], exc_tb: Optional[object]) -> None:
        self.close()


def notify_status_change(podcast_id: uuid.UUID, user_id: str, status: str,
                         previous_status: Optional[str] = None,
                         error_message: Optional[str] = None) -> bool:
    """
    Best-effort publish of a status change.

    Delivery failures are logged and reported as False; they never affect
    the operation that changed the status.
    """
    if not settings.podcast_events_enabled:
        return False

    try:
        with PodcastEventPublisher() as publisher:
            return publisher.publish_status_change(
                podcast_id, user_id, status, previous_status, error_message
            )
    except EventPublishError as e:
        logger.warning("Podcast status event dropped",
                       podcast_id=podcast_id,
                       status=status,
                       error=str(e))
        return False
