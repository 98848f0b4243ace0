"""Transcript publisher module for pub/sub event publishing."""

import logging
from typing import Callable
from pubsub import pub
from ..models.events import TranscriptUpdate

logger = logging.getLogger(__name__)

TRANSCRIPT_TOPIC = "transcript_updates"


class TranscriptPublisher:
    """Publishes listening-session snapshots using pubsub.pub."""

    def __init__(self, topic: str = TRANSCRIPT_TOPIC):
        """Initialize transcript publisher.

        Args:
            topic: Pub/sub topic name for transcript updates
        """
        self.topic = topic
        logger.info(f"TranscriptPublisher initialized with topic: {topic}")

    def publish(self, update: TranscriptUpdate) -> None:
        """Publish a transcript update to the pub/sub topic.

        Args:
            update: Snapshot to publish
        """
        pub.sendMessage(self.topic, update=update)
        logger.debug(f"Published transcript update (listening={update.is_listening}, "
                     f"{len(update.raw_transcript)} chars)")

    def get_callback(self) -> Callable[[TranscriptUpdate], None]:
        """Get callback function for the session controller to use."""
        return self.publish
