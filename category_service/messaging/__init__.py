"""Message-bus surface: ``<family>.<operation>`` topics and their dispatcher."""

from category_service.messaging.handlers import MessageDispatcher
from category_service.messaging.topics import all_topics, topic

__all__ = ["MessageDispatcher", "all_topics", "topic"]
