from __future__ import annotations

import sys

import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def setup_logging():
    """Route loguru to the current stderr for each test and drop sinks afterwards."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG", format="<level>{level: <8}</level> | {name} - {message}")
    yield
    logger.remove()


@pytest.fixture
def log_messages():
    """Collect formatted loguru messages emitted during the test."""
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
