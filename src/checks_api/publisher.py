"""Hand-off point between finished check run models and a checks backend."""

import logging
from abc import ABC, abstractmethod

from checks_api.errors import require_not_none
from checks_api.models import ChecksDetails

logger = logging.getLogger(__name__)


class ChecksPublisher(ABC):
    """Publishes finished check runs to a checks backend."""

    @abstractmethod
    def publish(self, details: ChecksDetails) -> None:
        """Create or update the check run described by the given details.

        Implementations identify the check run by ``details.name``.

        :param details: the validated details of the check run
        """


class LoggingChecksPublisher(ChecksPublisher):
    """Publisher only logging the check runs it receives, for runs without backend."""

    def publish(self, details: ChecksDetails) -> None:
        """Log a short line per check run, and the full details at debug level."""
        require_not_none(details, "details")
        logger.info(
            "[checks-api] Check run %r: status %s, conclusion %s",
            details.name,
            details.status,
            details.conclusion,
        )
        logger.debug("[checks-api] %s", details.model_dump_json())
