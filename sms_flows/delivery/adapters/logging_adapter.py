import logging
from typing import Optional

from ..interface import MessageSender

logger = logging.getLogger(__name__)


class LoggingMessageSender(MessageSender):
    """
    Dry-run gateway used when no Twilio credentials are configured.
    Messages are only written to the log.
    """

    async def send(self, to: str, body: str) -> Optional[str]:
        logger.info(f"[dry-run] SMS to {to}: {body}")
        return None
