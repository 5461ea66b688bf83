import asyncio
import logging
from typing import Optional

from twilio.rest import Client

from ..interface import MessageSender

logger = logging.getLogger(__name__)


class TwilioMessageSender(MessageSender):
    def __init__(self, account_sid: str, auth_token: str, messaging_service_sid: str):
        self.client = Client(account_sid, auth_token)
        self.messaging_service_sid = messaging_service_sid

    async def send(self, to: str, body: str) -> Optional[str]:
        # The Twilio REST client is synchronous; keep it off the event loop.
        loop = asyncio.get_running_loop()
        message = await loop.run_in_executor(
            None,
            lambda: self.client.messages.create(
                to=to,
                body=body,
                messaging_service_sid=self.messaging_service_sid,
            ),
        )
        logger.info(f"Sent SMS {message.sid} to {to}")
        return message.sid
