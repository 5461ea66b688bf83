import base64
import hashlib
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

from cryptography.fernet import Fernet, InvalidToken
from pydantic import ValidationError
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

# State & Infra Imports
from ..state.models import ConversationState
from ..infrastructure.database.tables import ConversationDBModel, utc_now
from ..infrastructure.database.connection import init_db

logger = logging.getLogger(__name__)


def sha256_hex(*parts: str) -> str:
    digest = hashlib.sha256()
    for part in parts:
        digest.update((part or "").encode("utf-8"))
    return digest.hexdigest()


class StateStore(ABC):
    """
    Defines how the application persists conversation state between inbound
    messages. This allows us to change where state lives (cookie -> SQL)
    without changing the engine or the service.
    """

    @abstractmethod
    def load(self, sender: str, cookie: Optional[str] = None) -> Optional[ConversationState]:
        """Returns the persisted state for this sender, or None for a new conversation."""
        pass

    @abstractmethod
    def save(self, state: ConversationState) -> Optional[str]:
        """Persists the state. Returns a cookie value when the state travels client-side."""
        pass

    @abstractmethod
    def discard(self, sender: str):
        """Forgets the conversation (it completed or failed)."""
        pass

    def get(self, sender: str) -> Optional[ConversationState]:
        """Server-side lookup; client-side stores have nothing to return."""
        return None


class CookieStateCodec:
    """
    Signs and encrypts a ConversationState into an opaque cookie value.
    """

    def __init__(self, secret: str):
        # Fernet wants 32 url-safe base64-encoded bytes
        key = base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest())
        self._fernet = Fernet(key)

    @classmethod
    def from_twilio_credentials(cls, account_sid: str, auth_token: str) -> "CookieStateCodec":
        return cls(sha256_hex(account_sid, auth_token))

    def encode(self, state: ConversationState) -> str:
        payload = state.model_dump_json().encode("utf-8")
        return self._fernet.encrypt(payload).decode("ascii")

    def decode(self, token: str) -> ConversationState:
        """Raises InvalidToken or ValidationError when the token cannot be trusted."""
        payload = self._fernet.decrypt(token.encode("ascii"))
        return ConversationState.model_validate_json(payload)


class CookieStateStore(StateStore):
    """
    Keeps the state client-side, in a cookie Twilio sends back with every
    message of the conversation.
    """

    def __init__(self, codec: CookieStateCodec):
        self.codec = codec

    def load(self, sender: str, cookie: Optional[str] = None) -> Optional[ConversationState]:
        if not cookie:
            return None
        try:
            state = self.codec.decode(cookie)
        except (InvalidToken, ValidationError, UnicodeEncodeError):
            logger.warning(f"Rejected an invalid state cookie from {sender}; starting over")
            return None
        if state.sender != sender:
            logger.warning(f"State cookie belongs to another sender; starting over for {sender}")
            return None
        return state

    def save(self, state: ConversationState) -> Optional[str]:
        return self.codec.encode(state)

    def discard(self, sender: str):
        # The transport clears the cookie
        pass


class InMemoryStateStore(StateStore):
    """
    Uses in-memory dictionary for state storage for testing/dev purposes.
    """

    def __init__(self):
        self._store: Dict[str, ConversationState] = {}

    def load(self, sender: str, cookie: Optional[str] = None) -> Optional[ConversationState]:
        state = self._store.get(sender)
        return state.model_copy(deep=True) if state else None

    def save(self, state: ConversationState) -> Optional[str]:
        self._store[state.sender] = state.model_copy(deep=True)
        return None

    def discard(self, sender: str):
        self._store.pop(sender, None)

    def get(self, sender: str) -> Optional[ConversationState]:
        return self.load(sender)


class SQLStateStore(StateStore):
    """
    Relational storage for conversation state (JSONB on PostgreSQL).
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        init_db(engine)

    def load(self, sender: str, cookie: Optional[str] = None) -> Optional[ConversationState]:
        with Session(self.engine) as db:
            statement = select(ConversationDBModel).where(ConversationDBModel.sender == sender)
            result = db.exec(statement).first()

            if not result:
                return None

            # Deserialize JSON back into the Pydantic state model
            try:
                return ConversationState.model_validate(result.state)
            except ValidationError:
                logger.warning(f"Discarding unreadable state stored for {sender}")
                db.delete(result)
                db.commit()
                return None

    def save(self, state: ConversationState) -> Optional[str]:
        with Session(self.engine) as db:
            statement = select(ConversationDBModel).where(
                ConversationDBModel.sender == state.sender
            )
            result = db.exec(statement).first()

            if result:
                # Update the JSON blob and the timestamp
                result.state = state.model_dump(mode="json")
                result.interaction_id = state.interaction_id
                result.updated_at = utc_now()
                db.add(result)
            else:
                db.add(
                    ConversationDBModel(
                        sender=state.sender,
                        interaction_id=state.interaction_id,
                        state=state.model_dump(mode="json"),
                    )
                )
            db.commit()
        return None

    def discard(self, sender: str):
        with Session(self.engine) as db:
            statement = select(ConversationDBModel).where(ConversationDBModel.sender == sender)
            result = db.exec(statement).first()

            if result:
                db.delete(result)
                db.commit()

    def get(self, sender: str) -> Optional[ConversationState]:
        return self.load(sender)
