import logging

from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy.types import TypeDecorator, Text

from config import DB_ENCRYPTION_KEY

logger = logging.getLogger(__name__)

_FERNET = Fernet(DB_ENCRYPTION_KEY) if DB_ENCRYPTION_KEY else None
if _FERNET is None:
    logger.warning("DB_ENCRYPTION_KEY is not set; sensitive columns are stored in plain text")


class EncryptedString(TypeDecorator):
    """
    Encrypts free text before it is written and decrypts it when loaded.

    Used for descriptions, comments and login audit details. Values written
    before a key was configured are returned unchanged.
    """
    impl = Text  # ciphertext is longer than the plaintext
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None or _FERNET is None:
            return value
        return _FERNET.encrypt(value.encode("utf-8")).decode("utf-8")

    def process_result_value(self, value, dialect):
        if value is None or _FERNET is None:
            return value
        try:
            return _FERNET.decrypt(value.encode("utf-8")).decode("utf-8")
        except InvalidToken:
            return value
