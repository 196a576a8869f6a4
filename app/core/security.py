# app/core/security.py
import asyncio
import logging

from passlib.context import CryptContext

from .exceptions import CorruptCredential, InvalidInput

logger = logging.getLogger(__name__)


class CredentialStore:
    """
    Salted bcrypt hashing for user passwords.

    Plaintext passwords only ever pass through these methods; nothing here
    logs or returns them.
    """

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        if not password:
            raise InvalidInput("Password must not be empty")
        return self.pwd_context.hash(password)

    def verify(self, password: str, hashed_password: str) -> bool:
        if not password:
            return False
        try:
            return self.pwd_context.verify(password, hashed_password)
        except (ValueError, TypeError) as e:
            logger.error(f"Stored password hash could not be parsed: {type(e).__name__}")
            raise CorruptCredential() from e

    def dummy_verify(self) -> None:
        """Spend one verification worth of CPU without a real hash."""
        self.pwd_context.dummy_verify()

    # Hashing is CPU-bound; run it off the event loop
    async def hash_async(self, password: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.hash, password)

    async def verify_async(self, password: str, hashed_password: str) -> bool:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.verify, password, hashed_password)

    async def dummy_verify_async(self) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.dummy_verify)
