"""Periodic removal of expired registrations and device tokens."""

import asyncio
import logging

from sqlmodel import Session

from pairing_server.database import engine
from pairing_server.services.pairing_service import PairingService
from pairing_server.services.registration_store import SqlRegistrationStore
from pairing_server.services.token_issuer import TokenIssuer
from pairing_server.services.token_store import SqlTokenStore

logger = logging.getLogger(__name__)


def sweep_expired() -> tuple[int, int]:
    """Run one sweep. Returns (registrations removed, tokens removed)."""
    with Session(engine) as session:
        issuer = TokenIssuer(SqlTokenStore(session))
        pairing = PairingService(SqlRegistrationStore(session), issuer)
        return pairing.sweep_expired(), issuer.sweep_expired()


async def sweep_loop(interval_seconds: int) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await asyncio.to_thread(sweep_expired)
        except Exception:
            logger.exception("Expired record sweep failed")
