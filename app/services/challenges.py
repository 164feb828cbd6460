"""
Wallet challenge manager.

A challenge is created for a wallet address, signed off-band by the wallet, and
redeemed at most once. Redemption is a single conditional UPDATE on the `used`
flag, so two concurrent requests carrying the same valid signature cannot both win.
"""

import logging
import time

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.wallet_auth import generate_challenge, verify_signature
from app.models.auth import AuthChallenge

logger = logging.getLogger(__name__)


def create_challenge(db: Session, wallet_address: str) -> str:
    """Generate and store a challenge for a wallet address."""
    challenge = generate_challenge()
    now = int(time.time())

    db.add(
        AuthChallenge(
            wallet_address=wallet_address,
            challenge=challenge,
            created_at=now,
            expires_at=now + settings.NONCE_EXPIRY_SECONDS,
            used=False,
        )
    )
    db.commit()
    logger.debug("issued challenge for wallet %s", wallet_address)
    return challenge


def consume_challenge(db: Session, wallet_address: str, challenge: str) -> bool:
    """
    Atomically mark an unused, unexpired challenge as used.

    Returns True only for the caller whose update flipped the flag.
    """
    now = int(time.time())
    result = db.execute(
        update(AuthChallenge)
        .where(
            AuthChallenge.wallet_address == wallet_address,
            AuthChallenge.challenge == challenge,
            AuthChallenge.used.is_(False),
            AuthChallenge.expires_at > now,
        )
        .values(used=True)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1


def verify_and_consume(
    db: Session, wallet_address: str, challenge: str, signature: str, public_key: str
) -> bool:
    """
    Redeem a signed challenge.

    The signature must verify over the exact challenge text with a public key that
    belongs to the wallet, and the stored challenge must be unused and unexpired.
    The used flag is committed before returning, ahead of any identity mutation.
    """
    if not verify_signature(wallet_address, challenge, signature, public_key):
        logger.info("rejected wallet signature for %s", wallet_address)
        return False

    if not consume_challenge(db, wallet_address, challenge):
        logger.info("rejected unknown, used or expired challenge for %s", wallet_address)
        return False

    return True
