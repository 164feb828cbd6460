from enum import Enum
from typing import Optional

from app.core.config import settings


class Role(str, Enum):
    """Privilege tier of an identity."""

    USER = "user"
    ADMIN = "admin"


def determine_role(wallet_address: Optional[str], admin_wallet: Optional[str] = None) -> Role:
    """
    Map a wallet address to its privilege tier.

    The elevated tier goes to exactly one configured operator wallet. An empty
    configuration elevates nobody, and identities without a wallet are always
    ordinary users.
    """
    operator = settings.ADMIN_WALLET_ADDRESS if admin_wallet is None else admin_wallet
    if wallet_address and operator and wallet_address == operator:
        return Role.ADMIN
    return Role.USER
