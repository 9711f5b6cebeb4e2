"""
Session Identifier Allocation

Every click event carries a session id that correlates clicks from one visit.
Clients may supply their own; the service never validates it beyond
non-emptiness and does not try to detect forgery. When none is supplied a
random opaque token is allocated.
"""

import secrets
from typing import Optional

from app.core.setting import settings


def resolve_session_id(client_supplied: Optional[str] = None) -> str:
    """
    Return the client's session id, or allocate a new one.

    Args:
        client_supplied: Session id sent by the client, if any

    Returns:
        The client's id unchanged when non-empty, otherwise a hex token
        with SESSION_ID_BYTES (at least 16, i.e. 128 bits) of randomness
    """
    if client_supplied:
        return client_supplied

    return secrets.token_hex(settings.SESSION_ID_BYTES)
