from __future__ import annotations

import logging
import secrets
from typing import Container, Optional

from app.settings import get_settings

logger = logging.getLogger(__name__)


def generate_session_code(
    taken: Container[str],
    length: Optional[int] = None,
    alphabet: Optional[str] = None,
    rng=secrets,
) -> str:
    """Return a short shareable code that is not already in ``taken``.

    ``taken`` is normally the session directory, whose membership test only
    counts live sessions, so codes of finished games can be reused.
    """
    settings = get_settings()
    length = length or settings.session_code_length
    alphabet = alphabet or settings.session_code_alphabet
    while True:
        code = "".join(rng.choice(alphabet) for _ in range(length))
        if code not in taken:
            return code
        logger.debug("Session code %s already in use, drawing again", code)
