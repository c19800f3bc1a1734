from __future__ import annotations

import hmac
import logging


logger = logging.getLogger(__name__)


def verify_admin_token(token: str | None, expected_token: str | None, env: str) -> bool:
    if not expected_token:
        if env.lower() in {"dev", "local"}:
            logger.warning("ADMIN_TOKEN not set; accepting admin request in dev mode")
            return True
        logger.error("ADMIN_TOKEN not set; rejecting admin request")
        return False

    if not token:
        return False

    return hmac.compare_digest(token.encode("utf-8"), expected_token.encode("utf-8"))
