"""JWT validation for session-authenticated callers."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from jose import JWTError, jwt

from aigateway.config import settings

logger = logging.getLogger(__name__)


class JWTService:
    """Validates session tokens and pulls caller identity out of the claims."""

    def __init__(self, secret_key: str = None, algorithm: str = None):
        self.secret_key = secret_key or settings.JWT_SECRET_KEY
        self.algorithm = algorithm or settings.JWT_ALGORITHM

    def validate_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Validate a bearer token.

        Args:
            token: JWT token string

        Returns:
            Dict of claims if valid, None otherwise
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])

            exp = payload.get("exp")
            if exp and datetime.now(timezone.utc) > datetime.fromtimestamp(exp, tz=timezone.utc):
                logger.warning("Token has expired")
                return None

            if not self.get_user_id(payload):
                logger.warning("Token carries neither user_id nor sub")
                return None

            logger.debug(f"Validated token for user: {self.get_user_id(payload)}")
            return payload

        except JWTError as e:
            logger.warning(f"JWT validation failed: {e}")
            return None

    def get_user_id(self, payload: Dict[str, Any]) -> Optional[str]:
        return payload.get("user_id") or payload.get("sub")

    def get_tenant_id(self, payload: Dict[str, Any]) -> Optional[str]:
        return payload.get("tenant_id")

    def get_roles(self, payload: Dict[str, Any]) -> List[str]:
        """Roles claim as a list; a single ``role`` string is accepted too."""
        roles = payload.get("roles", payload.get("role", []))
        if isinstance(roles, str):
            return [roles]
        return roles if isinstance(roles, list) else []
