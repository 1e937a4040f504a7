import logging
import os

from lessontrack.domain.ports import IdentityProvider

logger = logging.getLogger(__name__)

USER_ID_ENV = "LESSONTRACK_USER_ID"


class StaticIdentity(IdentityProvider):
    def __init__(self, user_id: int | None = None):
        self._user_id = user_id

    def get_user_id(self) -> int | None:
        return self._user_id


class EnvIdentityProvider(IdentityProvider):
    """Reads the numeric user id from ``LESSONTRACK_USER_ID``."""

    def __init__(self, env_var: str = USER_ID_ENV):
        self.env_var = env_var

    def get_user_id(self) -> int | None:
        raw = os.environ.get(self.env_var, "").strip()
        if not raw:
            return None
        try:
            return int(raw)
        except ValueError:
            logger.warning(f"Ignoring non-numeric {self.env_var}={raw!r}")
            return None
