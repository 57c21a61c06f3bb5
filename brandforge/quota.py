import logging
from typing import Optional

from brandforge.errors import ErrorKind, GenerationError

logger = logging.getLogger(__name__)

QUOTA_EXCEEDED_MESSAGE = "Image quota exceeded for this API key. Enable billing or wait for reset."


class QuotaGuard:
    """
    Session-scoped latch for image-generation quota.

    Once an image call reports exhaustion, every later image attempt of the
    same session fails without reaching the service. Nothing clears it; a
    new session starts with a fresh guard.
    """

    def __init__(self):
        self.blocked = False
        self.retry_after: Optional[float] = None

    def check(self) -> None:
        if self.blocked:
            raise GenerationError(
                QUOTA_EXCEEDED_MESSAGE,
                kind=ErrorKind.QUOTA,
                retry_after=self.retry_after,
            )

    def record(self, error: GenerationError) -> None:
        if not error.is_quota:
            return
        if not self.blocked:
            logger.warning(f"Image quota exhausted, blocking further image requests: {error.message}")
        self.blocked = True
        if error.retry_after is not None:
            self.retry_after = error.retry_after
