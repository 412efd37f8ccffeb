"""
Competency store client.

Pushes a finished session's competency scores to the external competency
tracker. Submission is best-effort: the engine schedules it without waiting,
and any failure is only logged.
"""

import logging
from typing import Any

import httpx

from unified_interview.config import get_settings

logger = logging.getLogger(__name__)


class CompetencyStoreClient:
    """HTTP client for the competency tracker."""

    SUBMIT_PATH = "/competency-scores"

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Tracker base URL (uses config if not provided).
            timeout: Request timeout in seconds (uses config if not provided).
            http_client: Pre-built client, mainly for tests.
        """
        settings = get_settings()
        self._base_url = base_url or settings.competency_store_url
        self._timeout = timeout or settings.llm_timeout
        self._client = http_client

    @property
    def enabled(self) -> bool:
        return bool(self._base_url) or self._client is not None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url or "",
                timeout=self._timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def submit(self, user_id: str, session_id: str, scores: dict[str, int]) -> bool:
        """
        Submit competency scores for a user.

        Args:
            user_id: Candidate the scores belong to.
            session_id: Session that produced them.
            scores: Competency id to 1-5 score.

        Returns:
            True if the tracker accepted the scores, False otherwise.
        """
        if not self.enabled:
            logger.debug("Competency store not configured; submission skipped")
            return False

        payload: dict[str, Any] = {
            "userId": user_id,
            "sessionId": session_id,
            "competencyScores": scores,
        }
        try:
            client = await self._get_client()
            response = await client.post(self.SUBMIT_PATH, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Competency submission failed for session {session_id}: {e}")
            return False

        logger.info(f"Submitted {len(scores)} competency scores for session {session_id}")
        return True
