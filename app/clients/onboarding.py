"""Client-side wait for an identity's onboarding to complete.

Signup flows redirect to the app only once ``/onboarding/status`` reports the
profile as bound. This polls with a fixed interval and a bounded number of
attempts instead of spinning on the profile row.
"""
import asyncio
import logging
import httpx

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 10
DEFAULT_INTERVAL = 0.5


class OnboardingTimeout(Exception):
    def __init__(self, attempts: int, last_state: str | None = None):
        self.attempts = attempts
        self.last_state = last_state
        super().__init__(f"Onboarding not completed after {attempts} attempts (last state: {last_state or 'unknown'})")


class OnboardingClient:
    def __init__(self, base_url: str, token: str, client: httpx.AsyncClient | None = None,
                 attempts: int = DEFAULT_ATTEMPTS, interval: float = DEFAULT_INTERVAL, timeout: float = 10.0):
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.attempts = attempts
        self.interval = interval
        self.timeout = timeout
        self._client = client

    @property
    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"}

    async def _status(self, client: httpx.AsyncClient) -> dict | None:
        """One status check. ``None`` means a transient failure worth retrying."""
        try:
            resp = await client.get(f"{self.base_url}/onboarding/status", headers=self._headers, timeout=self.timeout)
        except httpx.TransportError as e:
            logger.warning(f"Onboarding status request failed: {e}")
            return None
        if resp.status_code == 503:
            return None
        resp.raise_for_status()
        return resp.json()

    async def wait_until_bound(self) -> dict:
        """Poll until the profile is bound; returns the final status body."""
        if self._client is not None:
            return await self._poll(self._client)
        async with httpx.AsyncClient() as client:
            return await self._poll(client)

    async def _poll(self, client: httpx.AsyncClient) -> dict:
        last_state = None
        for attempt in range(1, self.attempts + 1):
            body = await self._status(client)
            if body is not None:
                last_state = body.get("state")
                if last_state == "bound":
                    logger.info(f"Onboarding completed after {attempt} attempt(s)")
                    return body
            if attempt < self.attempts:
                await asyncio.sleep(self.interval)
        raise OnboardingTimeout(self.attempts, last_state)
