import httpx
import pytest

from app.clients.onboarding import OnboardingClient, OnboardingTimeout


def _client_for(responses: list, seen: list) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        item = responses.pop(0) if len(responses) > 1 else responses[0]
        if isinstance(item, Exception):
            raise item
        return item
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def test_polls_until_bound():
    seen = []
    responses = [
        httpx.Response(200, json={"state": "pending"}),
        httpx.Response(503, json={"error": "transient"}),
        httpx.ConnectError("refused"),
        httpx.Response(200, json={"state": "bound", "organization_id": "o-1", "role": "agent"}),
    ]
    async with _client_for(responses, seen) as http:
        body = await OnboardingClient("http://api.test/api/v1/", "tok", client=http, attempts=5, interval=0).wait_until_bound()

    assert body["role"] == "agent"
    assert len(seen) == 4
    assert str(seen[0].url) == "http://api.test/api/v1/onboarding/status"
    assert seen[0].headers["authorization"] == "Bearer tok"


async def test_gives_up_after_bounded_attempts():
    seen = []
    async with _client_for([httpx.Response(200, json={"state": "pending"})], seen) as http:
        with pytest.raises(OnboardingTimeout) as exc:
            await OnboardingClient("http://api.test", "tok", client=http, attempts=3, interval=0).wait_until_bound()

    assert len(seen) == 3
    assert exc.value.attempts == 3
    assert exc.value.last_state == "pending"


async def test_client_errors_are_not_retried():
    seen = []
    async with _client_for([httpx.Response(401, json={"detail": "Missing token"})], seen) as http:
        with pytest.raises(httpx.HTTPStatusError):
            await OnboardingClient("http://api.test", "tok", client=http, attempts=3, interval=0).wait_until_bound()
    assert len(seen) == 1


def test_attempts_must_be_positive():
    with pytest.raises(ValueError):
        OnboardingClient("http://api.test", "tok", attempts=0)
