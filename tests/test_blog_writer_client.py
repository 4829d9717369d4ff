"""Tests for the blog writer API client."""

import json

import httpx
import pytest
import pytest_asyncio

from aigateway.clients.blog_writer_client import BlogWriterClient, BlogWriterError
from aigateway.models.blog import BlogWriterRequest

BASE_URL = "https://blog-writer.example.com/"


class Upstream:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float):
        self.delays.append(seconds)


@pytest.fixture
def sleeper():
    return SleepRecorder()


def make_client(upstream, sleeper, **kwargs):
    return BlogWriterClient(
        base_url=BASE_URL,
        api_key=kwargs.pop("api_key", "bw-key"),
        transport=httpx.MockTransport(upstream),
        sleep=sleeper,
        **kwargs,
    )


@pytest_asyncio.fixture
async def client_factory(sleeper):
    clients = []

    def factory(upstream, **kwargs):
        client = make_client(upstream, sleeper, **kwargs)
        clients.append(client)
        return client

    yield factory
    for client in clients:
        await client.close()


@pytest.mark.asyncio
async def test_generate_blog_post(client_factory):
    upstream = Upstream(
        httpx.Response(
            200,
            json={"title": "Tea", "content": "All about tea", "word_count": 3, "metadata": {"model_used": "m"}},
        )
    )
    client = client_factory(upstream)

    result = await client.generate_blog_post(BlogWriterRequest(topic="Tea", keywords=["green"]))

    assert result["title"] == "Tea"
    assert result["metadata"]["processing_time"] >= 0

    sent = upstream.requests[0]
    assert str(sent.url) == "https://blog-writer.example.com/generate"
    assert sent.headers["Authorization"] == "Bearer bw-key"
    body = json.loads(sent.content)
    assert body["topic"] == "Tea"
    assert body["keywords"] == ["green"]
    assert "target_audience" not in body


@pytest.mark.asyncio
async def test_no_authorization_without_key(client_factory):
    upstream = Upstream(httpx.Response(200, json={"status": "healthy"}))
    client = client_factory(upstream, api_key=None)

    await client.health_check()

    assert "Authorization" not in upstream.requests[0].headers


@pytest.mark.asyncio
async def test_retries_with_exponential_backoff(client_factory, sleeper):
    upstream = Upstream(
        httpx.Response(503),
        httpx.Response(503),
        httpx.Response(200, json={"tones": ["casual"]}),
    )
    client = client_factory(upstream)

    result = await client.get_available_options()

    assert result == {"tones": ["casual"]}
    assert len(upstream.requests) == 3
    assert sleeper.delays == [2, 4]
    assert upstream.requests[0].url.path == "/options"


@pytest.mark.asyncio
async def test_error_message_from_body(client_factory, sleeper):
    upstream = Upstream(httpx.Response(400, json={"message": "Topic too short"}))
    client = client_factory(upstream, retry_attempts=2)

    with pytest.raises(BlogWriterError, match="Topic too short"):
        await client.generate_blog_post(BlogWriterRequest(topic="x"))

    assert len(upstream.requests) == 2
    assert sleeper.delays == [2]


@pytest.mark.asyncio
async def test_error_message_from_status(client_factory):
    upstream = Upstream(httpx.Response(500, text="oops"))
    client = client_factory(upstream, retry_attempts=1)

    with pytest.raises(BlogWriterError, match="HTTP 500: Internal Server Error"):
        await client.health_check()


@pytest.mark.asyncio
async def test_timeout_is_not_retried(client_factory, sleeper):
    upstream = Upstream(httpx.ReadTimeout("slow"))
    client = client_factory(upstream)

    with pytest.raises(BlogWriterError, match="Request timeout"):
        await client.health_check()

    assert len(upstream.requests) == 1
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_connection_errors_are_retried(client_factory, sleeper):
    upstream = Upstream(httpx.ConnectError("refused"))
    client = client_factory(upstream, retry_attempts=3)

    with pytest.raises(BlogWriterError, match="refused"):
        await client.health_check()

    assert len(upstream.requests) == 3
    assert sleeper.delays == [2, 4]


def test_config_round_trip():
    client = BlogWriterClient(base_url=BASE_URL, api_key="secret")
    client.update_config(base_url="https://other.example.com/", timeout=10)

    config = client.get_config()
    assert config == {
        "base_url": "https://other.example.com",
        "timeout": 10,
        "retry_attempts": 3,
    }
    assert "api_key" not in config
