"""Tests for the managed posts client."""

import asyncio
import logging

import aiohttp
import pytest

from postsapi.auth import TokenStore
from postsapi.client import PostsClient
from postsapi.config import ClientConfig
from postsapi.constants import DEMO_ACCESS_TOKEN, DEMO_REFRESH_TOKEN, LOGIN_PATH, REFRESH_PATH
from postsapi.exceptions import (
    ClassifiedError,
    NetworkError,
    NotFoundError,
    UnauthorizedError,
    UnclassifiedError,
)
from postsapi.interceptors import (
    AuthInterceptor,
    LoggingInterceptor,
    RefreshTokenInterceptor,
    RetryInterceptor,
)
from postsapi.models import Post, Response


@pytest.fixture
def client(transport, sink, sleeper):
    return PostsClient(transport=transport, sink=sink, sleep=sleeper)


def run(coro):
    return asyncio.run(coro)


# ── Scenarios ───────────────────────────────────────────────────────────


def test_missing_post_is_not_found_without_retry(client, transport, sleeper):
    transport.queue("/posts/999", Response(404))

    with pytest.raises(NotFoundError):
        run(client.fetch_one("posts", 999))

    assert len(transport.calls) == 1
    assert sleeper.delays == []


def test_three_503s_then_success(client, transport, sink, sleeper, make_post, caplog):
    caplog.set_level(logging.INFO, logger="postsapi.interceptors")
    transport.queue("/posts/1", Response(503), Response(503), Response(503), Response(200, make_post(1)))

    post = run(client.fetch_one("posts", 1))

    assert post == Post(id=1, user_id=1, title="title 1", body="body 1")
    assert sum(sleeper.delays) >= 7
    assert sleeper.delays == [1.0, 2.0, 4.0]
    assert len(sink.of_kind("retry")) == 3
    assert len([r for r in caplog.records if r.getMessage().startswith("Retry attempt")]) == 3


def test_401_refresh_success_replays_once(client, transport, make_post):
    client.tokens.set_tokens("expired", "refresh-1")
    transport.queue("/posts/1", Response(401), Response(200, make_post(1)))
    transport.queue(REFRESH_PATH, Response(200, {"access_token": "fresh"}))

    post = run(client.fetch_one("posts", 1))

    assert post.id == 1
    assert len(transport.calls_to("/posts/1")) == 2
    assert transport.calls_to("/posts/1")[1]["headers"]["Authorization"] == "Bearer fresh"
    assert client.tokens.get_access() == "fresh"
    assert client.is_authenticated()


def test_401_without_refresh_token(client, transport, sleeper):
    transport.queue("/posts/1", Response(401))

    with pytest.raises(UnauthorizedError) as exc_info:
        run(client.fetch_one("posts", 1))

    assert exc_info.value.message == "Unauthorized - Please login again"
    assert len(transport.calls) == 1
    assert sleeper.delays == []


def test_failed_refresh_logs_out(client, transport):
    client.tokens.set_tokens("expired", "refresh-1")
    transport.queue("/posts", Response(401))
    transport.queue(REFRESH_PATH, Response(503))

    with pytest.raises(UnauthorizedError):
        run(client.fetch_all("posts"))

    assert not client.is_authenticated()
    assert client.tokens.get_refresh() is None


def test_network_failure_surfaces_classified_error(client, transport, sleeper):
    failure = aiohttp.ClientConnectionError("unreachable")
    transport.queue("/posts", failure, failure, failure, failure)

    with pytest.raises(NetworkError) as exc_info:
        run(client.fetch_all())

    assert isinstance(exc_info.value, ClassifiedError)
    assert len(transport.calls) == 4


# ── Authentication ──────────────────────────────────────────────────────


def test_login_stores_returned_tokens(client, transport):
    transport.queue(LOGIN_PATH, Response(200, {"access_token": "a1", "refresh_token": "r1"}))

    run(client.login("user@example.com", "secret"))

    call = transport.calls[0]
    assert call["method"] == "POST"
    assert call["body"] == {"email": "user@example.com", "password": "secret"}
    assert client.tokens.get_access() == "a1"
    assert client.tokens.get_refresh() == "r1"
    assert client.is_authenticated()


def test_login_falls_back_to_demo_tokens(client, transport):
    transport.queue(LOGIN_PATH, Response(201, {}))

    run(client.login("user@example.com", "secret"))

    assert client.tokens.get_access() == DEMO_ACCESS_TOKEN
    assert client.tokens.get_refresh() == DEMO_REFRESH_TOKEN


def test_login_failure_leaves_store_untouched(client, transport):
    transport.queue(LOGIN_PATH, Response(404))

    with pytest.raises(NotFoundError):
        run(client.login("user@example.com", "secret"))

    assert not client.is_authenticated()


def test_logout_clears_tokens(client):
    client.tokens.set_tokens("a1", "r1")
    run(client.logout())
    assert not client.is_authenticated()
    assert client.tokens.get_refresh() is None


def test_shared_token_store(transport):
    store = TokenStore()
    store.set_access("shared")
    api = PostsClient(transport=transport, token_store=store)
    transport.queue("/posts", Response(200, []))

    assert run(api.fetch_all()) == []
    assert transport.calls[0]["headers"]["Authorization"] == "Bearer shared"


# ── Entities ────────────────────────────────────────────────────────────


def test_fetch_all_decodes_posts(client, transport, make_post):
    transport.queue("/posts", Response(200, [make_post(1), make_post(2)]))

    posts = run(client.fetch_all("posts"))

    assert [post.id for post in posts] == [1, 2]
    assert all(isinstance(post, Post) for post in posts)


def test_create_sends_json_body(client, transport, make_post):
    post = Post(id=0, user_id=7, title="hello", body="world")
    transport.queue("/posts", Response(201, make_post(101, userId=7, title="hello", body="world")))

    created = run(client.create("posts", post))

    assert transport.calls[0]["method"] == "POST"
    assert transport.calls[0]["body"] == {"id": 0, "userId": 7, "title": "hello", "body": "world"}
    assert created.id == 101


def test_update_puts_to_entity_path(client, transport, make_post):
    transport.queue("/posts/3", Response(200, make_post(3, title="changed")))

    updated = run(client.update("posts", 3, {"id": 3, "userId": 1, "title": "changed", "body": "b"}))

    assert transport.calls[0]["method"] == "PUT"
    assert updated.title == "changed"


def test_delete(client, transport):
    transport.queue("/posts/3", Response(200, {}))
    assert run(client.delete("posts", 3)) is None
    assert transport.calls[0]["method"] == "DELETE"


def test_malformed_payload_is_unclassified(client, transport):
    transport.queue("/posts/1", Response(200, {"id": 1}))

    with pytest.raises(UnclassifiedError) as exc_info:
        run(client.fetch_one("posts", 1))

    assert exc_info.value.data == {"id": 1}


def test_fetch_all_rejects_non_list(client, transport):
    transport.queue("/posts", Response(200, "<html>"))

    with pytest.raises(UnclassifiedError):
        run(client.fetch_all("posts"))


def test_unknown_resource_is_rejected_before_sending(client, transport):
    with pytest.raises(ValueError, match="Unsupported resource"):
        run(client.fetch_all("comments"))
    assert transport.calls == []


# ── Configuration ───────────────────────────────────────────────────────


def test_config_normalizes_base_url():
    assert ClientConfig(base_url=" https://example.test//").base_url == "https://example.test/"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_retries": -1},
        {"initial_delay_s": -0.5},
        {"connect_timeout_s": 0},
        {"base_url": "  "},
    ],
)
def test_config_rejects_invalid_values(kwargs):
    with pytest.raises(ValueError):
        ClientConfig(**kwargs)


def test_config_drives_retry_policy(transport, sleeper):
    api = PostsClient(
        ClientConfig(max_retries=1, initial_delay_s=0.25),
        transport=transport,
        sleep=sleeper,
    )
    transport.queue("/posts", Response(500), Response(500))

    with pytest.raises(ClassifiedError):
        run(api.fetch_all())

    assert sleeper.delays == [0.25]
    assert len(transport.calls) == 2


def test_interceptors_registered_in_order(client):
    assert [type(i) for i in client.chain.interceptors] == [
        LoggingInterceptor,
        AuthInterceptor,
        RefreshTokenInterceptor,
        RetryInterceptor,
    ]
