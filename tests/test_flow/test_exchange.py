"""Tests for the token request and TokenExchanger, using httpx.MockTransport."""

from __future__ import annotations

import json
from typing import Callable
from urllib.parse import parse_qs

import httpx
import pytest

from oauth_code_token.flow.exchange import MAX_REDIRECTS, TokenExchanger, build_token_request
from oauth_code_token.models import ResultSource


def _make_transport(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.MockTransport:
    """Create an httpx.MockTransport from a handler function."""
    return httpx.MockTransport(handler)


def _form(request: httpx.Request) -> dict[str, list[str]]:
    return parse_qs(request.content.decode("ascii"))


class TestBuildTokenRequest:
    def test_public_client_fields(self, flow_config, material) -> None:
        data, _ = build_token_request(flow_config, material, "the-code")
        assert data == {
            "grant_type": "authorization_code",
            "code": "the-code",
            "client_id": "abc",
            "code_verifier": material.code_verifier,
            "redirect_uri": "http://localhost:4321/cb",
        }

    def test_client_secret_included_when_set(self, config_factory, material) -> None:
        config = config_factory(client_secret="s3cr3t")
        data, _ = build_token_request(config, material, "c")
        assert data["client_secret"] == "s3cr3t"

    def test_headers_without_spa(self, flow_config, material) -> None:
        _, headers = build_token_request(flow_config, material, "c")
        assert headers == {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }

    def test_spa_adds_origin(self, config_factory, material) -> None:
        config = config_factory(is_spa=True)
        _, headers = build_token_request(config, material, "c")
        assert headers["Origin"] == "http://localhost"


class TestTokenExchanger:
    def test_posts_form_to_token_endpoint(self, flow_config, material, quiet_output) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, text='{"access_token": "at"}')

        exchanger = TokenExchanger(flow_config, material, transport=_make_transport(handler))
        exchanger.exchange("the-code")

        assert len(captured) == 1
        request = captured[0]
        assert request.method == "POST"
        assert str(request.url) == "https://idp.example/token"
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert request.headers["accept"] == "application/json"
        assert "origin" not in request.headers
        form = _form(request)
        assert form["code"] == ["the-code"]
        assert form["code_verifier"] == [material.code_verifier]
        assert form["grant_type"] == ["authorization_code"]
        assert "client_secret" not in form

    def test_spa_request_carries_origin(self, config_factory, material, quiet_output) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, text="{}")

        config = config_factory(is_spa=True)
        TokenExchanger(config, material, transport=_make_transport(handler)).exchange("c")
        assert captured[0].headers["origin"] == "http://localhost"

    def test_success_body_passed_through_verbatim(self, flow_config, material, quiet_output) -> None:
        body = '{"access_token":"at",  "token_type": "Bearer" ,"expires_in":3600}'
        transport = _make_transport(lambda request: httpx.Response(200, text=body))

        result = TokenExchanger(flow_config, material, transport=transport).exchange("c")

        assert result.body == body
        assert result.status_code == 200
        assert result.source == ResultSource.PROVIDER
        assert result.ok is True

    def test_error_status_passed_through(self, flow_config, material, quiet_output) -> None:
        body = '{"error":"invalid_grant","error_description":"code expired"}'
        transport = _make_transport(lambda request: httpx.Response(400, text=body))

        result = TokenExchanger(flow_config, material, transport=transport).exchange("c")

        assert result.body == body
        assert result.status_code == 400
        assert result.source == ResultSource.PROVIDER
        assert result.ok is False

    def test_non_json_body_passed_through(self, flow_config, material, quiet_output) -> None:
        transport = _make_transport(
            lambda request: httpx.Response(503, text="<html>Service Unavailable</html>")
        )
        result = TokenExchanger(flow_config, material, transport=transport).exchange("c")
        assert result.body == "<html>Service Unavailable</html>"
        assert result.status_code == 503

    def test_follows_redirect(self, flow_config, material, quiet_output) -> None:
        paths: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            if request.url.path == "/token":
                return httpx.Response(307, headers={"Location": "/v2/token"})
            return httpx.Response(200, text='{"access_token": "at"}')

        result = TokenExchanger(flow_config, material, transport=_make_transport(handler)).exchange("c")

        assert paths == ["/token", "/v2/token"]
        assert result.ok is True

    def test_too_many_redirects_is_local_error(self, flow_config, material, quiet_output) -> None:
        hits: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            hits.append(1)
            return httpx.Response(307, headers={"Location": "/token"})

        result = TokenExchanger(flow_config, material, transport=_make_transport(handler)).exchange("c")

        assert len(hits) == MAX_REDIRECTS + 1
        assert result.source == ResultSource.LOCAL
        assert result.status_code == 502
        assert json.loads(result.body)["error"] == "transport_error"

    @pytest.mark.parametrize(
        "exc",
        [
            httpx.ConnectError("Connection refused"),
            httpx.ReadTimeout("timed out"),
        ],
    )
    def test_transport_failure_is_local_error(self, flow_config, material, quiet_output, exc) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise exc

        result = TokenExchanger(flow_config, material, transport=_make_transport(handler)).exchange("c")

        payload = json.loads(result.body)
        assert payload["error"] == "transport_error"
        assert payload["error_description"] == str(exc)
        assert result.status_code == 502
        assert result.source == ResultSource.LOCAL

    def test_connection_refused(self, config_factory, material, free_port, quiet_output) -> None:
        config = config_factory(token_endpoint=f"http://127.0.0.1:{free_port}/token")

        result = TokenExchanger(config, material, timeout=5).exchange("c")

        payload = json.loads(result.body)
        assert payload["error"] == "transport_error"
        assert payload["error_description"]
        assert result.ok is False

    def test_undecodable_body_is_local_error(self, flow_config, material, quiet_output) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                headers={"Content-Encoding": "gzip"},
                stream=httpx.ByteStream(b"this is not gzip"),
            )

        result = TokenExchanger(flow_config, material, transport=_make_transport(handler)).exchange("c")

        assert result.source == ResultSource.LOCAL
        assert result.status_code == 502
        assert json.loads(result.body)["error"] == "transport_error"
