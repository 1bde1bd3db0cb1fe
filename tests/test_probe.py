"""Tests for the HTTP probe and status classification."""

import dataclasses

import httpx
import pytest

from labaudit.services.circuit_breaker import BreakerPolicy, RunCircuitBreaker
from labaudit.services.probe import (
    Expectation,
    HttpProbe,
    ProbeSpec,
    Verdict,
    classify_status,
    lookup,
    NOT_FOUND,
    parse_retry_after,
    MAX_RETRY_AFTER,
)


class TestClassifyStatus:
    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_required_refused_is_protected(self, status):
        assert classify_status(status, Expectation.auth_required()) == Verdict.PROTECTED

    @pytest.mark.parametrize("status", [200, 201, 204])
    def test_auth_required_answered_is_vulnerable(self, status):
        assert classify_status(status, Expectation.auth_required()) == Verdict.VULNERABLE

    def test_public_answered_is_accessible(self):
        assert classify_status(200, Expectation.public()) == Verdict.ACCESSIBLE

    @pytest.mark.parametrize("status", [401, 403])
    def test_public_refused_is_unexpectedly_protected(self, status):
        assert classify_status(status, Expectation.public()) == Verdict.UNEXPECTEDLY_PROTECTED

    def test_not_found_is_missing(self):
        assert classify_status(404, Expectation.auth_required()) == Verdict.MISSING
        assert classify_status(404, Expectation.public()) == Verdict.MISSING

    def test_server_error_is_unexpected(self):
        assert classify_status(500, Expectation.public()) == Verdict.UNEXPECTED_STATUS

    def test_rate_limited_is_never_an_endpoint_failure(self):
        assert classify_status(429, Expectation.auth_required()) == Verdict.RATE_LIMITED
        assert classify_status(429, Expectation.public()) == Verdict.RATE_LIMITED

    def test_explicit_statuses_decide_alone(self):
        retired = Expectation.status_in(404, 410)
        assert classify_status(404, retired) == Verdict.EXPECTED_STATUS
        assert classify_status(410, retired) == Verdict.EXPECTED_STATUS
        assert classify_status(200, retired) == Verdict.UNEXPECTED_STATUS
        assert classify_status(401, retired) == Verdict.UNEXPECTED_STATUS


class TestHelpers:
    def test_lookup_dotted_path(self):
        data = {"content": {"title": "POLITICA"}, "items": [{"id": 7}]}
        assert lookup(data, "content.title") == "POLITICA"
        assert lookup(data, "items.0.id") == 7
        assert lookup(data, "items.3.id") is NOT_FOUND
        assert lookup(data, "content.missing") is NOT_FOUND

    def test_lookup_keeps_falsy_values(self):
        assert lookup({"count": 0}, "count") == 0

    @pytest.mark.parametrize("header,expected", [
        ("3", 3),
        (" 0 ", 0),
        ("9999", MAX_RETRY_AFTER),
        (None, 1),
        ("Wed, 21 Oct 2026 07:28:00 GMT", 1),
    ])
    def test_parse_retry_after(self, header, expected):
        assert parse_retry_after(header) == expected


def make_probe(target, handler, breaker=None):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client, HttpProbe(client, target, breaker=breaker)


class TestHttpProbe:
    @pytest.mark.asyncio
    async def test_protected_endpoint(self, target):
        client, probe = make_probe(target, lambda request: httpx.Response(401))
        async with client:
            result = await probe.probe(ProbeSpec("GET", "/api/users", Expectation.auth_required()))
        assert result.verdict == Verdict.PROTECTED
        assert result.matched
        assert result.status_code == 401

    @pytest.mark.asyncio
    async def test_accessible_regardless_of_body(self, target):
        client, probe = make_probe(target, lambda request: httpx.Response(200, text="not json at all"))
        async with client:
            result = await probe.probe(ProbeSpec("GET", "/api/health"))
        assert result.verdict == Verdict.ACCESSIBLE

    @pytest.mark.asyncio
    async def test_token_only_sent_when_asked(self, target):
        seen = []

        def handler(request):
            seen.append(request.headers.get("Authorization"))
            return httpx.Response(200)

        client, probe = make_probe(target, handler)
        async with client:
            await probe.probe(ProbeSpec("GET", "/api/auth/user"))
            await probe.probe(ProbeSpec("GET", "/api/auth/user", auth=True))
        assert seen == [None, "Bearer test-token"]

    @pytest.mark.asyncio
    async def test_json_body_sent_for_post(self, target):
        seen = []

        def handler(request):
            seen.append(request.content)
            return httpx.Response(401)

        client, probe = make_probe(target, handler)
        async with client:
            await probe.probe(ProbeSpec("POST", "/api/lgpd/consent", Expectation.auth_required(), body={"a": 1}))
        assert seen == [b'{"a":1}'] or seen == [b'{"a": 1}']

    @pytest.mark.asyncio
    async def test_json_content_rules(self, target):
        client, probe = make_probe(target, lambda request: httpx.Response(200, json={"version": "2.0"}))
        expectation = Expectation.public(json_fields=("content.title",), json_equals=(("version", "1.0"),))
        async with client:
            result = await probe.probe(ProbeSpec("GET", "/api/lgpd/terms", expectation))
        assert result.verdict == Verdict.CONTENT_MISMATCH
        assert "content.title" in result.detail
        assert "'2.0'" in result.detail

    @pytest.mark.asyncio
    async def test_json_rules_on_non_json_body(self, target):
        client, probe = make_probe(target, lambda request: httpx.Response(200, text="<html></html>"))
        async with client:
            result = await probe.probe(ProbeSpec("GET", "/api/lgpd/terms", Expectation.public(json_fields=("version",))))
        assert result.verdict == Verdict.CONTENT_MISMATCH
        assert result.detail == "response body is not JSON"

    @pytest.mark.asyncio
    async def test_body_contains_uses_visible_html_text(self, target):
        page = "<html><head><title>x</title></head><body><h1>Termos <b>de Uso</b></h1></body></html>"
        client, probe = make_probe(
            target, lambda request: httpx.Response(200, text=page, headers={"content-type": "text/html"})
        )
        async with client:
            found = await probe.probe(ProbeSpec("GET", "/termos", Expectation.public(body_contains="Termos de Uso")))
            missing = await probe.probe(ProbeSpec("GET", "/termos", Expectation.public(body_contains="Privacidade")))
        assert found.verdict == Verdict.ACCESSIBLE
        assert missing.verdict == Verdict.CONTENT_MISMATCH

    @pytest.mark.asyncio
    async def test_content_rules_skipped_when_status_does_not_match(self, target):
        client, probe = make_probe(target, lambda request: httpx.Response(401))
        async with client:
            result = await probe.probe(ProbeSpec("GET", "/api/lgpd/terms", Expectation.public(json_fields=("version",))))
        assert result.verdict == Verdict.UNEXPECTEDLY_PROTECTED

    @pytest.mark.asyncio
    async def test_rate_limit_retried_after_retry_after(self, target):
        answers = [httpx.Response(429, headers={"Retry-After": "0"}), httpx.Response(403)]
        client, probe = make_probe(dataclasses.replace(target, max_retries=2), lambda request: answers.pop(0))
        async with client:
            result = await probe.probe(ProbeSpec("GET", "/api/users", Expectation.auth_required()))
        assert result.verdict == Verdict.PROTECTED
        assert answers == []

    @pytest.mark.asyncio
    async def test_persistent_rate_limit_is_inconclusive(self, target):
        calls = []

        def handler(request):
            calls.append(1)
            return httpx.Response(429, headers={"Retry-After": "0"})

        client, probe = make_probe(dataclasses.replace(target, max_retries=1), handler)
        async with client:
            result = await probe.probe(ProbeSpec("GET", "/api/users", Expectation.auth_required()))
        assert result.verdict == Verdict.RATE_LIMITED
        assert result.inconclusive
        assert not result.matched
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_expected_429_is_not_retried(self, target):
        client, probe = make_probe(dataclasses.replace(target, max_retries=3), lambda request: httpx.Response(429))
        async with client:
            result = await probe.probe(ProbeSpec("GET", "/api/limited", Expectation.status_in(429)))
        assert result.verdict == Verdict.EXPECTED_STATUS

    @pytest.mark.asyncio
    async def test_connection_error_is_unverified(self, target):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client, probe = make_probe(target, handler)
        async with client:
            result = await probe.probe(ProbeSpec("GET", "/api/users", Expectation.auth_required()))
        assert result.verdict == Verdict.UNVERIFIED
        assert "ConnectError" in result.detail

    @pytest.mark.asyncio
    async def test_timeout_is_unverified(self, target):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        client, probe = make_probe(target, handler)
        async with client:
            result = await probe.probe(ProbeSpec("GET", "/api/users"))
        assert result.verdict == Verdict.UNVERIFIED
        assert result.detail == "timeout"

    @pytest.mark.asyncio
    async def test_open_breaker_skips_the_request(self, target):
        calls = []

        def handler(request):
            calls.append(1)
            raise httpx.ConnectError("down", request=request)

        breaker = RunCircuitBreaker(target.base_url, BreakerPolicy(failure_threshold=2, cooldown_seconds=60))
        client, probe = make_probe(target, handler, breaker=breaker)
        async with client:
            for _ in range(3):
                result = await probe.probe(ProbeSpec("GET", "/api/health"))
        assert len(calls) == 2
        assert result.verdict == Verdict.UNVERIFIED
        assert result.detail.startswith("circuit_open")

    @pytest.mark.asyncio
    async def test_auth_request_without_token_is_not_sent(self, target):
        calls = []

        def handler(request):
            calls.append(request.headers.get("Authorization"))
            return httpx.Response(401)

        client, http = make_probe(dataclasses.replace(target, token=""), handler)
        async with client:
            result = await http.probe(ProbeSpec("GET", "/api/admin/users", Expectation.auth_required(), auth=True))
            anonymous = await http.probe(ProbeSpec("GET", "/api/admin/users", Expectation.auth_required()))
        assert result.verdict == Verdict.UNVERIFIED
        assert result.detail == "no token configured"
        assert anonymous.verdict == Verdict.PROTECTED
        assert calls == [None]

    @pytest.mark.asyncio
    async def test_each_client_has_its_own_breaker_by_default(self, target):
        client, first = make_probe(target, lambda request: httpx.Response(200))
        second = HttpProbe(client, target)
        async with client:
            assert first.breaker is not second.breaker
            assert first.isolated().breaker is not first.breaker


class TestHeaderRules:
    @pytest.mark.asyncio
    async def test_required_and_forbidden_headers(self, target):
        headers = {"X-Frame-Options": "DENY", "X-Powered-By": "Express"}
        client, http = make_probe(target, lambda request: httpx.Response(200, headers=headers))
        async with client:
            present = await http.probe(ProbeSpec("GET", "/api/health", Expectation.public(headers_present=("x-frame-options",))))
            missing = await http.probe(ProbeSpec("GET", "/api/health", Expectation.public(headers_present=("content-security-policy",))))
            leaked = await http.probe(ProbeSpec("GET", "/api/health", Expectation.public(headers_absent=("x-powered-by",))))
        assert present.verdict == Verdict.ACCESSIBLE
        assert missing.verdict == Verdict.CONTENT_MISMATCH
        assert missing.detail == "missing header 'content-security-policy'"
        assert leaked.verdict == Verdict.CONTENT_MISMATCH
        assert "'Express'" in leaked.detail

    @pytest.mark.asyncio
    async def test_header_rules_apply_to_protected_answers(self, target):
        client, http = make_probe(target, lambda request: httpx.Response(401, headers={"X-Powered-By": "Express"}))
        expectation = Expectation(requires_auth=True, headers_absent=("X-Powered-By",))
        async with client:
            result = await http.probe(ProbeSpec("GET", "/api/users", expectation))
        assert result.verdict == Verdict.CONTENT_MISMATCH
