"""
HTTP Probe - issue one request against the target and classify the answer.

Architecture:
1. Token and circuit breaker checks (skip what cannot be verified)
2. Single request with the configured timeout
3. 429 handling: honour Retry-After, retry up to max_retries
4. Status classification against the expectation
5. Optional content checks (response headers, JSON fields, visible text)
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

import httpx
from bs4 import BeautifulSoup

from labaudit.config import TargetConfig
from labaudit.logger import logger
from labaudit.services.circuit_breaker import RunCircuitBreaker

# Upper bound for a server-supplied Retry-After, in seconds
MAX_RETRY_AFTER = 30

AUTH_STATUSES = frozenset({401, 403})


class Verdict(str, Enum):
    """Classification of one probe."""
    PROTECTED = "protected"
    ACCESSIBLE = "accessible"
    EXPECTED_STATUS = "expected_status"
    VULNERABLE = "vulnerable"
    UNEXPECTEDLY_PROTECTED = "unexpectedly_protected"
    MISSING = "missing"
    UNEXPECTED_STATUS = "unexpected_status"
    CONTENT_MISMATCH = "content_mismatch"
    RATE_LIMITED = "rate_limited"
    UNVERIFIED = "unverified"


MATCHING_VERDICTS = frozenset({Verdict.PROTECTED, Verdict.ACCESSIBLE, Verdict.EXPECTED_STATUS})
INCONCLUSIVE_VERDICTS = frozenset({Verdict.RATE_LIMITED, Verdict.UNVERIFIED})


@dataclass(frozen=True)
class Expectation:
    """What a probe should observe.

    Exactly one status rule applies: an explicit set of statuses when given,
    otherwise requires_auth decides between "must be protected" and
    "must be public".
    """
    requires_auth: bool = False
    statuses: Optional[FrozenSet[int]] = None
    json_fields: Tuple[str, ...] = ()
    json_equals: Tuple[Tuple[str, Any], ...] = ()
    body_contains: Optional[str] = None
    headers_present: Tuple[str, ...] = ()
    headers_absent: Tuple[str, ...] = ()

    @classmethod
    def auth_required(cls) -> "Expectation":
        return cls(requires_auth=True)

    @classmethod
    def public(cls, **content) -> "Expectation":
        return cls(requires_auth=False, **content)

    @classmethod
    def status_in(cls, *statuses: int) -> "Expectation":
        return cls(statuses=frozenset(statuses))

    @property
    def has_body_rules(self) -> bool:
        return bool(self.json_fields or self.json_equals or self.body_contains)


@dataclass(frozen=True)
class ProbeSpec:
    """One request to send."""
    method: str
    path: str
    expectation: Expectation = field(default_factory=Expectation)
    body: Optional[Any] = None
    auth: bool = False
    description: str = ""

    @property
    def label(self) -> str:
        return f"{self.method.upper()} {self.path}"


@dataclass
class ProbeResult:
    """Observed outcome of one probe."""
    method: str
    path: str
    verdict: Verdict
    status_code: Optional[int] = None
    elapsed_ms: float = 0.0
    detail: str = ""

    @property
    def matched(self) -> bool:
        return self.verdict in MATCHING_VERDICTS

    @property
    def inconclusive(self) -> bool:
        return self.verdict in INCONCLUSIVE_VERDICTS

    @property
    def label(self) -> str:
        return f"{self.method.upper()} {self.path}"


def classify_status(status_code: int, expectation: Expectation) -> Verdict:
    """Classify a status code against an expectation (pure)."""
    if expectation.statuses is not None:
        if status_code in expectation.statuses:
            return Verdict.EXPECTED_STATUS
        return Verdict.UNEXPECTED_STATUS

    if status_code == 429:
        return Verdict.RATE_LIMITED

    is_ok = 200 <= status_code < 300

    if expectation.requires_auth:
        if status_code in AUTH_STATUSES:
            return Verdict.PROTECTED
        if is_ok:
            return Verdict.VULNERABLE
    else:
        if is_ok:
            return Verdict.ACCESSIBLE
        if status_code in AUTH_STATUSES:
            return Verdict.UNEXPECTEDLY_PROTECTED

    if status_code == 404:
        return Verdict.MISSING
    return Verdict.UNEXPECTED_STATUS


NOT_FOUND = object()


def lookup(data: Any, path: str) -> Any:
    """Resolve a dotted path ("content.title", "items.0.id") in parsed JSON."""
    current = data
    for part in path.split("."):
        if isinstance(current, dict):
            if part not in current:
                return NOT_FOUND
            current = current[part]
        elif isinstance(current, list) and part.isdigit():
            index = int(part)
            if index >= len(current):
                return NOT_FOUND
            current = current[index]
        else:
            return NOT_FOUND
    return current


def check_headers(response: httpx.Response, expectation: Expectation) -> List[str]:
    """Problems with required or forbidden response headers (names are case-insensitive)."""
    problems = []
    for name in expectation.headers_present:
        if name not in response.headers:
            problems.append(f"missing header '{name}'")
    for name in expectation.headers_absent:
        if name in response.headers:
            problems.append(f"header '{name}' should not be sent (value '{response.headers[name]}')")
    return problems


def check_content(response: httpx.Response, expectation: Expectation) -> List[str]:
    """Return a list of body problems (empty when everything matches)."""
    problems = []

    if expectation.json_fields or expectation.json_equals:
        try:
            data = response.json()
        except ValueError:
            return ["response body is not JSON"]

        for path in expectation.json_fields:
            if lookup(data, path) is NOT_FOUND:
                problems.append(f"missing JSON field '{path}'")

        for path, expected in expectation.json_equals:
            value = lookup(data, path)
            if value is NOT_FOUND:
                problems.append(f"missing JSON field '{path}'")
            elif value != expected:
                problems.append(f"JSON field '{path}' is {value!r}, expected {expected!r}")

    if expectation.body_contains:
        text = response.text
        if "html" in response.headers.get("content-type", "").lower():
            text = BeautifulSoup(text, "html.parser").get_text(" ", strip=True)
        if expectation.body_contains not in text:
            problems.append(f"body does not contain '{expectation.body_contains}'")

    return problems


def parse_retry_after(value: Optional[str], default: int = 1) -> int:
    """Seconds to wait from a Retry-After header (HTTP-date form falls back to default)."""
    if value and value.strip().isdigit():
        return min(int(value.strip()), MAX_RETRY_AFTER)
    return default


class HttpProbe:
    """Sends probes to one target through a shared client."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        target: TargetConfig,
        breaker: Optional[RunCircuitBreaker] = None
    ):
        self.client = client
        self.target = target
        self.breaker = breaker or RunCircuitBreaker(target.base_url)

    def isolated(self) -> "HttpProbe":
        """Same client, own breaker: for bursts whose 429s must not pause other probes."""
        return HttpProbe(self.client, self.target, RunCircuitBreaker(self.target.base_url, self.breaker.policy))

    def _headers(self, spec: ProbeSpec) -> Dict[str, str]:
        headers = {
            "User-Agent": "LabAuditor/1.0",
            "Accept": "application/json, text/html;q=0.9, */*;q=0.8",
        }
        if spec.auth:
            headers.update(self.target.auth_header)
        return headers

    async def probe(self, spec: ProbeSpec, max_retries: Optional[int] = None) -> ProbeResult:
        """Send one probe and classify it.

        Args:
            spec: What to send and what to expect
            max_retries: Override the target retry budget for 429 answers

        Returns:
            ProbeResult with verdict, status code, and elapsed time
        """
        url = self.target.url_for(spec.path)
        method = spec.method.upper()
        send_json = spec.body if method in ("POST", "PUT", "PATCH") else None

        retries = self.target.max_retries if max_retries is None else max_retries

        if spec.auth and self.target.auth_header is None:
            logger.warning(f"Skipping {spec.label}: it needs a token and none is configured")
            return ProbeResult(method, spec.path, Verdict.UNVERIFIED, detail="no token configured")

        for attempt in range(retries + 1):
            allowed, reason = self.breaker.allow()
            if not allowed:
                logger.warning(f"Skipping {spec.label}: {reason}")
                return ProbeResult(method, spec.path, Verdict.UNVERIFIED, detail=reason)

            started = time.perf_counter()
            try:
                logger.debug(f"Probe {method} {url} (attempt {attempt + 1})")
                response = await self.client.request(
                    method,
                    url,
                    headers=self._headers(spec),
                    json=send_json,
                    timeout=self.target.timeout
                )
            except httpx.TimeoutException:
                self.breaker.record_failure()
                elapsed = (time.perf_counter() - started) * 1000
                logger.warning(f"{spec.label}: timeout after {elapsed:.0f}ms")
                return ProbeResult(method, spec.path, Verdict.UNVERIFIED, elapsed_ms=elapsed, detail="timeout")
            except httpx.HTTPError as e:
                self.breaker.record_failure()
                elapsed = (time.perf_counter() - started) * 1000
                logger.warning(f"{spec.label}: could not connect ({e.__class__.__name__}: {e})")
                return ProbeResult(
                    method, spec.path, Verdict.UNVERIFIED,
                    elapsed_ms=elapsed, detail=f"{e.__class__.__name__}: {e}"
                )

            elapsed = (time.perf_counter() - started) * 1000

            # Rate limiting caused by our own request volume is not an endpoint failure
            if response.status_code == 429 and 429 not in (spec.expectation.statuses or ()):
                self.breaker.record_failure()
                if attempt < retries:
                    retry_after = parse_retry_after(response.headers.get("Retry-After"))
                    logger.warning(f"{spec.label}: rate limited, waiting {retry_after}s")
                    await asyncio.sleep(retry_after)
                    continue
                return ProbeResult(
                    method, spec.path, Verdict.RATE_LIMITED, status_code=429,
                    elapsed_ms=elapsed, detail="rate limited (429) on every attempt"
                )

            self.breaker.record_success()
            return self._classify(spec, response, elapsed)

        return ProbeResult(method, spec.path, Verdict.UNVERIFIED, detail="no attempt made")

    def _classify(self, spec: ProbeSpec, response: httpx.Response, elapsed: float) -> ProbeResult:
        verdict = classify_status(response.status_code, spec.expectation)
        detail = f"HTTP {response.status_code}"

        expectation = spec.expectation
        if verdict in MATCHING_VERDICTS:
            problems = check_headers(response, expectation)
            if expectation.has_body_rules and response.is_success:
                problems.extend(check_content(response, expectation))
            if problems:
                verdict = Verdict.CONTENT_MISMATCH
                detail = "; ".join(problems)

        logger.debug(f"{spec.label} -> {response.status_code} ({verdict.value}, {elapsed:.0f}ms)")
        return ProbeResult(
            method=spec.method.upper(),
            path=spec.path,
            verdict=verdict,
            status_code=response.status_code,
            elapsed_ms=elapsed,
            detail=detail
        )
