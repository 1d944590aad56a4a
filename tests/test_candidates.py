"""Tests for domain validation, candidate generation and CT lookups."""

import asyncio

import aiohttp
import pytest

from app.errors import CertificateTransparencyError, DomainValidationError
from app.services.candidates import (
    CertSpotterClient,
    CrtShClient,
    build_candidates,
    collect_ct_names,
    filter_ct_names,
    is_valid_subdomain,
    normalize_domain,
    wordlist_candidates,
)
from app.services.models import Origin
from fakes import FakeCTClient, FakeResponse, FakeSession

CRTSH_URL = "https://crt.sh/?q=%25.example.com&output=json"


class TestNormalizeDomain:
    def test_strips_scheme_path_port_and_case(self) -> None:
        assert normalize_domain("  HTTPS://Example.COM:443/login?x=1 ") == "example.com"
        assert normalize_domain("http://example.com/") == "example.com"
        assert normalize_domain("example.com.") == "example.com"

    @pytest.mark.parametrize("raw", [None, "", "   ", "http://"])
    def test_rejects_missing(self, raw) -> None:
        with pytest.raises(DomainValidationError):
            normalize_domain(raw)

    @pytest.mark.parametrize(
        "raw",
        ["localhost", "exa mple.com", "-bad.com", "bad-.com", "ex_ample.com", "a..com", "*.example.com"],
    )
    def test_rejects_invalid_syntax(self, raw: str) -> None:
        with pytest.raises(DomainValidationError):
            normalize_domain(raw)

    def test_rejects_names_over_253_characters(self) -> None:
        long_domain = ".".join(["a" * 63] * 4) + ".com"
        assert len(long_domain) > 253
        with pytest.raises(DomainValidationError):
            normalize_domain(long_domain)

    def test_validation_error_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            normalize_domain("nodots")


def test_is_valid_subdomain() -> None:
    assert is_valid_subdomain("api.example.com", "example.com")
    assert not is_valid_subdomain("example.com", "example.com")
    assert not is_valid_subdomain("api.example.org", "example.com")
    assert not is_valid_subdomain("user@example.com", "example.com")


def test_filter_ct_names_splits_and_rejects_wildcards_and_whitespace() -> None:
    raw = [
        "www.example.com\n*.example.com\nMail.Example.com ",
        "example.com",
        "evil.example.com.attacker.net",
        "bad name.example.com",
        "notexample.com",
        "api.example.com",
    ]
    assert filter_ct_names(raw, "example.com") == {
        "www.example.com",
        "mail.example.com",
        "api.example.com",
    }


def test_filter_ct_names_drops_malformed_names() -> None:
    raw = ["a..example.com\n_dmarc.example.com\n-lead.example.com", "ok.example.com.", "x" * 64 + ".example.com"]
    assert filter_ct_names(raw, "example.com") == {"ok.example.com"}


def test_wordlist_candidates_dedupes_and_skips_invalid_words() -> None:
    candidates = wordlist_candidates("example.com", ["www", "WWW", "api", "bad word", "-x"])
    assert [c.name for c in candidates] == ["www.example.com", "api.example.com"]
    assert all(c.origin == Origin.WORDLIST for c in candidates)


def test_build_candidates_merges_sources_once_per_name() -> None:
    candidates = build_candidates(
        "example.com", ["www", "api"], {"www.example.com", "vpn.example.com"}
    )
    assert set(candidates) == {"www.example.com", "api.example.com", "vpn.example.com"}
    assert candidates["www.example.com"].origin == Origin.WORDLIST
    assert candidates["vpn.example.com"].origin == Origin.CERTIFICATE_TRANSPARENCY


class TestCrtShClient:
    @pytest.mark.asyncio
    async def test_lookup_parses_name_value_entries(self) -> None:
        payload = [
            {"name_value": "www.example.com\n*.example.com"},
            {"name_value": "dev.example.com"},
            {"issuer_name": "no names here"},
        ]
        session = FakeSession({("GET", CRTSH_URL): FakeResponse(200, payload)})
        names = await CrtShClient(session, timeout=5).lookup("example.com")

        assert names == {"www.example.com", "dev.example.com"}
        _, _, kwargs = session.requests[0]
        assert kwargs["timeout"].total == 5
        assert kwargs["headers"]["User-Agent"] == "BugHunter-Pro/1.0"

    @pytest.mark.asyncio
    async def test_non_2xx_raises(self) -> None:
        session = FakeSession({("GET", CRTSH_URL): FakeResponse(503)})
        with pytest.raises(CertificateTransparencyError, match="HTTP 503"):
            await CrtShClient(session).lookup("example.com")

    @pytest.mark.asyncio
    async def test_timeout_raises(self) -> None:
        session = FakeSession({("GET", CRTSH_URL): FakeResponse(error=asyncio.TimeoutError())})
        with pytest.raises(CertificateTransparencyError, match="timed out"):
            await CrtShClient(session).lookup("example.com")

    @pytest.mark.asyncio
    async def test_malformed_json_raises(self) -> None:
        session = FakeSession({("GET", CRTSH_URL): FakeResponse(200, malformed=True)})
        with pytest.raises(CertificateTransparencyError, match="malformed"):
            await CrtShClient(session).lookup("example.com")

    @pytest.mark.asyncio
    async def test_unexpected_document_raises(self) -> None:
        session = FakeSession({("GET", CRTSH_URL): FakeResponse(200, {"error": "busy"})})
        with pytest.raises(CertificateTransparencyError):
            await CrtShClient(session).lookup("example.com")

    @pytest.mark.asyncio
    async def test_client_error_raises(self) -> None:
        session = FakeSession({("GET", CRTSH_URL): FakeResponse(error=aiohttp.ClientConnectionError("refused"))})
        with pytest.raises(CertificateTransparencyError, match="client error"):
            await CrtShClient(session).lookup("example.com")


@pytest.mark.asyncio
async def test_certspotter_reads_dns_names() -> None:
    client = CertSpotterClient(FakeSession(), timeout=5)
    payload = [{"dns_names": ["example.com", "shop.example.com", "*.example.com"]}]
    session = FakeSession({("GET", client.url_for("example.com")): FakeResponse(200, payload)})
    client.session = session

    assert await client.lookup("example.com") == {"shop.example.com"}


@pytest.mark.asyncio
async def test_collect_ct_names_soft_fails_per_provider() -> None:
    clients = [
        FakeCTClient({"a.example.com"}),
        FakeCTClient(error=CertificateTransparencyError("crt.sh timed out")),
        FakeCTClient({"b.example.com"}),
    ]
    names, failures = await collect_ct_names("example.com", clients)

    assert names == {"a.example.com", "b.example.com"}
    assert failures == ["crt.sh timed out"]


@pytest.mark.asyncio
async def test_collect_ct_names_absorbs_unexpected_errors() -> None:
    names, failures = await collect_ct_names("example.com", [FakeCTClient(error=RuntimeError("boom"))])
    assert names == set()
    assert failures == ["fake-ct failed: boom"]
