"""Tests for DNS resolution, wildcard detection and resolver cross-checks."""

import asyncio
import re
from types import SimpleNamespace

import aiodns
import pytest

from app.errors import ResourceExhaustedError
from app.services.dns_check import (
    INCONSISTENT_NOTE,
    CrossValidator,
    DnsResolver,
    detect_wildcard,
)
from fakes import FakeResolver


def dns_error(code: int, message: str = "error") -> aiodns.error.DNSError:
    return aiodns.error.DNSError(code, message)


class ScriptedAiodns:
    """Stand-in for aiodns.DNSResolver answering from a script per (host, qtype)."""

    def __init__(self, script):
        self.script = {key: list(value) for key, value in script.items()}
        self.calls = []
        self.closed = False

    async def query(self, host, qtype):
        self.calls.append((host, qtype))
        steps = self.script.get((host, qtype))
        if not steps:
            raise dns_error(aiodns.error.ARES_ENOTFOUND, "Domain name not found")
        step = steps.pop(0) if len(steps) > 1 else steps[0]
        if isinstance(step, BaseException):
            raise step
        if step == "hang":
            await asyncio.sleep(10)
        return step

    async def close(self):
        self.closed = True


def a_records(*hosts):
    return [SimpleNamespace(host=h) for h in hosts]


class TestDnsResolver:
    @pytest.mark.asyncio
    async def test_collects_a_aaaa_and_cname(self) -> None:
        backend = ScriptedAiodns({
            ("www.example.test", "A"): [a_records("192.0.2.1", "192.0.2.1")],
            ("www.example.test", "AAAA"): [a_records("2001:db8::1")],
            ("www.example.test", "CNAME"): [SimpleNamespace(cname="edge.cdn.test.")],
        })
        answer = await DnsResolver(resolver=backend).lookup("www.example.test")

        assert answer.found
        assert answer.addresses == ["192.0.2.1", "2001:db8::1"]
        assert answer.cname == "edge.cdn.test"
        assert answer.error is None

    @pytest.mark.asyncio
    async def test_nxdomain_is_not_an_error(self) -> None:
        answer = await DnsResolver(resolver=ScriptedAiodns({})).lookup("nope.example.test")

        assert not answer.found
        assert answer.error is None

    @pytest.mark.asyncio
    async def test_cname_only_counts_as_found(self) -> None:
        backend = ScriptedAiodns({("alias.example.test", "CNAME"): [SimpleNamespace(cname="target.example.net")]})
        answer = await DnsResolver(resolver=backend).lookup("alias.example.test")

        assert answer.found
        assert answer.addresses == []

    @pytest.mark.asyncio
    async def test_transient_error_is_retried_once(self) -> None:
        backend = ScriptedAiodns({
            ("api.example.test", "A"): [dns_error(aiodns.error.ARES_ESERVFAIL), a_records("192.0.2.7")],
        })
        answer = await DnsResolver(resolver=backend, retries=1).lookup("api.example.test")

        assert answer.addresses == ["192.0.2.7"]
        assert backend.calls.count(("api.example.test", "A")) == 2

    @pytest.mark.asyncio
    async def test_persistent_failure_degrades_to_not_found(self) -> None:
        backend = ScriptedAiodns({
            ("slow.example.test", "A"): [dns_error(aiodns.error.ARES_ETIMEOUT, "Timeout while contacting DNS servers")],
        })
        answer = await DnsResolver(resolver=backend, retries=2).lookup("slow.example.test")

        assert not answer.found
        assert "Timeout while contacting DNS servers" in answer.error
        assert backend.calls.count(("slow.example.test", "A")) == 3

    @pytest.mark.asyncio
    async def test_non_transient_error_is_not_retried(self) -> None:
        backend = ScriptedAiodns({("bad.example.test", "A"): [dns_error(aiodns.error.ARES_EFORMERR, "bad format")]})
        answer = await DnsResolver(resolver=backend, retries=3).lookup("bad.example.test")

        assert not answer.found
        assert backend.calls.count(("bad.example.test", "A")) == 1

    @pytest.mark.asyncio
    async def test_hanging_query_is_cut_by_timeout(self) -> None:
        backend = ScriptedAiodns({("hang.example.test", "A"): ["hang"]})
        answer = await DnsResolver(resolver=backend, timeout=0.01, retries=0).lookup("hang.example.test")

        assert not answer.found
        assert "timeout" in answer.error

    @pytest.mark.asyncio
    async def test_out_of_memory_propagates(self) -> None:
        backend = ScriptedAiodns({("x.example.test", "A"): [dns_error(aiodns.error.ARES_ENOMEM)]})
        with pytest.raises(ResourceExhaustedError):
            await DnsResolver(resolver=backend).lookup("x.example.test")

    @pytest.mark.asyncio
    async def test_close_releases_the_channel(self) -> None:
        backend = ScriptedAiodns({})
        await DnsResolver(resolver=backend).close()
        assert backend.closed


class TestWildcardDetection:
    @pytest.mark.asyncio
    async def test_detects_wildcard_with_random_label(self) -> None:
        resolver = FakeResolver(wildcard=True)

        assert await detect_wildcard("example.test", resolver) is True
        assert len(resolver.calls) == 1
        assert re.fullmatch(r"[0-9a-f]{12}\.example\.test", resolver.calls[0])

    @pytest.mark.asyncio
    async def test_no_wildcard(self) -> None:
        assert await detect_wildcard("example.test", FakeResolver(live={"www.example.test"})) is False

    @pytest.mark.asyncio
    async def test_probe_names_differ_between_runs(self) -> None:
        resolver = FakeResolver()
        await detect_wildcard("example.test", resolver)
        await detect_wildcard("example.test", resolver)

        assert resolver.calls[0] != resolver.calls[1]

    @pytest.mark.asyncio
    async def test_resolution_error_means_no_wildcard(self) -> None:
        backend = ScriptedAiodns({})

        async def always_timeout(host, qtype):
            raise dns_error(aiodns.error.ARES_ETIMEOUT, "timeout")

        backend.query = always_timeout
        assert await detect_wildcard("example.test", DnsResolver(resolver=backend, retries=0)) is False


class TestCrossValidator:
    @pytest.mark.asyncio
    async def test_flags_disagreeing_resolvers(self) -> None:
        validator = CrossValidator({
            "8.8.8.8": DnsResolver(resolver=ScriptedAiodns({("www.example.test", "A"): [a_records("192.0.2.1")]})),
            "1.1.1.1": DnsResolver(resolver=ScriptedAiodns({("www.example.test", "A"): [a_records("192.0.2.2")]})),
        })
        assert await validator.check("www.example.test") == INCONSISTENT_NOTE

    @pytest.mark.asyncio
    async def test_agreeing_or_silent_resolvers_give_no_note(self) -> None:
        validator = CrossValidator({
            "8.8.8.8": DnsResolver(resolver=ScriptedAiodns({("www.example.test", "A"): [a_records("192.0.2.1")]})),
            "1.1.1.1": DnsResolver(resolver=ScriptedAiodns({("www.example.test", "A"): [a_records("192.0.2.1")]})),
            "9.9.9.9": DnsResolver(resolver=ScriptedAiodns({})),
        })
        assert await validator.check("www.example.test") is None

    @pytest.mark.asyncio
    async def test_single_resolver_is_skipped(self) -> None:
        backend = ScriptedAiodns({})
        validator = CrossValidator({"8.8.8.8": DnsResolver(resolver=backend)})

        assert await validator.check("www.example.test") is None
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_close_releases_every_resolver(self) -> None:
        backends = [ScriptedAiodns({}), ScriptedAiodns({})]
        validator = CrossValidator({f"ns{i}": DnsResolver(resolver=b) for i, b in enumerate(backends)})

        await validator.close()

        assert all(b.closed for b in backends)
