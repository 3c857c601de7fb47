"""
Tests for the registry and rule set resolution, sequential and concurrent.
"""

import time

import pytest
from bs4 import BeautifulSoup

from marrow.configuration_manager import ResolverConfig
from marrow.exceptions import DuplicateRuleSetError
from marrow.metrics_collector import MetricsCollector
from marrow.selectors.config import FieldSpec, RuleSet, Simple
from marrow.selectors.registry import Registry
from marrow.selectors.resolver import (
    ExtractorResolver,
    base_domain,
    hostname_from_url,
    normalize_hostname,
)
from marrow.types import ResolverTier


BLOGGER_DOC = '<html><head><meta name="generator" content="Blogger"></head><body></body></html>'


def soup(html):
    return BeautifulSoup(html, "html.parser")


def rule_set(domain, **kwargs):
    return RuleSet(domain=domain, title=FieldSpec([Simple("h1")]), **kwargs)


class SlowRegistry:
    """Registry wrapper whose lookups for chosen keys take a while."""

    def __init__(self, registry, delays):
        self.registry = registry
        self.delays = delays

    def lookup(self, hostname):
        time.sleep(self.delays.get(hostname, 0))
        return self.registry.lookup(hostname)

    def detectors(self):
        return self.registry.detectors()


class TestHostnames:
    def test_normalize(self):
        assert normalize_hostname("WWW.Example.COM.") == "www.example.com"
        assert normalize_hostname("example.com:8080") == "example.com"

    def test_base_domain(self):
        assert base_domain("news.blog.example.com") == "example.com"
        assert base_domain("example.com") == "example.com"

    def test_hostname_from_url(self):
        assert hostname_from_url("https://Www.Example.com/path?q=1") == "www.example.com"
        assert hostname_from_url("not a url") == ""


class TestRegistry:
    """Registration, aliases and detectors."""

    def test_register_and_lookup(self, registry):
        site = rule_set("www.example.com")
        registry.register(site)

        assert registry.lookup("www.example.com") == (site, True)
        assert registry.lookup("other.com") == (None, False)
        assert "www.example.com" in registry
        assert len(registry) == 1

    def test_duplicate_registration_raises(self, registry):
        registry.register(rule_set("example.com"))

        with pytest.raises(DuplicateRuleSetError):
            registry.register(rule_set("example.com"))

    def test_replace_drops_old_aliases_and_detectors(self, registry):
        old = rule_set("example.com", supported_domains=["example.org"], detect=["meta[name=x]"])
        new = rule_set("example.com")
        registry.register(old)

        registry.register(new, replace=True)

        assert registry.get("example.com") is new
        assert registry.get("example.org") is None
        assert registry.detectors() == []

    def test_alias_shares_rule_set(self, registry):
        verge = rule_set("www.theverge.com", supported_domains=["www.polygon.com"])
        registry.register(verge)

        assert registry.get("www.polygon.com") is verge
        assert registry.domains() == ["www.theverge.com"]

    def test_alias_never_shadows_primary_domain(self, registry):
        primary = rule_set("www.polygon.com")
        registry.register(primary)
        registry.register(rule_set("www.theverge.com", supported_domains=["www.polygon.com"]))

        assert registry.get("www.polygon.com") is primary

    def test_detectors_keep_registration_order(self, registry):
        first = rule_set("first.com")
        second = rule_set("second.com")
        registry.add_detector("meta[name=generator]", first)
        registry.add_detector("meta", second)

        assert [r.domain for _, r in registry.detectors()] == ["first.com", "second.com"]


class TestResolve:
    """Sequential resolution order."""

    @pytest.fixture
    def sites(self, registry):
        registry.register(rule_set("www.example.com"))
        registry.register(rule_set("example.com"))
        registry.register(rule_set("blogspot.com", detect=['meta[name="generator"][content="blogger" i]']))
        return registry

    @pytest.fixture
    def resolver(self, sites):
        return ExtractorResolver(sites, metrics=MetricsCollector())

    def test_exact_hostname(self, resolver):
        ref = resolver.resolve("www.example.com")
        assert (ref.domain, ref.tier) == ("www.example.com", ResolverTier.HOSTNAME)

    def test_base_domain(self, resolver):
        ref = resolver.resolve("news.example.com")
        assert (ref.domain, ref.tier) == ("example.com", ResolverTier.BASE_DOMAIN)

    def test_explicit_base_override(self, resolver):
        ref = resolver.resolve("unknown.net", base="example.com")
        assert (ref.domain, ref.tier) == ("example.com", ResolverTier.BASE_DOMAIN)

    def test_detector(self, resolver):
        ref = resolver.resolve("myblog.net", soup(BLOGGER_DOC))
        assert (ref.domain, ref.tier) == ("blogspot.com", ResolverTier.DETECTOR)

    def test_hostname_beats_detector(self, resolver):
        ref = resolver.resolve("www.example.com", soup(BLOGGER_DOC))
        assert ref.tier == ResolverTier.HOSTNAME

    def test_detectors_skipped_without_document(self, resolver):
        assert resolver.resolve("myblog.net").is_generic

    def test_unknown_host_is_generic(self, resolver):
        ref = resolver.resolve("nowhere.invalid", soup("<p>x</p>"))
        assert ref.is_generic
        assert ref.rule_set.is_generic

    def test_empty_hostname_is_generic(self, resolver):
        assert resolver.resolve("").is_generic

    def test_first_registered_detector_wins(self, registry):
        first = rule_set("first.com")
        registry.add_detector("meta[name=generator]", first)
        registry.add_detector("meta", rule_set("second.com"))
        resolver = ExtractorResolver(registry)

        assert resolver.resolve("x.net", soup(BLOGGER_DOC)).rule_set is first

    def test_malformed_detector_is_skipped(self, registry):
        registry.add_detector("meta[", rule_set("broken.com"))
        registry.add_detector("meta", rule_set("works.com"))
        resolver = ExtractorResolver(registry)

        assert resolver.resolve("x.net", soup(BLOGGER_DOC)).domain == "works.com"

    def test_resolutions_are_counted(self, resolver):
        resolver.resolve("www.example.com")
        resolver.resolve("nowhere.invalid")

        tiers = resolver.metrics.get_metrics().resolver_tiers
        assert tiers == {"hostname": 1, "generic": 1}


class TestResolveConcurrent:
    """Concurrent probing keeps the sequential priority order."""

    @pytest.fixture
    def sites(self, registry):
        registry.register(rule_set("www.example.com"))
        registry.register(rule_set("blogspot.com", detect=['meta[name="generator"][content="blogger" i]']))
        return registry

    @pytest.mark.asyncio
    async def test_matches_sequential_result(self, sites):
        resolver = ExtractorResolver(sites)

        ref = await resolver.resolve_concurrent("www.example.com", soup(BLOGGER_DOC))

        assert (ref.domain, ref.tier) == ("www.example.com", ResolverTier.HOSTNAME)

    @pytest.mark.asyncio
    async def test_slow_hostname_hit_still_wins(self, sites):
        resolver = ExtractorResolver(
            SlowRegistry(sites, {"www.example.com": 0.3}),
            config=ResolverConfig(timeout=5.0),
        )

        ref = await resolver.resolve_concurrent("www.example.com", soup(BLOGGER_DOC))

        assert ref.tier == ResolverTier.HOSTNAME
        assert ref.domain == "www.example.com"

    @pytest.mark.asyncio
    async def test_deadline_settles_on_best_finished_hit(self, sites):
        resolver = ExtractorResolver(SlowRegistry(sites, {"www.example.com": 1.0}))

        ref = await resolver.resolve_concurrent(
            "www.example.com", soup(BLOGGER_DOC), timeout=0.2
        )

        assert (ref.domain, ref.tier) == ("blogspot.com", ResolverTier.DETECTOR)

    @pytest.mark.asyncio
    async def test_deadline_without_hits_is_generic(self, sites):
        resolver = ExtractorResolver(SlowRegistry(sites, {"www.example.com": 1.0}))

        ref = await resolver.resolve_concurrent("www.example.com", soup("<p>x</p>"), timeout=0.2)

        assert ref.is_generic

    @pytest.mark.asyncio
    async def test_detector_only(self, sites):
        resolver = ExtractorResolver(sites, config=ResolverConfig(max_workers=2))

        ref = await resolver.resolve_concurrent("myblog.net", soup(BLOGGER_DOC))

        assert (ref.domain, ref.tier) == ("blogspot.com", ResolverTier.DETECTOR)

    @pytest.mark.asyncio
    async def test_no_probes_is_generic(self, sites):
        resolver = ExtractorResolver(sites)

        ref = await resolver.resolve_concurrent("")

        assert ref.is_generic

    @pytest.mark.asyncio
    @pytest.mark.parametrize("timeout", [0, -1.0])
    async def test_non_positive_timeout_is_rejected(self, sites, timeout):
        resolver = ExtractorResolver(sites)

        with pytest.raises(ValueError):
            await resolver.resolve_concurrent("www.example.com", soup(BLOGGER_DOC), timeout=timeout)
