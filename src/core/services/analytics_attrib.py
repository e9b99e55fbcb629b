"""
Referrer attribution - Traffic source classification.

Turns a referrer URL into a readable source name and the original host.

Key behaviors:
- Ordered (predicate, source) lookup over the referrer host
- Fallback source is the capitalized first host label
- Missing or malformed referrers are "Direct" with no domain
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import urlparse

DIRECT = "Direct"

# --- Host Predicates ---


HostPredicate = Callable[[str], bool]


def host_is(*domains: str) -> HostPredicate:
    """Match the domain itself or any subdomain of it."""

    def predicate(host: str) -> bool:
        return any(host == d or host.endswith("." + d) for d in domains)

    return predicate


def host_has_label(*labels: str) -> HostPredicate:
    """Match when any dot-separated label of the host equals one of labels."""

    def predicate(host: str) -> bool:
        parts = host.split(".")
        return any(label in parts for label in labels)

    return predicate


@dataclass(frozen=True)
class SourceRule:
    """Maps hosts to a traffic source name."""

    matches: HostPredicate
    source: str


# google.com, google.co.uk, news.google.de ... all count as Google
SOURCE_RULES: tuple[SourceRule, ...] = (
    SourceRule(host_has_label("google"), "Google"),
    SourceRule(host_is("twitter.com", "t.co", "x.com"), "Twitter"),
    SourceRule(host_is("facebook.com", "fb.com"), "Facebook"),
    SourceRule(host_is("linkedin.com", "lnkd.in"), "LinkedIn"),
    SourceRule(host_is("reddit.com"), "Reddit"),
    SourceRule(host_is("youtube.com", "youtu.be"), "YouTube"),
    SourceRule(host_is("instagram.com"), "Instagram"),
    SourceRule(host_is("tiktok.com"), "TikTok"),
    SourceRule(host_is("bing.com"), "Bing"),
    SourceRule(host_is("duckduckgo.com"), "DuckDuckGo"),
    SourceRule(host_has_label("yandex"), "Yandex"),
    SourceRule(host_is("github.com"), "GitHub"),
    SourceRule(host_is("indiehackers.com"), "IndieHackers"),
    SourceRule(host_is("producthunt.com"), "ProductHunt"),
    SourceRule(host_is("news.ycombinator.com"), "Hacker News"),
)


# --- Data Models ---


@dataclass(frozen=True)
class ReferrerSource:
    """Classified referrer."""

    name: str
    domain: str | None = None


DIRECT_SOURCE = ReferrerSource(DIRECT, None)


# --- Parsing ---


def parse_host(url: str | None) -> str | None:
    """Extract the lower-cased hostname from a URL, or None."""
    if not url or not isinstance(url, str):
        return None

    try:
        host = urlparse(url.strip()).hostname
    except ValueError:
        return None

    return host or None


def classify_referrer(
    url: str | None,
    rules: tuple[SourceRule, ...] = SOURCE_RULES,
) -> ReferrerSource:
    """
    Classify a referrer URL into a source.

    The returned domain keeps the original hostname (including "www.").
    """
    domain = parse_host(url)
    if domain is None:
        return DIRECT_SOURCE

    host = domain[4:] if domain.startswith("www.") else domain

    for rule in rules:
        if rule.matches(host):
            return ReferrerSource(rule.source, domain)

    first = host.split(".")[0]
    if not first:
        return DIRECT_SOURCE
    return ReferrerSource(first[:1].upper() + first[1:], domain)
