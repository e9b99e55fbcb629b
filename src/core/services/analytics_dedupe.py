"""
Visitor deduplication - Bot classification and visitor identity.

Collapses raw traffic rows into unique visitors.

Key behaviors:
- Classify user agents against an ordered list of (pattern, label) rules
- Missing user agent is not bot evidence
- Resolve a stable visitor key from an explicit fingerprint, else an IP+UA hash
- Visitors sharing IP and UA resolve to the same key (accepted NAT limitation)
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import Any

# --- Bot Rules ---


@dataclass(frozen=True)
class BotRule:
    """A single bot signature."""

    pattern: re.Pattern[str]
    label: str

    def matches(self, user_agent: str) -> bool:
        return self.pattern.search(user_agent) is not None


def _rules(label: str, *patterns: str) -> tuple[BotRule, ...]:
    return tuple(BotRule(re.compile(p, re.IGNORECASE), label) for p in patterns)


# Order matters: the first matching rule names the bot.
BOT_RULES: tuple[BotRule, ...] = (
    *_rules("search_crawler", r"googlebot", r"bingbot", r"yandexbot", r"baiduspider", r"duckduckbot"),
    *_rules(
        "social_crawler",
        r"facebookexternalhit",
        r"twitterbot",
        r"linkedinbot",
        r"slackbot",
        r"discordbot",
        r"whatsapp",
        r"telegrambot",
        r"pinterest",
        r"redditbot",
    ),
    *_rules("seo_tool", r"ahrefs", r"semrush", r"moz\.com", r"screaming frog", r"majestic", r"dotbot"),
    *_rules(
        "automation",
        r"headless",
        r"phantom",
        r"puppeteer",
        r"playwright",
        r"selenium",
        r"webdriver",
        r"lighthouse",
        r"pagespeed",
        r"gtmetrix",
        r"pingdom",
        r"uptimerobot",
    ),
    *_rules(
        "link_preview",
        r"embedly",
        r"quora link preview",
        r"outbrain",
        r"flipboard",
        r"bitlybot",
        r"skypeuripreview",
        r"nuzzel",
    ),
    *_rules(
        "http_client",
        r"^curl/",
        r"^wget/",
        r"python-requests",
        r"go-http-client",
        r"node-fetch",
        r"^axios/",
        r"httpie",
        r"^okhttp",
        r"java/",
    ),
    *_rules("debug_script", r"debugscript", r"^test/"),
    *_rules("generic", r"\bbot\b", r"\bcrawler\b", r"\bspider\b", r"\bscraper\b"),
    *_rules("ads_crawler", r"applebot", r"adsbot-google", r"mediapartners-google"),
)


# --- Bot Classification ---


def classify_bot(
    user_agent: str | None,
    rules: tuple[BotRule, ...] = BOT_RULES,
) -> str | None:
    """
    Return the label of the first bot rule matching the user agent.

    Returns None for human traffic and for missing/non-string input.
    """
    if not user_agent or not isinstance(user_agent, str):
        return None

    for rule in rules:
        if rule.matches(user_agent):
            return rule.label

    return None


def is_bot(user_agent: str | None, rules: tuple[BotRule, ...] = BOT_RULES) -> bool:
    """Check if a user agent belongs to automated traffic."""
    return classify_bot(user_agent, rules) is not None


# --- Visitor Identity ---

IDENTITY_HASH_LENGTH = 16


def resolve_identity(
    ip: str | None,
    user_agent: str | None,
    fingerprint: str | None = None,
) -> str:
    """
    Resolve a stable visitor key.

    An explicit client fingerprint wins verbatim. Otherwise the key is a
    truncated sha256 of "{ip}-{ua}" with "anon"/"no-ua" placeholders.
    """
    if fingerprint:
        return str(fingerprint)

    data = f"{ip or 'anon'}-{user_agent or 'no-ua'}"
    return hashlib.sha256(data.encode()).hexdigest()[:IDENTITY_HASH_LENGTH]


def identity_of(event: Any) -> str:
    """Resolve the visitor key of any event exposing ip/user_agent/fingerprint."""
    return resolve_identity(
        getattr(event, "ip", None),
        getattr(event, "user_agent", None),
        getattr(event, "fingerprint", None),
    )
