"""
Action URL Resolver

Normalizes the accepted Action URL encodings into one CanonicalUrl:

    https://host/path                         -> unchanged
    solana-action:https://host/path           -> prefix stripped
    blink:https://host/path                   -> prefix stripped
    https://dial.to/?action=<encoded-or-raw>  -> inner URL, resolved once more

Rules are an ordered list of matchers. The first matcher that recognizes the
input applies exactly one transformation; the result is then re-validated as
an HTTPS URL. An interstitial may wrap one other encoding, but never another
interstitial, so resolution is bounded to a single extra hop.
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple
from urllib.parse import unquote, urljoin, urlsplit

from .errors import InvalidUrlKind


INTERSTITIAL_HOSTS = frozenset({"dial.to", "www.dial.to"})
INTERSTITIAL_PARAM = "action"

# Whitespace or control characters anywhere in the URL
_UNSAFE_CHARS = re.compile(r'[\s\x00-\x1f\x7f]')


class CanonicalUrl(str):
    """
    A validated https:// URL with no protocol-prefix wrapping.

    Construction fails with InvalidUrlKind for anything that is not an
    absolute HTTPS URL with a host. Being a str subclass, it is immutable
    and can be passed anywhere a URL string is expected.
    """

    def __new__(cls, value: str) -> 'CanonicalUrl':
        if not isinstance(value, str):
            raise InvalidUrlKind(repr(value), "URL must be a string")
        if _UNSAFE_CHARS.search(value):
            raise InvalidUrlKind(value, "URL contains whitespace or control characters")
        try:
            parts = urlsplit(value)
            hostname = parts.hostname
            parts.port  # raises ValueError on a malformed port
        except ValueError as e:
            raise InvalidUrlKind(value, f"unparseable URL ({e})")
        if parts.scheme.lower() != "https":
            raise InvalidUrlKind(value, "scheme must be https")
        if not hostname:
            raise InvalidUrlKind(value, "URL has no host")
        if parts.username is not None or parts.password is not None:
            # https://trusted.example@evil.example hides the real host
            raise InvalidUrlKind(value, "credentials in URL are not allowed")
        return super().__new__(cls, value)

    @property
    def host(self) -> str:
        return urlsplit(self).hostname or ""

    @property
    def origin(self) -> str:
        parts = urlsplit(self)
        return f"https://{parts.netloc.lower()}"

    def join(self, href: str) -> str:
        """Resolve an href (absolute or relative) against this URL's origin."""
        if urlsplit(href).scheme:
            return href
        return urljoin(self.origin + "/", href)


@dataclass(frozen=True)
class RuleMatch:
    """Outcome of a matcher that recognized its input."""
    rule: str
    value: str
    recurse: bool = False


Matcher = Callable[[str], Optional[RuleMatch]]


def _prefix_matcher(rule: str, prefix: str) -> Matcher:
    def match(raw: str) -> Optional[RuleMatch]:
        if raw[:len(prefix)].lower() == prefix:
            return RuleMatch(rule=rule, value=raw[len(prefix):])
        return None
    return match


def _extract_action_param(query: str) -> Optional[str]:
    """
    Pull the interstitial's action parameter out of a raw query string.

    A raw (unencoded) inner URL may carry its own '&' separated query, so
    when the value contains '://' everything after 'action=' is taken
    verbatim. Otherwise the value is URL-decoded exactly once.
    """
    pairs = query.split("&")
    for i, pair in enumerate(pairs):
        key, sep, value = pair.partition("=")
        if unquote(key) != INTERSTITIAL_PARAM or not sep:
            continue
        if "://" in value:
            return "&".join([value] + pairs[i + 1:])
        return unquote(value)
    return None


def _interstitial_matcher(raw: str) -> Optional[RuleMatch]:
    try:
        parts = urlsplit(raw)
        host = parts.hostname
    except ValueError:
        return None
    if parts.scheme.lower() != "https" or host not in INTERSTITIAL_HOSTS:
        return None
    inner = _extract_action_param(parts.query)
    if inner is None:
        return None
    return RuleMatch(rule="interstitial", value=inner, recurse=True)


def _bare_matcher(raw: str) -> Optional[RuleMatch]:
    if raw[:8].lower() == "https://":
        return RuleMatch(rule="https", value=raw)
    return None


# Priority: explicit protocol marker > interstitial > bare URL
DEFAULT_RULES: List[Matcher] = [
    _prefix_matcher("solana-action", "solana-action:"),
    _prefix_matcher("blink", "blink:"),
    _interstitial_matcher,
    _bare_matcher,
]


class UrlResolver:
    """
    Resolves raw Action URLs into CanonicalUrls.

    Adding a new URL form means adding a matcher to the rules list.
    """

    def __init__(self, rules: Optional[List[Matcher]] = None, max_hops: int = 1):
        self.rules = list(rules) if rules is not None else list(DEFAULT_RULES)
        self.max_hops = max_hops

    def resolve(self, raw_url: str) -> CanonicalUrl:
        canonical, _ = self.resolve_with_rule(raw_url)
        return canonical

    def resolve_with_rule(self, raw_url: str) -> Tuple[CanonicalUrl, str]:
        """Resolve and also report which rule chain produced the result."""
        if not isinstance(raw_url, str) or not raw_url.strip():
            raise InvalidUrlKind(str(raw_url), "empty URL")
        return self._resolve(raw_url.strip(), raw_url, hops=0)

    def _resolve(self, value: str, original: str, hops: int) -> Tuple[CanonicalUrl, str]:
        match = self._match(value)
        if match is None:
            raise InvalidUrlKind(original, "unsupported URL form")

        if match.recurse:
            return self._follow(match, original, hops)

        # a stripped marker may still be wrapping an interstitial
        if match.value != value:
            wrapped = self._match(match.value)
            if wrapped is not None and wrapped.recurse:
                canonical, inner_rule = self._follow(wrapped, original, hops)
                return canonical, f"{match.rule}>{inner_rule}"

        try:
            return CanonicalUrl(match.value), match.rule
        except InvalidUrlKind as e:
            raise InvalidUrlKind(original, e.reason) from e

    def _follow(self, match: RuleMatch, original: str, hops: int) -> Tuple[CanonicalUrl, str]:
        if hops >= self.max_hops:
            raise InvalidUrlKind(original, "nested interstitial redirect")
        inner = match.value.strip()
        if not inner:
            raise InvalidUrlKind(original, "empty interstitial action parameter")
        canonical, inner_rule = self._resolve(inner, original, hops + 1)
        return canonical, f"{match.rule}>{inner_rule}"

    def _match(self, value: str) -> Optional[RuleMatch]:
        for rule in self.rules:
            result = rule(value)
            if result is not None:
                return result
        return None


_default_resolver = UrlResolver()


def resolve_url(raw_url: str) -> CanonicalUrl:
    """Resolve a raw Action URL with the default rules."""
    return _default_resolver.resolve(raw_url)
