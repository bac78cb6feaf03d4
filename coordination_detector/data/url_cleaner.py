"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
url_cleaner.py

MAIN OBJECTIVE:
---------------
This script canonicalizes shared URLs so that the same link shared through different tools
(tracking parameters, mobile domains, short links, login redirects) compares as equal, and
rejects URLs that carry no shareable content.

Dependencies:
-------------
- re
- logging
- typing
- urllib.parse

MAIN FEATURES:
--------------
1) Tracking parameter removal (utm, fbclid, ref, rss, social...)
2) Facebook login redirect unwrapping and percent-decoding
3) YouTube mobile and short-link normalization
4) Exclusion of platform roots, logins and share-intent URLs
5) Exclusion of bare domains

Author:
-------
Antoine Lemor
"""

import re
import logging
from typing import Optional, Iterable, List
from urllib.parse import unquote, urlparse

from coordination_detector.core.constants import (
    TRACKING_PATTERNS,
    EXCLUDED_URL_PATTERNS,
    FACEBOOK_LOGIN_PREFIX
)

logger = logging.getLogger(__name__)


class UrlCanonicalizer:
    """
    Reduces URLs to a canonical form for exact-match comparison.
    Returns None for URLs that must not take part in detection.
    """

    # Tracking removal is applied repeatedly since one removal can expose another
    N_CLEANING_PASSES = 3

    def __init__(self,
                 tracking_patterns: Optional[List[str]] = None,
                 excluded_patterns: Optional[List[str]] = None):
        self._tracking = re.compile("|".join(tracking_patterns or TRACKING_PATTERNS))
        self._excluded = re.compile("|".join(excluded_patterns or EXCLUDED_URL_PATTERNS))
        self._youtube_watch = re.compile(r"^(.*youtube\.com/watch\?).*?(v=[^&]*).*$")

    def canonicalize(self, url: Optional[str]) -> Optional[str]:
        """
        Canonicalize a single URL.

        Args:
            url: Raw URL as shared

        Returns:
            Canonical URL, or None if the URL is excluded
        """
        if url is None or not isinstance(url, str):
            return None

        url = url.strip()
        if not url or url.endswith("..."):
            return None
        if "/url?sa=t&source=web" in url:
            return None

        for _ in range(self.N_CLEANING_PASSES):
            url = self._tracking.sub("", url)

        # Drop any text before the scheme
        start = url.find("http")
        if start < 0:
            return None
        url = url[start:].rstrip("/&")

        if self._excluded.search(url):
            return None

        url = unquote(url.replace(FACEBOOK_LOGIN_PREFIX, ""))
        if not url.startswith(("http://", "https://")):
            return None

        url = url.replace("m.youtube.com", "www.youtube.com", 1)
        url = url.replace("youtu.be/", "www.youtube.com/watch?v=", 1)
        url = self._youtube_watch.sub(r"\1\2", url)
        url = url.rstrip("/&")

        if self._excluded.search(url) or self.is_bare_domain(url):
            return None

        return url

    @staticmethod
    def is_bare_domain(url: str) -> bool:
        """Check if the URL is nothing more than scheme://domain."""
        parsed = urlparse(url)
        if not parsed.netloc:
            return True
        return parsed.path in ("", "/") and not parsed.query and not parsed.fragment

    def canonicalize_all(self, urls: Iterable[Optional[str]]) -> List[Optional[str]]:
        """Canonicalize a sequence of URLs, keeping positions."""
        cleaned = [self.canonicalize(u) for u in urls]
        n_dropped = sum(1 for c in cleaned if c is None)
        if n_dropped:
            logger.debug(f"Excluded {n_dropped} of {len(cleaned)} URLs during canonicalization")
        return cleaned
