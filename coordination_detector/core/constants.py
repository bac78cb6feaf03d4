"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
constants.py

MAIN OBJECTIVE:
---------------
This script defines global constants used throughout the coordination detection engine,
including detection defaults, URL cleaning rules and the field names of supplier posts.

Dependencies:
-------------
None

MAIN FEATURES:
--------------
1) Detection defaults (interval, percentile, similarity)
2) Content-search pacing and retry defaults
3) URL tracking-parameter and excluded-URL patterns
4) Post field mapping for CrowdTangle-style records
5) Strategy names

Author:
-------
Antoine Lemor
"""

# Detection defaults
COORDINATION_INTERVAL_SECONDS = 60
PERCENTILE_EDGE_WEIGHT = 0.95
SIMILARITY_THRESHOLD = 0.7
MIN_DISTINCT_ACTORS = 2
MIN_WINDOW_ACTORS = 2
RANDOM_SEED = 42

# Content-search defaults
LOOKUP_WORKERS = 4
LOOKUP_PACING_SECONDS = 5.0
LOOKUP_BUDGET_SECONDS = 600.0
MAX_RETRIES = 3
BACKOFF_BASE = 2.0
BACKOFF_CAP = 10.0
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
FATAL_STATUS_CODES = frozenset({401, 403})
SEARCH_TIMEFRAME = "6 HOUR"
SEARCH_COUNT = 100

# Strategy names
STRATEGY_URL = "url"
STRATEGY_TEXT = "text"
STRATEGY_OCR = "ocr"
STRATEGIES = [STRATEGY_URL, STRATEGY_TEXT, STRATEGY_OCR]

# Content field of the supplier post used by each strategy
STRATEGY_FIELDS = {
    STRATEGY_URL: "expanded",
    STRATEGY_TEXT: "message",
    STRATEGY_OCR: "imageText",
}

# Supplier post fields (CrowdTangle flattened naming)
POST_ID_FIELD = "platformId"
POST_DATE_FIELD = "date"
POST_URL_FIELD = "postUrl"
POST_LINKS_FIELD = "expandedLinks"
ACCOUNT_ID_FIELD = "account.platformId"
ACCOUNT_HANDLE_FIELD = "account.handle"
ACCOUNT_NAME_FIELD = "account.name"
ACCOUNT_URL_FIELD = "account.url"

# Pseudo-account returned by the platform for deleted pages
NULL_ACCOUNT_URL = "https://facebook.com/null"

# Separator for joined display metadata of actors that changed name/handle
DISPLAY_SEPARATOR = " | "

# Tracking parameters removed from shared URLs before comparison
TRACKING_PATTERNS = [
    r"\?utm_.*",
    r"feed_id.*",
    r"&_unique_id.*",
    r"\?#.*",
    r"\?ref.*",
    r"\?fbclid.*",
    r"\?rss.*",
    r"\?ico.*",
    r"\?recruiter.*",
    r"\?sr_share_.*",
    r"\?fb_rel.*",
    r"\?social.*",
    r"\?intcmp_.*",
    r"\?xrs.*",
    r"\?CMP.*",
    r"\?tid.*",
    r"\?ncid.*",
    r"&utm_.*",
    r"\?rbs&utm_hp_ref.*",
    r"/#\..*",
    r"\?mobile.*",
    r"&fbclid.*",
    r"\)",
    r"/$",
]

# URLs that carry no shareable content (platform roots, logins, share intents)
EXCLUDED_URL_PATTERNS = [
    r"^http://127\.0\.0\.1",
    r"^https?://localhost",
    r"^https://www\.youtube\.com/watch$",
    r"^https?://www\.youtube\.com/?$",
    r"^https://youtu\.be$",
    r"^https://m\.youtube\.com$",
    r"^https://m\.facebook\.com/story",
    r"^https://m\.facebook\.com/?$",
    r"^https://www\.facebook\.com/?$",
    r"^https?://chat\.whatsapp\.com$",
    r"^https?://wa\.me$",
    r"^https://api\.whatsapp\.com/send$",
    r"^https://api\.whatsapp\.com/?$",
    r"^https://play\.google\.com/store/apps/details$",
    r"^https://www\.twitter\.com/?$",
    r"^https://(www\.)?instagram\.com/accounts/login",
    r"^https://t\.me/joinchat$",
]

FACEBOOK_LOGIN_PREFIX = "https://www.facebook.com/login/?next="
