"""
trends_url.py

Builds Google Trends explore page URLs.
"""

from urllib.parse import quote

BASE_URL = "https://trends.google.com"
EXPLORE_URL = f"{BASE_URL}/trends/explore"

# Past 12 months, already encoded ("today 12-m")
EXPLORE_DATE = "today%2012-m"

WORLDWIDE = "Worldwide"

# Characters encodeURIComponent leaves alone
_URI_COMPONENT_SAFE = "-_.!~*'()"


def build_explore_url(keyword: str, region: str = "US") -> str:
    """
    Build the explore URL for a keyword.

    The geo parameter is dropped for "Worldwide" and for an empty region;
    any other region is passed through as-is.
    """
    url = f"{EXPLORE_URL}?q={quote(keyword, safe=_URI_COMPONENT_SAFE)}&date={EXPLORE_DATE}"
    if region == WORLDWIDE or region == "":
        return url
    return f"{url}&geo={region}"
