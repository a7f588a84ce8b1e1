"""Internal constants shared across the library."""

USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64; rv:140.0) Gecko/20100101 Firefox/140.0"
FEED_ORIGIN = "https://wa.sqinsights.com"
ORGANIZATION_HEADER = "alliancels-organization-id"

SLACK_POST_MESSAGE_URL = "https://slack.com/api/chat.postMessage"

# Headers the status feed expects from a browser session.
DEFAULT_FEED_HEADERS: dict[str, str] = {
    "User-Agent": USER_AGENT,
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-GB,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "Origin": FEED_ORIGIN,
    "Referer": f"{FEED_ORIGIN}/",
    "Sec-Fetch-Dest": "empty",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Site": "same-site",
}

UNKNOWN_CYCLE = "Unknown"
