"""Single-post lookups through the Apify Instagram scraper actor."""

import logging
from typing import Any, Dict

from apify_client import ApifyClient

logger = logging.getLogger(__name__)

POST_SCRAPER_ACTOR_ID = "apify/instagram-scraper"


class ApifyServiceError(RuntimeError):
    """Raised when an Apify actor call fails."""


class ApifyService:
    """Runs the scraper actor for one post URL and returns its dataset item."""

    def __init__(self, token: str):
        if not token:
            raise ApifyServiceError("APIFY_API_TOKEN not configured")
        self._client = ApifyClient(token)

    def first_post_item(self, post_url: str, timeout_secs: int) -> Dict[str, Any]:
        """
        Args:
            post_url: Canonical post URL
            timeout_secs: Run timeout; Apify aborts the actor run after it

        Raises:
            ApifyServiceError: If the run fails or produced no item
        """
        try:
            run = self._client.actor(POST_SCRAPER_ACTOR_ID).call(
                run_input={"directUrls": [post_url], "resultsType": "posts", "resultsLimit": 1},
                timeout_secs=timeout_secs,
            )
        except Exception as e:
            raise ApifyServiceError(f"Apify actor call failed: {e}") from e

        dataset_id = (run or {}).get("defaultDatasetId")
        if not dataset_id:
            raise ApifyServiceError(f"Apify run for {post_url} finished without a dataset")

        items = self._client.dataset(dataset_id).list_items(limit=1).items
        if not items:
            raise ApifyServiceError(f"No post data returned by Apify for {post_url}")

        logger.debug(f"Apify item keys for {post_url}: {sorted(items[0])[:15]}")
        return items[0]
