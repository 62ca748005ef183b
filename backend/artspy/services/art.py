from __future__ import annotations

import logging
import random

import httpx

from ..game.models import ArtPair


logger = logging.getLogger(__name__)

THEMES = [
    "Portrait",
    "Still Life",
    "Landscape",
    "Oil painting",
    "Watercolor",
    "Impressionism",
    "Surrealism",
    "Flowers",
    "Mythological painting",
]
EMERGENCY_THEMES = ["Portrait", "Landscape", "Still Life"]

MIN_SEARCH_RESULTS = 10
CANDIDATES_PER_PAIR = 5
SEED_RANGE = 100_000


class ArtUnavailable(Exception):
    pass


class ArtSource:
    """Fetches an innocent/impostor image pair for a theme.

    Every lookup falls back to the placeholder generator on failure, so
    callers always get a pair back.
    """

    def __init__(
        self,
        api_base: str,
        placeholder_base: str,
        timeout: float = 10.0,
        rng: random.Random | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.placeholder_base = placeholder_base.rstrip("/")
        self.timeout = timeout
        self._rng = rng or random.Random()
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self._transport)

    def random_theme(self, themes: list[str] | None = None) -> str:
        return self._rng.choice(themes or THEMES)

    def placeholder(self, theme: str) -> ArtPair:
        keywords = theme.replace(" ", ",")
        seed1 = self._rng.randrange(SEED_RANGE)
        seed2 = self._rng.randrange(SEED_RANGE)
        while seed1 == seed2:
            seed2 = self._rng.randrange(SEED_RANGE)
        return ArtPair(
            innocent=f"{self.placeholder_base}/{keywords}?lock={seed1}",
            impostor=f"{self.placeholder_base}/{keywords}?lock={seed2}",
            theme=theme,
        )

    def emergency_pair(self) -> ArtPair:
        return self.placeholder(self.random_theme(EMERGENCY_THEMES))

    def fetch_pair(self, theme: str) -> ArtPair:
        try:
            return self._lookup(theme)
        except (httpx.HTTPError, ArtUnavailable, ValueError, KeyError, TypeError) as exc:
            logger.warning("Art lookup for %r failed, using placeholder: %s", theme, exc)
            return self.placeholder(theme)

    def prefetch(self, rounds: int) -> list[ArtPair]:
        # One search at a time; the collection API rate-limits bursts.
        pairs = []
        for i in range(rounds):
            theme = self.random_theme()
            pairs.append(self.fetch_pair(theme))
            logger.debug("Cached art %d/%d (%s)", i + 1, rounds, theme)
        return pairs

    def _lookup(self, theme: str) -> ArtPair:
        with self._client() as client:
            resp = client.get(
                f"{self.api_base}/search",
                params={
                    "hasImages": "true",
                    "isPublicDomain": "true",
                    "classification": "Paintings",
                    "q": theme,
                },
            )
            resp.raise_for_status()
            data = resp.json()
            if not isinstance(data, dict):
                raise ArtUnavailable("unexpected search response")

            total = data.get("total") or 0
            object_ids = list(dict.fromkeys(data.get("objectIDs") or []))
            if total < MIN_SEARCH_RESULTS or not object_ids:
                raise ArtUnavailable("not enough results")

            picks = self._rng.sample(object_ids, min(CANDIDATES_PER_PAIR, len(object_ids)))
            images = []
            for object_id in picks:
                url = self._object_image(client, object_id)
                if url:
                    images.append(url)

        if len(images) < 2:
            raise ArtUnavailable("not enough valid images")

        return ArtPair(innocent=images[0], impostor=images[1], theme=theme)

    def _object_image(self, client: httpx.Client, object_id: int) -> str | None:
        try:
            resp = client.get(f"{self.api_base}/objects/{object_id}")
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("Art object %s unavailable: %s", object_id, exc)
            return None
        if not isinstance(data, dict):
            logger.debug("Art object %s returned %s, skipping", object_id, type(data).__name__)
            return None
        url = data.get("primaryImageSmall")
        if isinstance(url, str) and url.startswith("http"):
            return url
        return None
