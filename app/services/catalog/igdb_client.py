"""
IGDB catalog client.

Read-only access to the IGDB v4 API (https://api-docs.igdb.com):

- Twitch OAuth client-credentials token, acquired lazily and renewed
  60 seconds before it expires
- APIcalypse queries POSTed as ``text/plain`` bodies
- An in-process response cache keyed by endpoint + normalized query

IGDB allows 4 requests/second per client, so the cache matters more than
latency here. This layer never retries: TransportError and rate-limited
UpstreamError are left to the caller's backoff policy.
"""
import time
from typing import Any, Callable, Dict, List, Optional

import httpx
from pydantic import ValidationError

from app.core.logging import get_logger
from app.core.metrics import (
    igdb_token_renewals_total,
    record_cache_lookup,
    record_igdb_request_failure,
    record_igdb_request_success,
)
from app.services.catalog.cache import ResponseCache, make_cache_key, normalize_query
from app.services.catalog.exceptions import (
    ConfigurationError,
    ParseError,
    TransportError,
    UpstreamError,
)
from app.services.catalog.query import (
    GAME_FIELDS,
    REFERENCE_FIELDS,
    IgdbQuery,
    clamp_limit,
    id_list,
    quote,
)
from app.services.catalog.records import (
    AccessToken,
    CatalogReference,
    ExternalGameRecord,
    GameEntry,
    MalformedGameRecord,
)

logger = get_logger(__name__)

DEFAULT_TOKEN_URL = "https://id.twitch.tv/oauth2/token"
DEFAULT_BASE_URL = "https://api.igdb.com/v4"

# Token is treated as expired this many seconds early
TOKEN_EXPIRY_MARGIN = 60.0

# PopScore "visits" ranking; pool is oversized because the base-game and
# multiplayer filters discard a good share of it
POPULARITY_TYPE_VISITS = 1
POPULARITY_POOL_SIZE = 250
POPULAR_MAX_LIMIT = 100
FALLBACK_MIN_RATING_COUNT = 100


class IgdbClient:
    """
    Authenticated, cached IGDB client.

    One instance is shared by the whole process (see ``get_catalog_client``);
    the access token and the response cache live on it.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        cache_ttl: float = 300,
        reference_cache_ttl: float = 86400,
        request_timeout: float = 8.0,
        token_timeout: float = 8.0,
        token_url: str = DEFAULT_TOKEN_URL,
        base_url: str = DEFAULT_BASE_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the IGDB client.

        Args:
            client_id: Twitch application client id
            client_secret: Twitch application client secret
            cache_ttl: Seconds a game query response stays cached
            reference_cache_ttl: Seconds genre/platform lists stay cached
            request_timeout: Upper bound for one IGDB query
            token_timeout: Upper bound for the token exchange
            token_url: Twitch OAuth token endpoint
            base_url: IGDB API root
            http_client: Pre-built client (tests inject a MockTransport here)
            clock: Monotonic time source for token expiry and cache TTL
        """
        self.client_id = client_id or ""
        self.client_secret = client_secret or ""
        self.reference_cache_ttl = reference_cache_ttl
        self.request_timeout = request_timeout
        self.token_timeout = token_timeout
        self.token_url = token_url
        self.base_url = base_url.rstrip("/")

        self._clock = clock
        self._cache = ResponseCache(default_ttl=cache_ttl, clock=clock)
        self._token: Optional[AccessToken] = None
        self._client = http_client

    # ========================================================================
    # Configuration & lifecycle
    # ========================================================================

    def is_configured(self) -> bool:
        """Whether both credentials are present. Makes no network call."""
        return bool(self.client_id and self.client_secret)

    def missing_credentials(self) -> list[str]:
        missing = []
        if not self.client_id:
            missing.append("IGDB_CLIENT_ID")
        if not self.client_secret:
            missing.append("IGDB_CLIENT_SECRET")
        return missing

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.request_timeout),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    # ========================================================================
    # Authentication
    # ========================================================================

    async def authenticate(self) -> AccessToken:
        """
        Exchange client credentials for a fresh access token.

        Returns:
            The new token, which also replaces the client's current one

        Raises:
            ConfigurationError: Credentials are not set
            TransportError: Token endpoint unreachable, timed out or errored
            ParseError: Token endpoint answered without a usable token
        """
        if not self.is_configured():
            raise ConfigurationError(self.missing_credentials())

        client = await self._get_client()
        try:
            response = await client.post(
                self.token_url,
                params={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "grant_type": "client_credentials",
                },
                timeout=self.token_timeout,
            )
        except httpx.TimeoutException as e:
            record_igdb_request_failure("oauth2/token", "timeout")
            raise TransportError(f"Timed out after {self.token_timeout}s requesting IGDB access token") from e
        except httpx.RequestError as e:
            record_igdb_request_failure("oauth2/token", "network")
            raise TransportError(f"Could not reach IGDB token endpoint: {e}") from e

        if not response.is_success:
            record_igdb_request_failure("oauth2/token", f"http_{response.status_code}")
            logger.error(f"IGDB token request failed with HTTP {response.status_code}")
            raise TransportError(
                f"IGDB token endpoint returned HTTP {response.status_code}. Check the IGDB credentials."
            )

        try:
            data = response.json()
            value = data["access_token"]
            expires_in = float(data["expires_in"])
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Malformed IGDB token response: {response.text[:200]}")
            raise ParseError("IGDB token response did not contain access_token/expires_in") from e

        self._token = AccessToken(value=value, expires_at=self._clock() + expires_in)
        igdb_token_renewals_total.inc()
        logger.info(f"Acquired IGDB access token (expires in {int(expires_in)}s)")
        return self._token

    async def _ensure_token(self) -> str:
        if self._token is None or not self._token.is_usable(self._clock(), TOKEN_EXPIRY_MARGIN):
            await self.authenticate()
        return self._token.value

    # ========================================================================
    # Raw queries
    # ========================================================================

    async def query(self, endpoint: str, body: str, ttl: Optional[float] = None) -> List[Dict[str, Any]]:
        """
        Run an APIcalypse query against an IGDB endpoint.

        Args:
            endpoint: Resource name, e.g. ``games`` or ``genres``
            body: Query body
            ttl: Cache lifetime override for this response

        Returns:
            The decoded JSON array, possibly from cache

        Raises:
            ConfigurationError, TransportError, UpstreamError, ParseError
        """
        endpoint = endpoint.strip("/")
        body = normalize_query(body)
        cache_key = make_cache_key(endpoint, body)

        cached = self._cache.get(cache_key)
        if cached is not None:
            record_cache_lookup(endpoint, hit=True)
            return cached
        record_cache_lookup(endpoint, hit=False)

        token = await self._ensure_token()
        client = await self._get_client()

        try:
            response = await client.post(
                f"{self.base_url}/{endpoint}",
                content=body,
                headers={
                    "Client-ID": self.client_id,
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "text/plain",
                    "Accept": "application/json",
                },
                timeout=self.request_timeout,
            )
        except httpx.TimeoutException as e:
            record_igdb_request_failure(endpoint, "timeout")
            logger.warning(f"IGDB {endpoint} request timed out after {self.request_timeout}s")
            raise TransportError(f"IGDB {endpoint} request timed out after {self.request_timeout}s") from e
        except httpx.RequestError as e:
            record_igdb_request_failure(endpoint, "network")
            logger.warning(f"IGDB {endpoint} request failed: {e}")
            raise TransportError(f"Could not reach IGDB {endpoint}: {e}") from e

        if not response.is_success:
            record_igdb_request_failure(endpoint, f"http_{response.status_code}")
            if response.status_code == 401:
                # Token revoked or expired early; force a fresh exchange next time
                self._token = None
            if response.status_code == 429:
                logger.warning(f"IGDB rate limit hit on {endpoint}")
            else:
                logger.error(f"IGDB {endpoint} returned HTTP {response.status_code}")
            raise UpstreamError(response.status_code, response.text, endpoint)

        try:
            payload = response.json()
        except ValueError as e:
            record_igdb_request_failure(endpoint, "parse")
            logger.error(f"IGDB {endpoint} returned invalid JSON: {response.text[:200]}")
            raise ParseError(f"IGDB {endpoint} returned invalid JSON") from e

        if not isinstance(payload, list):
            record_igdb_request_failure(endpoint, "parse")
            logger.error(f"IGDB {endpoint} returned {type(payload).__name__}, expected a JSON array")
            raise ParseError(f"IGDB {endpoint} returned {type(payload).__name__}, expected a JSON array")

        self._cache.set(cache_key, payload, ttl)
        record_igdb_request_success(endpoint)
        return payload

    def _parse_games(self, payload: List[Any], include_malformed: bool = False) -> List[GameEntry]:
        """
        Validate a games page item by item.

        A malformed item never fails the page. It is logged, then either
        dropped or, with ``include_malformed``, kept in place as a
        MalformedGameRecord so the sync reconciler can report it.
        """
        entries: List[GameEntry] = []
        for item in payload:
            try:
                entries.append(ExternalGameRecord.model_validate(item))
            except ValidationError as e:
                malformed = MalformedGameRecord.from_payload(item, e)
                logger.error(f"IGDB game {malformed.id} violates the record contract: {malformed.reason}")
                if include_malformed:
                    entries.append(malformed)
        return entries

    def _parse_references(self, payload: List[Dict[str, Any]], endpoint: str) -> List[CatalogReference]:
        try:
            return [CatalogReference.model_validate(item) for item in payload]
        except ValidationError as e:
            logger.error(f"IGDB {endpoint} payload violates the reference contract: {e}")
            raise ParseError(f"Malformed {endpoint} record from IGDB") from e

    # ========================================================================
    # Game lookups
    # ========================================================================
    #
    # Page lookups return ExternalGameRecord items. Pass include_malformed=True
    # to also get a MalformedGameRecord for every item that failed validation,
    # in its page position.

    async def search_games(self, term: str, limit: int = 20, include_malformed: bool = False) -> List[GameEntry]:
        """
        Name search over multiplayer base games (no DLC, expansions, bundles or versions).

        Args:
            term: Case-insensitive substring of the game name
            limit: Maximum results (capped at 50)
            include_malformed: Keep items that failed validation as MalformedGameRecord
        """
        term = (term or "").strip()
        if not term:
            raise ValueError("Search query cannot be empty")

        body = (
            IgdbQuery()
            .fields(GAME_FIELDS)
            .where(f"name ~ *{quote(term)}*")
            .base_games_only()
            .multiplayer_only()
            .sort("rating", "desc")
            .limit(clamp_limit(limit))
            .build()
        )
        return self._parse_games(await self.query("games", body), include_malformed)

    async def get_popular_games(self, limit: int = 20, include_malformed: bool = False) -> List[GameEntry]:
        """
        Games ranked by IGDB's PopScore visit ranking.

        The ranking is computed upstream; locally it is only used to order
        the detail fetch and truncate to ``limit``. Falls back to all-time
        popularity (rating count) when PopScore returns nothing.
        """
        limit = clamp_limit(limit, POPULAR_MAX_LIMIT)

        primitives_body = (
            IgdbQuery()
            .fields(("game_id", "value"))
            .where(f"popularity_type = {POPULARITY_TYPE_VISITS}")
            .sort("value", "desc")
            .limit(POPULARITY_POOL_SIZE)
            .build()
        )
        primitives = await self.query("popularity_primitives", primitives_body)

        ranked_ids: List[int] = []
        for primitive in primitives:
            game_id = primitive.get("game_id") if isinstance(primitive, dict) else None
            if isinstance(game_id, int) and game_id not in ranked_ids:
                ranked_ids.append(game_id)

        if not ranked_ids:
            logger.warning("No PopScore primitives returned, falling back to all-time popular games")
            return await self._get_fallback_popular_games(limit, include_malformed)

        body = (
            IgdbQuery()
            .fields(GAME_FIELDS)
            .where(f"id = {id_list(ranked_ids)}")
            .base_games_only()
            .multiplayer_only()
            .limit(len(ranked_ids))
            .build()
        )
        games = self._parse_games(await self.query("games", body), include_malformed)

        rank = {game_id: position for position, game_id in enumerate(ranked_ids)}
        games.sort(key=lambda game: rank.get(game.id, len(rank)))
        return games[:limit]

    async def _get_fallback_popular_games(self, limit: int, include_malformed: bool) -> List[GameEntry]:
        body = (
            IgdbQuery()
            .fields(GAME_FIELDS)
            .base_games_only()
            .multiplayer_only()
            .where(f"rating_count >= {FALLBACK_MIN_RATING_COUNT}")
            .sort("rating_count", "desc")
            .limit(clamp_limit(limit))
            .build()
        )
        return self._parse_games(await self.query("games", body), include_malformed)

    async def get_games_by_genre(
        self, genre_id: int, limit: int = 20, include_malformed: bool = False
    ) -> List[GameEntry]:
        """Top-rated multiplayer main games in a genre."""
        if not genre_id or genre_id <= 0:
            raise ValueError("Invalid genre ID")

        body = (
            IgdbQuery()
            .fields(GAME_FIELDS)
            .where(f"genres = {int(genre_id)}")
            .base_games_only()
            .main_games_only()
            .multiplayer_only()
            .sort("rating", "desc")
            .limit(clamp_limit(limit))
            .build()
        )
        return self._parse_games(await self.query("games", body), include_malformed)

    async def get_games_by_platform(
        self, platform_id: int, limit: int = 20, include_malformed: bool = False
    ) -> List[GameEntry]:
        """Top-rated multiplayer main games on a platform."""
        if not platform_id or platform_id <= 0:
            raise ValueError("Invalid platform ID")

        body = (
            IgdbQuery()
            .fields(GAME_FIELDS)
            .where(f"platforms = {int(platform_id)}")
            .base_games_only()
            .main_games_only()
            .multiplayer_only()
            .sort("rating", "desc")
            .limit(clamp_limit(limit))
            .build()
        )
        return self._parse_games(await self.query("games", body), include_malformed)

    async def get_game_by_id(self, game_id: int) -> Optional[ExternalGameRecord]:
        if not game_id or game_id <= 0:
            raise ValueError("Invalid game ID")

        body = IgdbQuery().fields(GAME_FIELDS).where(f"id = {int(game_id)}").limit(1).build()
        games = self._parse_games(await self.query("games", body))
        return games[0] if games else None

    async def get_game_by_slug(self, slug: str, include_malformed: bool = False) -> Optional[GameEntry]:
        slug = (slug or "").strip()
        if not slug:
            raise ValueError("Game slug cannot be empty")

        body = IgdbQuery().fields(GAME_FIELDS).where(f"slug = {quote(slug)}").limit(1).build()
        games = self._parse_games(await self.query("games", body), include_malformed)
        return games[0] if games else None

    # ========================================================================
    # Reference data
    # ========================================================================

    async def get_genres(self) -> List[CatalogReference]:
        body = IgdbQuery().fields(REFERENCE_FIELDS).sort("name", "asc").limit(50).build()
        payload = await self.query("genres", body, ttl=self.reference_cache_ttl)
        return self._parse_references(payload, "genres")

    async def get_platforms(self) -> List[CatalogReference]:
        body = IgdbQuery().fields(REFERENCE_FIELDS).sort("name", "asc").limit(50).build()
        payload = await self.query("platforms", body, ttl=self.reference_cache_ttl)
        return self._parse_references(payload, "platforms")

    # ========================================================================
    # Cache management
    # ========================================================================

    def get_cache_stats(self) -> Dict[str, Any]:
        return self._cache.stats()

    def clear_cache(self) -> None:
        """Drop every cached response. Safe to call repeatedly."""
        size = len(self._cache)
        self._cache.clear()
        logger.info(f"IGDB response cache cleared ({size} entries dropped)")


# Global service instance
_catalog_client: Optional[IgdbClient] = None


def get_catalog_client() -> IgdbClient:
    """Get or create the process-wide IgdbClient."""
    global _catalog_client
    if _catalog_client is None:
        from app.core.config import settings

        _catalog_client = IgdbClient(
            client_id=settings.IGDB_CLIENT_ID,
            client_secret=settings.IGDB_CLIENT_SECRET,
            cache_ttl=settings.IGDB_CACHE_TTL,
            reference_cache_ttl=settings.IGDB_REFERENCE_CACHE_TTL,
            request_timeout=settings.IGDB_REQUEST_TIMEOUT,
            token_timeout=settings.IGDB_TOKEN_TIMEOUT,
            token_url=settings.IGDB_TOKEN_URL,
            base_url=settings.IGDB_BASE_URL,
        )
    return _catalog_client


async def close_catalog_client() -> None:
    """Close and forget the process-wide client (application shutdown)."""
    global _catalog_client
    if _catalog_client is not None:
        await _catalog_client.close()
        _catalog_client = None
