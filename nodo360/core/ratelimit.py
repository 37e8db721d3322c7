# nodo360/core/ratelimit.py
import asyncio
import math
import time
import uuid
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Dict, Protocol, Tuple

import httpx
from fastapi import HTTPException, Request, Response
from loguru import logger

from nodo360.core.settings import settings


@dataclass(frozen=True)
class RateLimitTier:
    limit: int
    window_seconds: int


# 4 niveles fijos: auth (login/registro), strict (escrituras sensibles),
# api (uso normal), public (redirecciones y lecturas públicas)
RATE_LIMIT_TIERS: Dict[str, RateLimitTier] = {
    "auth": RateLimitTier(limit=5, window_seconds=60),
    "strict": RateLimitTier(limit=10, window_seconds=60),
    "api": RateLimitTier(limit=60, window_seconds=60),
    "public": RateLimitTier(limit=120, window_seconds=60),
}


@dataclass(frozen=True)
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset_at: float  # epoch en segundos

    def retry_after(self, now: float | None = None) -> int:
        now = time.time() if now is None else now
        return max(1, math.ceil(self.reset_at - now))


class RateLimitStore(Protocol):
    async def hit(self, key: str, tier: RateLimitTier) -> RateLimitResult: ...


class MemoryRateLimitStore:
    """
    Ventana fija en memoria (desarrollo / sin store externo).
    key → (contador, inicio de ventana). Solo válido para un único proceso.
    """

    MAX_KEYS = 10_000

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self._windows: Dict[str, Tuple[int, float]] = {}
        self._lock = asyncio.Lock()

    async def hit(self, key: str, tier: RateLimitTier) -> RateLimitResult:
        async with self._lock:
            now = self.clock()
            count, started = self._windows.get(key, (0, now))

            if now - started >= tier.window_seconds:
                count, started = 0, now

            count += 1
            self._windows[key] = (count, started)

            if len(self._windows) > self.MAX_KEYS:
                self._prune(now, tier.window_seconds)

        return RateLimitResult(
            success=count <= tier.limit,
            limit=tier.limit,
            remaining=max(0, tier.limit - count),
            reset_at=started + tier.window_seconds,
        )

    def _prune(self, now: float, window_seconds: int) -> None:
        expired = [k for k, (_, s) in self._windows.items() if now - s >= window_seconds]
        for k in expired:
            del self._windows[k]

    def reset(self) -> None:
        self._windows.clear()


class RestRateLimitStore:
    """
    Ventana deslizante sobre el REST de Redis (pipeline ZREMRANGEBYSCORE /
    ZADD / ZCARD / PEXPIRE en una sola llamada).
    Si el store falla se deja pasar la petición (fail-open).
    """

    def __init__(self, url: str, token: str, http: httpx.AsyncClient | None = None):
        self.url = url.rstrip("/")
        self.token = token
        # Solo se cierra el cliente si lo crea el propio store
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(timeout=5)

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def hit(self, key: str, tier: RateLimitTier) -> RateLimitResult:
        now_ms = int(time.time() * 1000)
        window_ms = tier.window_seconds * 1000
        redis_key = f"nodo360:ratelimit:{key}"
        member = f"{now_ms}-{uuid.uuid4().hex[:8]}"

        commands = [
            ["ZREMRANGEBYSCORE", redis_key, 0, now_ms - window_ms],
            ["ZADD", redis_key, now_ms, member],
            ["ZCARD", redis_key],
            ["PEXPIRE", redis_key, window_ms],
        ]

        try:
            res = await self.http.post(
                f"{self.url}/pipeline",
                json=commands,
                headers={"Authorization": f"Bearer {self.token}"},
            )
            res.raise_for_status()
            count = int(res.json()[2]["result"])
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning("⚠️ [ratelimit] Store no disponible, se permite la petición: {}", e)
            return RateLimitResult(
                success=True,
                limit=tier.limit,
                remaining=tier.limit,
                reset_at=(now_ms + window_ms) / 1000,
            )

        return RateLimitResult(
            success=count <= tier.limit,
            limit=tier.limit,
            remaining=max(0, tier.limit - count),
            reset_at=(now_ms + window_ms) / 1000,
        )


class RateLimiter:
    def __init__(self, store: RateLimitStore):
        self.store = store

    async def check(self, identifier: str, tier_name: str) -> RateLimitResult:
        tier = RATE_LIMIT_TIERS.get(tier_name)
        if tier is None:
            raise ValueError(f"Nivel de rate limit desconocido: {tier_name}")
        return await self.store.hit(f"{identifier}:{tier_name}", tier)

    async def aclose(self) -> None:
        close = getattr(self.store, "aclose", None)
        if close:
            await close()


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    """Singleton: REST en producción si hay URL configurada, memoria en otro caso."""
    if settings.is_production and settings.RATELIMIT_REST_URL:
        logger.info("🚦 Rate limit con store REST")
        return RateLimiter(
            RestRateLimitStore(settings.RATELIMIT_REST_URL, settings.RATELIMIT_REST_TOKEN)
        )
    logger.info("🚦 Rate limit en memoria")
    return RateLimiter(MemoryRateLimitStore())


async def close_rate_limiter() -> None:
    """Cierra el store del singleton al apagar la app (cliente HTTP incluido)."""
    if get_rate_limiter.cache_info().currsize:
        await get_rate_limiter().aclose()
        get_rate_limiter.cache_clear()


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


def _headers(result: RateLimitResult) -> Dict[str, str]:
    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(int(result.reset_at)),
    }


class RateLimit:
    """
    Dependencia FastAPI: `dependencies=[Depends(RateLimit("api"))]`.
    Lanza 429 con Retry-After cuando se supera el límite de la ventana.
    """

    def __init__(self, tier: str):
        if tier not in RATE_LIMIT_TIERS:
            raise ValueError(f"Nivel de rate limit desconocido: {tier}")
        self.tier = tier

    async def __call__(self, request: Request, response: Response) -> RateLimitResult:
        limiter = get_rate_limiter()
        ip = get_client_ip(request)
        result = await limiter.check(ip, self.tier)

        if not result.success:
            retry_after = result.retry_after()
            logger.warning("🚫 [ratelimit] {} excedió el nivel '{}'", ip, self.tier)
            raise HTTPException(
                status_code=429,
                detail={
                    "error": "Demasiadas solicitudes. Inténtalo de nuevo más tarde.",
                    "retryAfter": retry_after,
                },
                headers={**_headers(result), "Retry-After": str(retry_after)},
            )

        response.headers.update(_headers(result))
        return result
