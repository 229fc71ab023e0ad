from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple
import asyncio

import httpx

from trip_optimizer import config
from trip_optimizer.errors import DataGapWarning

import logging

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
logger.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
logger.propagate = False

ForecastKey = Tuple[str, str]


class CrowdGateway(Protocol):
    async def forecast(self, destination_id: str, date: str) -> Optional[float]:
        ...


@dataclass(frozen=True)
class CrowdForecast:
    """Read-only (destination, date) -> crowd score table for one run."""
    scores: Mapping[ForecastKey, float] = field(default_factory=dict)

    def lookup(self, destination_id: Optional[str], date: str) -> Optional[float]:
        if destination_id is None:
            return None
        return self.scores.get((destination_id, date))

    def score_for(self, destination_id: Optional[str], date: str) -> Tuple[float, bool]:
        """Return ``(crowd_score, has_forecast)``, falling back to the neutral score."""
        value = self.lookup(destination_id, date)
        if value is None:
            return config.NEUTRAL_CROWD_SCORE, False
        return value, True

    @classmethod
    def from_entries(cls, entries: Iterable[Mapping[str, object]]) -> "CrowdForecast":
        scores: Dict[ForecastKey, float] = {}
        for entry in entries:
            destination_id = entry.get("destination_id")
            day = _iso_day(entry.get("date"))
            level = entry.get("crowd_level")
            if not destination_id or day is None or level is None:
                continue
            scores[(str(destination_id), day)] = _clamp_score(float(level))  # type: ignore[arg-type]
        return cls(scores=scores)


class StaticCrowdGateway:
    """Gateway backed by an in-memory table, e.g. forecasts posted with a request."""

    def __init__(self, forecast: CrowdForecast | Mapping[ForecastKey, float]):
        self._scores = forecast.scores if isinstance(forecast, CrowdForecast) else dict(forecast)

    async def forecast(self, destination_id: str, date: str) -> Optional[float]:
        return self._scores.get((destination_id, date))


class HttpCrowdGateway:
    """
    Crowd predictions served over HTTP. A 404 means "no prediction for that
    day" and is reported as absence rather than an error.
    """
    PREDICTIONS_PATH = "/predictions"

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or config.CROWD_API_BASE_URL).rstrip("/")
        self.api_key = api_key or config.CROWD_API_KEY
        self.timeout = timeout or config.CROWD_API_TIMEOUT

    async def forecast(self, destination_id: str, date: str) -> Optional[float]:
        if not self.base_url:
            raise RuntimeError("CROWD_API_BASE_URL environment variable not configured")

        headers = {"User-Agent": "trip-optimizer/1.0"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(
                f"{self.base_url}{self.PREDICTIONS_PATH}",
                params={"destination_id": destination_id, "date": date},
                headers=headers,
            )
        if response.status_code == 404:
            return None
        response.raise_for_status()

        data = response.json()
        if not isinstance(data, dict):
            return None
        value = data.get("crowd_level")
        if value is None:
            value = data.get("crowdLevel")
        return None if value is None else float(value)


async def fetch_forecast(
    gateway: CrowdGateway,
    destination_ids: Sequence[str],
    dates: Sequence[str],
    *,
    timeout: Optional[float] = None,
    max_concurrency: Optional[int] = None,
) -> CrowdForecast:
    """Fan out one lookup per (destination, date) pair and collect the results.

    Lookups are independent, so they run concurrently, at most
    ``max_concurrency`` at a time. A lookup that fails, times out or returns
    nothing is simply left out of the table; callers resolve the gap with the
    neutral crowd score.
    """
    pairs: List[ForecastKey] = [(dest, day) for dest in destination_ids for day in dates]
    if not pairs:
        return CrowdForecast()

    limit = timeout if timeout is not None else config.CROWD_API_TIMEOUT
    slots = asyncio.Semaphore(max(1, max_concurrency or config.CROWD_API_MAX_CONCURRENCY))

    async def _lookup(destination_id: str, day: str) -> Optional[float]:
        # the timeout starts once a slot is free, not while queued
        async with slots:
            return await asyncio.wait_for(gateway.forecast(destination_id, day), timeout=limit)

    outcomes = await asyncio.gather(*[_lookup(dest, day) for dest, day in pairs], return_exceptions=True)

    scores: Dict[ForecastKey, float] = {}
    gaps = 0
    for (destination_id, day), outcome in zip(pairs, outcomes):
        if isinstance(outcome, BaseException):
            logger.warning(
                "Crowd lookup failed for %s on %s: %s", destination_id, day, str(outcome) or type(outcome).__name__
            )
            gaps += 1
            continue
        if outcome is None:
            logger.debug("%s: no forecast for %s on %s", DataGapWarning.__name__, destination_id, day)
            gaps += 1
            continue
        try:
            scores[(destination_id, day)] = _clamp_score(float(outcome))
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric crowd forecast %r for %s on %s", outcome, destination_id, day)
            gaps += 1

    logger.info(
        "Fetched crowd forecasts for %d destination(s) x %d day(s): %d found, %d missing",
        len(destination_ids),
        len(dates),
        len(scores),
        gaps,
    )
    return CrowdForecast(scores=scores)


def _clamp_score(value: float) -> float:
    return max(0.0, min(config.MAX_CROWD_SCORE, value))


def _iso_day(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text).date().isoformat()
    except ValueError:
        try:
            return datetime.strptime(text[:10], "%Y-%m-%d").date().isoformat()
        except ValueError:
            return None
