from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Optional, Tuple

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from incidentmap.projection import MAX_LATITUDE

USER_AGENT = "incidentmap/0.1 (+tile check)"


@dataclass
class TileCheck:
    url: str
    ok: bool = False
    status_code: Optional[int] = None
    latency_ms: Optional[int] = None
    error: Optional[str] = None


def tile_url(z: int, x: int, y: int, template: str) -> str:
    """Fill an XYZ template such as https://tile.openstreetmap.org/{z}/{x}/{y}.png"""
    if z < 0:
        raise ValueError(f"zoom must be >= 0: {z}")
    n = 2 ** z
    if not (0 <= x < n and 0 <= y < n):
        raise ValueError(f"tile out of range: z={z} x={x} y={y}")
    return template.format(z=z, x=x, y=y)


def lon_lat_to_tile(lon: float, lat: float, zoom: int) -> Tuple[int, int]:
    """Slippy-map tile index containing lon/lat at zoom."""
    lat = max(-MAX_LATITUDE, min(MAX_LATITUDE, lat))
    n = 2 ** zoom
    x = int((lon + 180.0) / 360.0 * n)
    lat_rad = math.radians(lat)
    y = int((1.0 - math.asinh(math.tan(lat_rad)) / math.pi) / 2.0 * n)
    return min(max(x, 0), n - 1), min(max(y, 0), n - 1)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(min=0.2, max=2),
    retry=retry_if_exception_type(httpx.TransportError),
    reraise=True,
)
async def _fetch(url: str, timeout_s: float) -> httpx.Response:
    async with httpx.AsyncClient(timeout=timeout_s, follow_redirects=True) as client:
        return await client.get(url, headers={"User-Agent": USER_AGENT})


async def check_tile_server(url: str, timeout_s: float = 5.0) -> TileCheck:
    """
    Best-effort probe of one tile. Failures are reported in the result;
    the map surface fetches tiles on its own either way.
    """
    result = TileCheck(url=url)
    t0 = time.time()
    try:
        r = await _fetch(url, timeout_s)
        result.status_code = r.status_code
        result.ok = 200 <= r.status_code < 400
        if not result.ok:
            result.error = f"HTTP {r.status_code}"
    except httpx.HTTPError as e:
        result.error = f"tile request failed: {e}"
    result.latency_ms = int((time.time() - t0) * 1000)
    return result
