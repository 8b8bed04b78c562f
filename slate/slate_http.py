import asyncio
from typing import Optional, Dict, Any

import httpx


async def http_request(method: str, url: str, *, config: Optional[Dict] = None) -> bytes:
    """
    Core HTTP helper used to fetch remote scripts.

    config keys:
      - timeout (seconds, default 5.0)
      - retries (extra attempts after the first, default 2)
      - backoff (base delay in seconds, doubled per attempt, default 0.2)
      - headers (dict)

    Returns the body on 2xx and raises RuntimeError otherwise.
    """
    cfg = dict(config or {})
    timeout = float(cfg.pop('timeout', 5.0))
    retries = int(cfg.pop('retries', 2))
    backoff = float(cfg.pop('backoff', 0.2))
    headers = dict(cfg.pop('headers', {}))

    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        last_exc = None
        for attempt in range(retries + 1):
            try:
                resp = await client.request(method.upper(), url, headers=headers)
                if 200 <= resp.status_code < 300:
                    return resp.content
                # Non-2xx → raise
                preview = (resp.text or "")[:200]
                raise RuntimeError(f"HTTP {resp.status_code} for {url}: {preview}")
            except Exception as e:
                last_exc = e
                if attempt < retries:
                    await asyncio.sleep(backoff * (2 ** attempt))
                    continue
                raise last_exc


async def http_get_text(url: str, config: Optional[Dict[str, Any]] = None) -> str:
    body = await http_request('GET', url, config=config)
    return body.decode('utf-8', errors='replace')
