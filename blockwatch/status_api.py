from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx


@dataclass(frozen=True)
class StatusApiConfig:
    base_url: str = "https://check.skiddle.id/"
    timeout_seconds: float = 20.0


class StatusCheckError(Exception):
    """One status request could not produce a result."""


class RemoteCallFailure(StatusCheckError):
    pass


class ResponseParseFailure(StatusCheckError):
    pass


def parse_status_payload(data: Any) -> dict[str, bool]:
    """
    The status API answers with {"<domain>": {"blocked": <bool>, ...}, ...}.
    Any other shape fails the whole batch.
    """
    if not isinstance(data, dict):
        raise ResponseParseFailure(f"Unexpected status response (not a JSON object): {type(data).__name__}")

    out: dict[str, bool] = {}
    for domain, entry in data.items():
        if not isinstance(entry, dict) or not isinstance(entry.get("blocked"), bool):
            raise ResponseParseFailure(f"Unexpected status entry for {domain!r}: {entry!r}")
        out[str(domain)] = entry["blocked"]
    return out


class StatusApiClient:
    """Queries the blocking-status API for one batch of domains per call."""

    def __init__(self, client: httpx.AsyncClient, cfg: StatusApiConfig) -> None:
        self.client = client
        self.cfg = cfg

    async def fetch_status(self, domains: list[str]) -> dict[str, bool]:
        params = {"domains": ",".join(domains)}
        try:
            resp = await self.client.get(self.cfg.base_url, params=params, timeout=self.cfg.timeout_seconds)
            resp.raise_for_status()
        except httpx.TimeoutException as exc:
            raise RemoteCallFailure(f"timed out after {self.cfg.timeout_seconds:g}s") from exc
        except httpx.HTTPStatusError as exc:
            raise RemoteCallFailure(f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise RemoteCallFailure(f"{type(exc).__name__}: {exc}") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise ResponseParseFailure(f"Unreadable response body: {exc}") from exc
        return parse_status_payload(data)
