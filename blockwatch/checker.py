from __future__ import annotations

from typing import Any

import structlog

from blockwatch.status_api import StatusCheckError

logger = structlog.get_logger(__name__)


BATCH_SIZE = 30
NOTHING_TO_CHECK_TEXT = "📭 The domain list is empty, nothing to check."


def partition_domains(domains: list[str], batch_size: int = BATCH_SIZE) -> list[list[str]]:
    """Contiguous, order-preserving groups of at most `batch_size` domains."""
    batch_size = max(1, int(batch_size))
    return [list(domains[i : i + batch_size]) for i in range(0, len(domains), batch_size)]


def format_status_line(domain: str, blocked: bool | None) -> str:
    if blocked is None:
        return f"{domain}: ❔ No result"
    if blocked:
        return f"{domain}: 🚫 BLOCKED"
    return f"{domain}: ✅ Not Blocked"


def format_batch_error(index: int, total: int, batch: list[str], exc: Exception) -> str:
    return f"⚠️ Batch {index}/{total} ({len(batch)} domains, starting {batch[0]}) failed: {exc}"


def _render_batch(batch: list[str], statuses: dict[str, bool]) -> list[str]:
    # Requested order first, then anything extra the API volunteered.
    lines = [format_status_line(domain, statuses.get(domain)) for domain in batch]
    requested = set(batch)
    lines.extend(format_status_line(domain, blocked) for domain, blocked in statuses.items() if domain not in requested)
    return lines


class BatchChecker:
    """Runs one check cycle: one status request per batch, merged into one report."""

    def __init__(self, status_client: Any, *, batch_size: int = BATCH_SIZE) -> None:
        self.status_client = status_client
        self.batch_size = max(1, int(batch_size))

    async def run(self, domains: list[str]) -> str:
        if not domains:
            return NOTHING_TO_CHECK_TEXT

        batches = partition_domains(domains, self.batch_size)
        report: list[str] = []
        blocked_count = 0
        failed_batches = 0

        for idx, batch in enumerate(batches, start=1):
            try:
                statuses = await self.status_client.fetch_status(batch)
            except StatusCheckError as exc:
                failed_batches += 1
                logger.warning("Status batch failed", batch=idx, batches=len(batches), size=len(batch), error=str(exc))
                report.append(format_batch_error(idx, len(batches), batch, exc))
                continue

            blocked_count += sum(1 for blocked in statuses.values() if blocked)
            report.extend(_render_batch(batch, statuses))
            logger.debug("Status batch checked", batch=idx, batches=len(batches), size=len(batch))

        logger.info(
            "Check cycle finished",
            domains=len(domains),
            batches=len(batches),
            failed_batches=failed_batches,
            blocked=blocked_count,
        )
        return "\n".join(report)
