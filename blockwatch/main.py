from __future__ import annotations

import argparse
import asyncio
import logging
import os

import httpx
import structlog
from pydantic import ValidationError

from blockwatch.checker import BatchChecker
from blockwatch.config import ConfigMissing, RelaySettings, domains_path, load_settings
from blockwatch.dispatcher import CommandDispatcher, check_and_notify
from blockwatch.scheduler import CheckScheduler
from blockwatch.status_api import StatusApiClient, StatusApiConfig
from blockwatch.store import FileDomainStore, StoreUnavailable
from blockwatch.telegram import TelegramConfig, TelegramTransport, parse_update

logger = structlog.get_logger("blockwatch")

POLL_ERROR_BACKOFF_SECONDS = 5.0


def configure_logging(level: str) -> None:
    level_no = getattr(logging, str(level).upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(level=level_no, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    # Avoid leaking secrets (Telegram token is embedded in the Telegram API URL).
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _startup_text(settings: RelaySettings, store: FileDomainStore) -> str:
    try:
        count = f"{len(store.read_all())} domain(s)"
    except StoreUnavailable:
        count = "an unreadable domain list"
    minutes = settings.check_interval_seconds / 60
    return f"🚀 Block-check relay started\nMonitoring {count}, checking every {minutes:g} minutes.\nSend /help for commands."


async def poll_forever(transport: TelegramTransport, dispatcher: CommandDispatcher, *, timeout: int) -> None:
    offset: int | None = None
    while True:
        try:
            updates = await transport.poll(offset=offset, timeout=timeout)
        except RuntimeError as exc:
            logger.warning("Polling for updates failed", error=str(exc))
            await asyncio.sleep(POLL_ERROR_BACKOFF_SECONDS)
            continue

        for update in updates:
            update_id = update.get("update_id")
            if isinstance(update_id, int) and (offset is None or update_id >= offset):
                offset = update_id + 1

            message = parse_update(update)
            if message is None:
                continue
            try:
                await dispatcher.handle(message)
            except Exception:
                logger.exception("Failed to handle update", update_id=update_id)


async def run(settings: RelaySettings, *, once: bool = False) -> int:
    path = domains_path(settings)
    path.parent.mkdir(parents=True, exist_ok=True)
    store = FileDomainStore(path)

    async with httpx.AsyncClient() as client:
        transport = TelegramTransport(
            client,
            TelegramConfig(
                bot_token=settings.telegram_bot_token,
                chat_id=settings.operator_chat_id,
                api_base_url=settings.telegram_api_url,
            ),
        )
        status_client = StatusApiClient(
            client,
            StatusApiConfig(base_url=settings.status_api_url, timeout_seconds=settings.status_api_timeout_seconds),
        )
        checker = BatchChecker(status_client, batch_size=settings.batch_size)

        if once:
            ok = await check_and_notify(store, checker, transport)
            return 0 if ok else 1

        dispatcher = CommandDispatcher(store, checker, transport, settings.operator_chat_id)

        async def scheduled_check() -> None:
            try:
                await check_and_notify(store, checker, transport)
            except Exception:
                logger.exception("Scheduled check failed")

        scheduler = CheckScheduler()
        scheduler.add_interval_job(scheduled_check, seconds=settings.check_interval_seconds)
        scheduler.start()

        await transport.send_text(_startup_text(settings, store))
        logger.info("Listening for operator commands", domains_file=str(path))
        try:
            await poll_forever(transport, dispatcher, timeout=settings.poll_timeout_seconds)
        finally:
            scheduler.stop()
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Domain block-check Telegram relay")
    parser.add_argument("--config", default=None, help="Path to YAML config (default: $BLOCKWATCH_CONFIG or config.yaml)")
    parser.add_argument("--once", action="store_true", help="Run one check cycle, send the report and exit")
    parser.add_argument("--log-level", default=None, help="Logging level (INFO, WARNING, ...)")
    args = parser.parse_args()

    configure_logging(args.log_level or os.getenv("LOG_LEVEL", "INFO"))
    try:
        settings = load_settings(args.config)
    except (ConfigMissing, ValidationError, ValueError) as exc:
        logger.critical("Cannot start", error=str(exc))
        return 2
    if args.log_level is None and settings.log_level:
        configure_logging(settings.log_level)

    try:
        return asyncio.run(run(settings, once=bool(args.once)))
    except KeyboardInterrupt:
        logger.info("Stopped")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
