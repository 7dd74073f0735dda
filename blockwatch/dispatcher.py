"""Operator command handling and the combined check-and-notify operation."""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from blockwatch.checker import BatchChecker
from blockwatch.store import DomainStore, StoreUnavailable
from blockwatch.telegram import InboundMessage

logger = structlog.get_logger(__name__)


HELP_TEXT = (
    "🤖 Domain block-check relay\n\n"
    "Available commands:\n"
    "/add <domain> - add a domain to the list\n"
    "/remove <domain> - remove a domain from the list\n"
    "/list - show the monitored domains\n"
    "/checknow - run a blocking check right away\n"
    "/help - show this help"
)
UNKNOWN_COMMAND_TEXT = "❓ Unknown command. Send /help for the available commands."
CHECK_STARTED_TEXT = "🔎 Checking all domains now, the report will follow."
REPORT_CAPTION = "📋 Domain block-check report"
LIST_CAPTION = "📋 Monitored domains"


def store_error_text(exc: StoreUnavailable) -> str:
    return f"⚠️ The domain list is unavailable: {exc}"


async def check_and_notify(store: DomainStore, checker: BatchChecker, transport: Any) -> bool:
    """One full check cycle whose report is delivered to the operator."""
    try:
        domains = store.read_all()
    except StoreUnavailable as exc:
        logger.error("Cannot read domain list for check", error=str(exc))
        return await transport.send_text(store_error_text(exc))

    report = await checker.run(domains)
    if not domains:
        return await transport.send_text(report)
    return await transport.send_chunked(report, REPORT_CAPTION)


class CommandDispatcher:
    """Handles one inbound operator message at a time; holds no state between commands."""

    def __init__(self, store: DomainStore, checker: BatchChecker, transport: Any, operator_chat_id: str) -> None:
        self.store = store
        self.checker = checker
        self.transport = transport
        self.operator_chat_id = str(operator_chat_id)
        self.background_tasks: set[asyncio.Task] = set()

    def is_operator(self, message: InboundMessage) -> bool:
        return message.chat_id == self.operator_chat_id

    async def handle(self, message: InboundMessage) -> None:
        if not self.is_operator(message):
            logger.debug("Dropped message from unknown chat", chat_id=message.chat_id)
            return

        logger.info("Command received", command=message.command or "<text>")
        command = message.command
        if command in {"start", "help"}:
            await self.transport.send_text(HELP_TEXT)
        elif command in {"add", "remove"}:
            await self._mutate(command, message.args)
        elif command == "list":
            await self._list()
        elif command == "checknow":
            await self.transport.send_text(CHECK_STARTED_TEXT)
            self.start_check()
        else:
            await self.transport.send_text(UNKNOWN_COMMAND_TEXT)

    async def _mutate(self, command: str, args: str) -> None:
        op = self.store.add if command == "add" else self.store.remove
        try:
            outcome = op(args)
        except StoreUnavailable as exc:
            logger.error("Domain list update failed", command=command, error=str(exc))
            await self.transport.send_text(store_error_text(exc))
            return
        await self.transport.send_text(outcome.message)

    async def _list(self) -> None:
        try:
            text = self.store.list_all()
        except StoreUnavailable as exc:
            logger.error("Domain list read failed", error=str(exc))
            await self.transport.send_text(store_error_text(exc))
            return
        await self.transport.send_chunked(text, LIST_CAPTION)

    def start_check(self) -> asyncio.Task:
        """Launch a check cycle in the background and return immediately."""
        task = asyncio.create_task(self._run_check())
        self.background_tasks.add(task)
        task.add_done_callback(self.background_tasks.discard)
        return task

    async def _run_check(self) -> None:
        try:
            await check_and_notify(self.store, self.checker, self.transport)
        except Exception:
            logger.exception("Manual check failed")
