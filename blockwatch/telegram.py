from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from blockwatch.chunker import TELEGRAM_MAX_MESSAGE_LEN, split_report

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TelegramConfig:
    bot_token: str
    chat_id: str
    api_base_url: str = "https://api.telegram.org"
    send_timeout_seconds: float = 15.0

    def method_url(self, method: str) -> str:
        return f"{self.api_base_url.rstrip('/')}/bot{self.bot_token}/{method}"


@dataclass(frozen=True)
class InboundMessage:
    chat_id: str
    command: str
    args: str
    text: str


def parse_command(text: str) -> tuple[str, str]:
    """
    "/add@SomeBot  example.com " -> ("add", "example.com").
    Text that is not a command yields an empty command.
    """
    s = (text or "").strip()
    if not s.startswith("/"):
        return "", s
    head, _, rest = s.partition(" ")
    if "\n" in head:
        head, _, extra = head.partition("\n")
        rest = f"{extra}\n{rest}" if rest else extra
    command = head[1:].split("@", 1)[0].lower()
    return command, rest.strip()


def parse_update(update: dict[str, Any]) -> InboundMessage | None:
    message = update.get("message") or update.get("edited_message")
    if not isinstance(message, dict):
        return None
    chat = message.get("chat")
    if not isinstance(chat, dict) or chat.get("id") is None:
        return None
    text = message.get("text")
    if not isinstance(text, str):
        return None
    command, args = parse_command(text)
    return InboundMessage(chat_id=str(chat["id"]), command=command, args=args, text=text)


def _redact(config: TelegramConfig, msg: str) -> str:
    if config.bot_token:
        return msg.replace(config.bot_token, "<redacted>")
    return msg


async def send_telegram_message(
    client: httpx.AsyncClient, config: TelegramConfig, text: str, *, chat_id: str | None = None
) -> tuple[bool, dict]:
    payload = {"chat_id": chat_id or config.chat_id, "text": text}
    try:
        resp = await client.post(config.method_url("sendMessage"), json=payload, timeout=config.send_timeout_seconds)
        data = resp.json()
        if not isinstance(data, dict):
            return False, {"ok": False, "error": f"Unexpected sendMessage response: {type(data).__name__}"}
        return bool(data.get("ok")), data
    except Exception as e:
        return False, {"ok": False, "error": _redact(config, f"{type(e).__name__}: {e}")}


async def get_updates(
    client: httpx.AsyncClient, config: TelegramConfig, *, offset: int | None = None, timeout: int = 30
) -> list[dict[str, Any]]:
    params: dict[str, Any] = {"timeout": timeout, "allowed_updates": json.dumps(["message"])}
    if offset is not None:
        params["offset"] = offset
    resp = await client.get(config.method_url("getUpdates"), params=params, timeout=timeout + 5)
    data = resp.json()
    if not isinstance(data, dict):
        raise RuntimeError(f"Unexpected getUpdates response (not a JSON object): {type(data).__name__}")
    if not data.get("ok"):
        raise RuntimeError(f"getUpdates failed: {redact_telegram_response(data)}")
    result = data.get("result")
    return result if isinstance(result, list) else []


def redact_telegram_response(data: dict) -> str:
    safe = {"ok": data.get("ok")}
    if isinstance(data.get("result"), dict):
        safe["result"] = {"message_id": data["result"].get("message_id")}
    if data.get("error"):
        safe["error"] = data.get("error")
    if data.get("description"):
        safe["description"] = data.get("description")
    return json.dumps(safe, ensure_ascii=False)


class TelegramTransport:
    """Sends text to the operator chat; failures are logged, never raised."""

    def __init__(self, client: httpx.AsyncClient, config: TelegramConfig, *, max_len: int = TELEGRAM_MAX_MESSAGE_LEN):
        self.client = client
        self.config = config
        self.max_len = max_len

    async def send_text(self, text: str) -> bool:
        ok, resp = await send_telegram_message(self.client, self.config, text)
        if not ok:
            logger.error("Telegram send failed", response=redact_telegram_response(resp))
        return ok

    async def send_chunked(self, text: str, caption: str) -> bool:
        segments = split_report(text, caption, max_len=self.max_len)
        ok_all = True
        for idx, segment in enumerate(segments, start=1):
            ok = await self.send_text(segment)
            if not ok:
                logger.error("Report segment not delivered", segment=idx, segments=len(segments))
            ok_all = ok_all and ok
        return ok_all

    async def poll(self, *, offset: int | None, timeout: int) -> list[dict[str, Any]]:
        try:
            return await get_updates(self.client, self.config, offset=offset, timeout=timeout)
        except (httpx.HTTPError, ValueError) as e:
            raise RuntimeError(_redact(self.config, f"{type(e).__name__}: {e}")) from None
