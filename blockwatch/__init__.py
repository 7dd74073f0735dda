"""Telegram relay reporting whether monitored domains are blocked."""
