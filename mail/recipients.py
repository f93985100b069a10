"""
Recipient Resolver — which addresses receive a channel's mail.

Three layers, first non-empty one wins:

    1. runtime settings  — edited through PUT /settings/recipients, kept in Redis
    2. environment       — REPORT_RECIPIENTS_* values, passed in as RecipientConfig
    3. fallback address  — one hard-coded address

Within a layer, channel "all" uses its own list when one is configured and
otherwise the union of that layer's "planned" and "actual" lists.

Every list that leaves this module is validated (contains "@") and
deduplicated case-insensitively, keeping first-seen order. The resolver never
raises: a broken Redis only skips the runtime layer, and total failure yields
an empty list that callers must treat as a job failure.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from redis import Redis

from models.enums import RecipientChannel

logger = logging.getLogger(__name__)


def clean_addresses(candidates: Iterable) -> list[str]:
    """Strip, drop anything without "@", dedupe ignoring case."""
    seen: set[str] = set()
    out: list[str] = []
    for raw in candidates or ():
        if not isinstance(raw, str):
            continue
        address = raw.strip()
        if "@" not in address:
            continue
        key = address.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(address)
    return out


def split_addresses(value: str) -> list[str]:
    """Parse a comma separated env value."""
    return clean_addresses((value or "").split(","))


@dataclass(frozen=True)
class RecipientConfig:
    """Environment layer, built once from settings by the wiring code."""
    planned: tuple[str, ...] = ()
    actual: tuple[str, ...] = ()
    all: tuple[str, ...] = ()
    fallback: Optional[str] = None

    @classmethod
    def from_settings(cls, settings) -> "RecipientConfig":
        return cls(
            planned=tuple(split_addresses(settings.REPORT_RECIPIENTS_PLANNED)),
            actual=tuple(split_addresses(settings.REPORT_RECIPIENTS_ACTUAL)),
            all=tuple(split_addresses(settings.REPORT_RECIPIENTS_ALL)),
            fallback=settings.FALLBACK_RECIPIENT or None,
        )

    def as_layer(self) -> dict[str, list[str]]:
        return {
            RecipientChannel.PLANNED.value: list(self.planned),
            RecipientChannel.ACTUAL.value: list(self.actual),
            RecipientChannel.ALL.value: list(self.all),
        }


class RecipientStore:
    """Runtime recipient lists stored as one JSON document in Redis."""

    REDIS_KEY = "mailqueue:recipients"

    def __init__(self, redis_client: Redis):
        self._redis = redis_client

    def load(self) -> dict[str, list[str]]:
        """Runtime lists by channel; a missing or corrupt document reads as empty."""
        raw = self._redis.get(self.REDIS_KEY)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning(f"Ignoring corrupt runtime recipient settings under {self.REDIS_KEY}")
            return {}
        return {
            channel.value: clean_addresses(data.get(channel.value, []))
            for channel in RecipientChannel
            if isinstance(data, dict) and data.get(channel.value)
        }

    def save(self, lists: dict[str, list[str]]) -> dict[str, list[str]]:
        """Replace the runtime lists. Channels left out are cleared."""
        cleaned = {
            channel.value: clean_addresses(lists.get(channel.value, []))
            for channel in RecipientChannel
        }
        self._redis.set(self.REDIS_KEY, json.dumps(cleaned))
        return cleaned

    def clear(self) -> None:
        self._redis.delete(self.REDIS_KEY)


class RecipientResolver:

    def __init__(self, config: RecipientConfig, store: Optional[RecipientStore] = None):
        self._config = config
        self._store = store

    def recipients_for(self, channel: RecipientChannel) -> list[str]:
        try:
            channel = RecipientChannel(channel)
        except ValueError:
            logger.warning(f"Unknown recipient channel: {channel!r}")
            return []

        for layer in (self._runtime_layer(), self._config.as_layer()):
            found = self._from_layer(layer, channel)
            if found:
                return found

        return clean_addresses([self._config.fallback])

    def _runtime_layer(self) -> dict[str, list[str]]:
        if self._store is None:
            return {}
        try:
            return self._store.load()
        except Exception as e:
            logger.warning(f"Runtime recipient settings unavailable: {e}")
            return {}

    @staticmethod
    def _from_layer(layer: dict[str, list[str]], channel: RecipientChannel) -> list[str]:
        direct = clean_addresses(layer.get(channel.value, []))
        if direct or channel != RecipientChannel.ALL:
            return direct
        return clean_addresses(
            [
                *layer.get(RecipientChannel.PLANNED.value, []),
                *layer.get(RecipientChannel.ACTUAL.value, []),
            ]
        )
