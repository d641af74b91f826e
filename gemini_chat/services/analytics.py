"""Conversation analytics – counters, token estimates and response times.

State is a single `ConversationStats` record kept in the local key/value
store; it is loaded once and written back after every mutation.
"""

from __future__ import annotations

import csv
import io
import logging
import math
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from ..models.domain import ConversationStats, DailyCounts, ResponseTimeSample
from .storage import STATS_KEY, KeyValueStore

logger = logging.getLogger(__name__)

# Rough heuristic, not a tokenizer. Kept stable so figures stay comparable.
TOKENS_PER_CHAR = 0.25

TIME_FILTERS: Dict[str, Optional[timedelta]] = {
    "all": None,
    "today": None,
    "week": timedelta(days=7),
    "month": timedelta(days=30),
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) * TOKENS_PER_CHAR)


def format_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class AnalyticsAggregator:
    def __init__(self, store: KeyValueStore, clock: Callable[[], datetime] = utcnow) -> None:
        self.store = store
        self.clock = clock
        self._lock = threading.RLock()
        self.stats = self._load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def _load(self) -> ConversationStats:
        raw = self.store.get_item(STATS_KEY)
        if raw is None:
            return ConversationStats()
        try:
            return ConversationStats.model_validate_json(raw)
        except ValidationError as exc:
            logger.error("Error parsing saved stats, resetting: %s", exc)
            return self.reset()

    def save(self) -> None:
        self.store.set_item(STATS_KEY, self.stats.model_dump_json(by_alias=True))

    def reset(self) -> ConversationStats:
        with self._lock:
            self.stats = ConversationStats()
            self.save()
            return self.stats

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------
    def _today(self, now: datetime) -> DailyCounts:
        day = now.astimezone(timezone.utc).date().isoformat()
        return self.stats.messages_by_date.setdefault(day, DailyCounts())

    def record_user_message(self, text: str) -> ConversationStats:
        with self._lock:
            stats = self.stats
            now = self.clock()

            stats.user_messages += 1
            stats.total_messages += 1
            stats.character_counts.user += len(text)

            tokens = estimate_tokens(text)
            stats.token_usage.input += tokens
            stats.token_usage.total += tokens

            self._today(now).user += 1

            # single pending slot: a second query before the reply replaces it
            stats.last_query = now.timestamp() * 1000

            self.save()
            return stats

    def record_ai_response(self, text: str) -> ConversationStats:
        with self._lock:
            stats = self.stats
            now = self.clock()

            stats.ai_messages += 1
            stats.total_messages += 1
            stats.character_counts.ai += len(text)

            if stats.last_query is not None:
                duration = max(0.0, (now.timestamp() * 1000 - stats.last_query) / 1000)
                stats.response_time_history.append(
                    ResponseTimeSample(time=format_timestamp(now), duration=duration)
                )
                stats.total_response_time += duration
                stats.avg_response_time = stats.total_response_time / len(stats.response_time_history)
            stats.last_query = None

            tokens = estimate_tokens(text)
            stats.token_usage.output += tokens
            stats.token_usage.total += tokens

            self._today(now).ai += 1

            self.save()
            return stats

    def record_image_upload(self) -> ConversationStats:
        with self._lock:
            self.stats.image_counts += 1
            self.save()
            return self.stats

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------
    def summary(self) -> Dict[str, object]:
        stats = self.stats
        return {
            "messageCount": stats.total_messages,
            "avgResponseTime": f"{stats.avg_response_time:.2f}s",
            "tokenUsage": stats.token_usage.total,
            "imageCount": stats.image_counts,
        }

    def daily_history(self) -> List[Dict[str, object]]:
        """Per-day counts, newest first."""
        return [
            {"date": day, "user": counts.user, "ai": counts.ai, "total": counts.user + counts.ai}
            for day, counts in sorted(self.stats.messages_by_date.items(), reverse=True)
        ]

    def response_times(self, time_filter: str = "all") -> List[ResponseTimeSample]:
        if time_filter not in TIME_FILTERS:
            raise ValueError(f"Unknown time filter: {time_filter!r}")

        history = list(self.stats.response_time_history)
        now = self.clock()
        if time_filter == "today":
            today = now.astimezone(timezone.utc).date().isoformat()
            return [item for item in history if item.time.startswith(today)]

        window = TIME_FILTERS[time_filter]
        if window is None:
            return history
        since = now - window
        return [item for item in history if parse_timestamp(item.time) >= since]

    def chart_data(self, time_filter: str = "all") -> Dict[str, Dict[str, object]]:
        samples = self.response_times(time_filter)
        usage = self.stats.token_usage
        return {
            "messageRatio": {"user": self.stats.user_messages, "ai": self.stats.ai_messages},
            "responseTimes": {
                "labels": [f"Query {index}" for index in range(1, len(samples) + 1)],
                "durations": [item.duration for item in samples],
            },
            "tokenUsage": {"input": usage.input, "output": usage.output, "total": usage.total},
        }

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    def export_filename(self) -> str:
        return f"chat_analytics_{self.clock().astimezone(timezone.utc).date().isoformat()}.csv"

    def export_report(self) -> str:
        """Render the CSV report (summary, daily history, response times)."""
        stats = self.stats
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\r\n")

        writer.writerow(["Summary Statistics"])
        writer.writerow(["Total Messages", stats.total_messages])
        writer.writerow(["User Messages", stats.user_messages])
        writer.writerow(["AI Messages", stats.ai_messages])
        writer.writerow(["Average Response Time (s)", f"{stats.avg_response_time:.2f}"])
        writer.writerow(["Total Token Usage", stats.token_usage.total])
        writer.writerow(["Input Tokens", stats.token_usage.input])
        writer.writerow(["Output Tokens", stats.token_usage.output])
        writer.writerow(["Images Analyzed", stats.image_counts])
        writer.writerow([])

        writer.writerow(["Daily Message History"])
        writer.writerow(["Date", "User Messages", "AI Messages", "Total"])
        for day, counts in sorted(stats.messages_by_date.items()):
            writer.writerow([day, counts.user, counts.ai, counts.user + counts.ai])
        writer.writerow([])

        writer.writerow(["Response Time History"])
        writer.writerow(["Timestamp", "Duration (s)"])
        for item in stats.response_time_history:
            writer.writerow([item.time, f"{item.duration:.2f}"])

        return buf.getvalue()
