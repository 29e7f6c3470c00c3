"""Incremental, duplicate-free tailing of container logs.

Logs are polled with `kubectl logs --timestamps`. After the first poll only lines since the
last seen timestamp are requested, but `--since-time` is coarser than the timestamps kubectl
prints, so every poll returns some lines again. Those are dropped by comparing timestamps.
"""

from __future__ import annotations

import enum
import logging
import re
from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, NamedTuple, Optional

if TYPE_CHECKING:
    from kube_surface.core.integrations.kubectl import Kubectl

DEFAULT_LINE_LIMIT = 250

RFC3339_PATTERN = re.compile(
    r"(?P<seconds>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(?P<fraction>\d{1,9}))?(?P<offset>Z|[+-]\d{2}:\d{2})",
    re.IGNORECASE,
)


class LogTimestamp(NamedTuple):
    """An instant with nanosecond precision, as printed by the API server.

    `datetime` stops at microseconds, which is not enough to tell apart lines logged
    within the same microsecond, so the nanoseconds are kept on the side.
    """

    moment: datetime  # whole seconds, timezone aware
    nanosecond: int = 0

    @classmethod
    def parse(cls, value: str) -> LogTimestamp:
        match = RFC3339_PATTERN.fullmatch(value)
        if match is None:
            raise ValueError(f"Not an RFC3339 timestamp: {value!r}")

        offset = match["offset"].upper().replace("Z", "+00:00")
        moment = datetime.fromisoformat(f"{match['seconds'].upper()}{offset}")
        fraction = match["fraction"] or ""
        return cls(moment, int(fraction.ljust(9, "0")))

    def isoformat(self) -> str:
        """RFC3339 with nanoseconds and a numeric offset, e.g. 2024-05-01T10:00:00.000000001+00:00"""

        text = self.moment.isoformat()
        return f"{text[:19]}.{self.nanosecond:09d}{text[19:]}"

    def __str__(self) -> str:
        return self.isoformat()


class LogLine(NamedTuple):
    timestamp: Optional[LogTimestamp]
    message: str


def parse_log_line(raw_line: str) -> LogLine:
    """Split a `<timestamp> <message>` line.

    Lines without a parsable timestamp are kept whole as the message, e.g. the error some
    server versions print without a timestamp when the log file cannot be opened.
    """

    parts = raw_line.split(None, 1)
    if not parts:
        return LogLine(None, raw_line)

    try:
        timestamp = LogTimestamp.parse(parts[0])
    except ValueError:
        return LogLine(None, raw_line)

    return LogLine(timestamp, parts[1] if len(parts) > 1 else "")


def is_likely_duplicate(timestamp: Optional[LogTimestamp], watermark: Optional[LogTimestamp]) -> bool:
    if timestamp is None or watermark is None:
        return False
    # NOTE: equal timestamps are treated as a repeat, --since-time cannot tell them apart
    return timestamp <= watermark


def deduplicate(
    fresh_lines: Iterable[str], watermark: Optional[LogTimestamp]
) -> tuple[list[str], Optional[LogTimestamp]]:
    """Drop lines already returned by a previous fetch and advance the watermark.

    Every timestamp in the batch advances the watermark, dropped lines included. Lines
    without a timestamp are always kept and never move it.
    """

    kept = []
    new_watermark = watermark

    for raw_line in fresh_lines:
        timestamp, message = parse_log_line(raw_line)
        if timestamp is not None and (new_watermark is None or timestamp > new_watermark):
            new_watermark = timestamp
        if is_likely_duplicate(timestamp, watermark):
            continue
        kept.append(message)

    return kept, new_watermark


class LogStreamState(str, enum.Enum):
    Empty = "empty"
    HasUnprintedLines = "has-unprinted-lines"
    FullyPrinted = "fully-printed"


class ContainerLogStream:
    """Accumulated logs of one container, plus a cursor of what was already printed.

    Not safe for concurrent `sync` calls on the same instance. Use one instance per
    container and serialize the calls made on it.
    """

    def __init__(
        self, parent_id: str, container_name: str, logger: logging.Logger, line_limit: int = DEFAULT_LINE_LIMIT
    ) -> None:
        self.parent_id = parent_id
        self.container_name = container_name
        self.logger = logger
        self.line_limit = line_limit

        self.lines: list[str] = []
        self.last_printed_index = -1
        self.last_timestamp: Optional[LogTimestamp] = None

    def __len__(self) -> int:
        return len(self.lines)

    @property
    def empty(self) -> bool:
        return not self.lines

    @property
    def state(self) -> LogStreamState:
        if self.empty:
            return LogStreamState.Empty
        if self.last_printed_index < len(self.lines) - 1:
            return LogStreamState.HasUnprintedLines
        return LogStreamState.FullyPrinted

    def fetch_command(self) -> list[str]:
        command = ["logs", self.parent_id, f"--container={self.container_name}", "--timestamps"]
        if self.last_timestamp is not None:
            command.append(f"--since-time={self.last_timestamp.isoformat()}")
        else:
            command.append(f"--tail={self.line_limit}")
        return command

    def sync(self, kubectl: Kubectl) -> None:
        out, _err, status = kubectl.run(*self.fetch_command(), log_failure=False)
        if not status.success or not out:
            return

        new_lines, self.last_timestamp = deduplicate(out.rstrip("\n").split("\n"), self.last_timestamp)
        self.lines.extend(new_lines)

    def print_latest(self, prefix: bool = False) -> None:
        prefix_str = f"[{self.container_name}]  " if prefix else ""

        for message in self.lines[self.last_printed_index + 1 :]:
            self.logger.info(f"{prefix_str}{message}")

        self.last_printed_index = len(self.lines) - 1

    def print_all(self) -> None:
        for line in self.lines:
            self.logger.info(f"\t{line}")
