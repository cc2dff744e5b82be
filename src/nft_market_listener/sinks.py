from __future__ import annotations

import json
import sys
from collections.abc import Sequence
from typing import Protocol, TextIO

from .config import NetworkConfig
from .formatting import format_event_report, record_to_dict
from .types import LogRecord


class OutputSink(Protocol):
    def emit(self, record: LogRecord, network: NetworkConfig) -> None: ...


class ConsoleSink:
    """Human-readable bordered report per event."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stdout

    def emit(self, record: LogRecord, network: NetworkConfig) -> None:
        self.stream.write(format_event_report(record, network) + "\n")
        self.stream.flush()


class JsonLinesSink:
    """One JSON object per event, for downstream consumers."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stdout

    def emit(self, record: LogRecord, network: NetworkConfig) -> None:
        self.stream.write(json.dumps(record_to_dict(record, network), separators=(",", ":")) + "\n")
        self.stream.flush()


class MultiSink:
    def __init__(self, sinks: Sequence[OutputSink]) -> None:
        self.sinks = list(sinks)

    def emit(self, record: LogRecord, network: NetworkConfig) -> None:
        for sink in self.sinks:
            sink.emit(record, network)


def build_sink(output_format: str, stream: TextIO | None = None) -> OutputSink:
    if output_format == "json":
        return JsonLinesSink(stream)
    if output_format == "both":
        return MultiSink([ConsoleSink(stream), JsonLinesSink(stream)])
    return ConsoleSink(stream)
