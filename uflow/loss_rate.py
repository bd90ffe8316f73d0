"""Receiver loss-rate estimation from loss intervals, after TFRC (RFC 5348).

Only the most recent loss interval is updated as frames are acked or nacked,
so each update costs constant time. Holes in the loss history are not filled
when a late ack arrives for an earlier nack.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass

_U32_MAX = 0xFFFFFFFF

# Interval weights from RFC 5348, section 5.4.
WEIGHTS: tuple[float, ...] = (1.0, 1.0, 1.0, 1.0, 0.8, 0.6, 0.4, 0.2)

# The open interval plus one closed interval per weight.
MAX_INTERVALS = len(WEIGHTS) + 1


@dataclass
class _LossInterval:
    end_time_ms: int
    length: int


def _saturating_inc(value: int) -> int:
    return min(value + 1, _U32_MAX)


def _interval_length_for(initial_p: float) -> int:
    """Interval length that yields ``initial_p``, clamped to 32 unsigned bits."""
    if math.isnan(initial_p):
        return 0
    if initial_p == 0.0:
        ratio = math.copysign(math.inf, initial_p) * WEIGHTS[0]
    else:
        ratio = WEIGHTS[0] / initial_p
    clamped = min(max(ratio, 0.0), float(_U32_MAX))
    # Round half away from zero; the value is never negative here.
    return int(math.floor(clamped + 0.5))


class LossIntervalQueue:
    """History of loss intervals, most recent first."""

    def __init__(self) -> None:
        self._entries: deque[_LossInterval] = deque()

    def __len__(self) -> int:
        return len(self._entries)

    def reset(self, initial_p: float) -> None:
        """Keep only the current interval and size it so the loss rate is ``initial_p``.

        Any loss intervals after the first are dropped, so the initial loss
        pattern is ignored and the throughput-equation phase starts from the
        given loss rate.
        """
        if not self._entries:
            raise ValueError("cannot reset a loss interval queue with no intervals")
        while len(self._entries) > 1:
            self._entries.pop()
        self._entries[0].length = _interval_length_for(initial_p)

    def push_ack(self) -> None:
        """Count an acknowledged frame towards the current interval."""
        if self._entries:
            current = self._entries[0]
            current.length = _saturating_inc(current.length)

    def push_nack(self, send_time_ms: int, rtt_ms: int) -> None:
        """Record a lost frame sent at ``send_time_ms``.

        A loss more than one round trip after the start of the current loss
        event opens a new interval; otherwise it extends the current one.
        """
        if self._entries:
            current = self._entries[0]
            if send_time_ms < current.end_time_ms:
                current.length = _saturating_inc(current.length)
                return
        self._entries.appendleft(_LossInterval(end_time_ms=send_time_ms + rtt_ms, length=1))
        while len(self._entries) > MAX_INTERVALS:
            self._entries.pop()

    def compute_loss_rate(self) -> float:
        """Weighted average loss event rate; 0.0 when no loss has been seen."""
        entries = self._entries
        if not entries:
            return 0.0

        if len(entries) == 1:
            denominator = entries[0].length * WEIGHTS[0]
            return WEIGHTS[0] / denominator if denominator else math.inf

        lengths = [entry.length for entry in entries]
        weights = WEIGHTS[: len(lengths) - 1]

        total_with_open = sum(length * weight for length, weight in zip(lengths, weights))
        total_closed = sum(length * weight for length, weight in zip(lengths[1:], weights))
        weight_total = sum(weights)

        denominator = max(total_with_open, total_closed)
        return weight_total / denominator if denominator else math.inf