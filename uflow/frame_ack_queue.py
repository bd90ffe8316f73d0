"""Tracks received data frames and groups them into pending acknowledgements."""

from __future__ import annotations

from collections import deque
from typing import Optional

from .frames import AckGroup

_MASK32 = 0xFFFFFFFF


class _ReceiveWindow:
    """A window of 32-bit frame IDs that wraps around."""

    def __init__(self, base_id: int, size: int) -> None:
        self.base_id = base_id & _MASK32
        self.size = size

    def contains(self, frame_id: int) -> bool:
        return ((frame_id - self.base_id) & _MASK32) < self.size

    def advance(self, new_base_id: int) -> bool:
        delta = (new_base_id - self.base_id) & _MASK32
        if 0 < delta <= self.size:
            self.base_id = new_base_id & _MASK32
            return True
        return False


class FrameAckQueue:
    """Queue of ack groups for frames seen within the receive window."""

    def __init__(self, size: int, base_id: int) -> None:
        self._entries: deque[AckGroup] = deque()
        self._window = _ReceiveWindow(base_id, size)

    def base_id(self) -> int:
        """First frame ID of the receive window."""
        return self._window.base_id

    def resynchronize(self, sender_next_id: int) -> None:
        """Advance the window to the sender's next frame ID, if within reach."""
        self._window.advance(sender_next_id)

    def window_contains(self, frame_id: int) -> bool:
        """Whether ``frame_id`` lies within the receive window."""
        return self._window.contains(frame_id)

    def mark_seen(self, frame_id: int, nonce: bool) -> None:
        """Record receipt of ``frame_id``; frames outside the window are ignored."""
        if not self._window.contains(frame_id):
            return
        frame_id &= _MASK32
        self._window.advance(frame_id + 1)

        if self._entries:
            last = self._entries[-1]
            bit = (frame_id - last.base_id) & _MASK32
            if bit < 32:
                if not last.bitfield & (1 << bit):
                    last.bitfield |= 1 << bit
                    last.nonce ^= bool(nonce)
                return

        self._entries.append(AckGroup(base_id=frame_id, bitfield=1, nonce=bool(nonce)))

    def pop(self) -> Optional[AckGroup]:
        """Remove and return the oldest ack group, or None if there is none."""
        return self._entries.popleft() if self._entries else None

    def peek(self) -> Optional[AckGroup]:
        """Return the oldest ack group without removing it, or None."""
        return self._entries[0] if self._entries else None