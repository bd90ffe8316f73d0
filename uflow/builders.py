"""Incremental encoders for data frames and ack frames.

Datagram headers come in three sizes (C: channel, S: sequence, D: payload
length, W: window parent lead, H: channel parent lead, F/L: fragment ids)::

    micro (L == 0, D < 64, W < 128, H < 256), 6 bytes:
      0CDDDDDD SSSSCCCC SSSSSSSS SSSSSSSS CWWWWWWW HHHHHHHH
    small (L == 0, D < 256), 9 bytes:
      10CCCCCC DDDDDDDD 0000SSSS SSSSSSSS SSSSSSSS W*16 H*16
    large, 14 bytes:
      11CCCCCC D*16 0000SSSS SSSSSSSS SSSSSSSS W*16 H*16 F*16 L*16
"""

from __future__ import annotations

import struct

from . import crc
from .frames import (
    ACK_FRAME_ID,
    ACK_FRAME_MAX_GROUP_COUNT,
    ACK_GROUP_SIZE,
    DATA_FRAME_ID,
    DATA_FRAME_MAX_DATAGRAM_COUNT,
    DATAGRAM_HEADER_SIZE_LARGE,
    DATAGRAM_HEADER_SIZE_MICRO,
    DATAGRAM_HEADER_SIZE_SMALL,
    FRAME_CRC_SIZE,
    MAX_CHANNELS,
    SEQUENCE_ID_MASK,
    AckGroup,
    Datagram,
)

_DATA_COUNT_OFFSET = 5
_ACK_COUNT_OFFSET = 9


def _is_micro(datagram: Datagram) -> bool:
    return (
        datagram.fragment_id_last == 0
        and len(datagram.data) < 64
        and datagram.window_parent_lead < 128
        and datagram.channel_parent_lead < 256
    )


def _is_small(datagram: Datagram) -> bool:
    return datagram.fragment_id_last == 0 and len(datagram.data) < 256


def _seal(body: bytes | bytearray) -> bytes:
    return bytes(body) + crc.compute(body).to_bytes(FRAME_CRC_SIZE, "big")


class DataFrameBuilder:
    """Accumulates datagrams into a single data frame."""

    MAX_COUNT = DATA_FRAME_MAX_DATAGRAM_COUNT

    def __init__(self, sequence_id: int, nonce: bool) -> None:
        self._buffer = bytearray((DATA_FRAME_ID,))
        self._buffer += (sequence_id & 0xFFFFFFFF).to_bytes(4, "big")
        self._buffer.append(0x80 if nonce else 0x00)
        self._count = 0

    def add(self, datagram: Datagram) -> None:
        """Append one datagram using the smallest header that can carry it."""
        if datagram.channel_id >= MAX_CHANNELS:
            raise ValueError(f"channel ID {datagram.channel_id} is invalid")
        if datagram.sequence_id & ~SEQUENCE_ID_MASK:
            raise ValueError(f"sequence ID {datagram.sequence_id:#x} is invalid")
        if len(datagram.data) > 0xFFFF:
            raise ValueError("datagram payload exceeds 65535 bytes")
        if datagram.fragment_id_last == 0 and datagram.fragment_id != 0:
            raise ValueError("unfragmented datagram must have fragment ID 0")
        if self._count >= self.MAX_COUNT:
            raise ValueError("data frame is full")

        data = datagram.data
        channel = datagram.channel_id
        seq = datagram.sequence_id

        if _is_micro(datagram):
            header = bytes(
                (
                    len(data) | (channel & 0x10) << 2,
                    (seq >> 12) & 0xF0 | channel & 0x0F,
                    (seq >> 8) & 0xFF,
                    seq & 0xFF,
                    datagram.window_parent_lead | (channel & 0x20) << 2,
                    datagram.channel_parent_lead,
                )
            )
        elif _is_small(datagram):
            header = (
                struct.pack(">BB", channel | 0x80, len(data))
                + seq.to_bytes(3, "big")
                + struct.pack(">HH", datagram.window_parent_lead, datagram.channel_parent_lead)
            )
        else:
            header = (
                struct.pack(">BH", channel | 0xC0, len(data))
                + seq.to_bytes(3, "big")
                + struct.pack(
                    ">HHHH",
                    datagram.window_parent_lead,
                    datagram.channel_parent_lead,
                    datagram.fragment_id,
                    datagram.fragment_id_last,
                )
            )

        self._buffer += header
        self._buffer += data
        self._count += 1

    def build(self) -> bytes:
        """Return the finished frame, datagram count and CRC included."""
        body = bytearray(self._buffer)
        body[_DATA_COUNT_OFFSET] |= self._count
        return _seal(body)

    def count(self) -> int:
        """Number of datagrams added so far."""
        return self._count

    def size(self) -> int:
        """Size in bytes of the frame that ``build`` would return."""
        return len(self._buffer) + FRAME_CRC_SIZE

    @staticmethod
    def encoded_size(datagram: Datagram) -> int:
        """Bytes that ``datagram`` adds to a frame, header included."""
        if _is_micro(datagram):
            return DATAGRAM_HEADER_SIZE_MICRO + len(datagram.data)
        if _is_small(datagram):
            return DATAGRAM_HEADER_SIZE_SMALL + len(datagram.data)
        return DATAGRAM_HEADER_SIZE_LARGE + len(datagram.data)


class AckFrameBuilder:
    """Accumulates ack groups into a single ack frame."""

    def __init__(self, frame_window_base_id: int, packet_window_base_id: int) -> None:
        self._buffer = bytearray((ACK_FRAME_ID,))
        self._buffer += struct.pack(">IIH", frame_window_base_id, packet_window_base_id, 0)
        self._count = 0

    def add(self, ack_group: AckGroup) -> None:
        """Append one ack group."""
        if self._count >= ACK_FRAME_MAX_GROUP_COUNT:
            raise ValueError("ack frame is full")
        self._buffer += struct.pack(">IIB", ack_group.base_id, ack_group.bitfield, int(ack_group.nonce))
        self._count += 1

    def build(self) -> bytes:
        """Return the finished frame, group count and CRC included."""
        body = bytearray(self._buffer)
        body[_ACK_COUNT_OFFSET : _ACK_COUNT_OFFSET + 2] = self._count.to_bytes(2, "big")
        return _seal(body)

    def count(self) -> int:
        """Number of ack groups added so far."""
        return self._count

    def size(self) -> int:
        """Size in bytes of the frame that ``build`` would return."""
        return len(self._buffer) + FRAME_CRC_SIZE

    @staticmethod
    def encoded_size(ack_group: AckGroup) -> int:
        """Bytes that one ack group adds to a frame."""
        return ACK_GROUP_SIZE