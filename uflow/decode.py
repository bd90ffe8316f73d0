"""Parsing of frames received from the wire."""

from __future__ import annotations

import struct
from typing import Callable, Optional

from . import crc
from .frames import (
    ACK_FRAME_ID,
    ACK_FRAME_PAYLOAD_HEADER_SIZE,
    ACK_GROUP_SIZE,
    DATA_FRAME_ID,
    DATA_FRAME_PAYLOAD_HEADER_SIZE,
    DATAGRAM_HEADER_SIZE_LARGE,
    DATAGRAM_HEADER_SIZE_MICRO,
    DATAGRAM_HEADER_SIZE_MIN,
    DATAGRAM_HEADER_SIZE_SMALL,
    DISCONNECT_ACK_FRAME_ID,
    DISCONNECT_ACK_FRAME_PAYLOAD_SIZE,
    DISCONNECT_FRAME_ID,
    DISCONNECT_FRAME_PAYLOAD_SIZE,
    FRAME_CRC_SIZE,
    FRAME_HEADER_SIZE,
    FRAME_OVERHEAD,
    HANDSHAKE_ACK_FRAME_ID,
    HANDSHAKE_ACK_FRAME_PAYLOAD_SIZE,
    HANDSHAKE_ERROR_FRAME_ID,
    HANDSHAKE_ERROR_FRAME_PAYLOAD_SIZE,
    HANDSHAKE_SYN_ACK_FRAME_ID,
    HANDSHAKE_SYN_ACK_FRAME_PAYLOAD_SIZE,
    HANDSHAKE_SYN_FRAME_ID,
    SYNC_FRAME_ID,
    SYNC_FRAME_PAYLOAD_SIZE,
    AckFrame,
    AckGroup,
    DataFrame,
    Datagram,
    DisconnectAckFrame,
    DisconnectFrame,
    Frame,
    HandshakeAckFrame,
    HandshakeErrorFrame,
    HandshakeErrorType,
    HandshakeSynAckFrame,
    HandshakeSynFrame,
    SyncFrame,
)

# Largest frame ever sent; connection requests are padded to exactly this size.
MAX_FRAME_SIZE = 1472
HANDSHAKE_SYN_FRAME_PAYLOAD_SIZE = MAX_FRAME_SIZE - FRAME_OVERHEAD

_MIN_FRAME_SIZE = FRAME_HEADER_SIZE + FRAME_CRC_SIZE


class FrameDecodeError(ValueError):
    """Raised when bytes do not form a valid frame."""


def _expect_size(payload: bytes, size: int, kind: str) -> None:
    if len(payload) != size:
        raise FrameDecodeError(f"{kind} payload must be {size} bytes, got {len(payload)}")


def _read_handshake_syn(payload: bytes) -> Frame:
    _expect_size(payload, HANDSHAKE_SYN_FRAME_PAYLOAD_SIZE, "handshake SYN")
    version = payload[0]
    nonce, rate, packet_size, alloc = struct.unpack_from(">IIII", payload, 1)
    return HandshakeSynFrame(
        version=version,
        nonce=nonce,
        max_receive_rate=rate,
        max_packet_size=packet_size,
        max_receive_alloc=alloc,
    )


def _read_handshake_syn_ack(payload: bytes) -> Frame:
    _expect_size(payload, HANDSHAKE_SYN_ACK_FRAME_PAYLOAD_SIZE, "handshake SYN+ACK")
    nonce_ack, nonce, rate, packet_size, alloc = struct.unpack(">IIIII", payload)
    return HandshakeSynAckFrame(
        nonce_ack=nonce_ack,
        nonce=nonce,
        max_receive_rate=rate,
        max_packet_size=packet_size,
        max_receive_alloc=alloc,
    )


def _read_handshake_ack(payload: bytes) -> Frame:
    _expect_size(payload, HANDSHAKE_ACK_FRAME_PAYLOAD_SIZE, "handshake ACK")
    (nonce_ack,) = struct.unpack(">I", payload)
    return HandshakeAckFrame(nonce_ack=nonce_ack)


def _read_handshake_error(payload: bytes) -> Frame:
    _expect_size(payload, HANDSHAKE_ERROR_FRAME_PAYLOAD_SIZE, "handshake error")
    nonce_ack, code = struct.unpack(">IB", payload)
    try:
        error = HandshakeErrorType(code)
    except ValueError:
        raise FrameDecodeError(f"unknown handshake error code {code}") from None
    return HandshakeErrorFrame(nonce_ack=nonce_ack, error=error)


def _read_disconnect(payload: bytes) -> Frame:
    _expect_size(payload, DISCONNECT_FRAME_PAYLOAD_SIZE, "disconnect")
    return DisconnectFrame()


def _read_disconnect_ack(payload: bytes) -> Frame:
    _expect_size(payload, DISCONNECT_ACK_FRAME_PAYLOAD_SIZE, "disconnect ack")
    return DisconnectAckFrame()


def _read_datagram(buf: bytes, pos: int) -> tuple[Datagram, int]:
    """Decode the datagram starting at ``pos``; return it and the offset after it."""
    remaining = len(buf) - pos
    if remaining < DATAGRAM_HEADER_SIZE_MIN:
        raise FrameDecodeError("truncated datagram header")

    b0 = buf[pos]

    if b0 & 0x80 == 0:
        header_size = DATAGRAM_HEADER_SIZE_MICRO
        data_len = b0 & 0x3F
        if remaining < header_size + data_len:
            raise FrameDecodeError("truncated micro datagram")
        b1, b2, b3, b4, b5 = buf[pos + 1 : pos + 6]
        channel_id = ((b4 >> 2) & 0x20) | ((b0 >> 2) & 0x10) | (b1 & 0x0F)
        sequence_id = ((b1 & 0xF0) << 12) | (b2 << 8) | b3
        window_parent_lead = b4 & 0x7F
        channel_parent_lead = b5
        fragment_id = fragment_id_last = 0
    elif b0 & 0x40 == 0:
        header_size = DATAGRAM_HEADER_SIZE_SMALL
        data_len = buf[pos + 1]
        if remaining < header_size + data_len:
            raise FrameDecodeError("truncated small datagram")
        channel_id = b0 & 0x3F
        sequence_id = int.from_bytes(buf[pos + 2 : pos + 5], "big") & 0x0FFFFF
        window_parent_lead, channel_parent_lead = struct.unpack_from(">HH", buf, pos + 5)
        fragment_id = fragment_id_last = 0
    else:
        header_size = DATAGRAM_HEADER_SIZE_LARGE
        if remaining < header_size:
            raise FrameDecodeError("truncated large datagram header")
        (data_len,) = struct.unpack_from(">H", buf, pos + 1)
        if remaining < header_size + data_len:
            raise FrameDecodeError("truncated large datagram")
        channel_id = b0 & 0x3F
        sequence_id = int.from_bytes(buf[pos + 3 : pos + 6], "big") & 0x0FFFFF
        (
            window_parent_lead,
            channel_parent_lead,
            fragment_id,
            fragment_id_last,
        ) = struct.unpack_from(">HHHH", buf, pos + 6)

    start = pos + header_size
    end = start + data_len
    datagram = Datagram(
        sequence_id=sequence_id,
        channel_id=channel_id,
        window_parent_lead=window_parent_lead,
        channel_parent_lead=channel_parent_lead,
        fragment_id=fragment_id,
        fragment_id_last=fragment_id_last,
        data=bytes(buf[start:end]),
    )
    return datagram, end


def _read_data(payload: bytes) -> Frame:
    if len(payload) < DATA_FRAME_PAYLOAD_HEADER_SIZE:
        raise FrameDecodeError("truncated data frame header")

    (sequence_id,) = struct.unpack_from(">I", payload, 0)
    flags = payload[4]
    nonce = bool(flags & 0x80)
    count = flags & 0x7F

    datagrams = []
    pos = DATA_FRAME_PAYLOAD_HEADER_SIZE
    for _ in range(count):
        datagram, pos = _read_datagram(payload, pos)
        datagrams.append(datagram)

    if pos != len(payload):
        raise FrameDecodeError("trailing bytes after last datagram")

    return DataFrame(sequence_id=sequence_id, nonce=nonce, datagrams=datagrams)


def _read_sync(payload: bytes) -> Frame:
    _expect_size(payload, SYNC_FRAME_PAYLOAD_SIZE, "sync")
    mode, frame_id, packet_id = struct.unpack(">BII", payload)
    return SyncFrame(
        next_frame_id=frame_id if mode & 0x01 else None,
        next_packet_id=packet_id if mode & 0x02 else None,
    )


def _read_ack(payload: bytes) -> Frame:
    if len(payload) < ACK_FRAME_PAYLOAD_HEADER_SIZE:
        raise FrameDecodeError("truncated ack frame header")

    frame_base, packet_base, count = struct.unpack_from(">IIH", payload, 0)
    expected = ACK_FRAME_PAYLOAD_HEADER_SIZE + count * ACK_GROUP_SIZE
    if len(payload) < expected:
        raise FrameDecodeError("truncated ack group")
    if len(payload) > expected:
        raise FrameDecodeError("trailing bytes after last ack group")

    groups = [
        AckGroup(base_id=base_id, bitfield=bitfield, nonce=nonce_byte != 0)
        for base_id, bitfield, nonce_byte in struct.iter_unpack(
            ">IIB", payload[ACK_FRAME_PAYLOAD_HEADER_SIZE:]
        )
    ]
    return AckFrame(
        frame_window_base_id=frame_base,
        packet_window_base_id=packet_base,
        frame_acks=groups,
    )


_READERS: dict[int, Callable[[bytes], Frame]] = {
    HANDSHAKE_SYN_FRAME_ID: _read_handshake_syn,
    HANDSHAKE_SYN_ACK_FRAME_ID: _read_handshake_syn_ack,
    HANDSHAKE_ACK_FRAME_ID: _read_handshake_ack,
    HANDSHAKE_ERROR_FRAME_ID: _read_handshake_error,
    DISCONNECT_FRAME_ID: _read_disconnect,
    DISCONNECT_ACK_FRAME_ID: _read_disconnect_ack,
    DATA_FRAME_ID: _read_data,
    SYNC_FRAME_ID: _read_sync,
    ACK_FRAME_ID: _read_ack,
}


def read_frame(data: bytes) -> Frame:
    """Decode one frame, raising FrameDecodeError if it is malformed or corrupt."""
    data = bytes(data)
    if len(data) < _MIN_FRAME_SIZE:
        raise FrameDecodeError(f"frame of {len(data)} bytes is too short")

    body = data[:-FRAME_CRC_SIZE]
    expected_crc = int.from_bytes(data[-FRAME_CRC_SIZE:], "big")
    if crc.compute(body) != expected_crc:
        raise FrameDecodeError("CRC mismatch")

    reader = _READERS.get(body[0])
    if reader is None:
        raise FrameDecodeError(f"unknown frame type {body[0]}")
    return reader(body[FRAME_HEADER_SIZE:])


def try_read_frame(data: bytes) -> Optional[Frame]:
    """Decode one frame, returning None if it is malformed or corrupt."""
    try:
        return read_frame(data)
    except FrameDecodeError:
        return None