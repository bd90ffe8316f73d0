"""Serialization of frames into their wire representation."""

from __future__ import annotations

import struct
from functools import singledispatch

from . import crc
from .builders import AckFrameBuilder, DataFrameBuilder
from .decode import MAX_FRAME_SIZE
from .frames import (
    DISCONNECT_ACK_FRAME_ID,
    DISCONNECT_FRAME_ID,
    FRAME_CRC_SIZE,
    HANDSHAKE_ACK_FRAME_ID,
    HANDSHAKE_ERROR_FRAME_ID,
    HANDSHAKE_SYN_ACK_FRAME_ID,
    HANDSHAKE_SYN_FRAME_ID,
    SYNC_FRAME_ID,
    AckFrame,
    DataFrame,
    DisconnectAckFrame,
    DisconnectFrame,
    HandshakeAckFrame,
    HandshakeErrorFrame,
    HandshakeSynAckFrame,
    HandshakeSynFrame,
    SyncFrame,
)


def _seal(body: bytes) -> bytes:
    return body + crc.compute(body).to_bytes(FRAME_CRC_SIZE, "big")


@singledispatch
def write_frame(frame) -> bytes:
    """Return the wire bytes of ``frame``, CRC included."""
    raise TypeError(f"cannot serialize object of type {type(frame).__name__}")


@write_frame.register
def _(frame: HandshakeSynFrame) -> bytes:
    # Connection requests are padded to the largest frame size.
    body = struct.pack(
        ">BBIIII",
        HANDSHAKE_SYN_FRAME_ID,
        frame.version,
        frame.nonce,
        frame.max_receive_rate,
        frame.max_packet_size,
        frame.max_receive_alloc,
    )
    body = body.ljust(MAX_FRAME_SIZE - FRAME_CRC_SIZE, b"\x00")
    return _seal(body)


@write_frame.register
def _(frame: HandshakeSynAckFrame) -> bytes:
    return _seal(
        struct.pack(
            ">BIIIII",
            HANDSHAKE_SYN_ACK_FRAME_ID,
            frame.nonce_ack,
            frame.nonce,
            frame.max_receive_rate,
            frame.max_packet_size,
            frame.max_receive_alloc,
        )
    )


@write_frame.register
def _(frame: HandshakeAckFrame) -> bytes:
    return _seal(struct.pack(">BI", HANDSHAKE_ACK_FRAME_ID, frame.nonce_ack))


@write_frame.register
def _(frame: HandshakeErrorFrame) -> bytes:
    return _seal(struct.pack(">BIB", HANDSHAKE_ERROR_FRAME_ID, frame.nonce_ack, int(frame.error)))


@write_frame.register
def _(frame: DisconnectFrame) -> bytes:
    return _seal(bytes((DISCONNECT_FRAME_ID,)))


@write_frame.register
def _(frame: DisconnectAckFrame) -> bytes:
    return _seal(bytes((DISCONNECT_ACK_FRAME_ID,)))


@write_frame.register
def _(frame: DataFrame) -> bytes:
    builder = DataFrameBuilder(frame.sequence_id, frame.nonce)
    for datagram in frame.datagrams:
        builder.add(datagram)
    return builder.build()


@write_frame.register
def _(frame: SyncFrame) -> bytes:
    mode = (frame.next_frame_id is not None) | ((frame.next_packet_id is not None) << 1)
    return _seal(
        struct.pack(
            ">BBII",
            SYNC_FRAME_ID,
            mode,
            frame.next_frame_id or 0,
            frame.next_packet_id or 0,
        )
    )


@write_frame.register
def _(frame: AckFrame) -> bytes:
    builder = AckFrameBuilder(frame.frame_window_base_id, frame.packet_window_base_id)
    for group in frame.frame_acks:
        builder.add(group)
    return builder.build()