"""Frame types exchanged between endpoints, and the constants of their wire format."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional, Union

FRAME_HEADER_SIZE = 1
FRAME_CRC_SIZE = 4
FRAME_OVERHEAD = FRAME_HEADER_SIZE + FRAME_CRC_SIZE

HANDSHAKE_SYN_FRAME_ID = 0
HANDSHAKE_SYN_ACK_FRAME_ID = 1
HANDSHAKE_ACK_FRAME_ID = 2
HANDSHAKE_ERROR_FRAME_ID = 3
DISCONNECT_FRAME_ID = 4
DISCONNECT_ACK_FRAME_ID = 5
DATA_FRAME_ID = 10
SYNC_FRAME_ID = 11
ACK_FRAME_ID = 12

HANDSHAKE_SYN_ACK_FRAME_PAYLOAD_SIZE = 20
HANDSHAKE_ACK_FRAME_PAYLOAD_SIZE = 4
HANDSHAKE_ERROR_FRAME_PAYLOAD_SIZE = 5
DISCONNECT_FRAME_PAYLOAD_SIZE = 0
DISCONNECT_ACK_FRAME_PAYLOAD_SIZE = 0

DATAGRAM_HEADER_SIZE_MICRO = 6
DATAGRAM_HEADER_SIZE_SMALL = 9
DATAGRAM_HEADER_SIZE_LARGE = 14
DATAGRAM_HEADER_SIZE_MIN = DATAGRAM_HEADER_SIZE_MICRO
MAX_DATAGRAM_OVERHEAD = DATAGRAM_HEADER_SIZE_LARGE
MIN_DATAGRAM_OVERHEAD = DATAGRAM_HEADER_SIZE_MICRO

DATA_FRAME_PAYLOAD_HEADER_SIZE = 5
DATA_FRAME_OVERHEAD = FRAME_OVERHEAD + DATA_FRAME_PAYLOAD_HEADER_SIZE
DATA_FRAME_MAX_DATAGRAM_COUNT = 127

SYNC_FRAME_PAYLOAD_SIZE = 9

ACK_GROUP_SIZE = 9
ACK_FRAME_PAYLOAD_HEADER_SIZE = 10
ACK_FRAME_OVERHEAD = FRAME_OVERHEAD + ACK_FRAME_PAYLOAD_HEADER_SIZE
ACK_FRAME_MAX_GROUP_COUNT = 0xFFFF

MAX_CHANNELS = 64
MAX_FRAGMENTS = 1 << 16

# Datagram sequence IDs occupy 20 bits on the wire.
SEQUENCE_ID_BITS = 20
SEQUENCE_ID_MASK = (1 << SEQUENCE_ID_BITS) - 1


def _check_uint(name: str, value: int, bits: int) -> None:
    if not 0 <= value < (1 << bits):
        raise ValueError(f"{name} must fit in {bits} unsigned bits, got {value}")


class HandshakeErrorType(enum.IntEnum):
    """Reason a connection request was refused; the value is its wire code."""

    VERSION = 0
    CONFIG = 1
    SERVER_FULL = 2


@dataclass
class HandshakeSynFrame:
    version: int
    nonce: int
    max_receive_rate: int
    max_packet_size: int
    max_receive_alloc: int

    def __post_init__(self) -> None:
        _check_uint("version", self.version, 8)
        _check_uint("nonce", self.nonce, 32)
        _check_uint("max_receive_rate", self.max_receive_rate, 32)
        _check_uint("max_packet_size", self.max_packet_size, 32)
        _check_uint("max_receive_alloc", self.max_receive_alloc, 32)


@dataclass
class HandshakeSynAckFrame:
    nonce_ack: int
    nonce: int
    max_receive_rate: int
    max_packet_size: int
    max_receive_alloc: int

    def __post_init__(self) -> None:
        _check_uint("nonce_ack", self.nonce_ack, 32)
        _check_uint("nonce", self.nonce, 32)
        _check_uint("max_receive_rate", self.max_receive_rate, 32)
        _check_uint("max_packet_size", self.max_packet_size, 32)
        _check_uint("max_receive_alloc", self.max_receive_alloc, 32)


@dataclass
class HandshakeAckFrame:
    nonce_ack: int

    def __post_init__(self) -> None:
        _check_uint("nonce_ack", self.nonce_ack, 32)


@dataclass
class HandshakeErrorFrame:
    nonce_ack: int
    error: HandshakeErrorType

    def __post_init__(self) -> None:
        _check_uint("nonce_ack", self.nonce_ack, 32)
        self.error = HandshakeErrorType(self.error)


@dataclass
class InfoRequestFrame:
    version: int

    def __post_init__(self) -> None:
        _check_uint("version", self.version, 8)


@dataclass
class InfoReplyFrame:
    peer_count: int
    max_peer_count: int
    name: str

    def __post_init__(self) -> None:
        _check_uint("peer_count", self.peer_count, 32)
        _check_uint("max_peer_count", self.max_peer_count, 32)


@dataclass
class DisconnectFrame:
    pass


@dataclass
class DisconnectAckFrame:
    pass


@dataclass
class Datagram:
    """One packet fragment carried inside a data frame."""

    sequence_id: int
    channel_id: int
    window_parent_lead: int
    channel_parent_lead: int
    fragment_id: int
    fragment_id_last: int
    data: bytes

    def __post_init__(self) -> None:
        _check_uint("sequence_id", self.sequence_id, 32)
        _check_uint("channel_id", self.channel_id, 8)
        _check_uint("window_parent_lead", self.window_parent_lead, 16)
        _check_uint("channel_parent_lead", self.channel_parent_lead, 16)
        _check_uint("fragment_id", self.fragment_id, 16)
        _check_uint("fragment_id_last", self.fragment_id_last, 16)
        self.data = bytes(self.data)


@dataclass
class DataFrame:
    sequence_id: int
    nonce: bool
    datagrams: list[Datagram] = field(default_factory=list)

    def __post_init__(self) -> None:
        _check_uint("sequence_id", self.sequence_id, 32)
        self.nonce = bool(self.nonce)


@dataclass
class SyncFrame:
    next_frame_id: Optional[int] = None
    next_packet_id: Optional[int] = None

    def __post_init__(self) -> None:
        if self.next_frame_id is not None:
            _check_uint("next_frame_id", self.next_frame_id, 32)
        if self.next_packet_id is not None:
            _check_uint("next_packet_id", self.next_packet_id, 32)


@dataclass
class AckGroup:
    """Acknowledges up to 32 consecutive frames starting at ``base_id``."""

    base_id: int
    bitfield: int
    nonce: bool

    def __post_init__(self) -> None:
        _check_uint("base_id", self.base_id, 32)
        _check_uint("bitfield", self.bitfield, 32)
        self.nonce = bool(self.nonce)


@dataclass
class AckFrame:
    frame_window_base_id: int
    packet_window_base_id: int
    frame_acks: list[AckGroup] = field(default_factory=list)

    def __post_init__(self) -> None:
        _check_uint("frame_window_base_id", self.frame_window_base_id, 32)
        _check_uint("packet_window_base_id", self.packet_window_base_id, 32)


Frame = Union[
    HandshakeSynFrame,
    HandshakeSynAckFrame,
    HandshakeAckFrame,
    HandshakeErrorFrame,
    DisconnectFrame,
    DisconnectAckFrame,
    DataFrame,
    SyncFrame,
    AckFrame,
]