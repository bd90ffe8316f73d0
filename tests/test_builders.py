import pytest
from hypothesis import given, strategies as st

from uflow.builders import AckFrameBuilder, DataFrameBuilder
from uflow.crc import compute
from uflow.frames import (
    ACK_FRAME_ID,
    ACK_FRAME_OVERHEAD,
    ACK_GROUP_SIZE,
    DATA_FRAME_ID,
    DATA_FRAME_OVERHEAD,
    DATAGRAM_HEADER_SIZE_LARGE,
    DATAGRAM_HEADER_SIZE_MICRO,
    DATAGRAM_HEADER_SIZE_SMALL,
    AckGroup,
    Datagram,
)


def _datagram(data=b"\x00\x01\x02", wpl=0, cpl=0, fragment_id=0, fragment_id_last=0, channel=63, seq=0x12345):
    return Datagram(
        sequence_id=seq,
        channel_id=channel,
        window_parent_lead=wpl,
        channel_parent_lead=cpl,
        fragment_id=fragment_id,
        fragment_id_last=fragment_id_last,
        data=data,
    )


def _crc_ok(frame_bytes):
    return compute(frame_bytes[:-4]) == int.from_bytes(frame_bytes[-4:], "big")


def test_empty_data_frame_header():
    built = DataFrameBuilder(0x010203, True).build()
    assert built[:-4] == bytes([DATA_FRAME_ID, 0x00, 0x01, 0x02, 0x03, 0x80])
    assert len(built) == DATA_FRAME_OVERHEAD
    assert _crc_ok(built)


def test_micro_datagram_layout():
    builder = DataFrameBuilder(0, False)
    builder.add(_datagram(data=b"ab", wpl=5, cpl=7))
    built = builder.build()
    assert built[5] == 1
    assert built[6:12] == bytes([0x42, 0x1F, 0x23, 0x45, 0x85, 0x07])
    assert built[12:-4] == b"ab"


def test_header_kinds_by_encoded_size():
    micro = _datagram(data=b"x" * 63, wpl=127, cpl=255)
    small = _datagram(data=b"x" * 64)
    small_by_lead = _datagram(data=b"x", wpl=128)
    large = _datagram(data=b"x" * 256)
    fragmented = _datagram(data=b"x", fragment_id=1, fragment_id_last=2)
    assert DataFrameBuilder.encoded_size(micro) == DATAGRAM_HEADER_SIZE_MICRO + 63
    assert DataFrameBuilder.encoded_size(small) == DATAGRAM_HEADER_SIZE_SMALL + 64
    assert DataFrameBuilder.encoded_size(small_by_lead) == DATAGRAM_HEADER_SIZE_SMALL + 1
    assert DataFrameBuilder.encoded_size(large) == DATAGRAM_HEADER_SIZE_LARGE + 256
    assert DataFrameBuilder.encoded_size(fragmented) == DATAGRAM_HEADER_SIZE_LARGE + 1


def test_large_header_marks_and_fields():
    builder = DataFrameBuilder(0, False)
    builder.add(_datagram(data=b"\x09" * 3, wpl=0x34A8, cpl=0x8A43, fragment_id=0x4789, fragment_id_last=0x478A, seq=0x45678))
    built = builder.build()
    header = built[6 : 6 + DATAGRAM_HEADER_SIZE_LARGE]
    assert header[0] & 0xC0 == 0xC0
    assert header[0] & 0x3F == 63
    assert int.from_bytes(header[1:3], "big") == 3
    assert int.from_bytes(header[3:6], "big") == 0x45678
    assert int.from_bytes(header[6:8], "big") == 0x34A8
    assert int.from_bytes(header[8:10], "big") == 0x8A43
    assert int.from_bytes(header[10:12], "big") == 0x4789
    assert int.from_bytes(header[12:14], "big") == 0x478A


def test_small_header_marks():
    builder = DataFrameBuilder(0, False)
    builder.add(_datagram(data=b"\x01" * 100, channel=5))
    built = builder.build()
    assert built[6] & 0xC0 == 0x80
    assert built[6] & 0x3F == 5
    assert built[7] == 100


def test_count_is_written_without_touching_nonce():
    builder = DataFrameBuilder(7, True)
    for _ in range(3):
        builder.add(_datagram())
    built = builder.build()
    assert builder.count() == 3
    assert built[5] & 0x7F == 3
    assert built[5] & 0x80 == 0x80


def test_max_count_enforced():
    builder = DataFrameBuilder(0, False)
    for _ in range(DataFrameBuilder.MAX_COUNT):
        builder.add(_datagram(data=b""))
    with pytest.raises(ValueError):
        builder.add(_datagram(data=b""))
    assert builder.build()[5] & 0x7F == DataFrameBuilder.MAX_COUNT


@pytest.mark.parametrize(
    "datagram",
    [
        _datagram(channel=64),
        _datagram(seq=1 << 20),
        _datagram(fragment_id=1, fragment_id_last=0),
        _datagram(data=b"\x00" * 0x10000),
    ],
)
def test_invalid_datagrams_rejected(datagram):
    builder = DataFrameBuilder(0, False)
    with pytest.raises(ValueError):
        builder.add(datagram)
    assert builder.count() == 0


_datagrams = st.builds(
    Datagram,
    sequence_id=st.integers(0, (1 << 20) - 1),
    channel_id=st.integers(0, 63),
    window_parent_lead=st.integers(0, 0xFFFF),
    channel_parent_lead=st.integers(0, 0xFFFF),
    fragment_id=st.just(0),
    fragment_id_last=st.integers(0, 0xFFFF),
    data=st.binary(max_size=300),
)


@given(st.lists(_datagrams, max_size=20), st.booleans())
def test_size_tracks_encoded_sizes(datagrams, nonce):
    builder = DataFrameBuilder(0xDEADBEEF, nonce)
    expected = DATA_FRAME_OVERHEAD
    for datagram in datagrams:
        assert builder.size() == expected
        builder.add(datagram)
        expected += DataFrameBuilder.encoded_size(datagram)
    built = builder.build()
    assert len(built) == expected == builder.size()
    assert _crc_ok(built)


def test_build_leaves_builder_usable():
    builder = DataFrameBuilder(1, False)
    first_datagram = _datagram()
    builder.add(first_datagram)
    first = builder.build()
    assert first[5] & 0x7F == 1
    assert len(first) == DATA_FRAME_OVERHEAD + DataFrameBuilder.encoded_size(first_datagram)

    second_datagram = _datagram(data=b"z" * 80)
    builder.add(second_datagram)
    second = builder.build()
    assert second[5] & 0x7F == 2
    assert len(second) == len(first) + DataFrameBuilder.encoded_size(second_datagram)
    assert second[:-4].startswith(first[:5])
    assert _crc_ok(second)


def test_empty_ack_frame_header():
    built = AckFrameBuilder(0x010203, 0x040506).build()
    assert built[:-4] == bytes([ACK_FRAME_ID, 0, 1, 2, 3, 0, 4, 5, 6, 0, 0])
    assert len(built) == ACK_FRAME_OVERHEAD
    assert _crc_ok(built)


def test_ack_group_layout():
    builder = AckFrameBuilder(0, 0)
    group = AckGroup(base_id=0x28475809, bitfield=0b01000100111101110110100110101, nonce=True)
    builder.add(group)
    built = builder.build()
    body = built[ACK_FRAME_OVERHEAD - 4 : -4]
    assert body == group.base_id.to_bytes(4, "big") + group.bitfield.to_bytes(4, "big") + b"\x01"
    assert AckFrameBuilder.encoded_size(group) == ACK_GROUP_SIZE


@given(st.integers(0, 200))
def test_ack_size_and_count(group_count):
    builder = AckFrameBuilder(1, 2)
    group = AckGroup(base_id=0, bitfield=0, nonce=False)
    for _ in range(group_count):
        builder.add(group)
    built = builder.build()
    assert builder.count() == group_count
    assert len(built) == builder.size() == ACK_FRAME_OVERHEAD + group_count * ACK_GROUP_SIZE
    assert int.from_bytes(built[9:11], "big") == group_count
    assert _crc_ok(built)