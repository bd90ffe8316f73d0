# uflow

`uflow` implements the frame layer of a connection-oriented transport protocol
that runs over UDP. It has no dependencies outside the standard library.

## What is in the package

- **Frame types** (`uflow.frames`): `HandshakeSynFrame`, `HandshakeSynAckFrame`,
  `HandshakeAckFrame`, `HandshakeErrorFrame` (with `HandshakeErrorType`:
  `VERSION`, `CONFIG`, `SERVER_FULL`), `DisconnectFrame`, `DisconnectAckFrame`,
  `DataFrame`, `SyncFrame` and `AckFrame`. These are data classes, along with
  `Datagram` and `AckGroup`. Integer fields are checked against their wire
  widths on construction and raise `ValueError` if they do not fit. The module
  also defines the wire-format constants, such as header sizes, frame type IDs
  and `MAX_CHANNELS`. `InfoRequestFrame` and `InfoReplyFrame` are defined as
  data classes but have no wire encoding.
- **Encoding** (`uflow.encode`): `write_frame(frame)` returns the frame's wire
  bytes with a trailing big-endian CRC. Handshake SYN frames are padded to
  `MAX_FRAME_SIZE` (1472 bytes). Passing any other type raises `TypeError`.
- **Decoding** (`uflow.decode`): `read_frame(data)` parses bytes back into a
  frame. It raises `FrameDecodeError`, a subclass of `ValueError`, on a bad
  CRC, an unknown frame type, a wrong payload length, truncation or trailing
  bytes. `try_read_frame(data)` returns `None` in those cases instead.
- **Incremental builders** (`uflow.builders`): `DataFrameBuilder(sequence_id, nonce)`
  and `AckFrameBuilder(frame_window_base_id, packet_window_base_id)` assemble
  a frame one datagram or ack group at a time with `add`.
  - `size()` reports the byte size of the finished frame.
  - `count()` reports how many items have been added.
  - The static `encoded_size` gives the cost of one more item, so callers can
    stay within a byte budget.
  - `DataFrameBuilder` picks the smallest of three datagram header forms
    (micro, small, large). It holds at most `DataFrameBuilder.MAX_COUNT` (127)
    datagrams and raises `ValueError` for invalid channels, sequence IDs or a
    full frame.
- **CRC-32** (`uflow.crc`): the protocol's 32-bit checksum, using polynomial
  0x132C00699. It provides `compute(data)`, the table-driven
  `extend(initial_crc, data)` and the bit-by-bit `extend_bitwise(initial_crc, data)`.
- **Receiver acknowledgements** (`uflow.frame_ack_queue`): `FrameAckQueue(size, base_id)`
  tracks the frames seen within a sliding, wrapping 32-bit receive window and
  groups them into `AckGroup`s. Use `mark_seen`, `pop` and `peek` for the
  queue. `base_id`, `window_contains` and `resynchronize` give access to the
  window.
- **Loss-rate estimation** (`uflow.loss_rate`): `LossIntervalQueue` keeps up to
  nine loss intervals, most recent first.
  - `push_ack` and `push_nack(send_time_ms, rtt_ms)` update the history.
  - `compute_loss_rate()` returns the weighted loss event rate of RFC 5348,
    section 5.4.
  - `reset(initial_p)` truncates the history to the current interval and sizes
    it so that the rate becomes `initial_p`. It raises `ValueError` if there is
    no interval yet.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Example

```python
from uflow.frames import AckFrame, AckGroup
from uflow.encode import write_frame
from uflow.decode import read_frame, try_read_frame

frame = AckFrame(
    frame_window_base_id=0x010203,
    packet_window_base_id=0x040506,
    frame_acks=[AckGroup(base_id=10, bitfield=0b101, nonce=True)],
)

data = write_frame(frame)
assert read_frame(data) == frame
assert try_read_frame(data[:-1]) is None
```

Tracking received frames on the receiving side:

```python
from uflow.frame_ack_queue import FrameAckQueue

queue = FrameAckQueue(size=64, base_id=0)
queue.mark_seen(0, True)
queue.mark_seen(2, False)
group = queue.pop()   # AckGroup(base_id=0, bitfield=0b101, nonce=True)
```

## What the package does not do

`uflow` covers frames and the bookkeeping around them, not a running transport:

- It opens no sockets.
- It has no client, server or connection state machine, and no handshake or
  disconnect handling.
- It does no packet fragmentation or reassembly, retransmission or send-rate
  control.
- It has no command-line program.

Callers are expected to move the bytes themselves and to drive these pieces
from their own connection logic.