"""Frame encoding, checksums and acknowledgement bookkeeping for a UDP transport protocol."""

__version__ = "0.1.0"

__all__ = ["builders", "crc", "decode", "encode", "frame_ack_queue", "frames", "loss_rate"]