import pytest
from hypothesis import given, strategies as st

from uflow.loss_rate import MAX_INTERVALS, LossIntervalQueue


def _queue_with_interval(acks: int, send_time_ms: int = 0, rtt_ms: int = 100) -> LossIntervalQueue:
    queue = LossIntervalQueue()
    queue.push_nack(send_time_ms, rtt_ms)
    for _ in range(acks):
        queue.push_ack()
    return queue


def test_empty_queue_has_no_loss():
    queue = LossIntervalQueue()
    assert queue.compute_loss_rate() == 0.0
    assert len(queue) == 0


def test_ack_without_interval_is_ignored():
    queue = LossIntervalQueue()
    queue.push_ack()
    queue.push_ack()
    assert len(queue) == 0
    assert queue.compute_loss_rate() == 0.0


def test_single_nack_gives_full_loss():
    queue = _queue_with_interval(acks=0)
    assert len(queue) == 1
    assert queue.compute_loss_rate() == 1.0


def test_acks_lengthen_current_interval():
    queue = _queue_with_interval(acks=4)
    assert queue.compute_loss_rate() == pytest.approx(0.2)


def test_nack_within_rtt_extends_interval():
    queue = LossIntervalQueue()
    queue.push_nack(0, 100)
    queue.push_nack(99, 100)
    assert len(queue) == 1
    assert queue.compute_loss_rate() == pytest.approx(1 / 2)


def test_nack_after_rtt_opens_new_interval():
    queue = _queue_with_interval(acks=2)
    queue.push_nack(100, 100)
    assert len(queue) == 2
    assert queue.compute_loss_rate() == pytest.approx(1 / 3)


def test_interval_count_is_bounded():
    queue = LossIntervalQueue()
    for index in range(20):
        queue.push_nack(index * 100, 50)
    assert len(queue) == MAX_INTERVALS
    assert queue.compute_loss_rate() == pytest.approx(1.0)


def test_reset_keeps_one_interval_with_requested_rate():
    queue = _queue_with_interval(acks=3)
    queue.push_nack(1000, 100)
    queue.push_nack(2000, 100)
    queue.reset(0.01)
    assert len(queue) == 1
    assert queue.compute_loss_rate() == pytest.approx(0.01)


def test_reset_on_empty_queue_raises():
    queue = LossIntervalQueue()
    with pytest.raises(ValueError):
        queue.reset(0.5)


def test_reset_to_zero_saturates_and_acks_do_not_overflow():
    queue = _queue_with_interval(acks=0)
    queue.reset(0.0)
    rate = queue.compute_loss_rate()
    assert rate == pytest.approx(1 / 0xFFFFFFFF)
    queue.push_ack()
    assert queue.compute_loss_rate() == rate


def test_reset_then_new_interval_uses_reset_length():
    queue = _queue_with_interval(acks=0)
    queue.reset(0.25)
    queue.push_nack(500, 100)
    assert len(queue) == 2
    assert queue.compute_loss_rate() == pytest.approx(0.25)


_ops = st.lists(
    st.one_of(
        st.just(("ack",)),
        st.tuples(st.just("nack"), st.integers(0, 10_000), st.integers(0, 500)),
    ),
    max_size=200,
)


@given(_ops)
def test_loss_rate_stays_within_unit_interval(ops):
    queue = LossIntervalQueue()
    send_time = 0
    saw_nack = False
    for op in ops:
        if op[0] == "ack":
            queue.push_ack()
        else:
            send_time += op[1]
            queue.push_nack(send_time, op[2])
            saw_nack = True
    rate = queue.compute_loss_rate()
    assert len(queue) <= MAX_INTERVALS
    if saw_nack:
        assert 0.0 < rate <= 1.0
    else:
        assert rate == 0.0