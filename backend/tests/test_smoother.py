from datetime import datetime, timezone

import pytest
from attune.errors import ValidationError
from attune.schemas import AttentionSample
from attune.smoother import SignalSmoother, round_half_up


def _sample(value):
    return AttentionSample(value=value, observed_at=datetime.now(timezone.utc))


def test_mean_of_available_samples_without_padding():
    smoother = SignalSmoother()
    assert smoother.ingest(_sample(90)).value == 90
    assert smoother.ingest(_sample(80)).value == 85
    signal = smoother.ingest(_sample(71))
    assert signal.value == 80  # 241 / 3 = 80.33
    assert signal.sample_count == 3


def test_window_keeps_only_last_five_samples():
    smoother = SignalSmoother(window_size=5)
    for value in (100, 100, 100, 0, 0, 0, 0, 0):
        signal = smoother.ingest(_sample(value))
    assert smoother.window == [0, 0, 0, 0, 0]
    assert signal.value == 0
    assert signal.sample_count == 5


def test_eviction_is_fifo_not_by_value():
    smoother = SignalSmoother(window_size=3)
    for value in (10, 90, 50, 20):
        smoother.ingest(_sample(value))
    assert smoother.window == [90, 50, 20]


def test_sliding_window_depends_only_on_last_five():
    tail = [15, 18, 12, 20, 10]
    a = SignalSmoother()
    b = SignalSmoother()
    for value in [90, 85, 88, 92, 91] + tail:
        last_a = a.ingest(_sample(value))
    for value in [3, 100] + tail:
        last_b = b.ingest(_sample(value))
    assert last_a.value == last_b.value == 15


def test_rounds_half_up():
    smoother = SignalSmoother()
    smoother.ingest(_sample(40))
    assert smoother.ingest(_sample(41)).value == 41  # 40.5
    assert round_half_up(2.5) == 3
    assert round_half_up(2.4999) == 2


@pytest.mark.parametrize(
    "payload",
    [
        {"value": 101, "observed_at": "2024-01-01T00:00:00Z"},
        {"value": -1, "observed_at": "2024-01-01T00:00:00Z"},
        {"value": 55.5, "observed_at": "2024-01-01T00:00:00Z"},
        {"value": "70", "observed_at": "2024-01-01T00:00:00Z"},
        {"observed_at": "2024-01-01T00:00:00Z"},
        42,
    ],
)
def test_malformed_samples_rejected_and_window_unchanged(payload):
    smoother = SignalSmoother()
    smoother.ingest(_sample(60))
    with pytest.raises(ValidationError):
        smoother.ingest(payload)
    assert smoother.window == [60]


def test_unvalidated_model_is_still_checked():
    smoother = SignalSmoother()
    forged = AttentionSample.model_construct(value=500, observed_at=datetime.now(timezone.utc))
    with pytest.raises(ValidationError, match="out of range"):
        smoother.ingest(forged)
    assert smoother.window == []


def test_sample_is_immutable():
    sample = _sample(50)
    with pytest.raises(Exception):
        sample.value = 10


def test_reset_clears_window():
    smoother = SignalSmoother()
    smoother.ingest(_sample(30))
    smoother.reset()
    assert smoother.window == []
    assert smoother.ingest(_sample(70)).value == 70


def test_invalid_window_size():
    with pytest.raises(ValueError):
        SignalSmoother(window_size=0)
