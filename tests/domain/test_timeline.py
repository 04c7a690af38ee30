import pytest

from audio_viewer.constants import TIMELINE_STEP_TABLE_SECONDS
from audio_viewer.domain.timeline import choose_step, format_tick_label, snap_step, ticks


def test_ticks_for_125_seconds_at_600_pixels_are_spaced_and_cover_duration():
    total_us = 125_000_000
    result = ticks(total_us, 600)

    step_us = result[1].time_microseconds - result[0].time_microseconds
    assert step_us // 1_000_000 in TIMELINE_STEP_TABLE_SECONDS
    assert result[0].time_microseconds == 0
    assert result[-1].time_microseconds <= total_us < result[-1].time_microseconds + step_us
    gaps = [b.x - a.x for a, b in zip(result, result[1:])]
    assert min(gaps) >= 50
    assert result[0].label == "0:00.000"


def test_choose_step_widens_interval_when_width_is_narrow():
    assert choose_step(125, 600) == 15
    # 200 px allows 4 ticks: ceil(125 / 4) = 32 -> snapped up to 60
    assert choose_step(125, 200) == 60


def test_snap_step_goes_beyond_table_in_five_minute_multiples():
    assert snap_step(0.3) == 1
    assert snap_step(16) == 30
    assert snap_step(1801) == 2100
    assert snap_step(4000) == 4200


def test_long_recording_uses_overflow_step():
    result = ticks(10 * 3600 * 1_000_000, 800)
    step_seconds = (result[1].time_microseconds - result[0].time_microseconds) // 1_000_000
    assert step_seconds % 300 == 0
    assert len(result) <= 800 // 50 + 1


@pytest.mark.parametrize("total_us,width", [(0, 600), (5_000_000, 0), (-1, 100)])
def test_empty_duration_or_width_gives_no_ticks(total_us, width):
    assert ticks(total_us, width) == []


def test_tick_labels_use_minutes_seconds_and_millis():
    assert format_tick_label(83_456_000) == "1:23.456"
    assert format_tick_label(600_000_000) == "10:00.000"
