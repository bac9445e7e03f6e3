"""Tests for the threshold engine."""

import numpy as np
import pytest

from contour_detection.exceptions import InvariantViolation
from contour_detection.threshold import (
    ThresholdConfig,
    ThresholdType,
    apply_threshold,
    apply_threshold_in_place,
    apply_threshold_strategy,
    combine_hysteresis,
    compute_global_threshold,
    global_threshold,
    hysteresis_threshold,
    local_threshold,
    remove_isolated_points,
)


@pytest.fixture
def two_level_module() -> np.ndarray:
    # Five cells at 10 and five at 20: histogram mass 50 + 100 = 150
    return np.array([[10.0] * 5 + [20.0] * 5], dtype=np.float32)


def test_global_threshold_matches_cumulative_cutoff(two_level_module):
    # target = 30: bin 10 alone reaches it, threshold is the next index
    assert compute_global_threshold(two_level_module, 80.0) == 11
    # target = 60: bin 10 (50) is not enough, bin 20 is needed
    assert compute_global_threshold(two_level_module, 60.0) == 21


def test_global_threshold_zeroes_cells_below(two_level_module):
    res, threshold = global_threshold(two_level_module, 80.0)
    assert threshold == 11
    np.testing.assert_array_equal(res, [[0.0] * 5 + [20.0] * 5])
    # Input untouched
    assert two_level_module[0, 0] == 10.0


def test_global_threshold_degenerate_histogram():
    assert compute_global_threshold(np.zeros((4, 4), dtype=np.float32), 60.0) == 1


def test_global_threshold_stops_at_255():
    module = np.full((2, 2), 255.0, dtype=np.float32)
    assert compute_global_threshold(module, 10.0) == 255


def test_global_threshold_rejects_out_of_range_values():
    with pytest.raises(InvariantViolation):
        compute_global_threshold(np.array([[300.0]], dtype=np.float32), 60.0)


def test_global_threshold_rejects_bad_percentage(two_level_module):
    with pytest.raises(ValueError):
        compute_global_threshold(two_level_module, 120.0)


def test_apply_threshold_pure_and_in_place():
    module = np.array([[1.0, 5.0, 9.0]], dtype=np.float32)
    np.testing.assert_array_equal(apply_threshold(module, 5.0), [[0.0, 5.0, 9.0]])
    assert module[0, 0] == 1.0
    apply_threshold_in_place(module, 6.0)
    np.testing.assert_array_equal(module, [[0.0, 0.0, 9.0]])


def test_local_threshold_removes_cells_below_local_mean():
    module = np.full((5, 5), 10.0, dtype=np.float32)
    module[2, 2] = 6.0
    res = local_threshold(module, 1)
    assert res[2, 2] == 0.0
    assert res[2, 3] == 10.0


def test_local_threshold_mean_is_underestimated_near_top_left():
    # Row 0 and column 0 do not contribute but the divisor stays 9:
    # mean around (1, 1) is (6 + 3 * 10) / 9 = 4
    module = np.full((5, 5), 10.0, dtype=np.float32)
    module[1, 1] = 6.0
    res = local_threshold(module, 1)
    assert res[1, 1] == 6.0


def test_local_threshold_keeps_border_cells():
    module = np.zeros((5, 5), dtype=np.float32)
    module[0, :] = 1.0
    module[2, 2] = 100.0
    res = local_threshold(module, 1)
    np.testing.assert_array_equal(res[0], module[0])


def test_local_threshold_rejects_bad_window():
    with pytest.raises(ValueError):
        local_threshold(np.zeros((5, 5), dtype=np.float32), 0)


def test_hysteresis_keeps_weak_cell_next_to_strong_one():
    high = np.zeros((5, 5), dtype=np.float32)
    low = np.zeros((5, 5), dtype=np.float32)
    high[2, 2] = low[2, 2] = 200.0
    low[2, 3] = 100.0   # 4-connected to the strong cell
    low[0, 4] = 100.0   # isolated
    low[3, 3] = 100.0   # diagonal only

    res = combine_hysteresis(high, low)

    assert res[2, 2] == 200.0
    assert res[2, 3] == 100.0
    assert res[0, 4] == 0.0
    assert res[3, 3] == 0.0


def test_hysteresis_reports_both_thresholds(two_level_module):
    res, high, low = hysteresis_threshold(two_level_module, 60.0, 80.0)
    assert (high, low) == (21, 11)
    # Every cell is weak only, and no strong neighbor exists
    assert not res.any()


def test_hysteresis_requires_high_above_low(two_level_module):
    with pytest.raises(InvariantViolation):
        hysteresis_threshold(two_level_module, 80.0, 80.0)


def test_strategy_dispatcher_reports_values(two_level_module):
    config = ThresholdConfig(global_percent=80.0)
    result = apply_threshold_strategy(two_level_module, ThresholdType.GLOBAL, config)
    assert result["threshold_type"] == "global"
    assert result["global_threshold"] == 11
    assert result["hysteresis_high"] is None
    np.testing.assert_array_equal(result["module"], [[0.0] * 5 + [20.0] * 5])

    result = apply_threshold_strategy(two_level_module, ThresholdType.HYSTERESIS,
                                      ThresholdConfig(hysteresis_high_percent=60.0,
                                                      hysteresis_low_percent=80.0))
    assert (result["hysteresis_high"], result["hysteresis_low"]) == (21, 11)
    assert result["global_threshold"] is None


def test_remove_isolated_points():
    grid = np.zeros((6, 6), dtype=np.float32)
    grid[1, 1] = 5.0
    grid[3, 3] = grid[3, 4] = 5.0

    remove_isolated_points(grid, 1)

    assert grid[1, 1] == 0.0
    assert grid[3, 3] == 5.0
    assert grid[3, 4] == 5.0
