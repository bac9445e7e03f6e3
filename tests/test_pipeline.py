"""Tests for the pipeline orchestration and stage rendering."""

import numpy as np
import pytest

from contour_detection.exceptions import InvariantViolation
from contour_detection.freeman import Edge
from contour_detection.kernels import FilterKernelType
from contour_detection.pipeline import PipelineConfig, run_pipeline
from contour_detection.threshold import ThresholdConfig, ThresholdType
from contour_detection.visualization import create_overlay, render_stages
from contour_detection.viz_constants import Color, Layout


def test_default_pipeline(square_image):
    result = run_pipeline(square_image)

    assert result["success"] is True
    assert result["fail_reason"] is None
    assert len(result["components"]) == 2
    assert result["module"].shape == square_image.shape
    assert result["module"].max() == 255.0
    assert result["slope_color"].shape == (32, 32, 3)
    assert result["threshold"]["global_threshold"] is not None
    assert result["edges"]
    assert all(isinstance(e, Edge) for e in result["edges"])
    assert result["edges_image"].dtype == np.uint8
    assert result["edges_image"].any()
    assert result["segments_image"] is None
    assert result["circles_image"] is None
    for stage in ("gradient", "threshold", "local_extrema", "edge_extraction", "edge_closure", "total"):
        assert result["timings_ms"][stage] >= 0.0


def test_edges_lie_on_local_extrema(square_image):
    result = run_pipeline(square_image, PipelineConfig(use_edge_closure=False))
    traced = result["edges_image"] > 0
    assert np.all(result["local_extrema"][traced] > 0)


def test_without_threshold_only_gradient_is_computed(square_image):
    result = run_pipeline(square_image, PipelineConfig(use_threshold=False))

    assert result["success"] is True
    assert result["module_threshold"] is None
    assert result["local_extrema"] is None
    assert result["edges"] is None
    assert result["slope"].shape == square_image.shape
    assert "threshold" not in result["timings_ms"]


def test_edges_need_local_extrema(square_image):
    result = run_pipeline(square_image, PipelineConfig(use_local_extrema=False, use_hough_segments=True))
    assert result["success"] is True
    assert result["module_threshold"] is not None
    assert result["edges"] is None
    assert result["segments_image"] is None


@pytest.mark.parametrize("threshold_type", list(ThresholdType))
def test_every_threshold_strategy_runs(ramp_image, threshold_type):
    result = run_pipeline(ramp_image, PipelineConfig(threshold_type=threshold_type))
    assert result["success"] is True
    assert result["threshold"]["threshold_type"] == threshold_type.value
    assert result["module_threshold"].shape == ramp_image.shape


def test_hysteresis_thresholds_are_reported(ramp_image):
    result = run_pipeline(ramp_image, PipelineConfig(threshold_type=ThresholdType.HYSTERESIS))
    threshold = result["threshold"]
    assert threshold["hysteresis_high"] > threshold["hysteresis_low"]


def test_four_directions_and_kirsch(square_image):
    config = PipelineConfig(kernel_type=FilterKernelType.KIRSCH, n_directions=4)
    result = run_pipeline(square_image, config)
    assert result["success"] is True
    assert len(result["components"]) == 4


def test_custom_kernel_without_weights_is_reported(square_image):
    result = run_pipeline(square_image, PipelineConfig(kernel_type=FilterKernelType.CUSTOM))
    assert result["success"] is False
    assert result["fail_reason"] == "kernel_configuration_error"


def test_bad_threshold_parameter_is_reported(square_image):
    config = PipelineConfig(threshold=ThresholdConfig(global_percent=150.0))
    result = run_pipeline(square_image, config)
    assert result["success"] is False
    assert result["fail_reason"] == "invalid_threshold_configuration"


def test_color_image_is_reported():
    result = run_pipeline(np.zeros((8, 8, 3), dtype=np.uint8))
    assert result["success"] is False
    assert result["fail_reason"] == "invalid_image"


def test_invariant_violation_propagates(square_image):
    config = PipelineConfig(
        threshold_type=ThresholdType.HYSTERESIS,
        threshold=ThresholdConfig(hysteresis_high_percent=60.0, hysteresis_low_percent=60.0),
    )
    with pytest.raises(InvariantViolation):
        run_pipeline(square_image, config)


def test_hough_stages(square_image):
    config = PipelineConfig(
        use_hough_segments=True,
        segment_auto_threshold=True,
        use_hough_circles=True,
        circle_radius=4.0,
        circle_vote_criteria=3,
    )
    result = run_pipeline(square_image, config)

    assert result["segments_image"].shape == square_image.shape
    assert result["segment_accumulator"].dtype == np.uint8
    assert isinstance(result["segment_min_votes"], int)
    assert result["circles_image"].shape == square_image.shape
    assert result["circle_accumulator"].shape == square_image.shape
    assert result["circle_radius"] == 4.0
    assert "hough_segments" in result["timings_ms"]
    assert "hough_circles" in result["timings_ms"]


def test_free_radius_circles():
    image = np.zeros((12, 12), dtype=np.uint8)
    image[3:9, 3:9] = 200
    config = PipelineConfig(use_hough_circles=True, circle_fixed_radius=False)
    result = run_pipeline(image, config)
    assert result["circle_accumulator"].shape == (12, 12, 12)
    assert result["circle_radius"] is None


def test_render_stages(square_image):
    config = PipelineConfig(use_hough_segments=True, use_hough_circles=True)
    result = run_pipeline(square_image, config)

    stages = render_stages(square_image, result, binary_display=True)

    for name in ("module", "module_threshold", "slope_color", "local_extrema", "edges_image",
                 "segments_image", "circles_image", "segment_accumulator", "circle_accumulator", "overlay"):
        assert stages[name].dtype == np.uint8
    assert set(np.unique(stages["local_extrema"])) <= {0, 255}
    assert stages["overlay"].shape == (32, 32, 3)


def test_overlay_marks_edges(square_image):
    result = run_pipeline(square_image)
    overlay = create_overlay(square_image, result, annotate=False)
    edge_pixels = overlay[result["edges_image"] > 0]
    # Edge pixels are colored (not grey)
    assert np.any(edge_pixels[:, 0] != edge_pixels[:, 1])


def test_overlay_marks_endpoints_and_summary():
    image = np.full((80, 80), 20, dtype=np.uint8)
    image[30:50, 30:50] = 220
    result = run_pipeline(image)

    plain = create_overlay(image, result, annotate=False)
    annotated = create_overlay(image, result)

    edge = result["edges"][0]
    assert tuple(plain[edge.sx, edge.sy]) in (Color.EDGE_START, Color.EDGE_END)
    # Summary text is written in the top-left corner only
    assert not np.array_equal(plain[:Layout.TEXT_Y_START + 5], annotated[:Layout.TEXT_Y_START + 5])
    assert np.array_equal(plain[60:], annotated[60:])
