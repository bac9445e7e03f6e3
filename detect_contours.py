#!/usr/bin/env python3
"""
Contour Detection Tool

Detects the contours of a grayscale image with directional gradient filters,
thresholding, non-maximum suppression and Freeman chain-code edge tracing,
with optional Hough segment and circle detection.

Usage:
    python detect_contours.py --input image.png --output-dir out/ [--kernel sobel] [--hough-segments]
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Dict, Any, List

import cv2
import numpy as np

from contour_detection.exceptions import InvariantViolation, KernelConfigurationError
from contour_detection.gradient import GradientNorm
from contour_detection.kernels import FilterKernelType, parse_kernel_type
from contour_detection.pipeline import PipelineConfig, run_pipeline
from contour_detection.threshold import ThresholdConfig, ThresholdType
from contour_detection.threshold_constants import (
    DEFAULT_GLOBAL_PERCENT,
    DEFAULT_LOCAL_WINDOW,
    DEFAULT_HYSTERESIS_HIGH_PERCENT,
    DEFAULT_HYSTERESIS_LOW_PERCENT,
    DEFAULT_ISOLATED_POINTS_RING,
)
from contour_detection.freeman import DEFAULT_CLOSURE_ITERATIONS
from contour_detection.hough_constants import (
    DEFAULT_CIRCLE_RADIUS,
    DEFAULT_CIRCLE_VOTE_CRITERIA,
    DEFAULT_NB_LINES,
    DEFAULT_SEGMENT_MIN_VOTES,
)
from contour_detection.visualization import render_stages
from contour_detection.viz_constants import STAGE_FILENAMES

SUPPORTED_SUFFIXES = [".jpg", ".jpeg", ".png", ".bmp", ".tif", ".tiff"]

RESULT_FILENAME = "result.json"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Detect contours in a grayscale image.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python detect_contours.py --input photo.png --output-dir out/
    python detect_contours.py --input photo.png --output-dir out/ --kernel kirsch --directions 4
    python detect_contours.py --input photo.png --output-dir out/ --threshold-type hysteresis
    python detect_contours.py --input photo.png --output-dir out/ --hough-segments --segment-auto-threshold
        """,
    )

    # Required arguments
    parser.add_argument(
        "--input",
        type=str,
        required=True,
        help="Path to input image (JPG/PNG/BMP/TIF)",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        required=True,
        help="Directory receiving stage images and result.json",
    )

    # Gradient options
    parser.add_argument(
        "--kernel",
        type=str,
        default="prewitt",
        choices=[t.value for t in FilterKernelType],
        help="Filter kernel family (default: prewitt)",
    )
    parser.add_argument(
        "--custom-kernel",
        type=float,
        nargs=9,
        default=None,
        metavar="W",
        help="Direction-0 kernel weights, row by row (required with --kernel custom)",
    )
    parser.add_argument(
        "--directions",
        type=int,
        default=2,
        choices=[2, 4],
        help="Number of filter directions (default: 2)",
    )
    parser.add_argument(
        "--norm",
        type=str,
        default="linf",
        choices=[n.value for n in GradientNorm],
        help="Norm combining directional components (default: linf)",
    )

    # Threshold options
    parser.add_argument(
        "--no-threshold",
        action="store_true",
        help="Skip thresholding (only module, slope and color map are produced)",
    )
    parser.add_argument(
        "--threshold-type",
        type=str,
        default="global",
        choices=[t.value for t in ThresholdType],
        help="Threshold strategy (default: global)",
    )
    parser.add_argument(
        "--global-percent",
        type=float,
        default=DEFAULT_GLOBAL_PERCENT,
        help=f"Global threshold: percentage of valid pixels (default: {DEFAULT_GLOBAL_PERCENT})",
    )
    parser.add_argument(
        "--local-window",
        type=int,
        default=DEFAULT_LOCAL_WINDOW,
        help=f"Local threshold: neighborhood half-size (default: {DEFAULT_LOCAL_WINDOW})",
    )
    parser.add_argument(
        "--hysteresis-high",
        type=float,
        default=DEFAULT_HYSTERESIS_HIGH_PERCENT,
        help=f"Hysteresis: high threshold percentage (default: {DEFAULT_HYSTERESIS_HIGH_PERCENT})",
    )
    parser.add_argument(
        "--hysteresis-low",
        type=float,
        default=DEFAULT_HYSTERESIS_LOW_PERCENT,
        help=f"Hysteresis: low threshold percentage (default: {DEFAULT_HYSTERESIS_LOW_PERCENT})",
    )
    parser.add_argument(
        "--remove-isolated-points",
        action="store_true",
        help="Remove isolated points from the thresholded module",
    )

    # Edge options
    parser.add_argument(
        "--no-local-extrema",
        action="store_true",
        help="Skip non-maximum suppression (disables edges and Hough)",
    )
    parser.add_argument(
        "--no-edges",
        action="store_true",
        help="Skip Freeman edge extraction",
    )
    parser.add_argument(
        "--no-closure",
        action="store_true",
        help="Skip edge closure",
    )
    parser.add_argument(
        "--closure-iterations",
        type=int,
        default=DEFAULT_CLOSURE_ITERATIONS,
        help=f"Maximum closure steps per walk (default: {DEFAULT_CLOSURE_ITERATIONS})",
    )

    # Hough options
    parser.add_argument(
        "--hough-segments",
        action="store_true",
        help="Detect segments with the Hough transform",
    )
    parser.add_argument(
        "--segment-auto-threshold",
        action="store_true",
        help="Derive the segment vote cutoff from the strongest lines",
    )
    parser.add_argument(
        "--segment-nb-lines",
        type=int,
        default=DEFAULT_NB_LINES,
        help=f"Distinct vote values kept by the automatic cutoff (default: {DEFAULT_NB_LINES})",
    )
    parser.add_argument(
        "--segment-min-votes",
        type=int,
        default=DEFAULT_SEGMENT_MIN_VOTES,
        help=f"Minimum votes for a segment (default: {DEFAULT_SEGMENT_MIN_VOTES})",
    )
    parser.add_argument(
        "--hough-circles",
        action="store_true",
        help="Detect circles with the Hough transform",
    )
    parser.add_argument(
        "--circle-free-radius",
        action="store_true",
        help="Search every radius instead of --circle-radius (slow)",
    )
    parser.add_argument(
        "--circle-radius",
        type=float,
        default=DEFAULT_CIRCLE_RADIUS,
        help=f"Circle radius in pixels (default: {DEFAULT_CIRCLE_RADIUS})",
    )
    parser.add_argument(
        "--circle-votes",
        type=int,
        default=DEFAULT_CIRCLE_VOTE_CRITERIA,
        help=f"Minimum votes for a circle (default: {DEFAULT_CIRCLE_VOTE_CRITERIA})",
    )

    # Output options
    parser.add_argument(
        "--binary-display",
        action="store_true",
        help="Save thresholded and thinned modules as binary images",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def validate_input(input_path: str) -> Optional[str]:
    """
    Validate input file exists and is a supported image format.

    Args:
        input_path: Path to input image

    Returns:
        Error message if validation fails, None if valid
    """
    path = Path(input_path)

    if not path.exists():
        return f"Input file not found: {input_path}"

    if not path.is_file():
        return f"Input path is not a file: {input_path}"

    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        return f"Unsupported image format: {suffix}. Use JPG, PNG, BMP or TIF."

    return None


def load_image(input_path: str) -> Optional[np.ndarray]:
    """
    Load image from file as grayscale.

    Args:
        input_path: Path to input image

    Returns:
        uint8 grayscale image, or None if load fails
    """
    return cv2.imread(input_path, cv2.IMREAD_GRAYSCALE)


def build_config(args: argparse.Namespace) -> PipelineConfig:
    """Map parsed arguments to a PipelineConfig."""
    custom_kernel = None
    if args.custom_kernel is not None:
        custom_kernel = np.array(args.custom_kernel, dtype=np.float32).reshape(3, 3)

    return PipelineConfig(
        kernel_type=parse_kernel_type(args.kernel),
        n_directions=args.directions,
        custom_kernel=custom_kernel,
        norm=GradientNorm(args.norm),
        use_threshold=not args.no_threshold,
        threshold_type=ThresholdType(args.threshold_type),
        threshold=ThresholdConfig(
            global_percent=args.global_percent,
            local_window=args.local_window,
            hysteresis_high_percent=args.hysteresis_high,
            hysteresis_low_percent=args.hysteresis_low,
        ),
        remove_isolated_points=args.remove_isolated_points,
        isolated_points_ring=DEFAULT_ISOLATED_POINTS_RING,
        use_local_extrema=not args.no_local_extrema,
        use_edge_extraction=not args.no_edges,
        use_edge_closure=not args.no_closure,
        closure_iterations=args.closure_iterations,
        use_hough_segments=args.hough_segments,
        segment_auto_threshold=args.segment_auto_threshold,
        segment_nb_lines=args.segment_nb_lines,
        segment_min_votes=args.segment_min_votes,
        use_hough_circles=args.hough_circles,
        circle_fixed_radius=not args.circle_free_radius,
        circle_radius=args.circle_radius,
        circle_vote_criteria=args.circle_votes,
    )


def _count_set(grid: Optional[np.ndarray]) -> Optional[int]:
    return int(np.count_nonzero(grid)) if grid is not None else None


def create_output(result: Dict[str, Any], saved_files: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Create the JSON summary of a pipeline run.

    Args:
        result: Output of run_pipeline
        saved_files: Stage name -> written file path

    Returns:
        JSON-serializable dictionary
    """
    if not result.get("success", False):
        return {
            "success": False,
            "fail_reason": result.get("fail_reason"),
            "error_message": result.get("error_message"),
        }

    edges = result.get("edges")
    output = {
        "success": True,
        "fail_reason": None,
        "threshold": result.get("threshold"),
        "edge_count": len(edges) if edges is not None else None,
        "edge_pixels": _count_set(result.get("edges_image")),
        "segment_min_votes": result.get("segment_min_votes"),
        "segment_pixels": _count_set(result.get("segments_image")),
        "circle_pixels": _count_set(result.get("circles_image")),
        "timings_ms": {k: round(v, 3) for k, v in result.get("timings_ms", {}).items()},
    }

    if saved_files is not None:
        output["files"] = saved_files

    return output


def save_output(output: Dict[str, Any], output_path: str) -> None:
    """Save output dictionary to JSON file."""
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        json.dump(output, f, indent=2)


def save_stages(stages: Dict[str, np.ndarray], output_dir: str) -> Dict[str, str]:
    """
    Write rendered stage images as PNG.

    Args:
        stages: Stage name -> uint8 image
        output_dir: Destination directory

    Returns:
        Stage name -> written file path
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    saved = {}
    for name, image in stages.items():
        path = out / STAGE_FILENAMES.get(name, f"{name}.png")
        cv2.imwrite(str(path), image)
        saved[name] = str(path)
    return saved


def detect_contours(
    image: np.ndarray,
    config: PipelineConfig,
    output_dir: Optional[str] = None,
    binary_display: bool = False,
) -> Dict[str, Any]:
    """
    Run the pipeline and optionally save its stage images.

    Args:
        image: Grayscale input image
        config: Pipeline parameters
        output_dir: Directory for stage images (None to skip saving)
        binary_display: Save thresholded modules as binary images

    Returns:
        Output dictionary (see create_output)
    """
    try:
        result = run_pipeline(image, config)
    except InvariantViolation as e:
        print(f"Error: {e}", file=sys.stderr)
        return create_output({
            "success": False,
            "fail_reason": "invariant_violation",
            "error_message": str(e),
        })

    if not result["success"]:
        print(f"Pipeline aborted: {result['error_message']}")
        return create_output(result)

    threshold = result.get("threshold")
    if threshold is not None:
        if threshold["global_threshold"] is not None:
            print(f"Global threshold: {threshold['global_threshold']}")
        if threshold["hysteresis_high"] is not None:
            print(f"Hysteresis thresholds: high={threshold['hysteresis_high']}, "
                  f"low={threshold['hysteresis_low']}")

    if result["edges"] is not None:
        print(f"Edges extracted: {len(result['edges'])}")
    if result["segments_image"] is not None:
        print(f"Hough segments drawn with at least {result['segment_min_votes']} votes")
    if result["circles_image"] is not None:
        print(f"Hough circles: {np.count_nonzero(result['circles_image'])} pixels drawn")

    print(f"Pipeline time: {result['timings_ms']['total']:.1f} ms")

    saved_files = None
    if output_dir is not None:
        stages = render_stages(image, result, binary_display=binary_display)
        saved_files = save_stages(stages, output_dir)
        print(f"Saved {len(saved_files)} stage images to: {output_dir}")

    return create_output(result, saved_files)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Validate input
    error = validate_input(args.input)
    if error:
        print(f"Error: {error}", file=sys.stderr)
        return 1

    # Load image
    image = load_image(args.input)
    if image is None:
        print(f"Error: Failed to load image: {args.input}", file=sys.stderr)
        return 1

    print(f"Loaded image: {args.input} ({image.shape[1]}x{image.shape[0]})")

    try:
        config = build_config(args)
    except KernelConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    result = detect_contours(
        image=image,
        config=config,
        output_dir=args.output_dir,
        binary_display=args.binary_display,
    )

    # Save output
    output_path = str(Path(args.output_dir) / RESULT_FILENAME)
    save_output(result, output_path)
    print(f"Results saved to: {output_path}")

    if result["fail_reason"]:
        print(f"Detection failed: {result['fail_reason']}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
