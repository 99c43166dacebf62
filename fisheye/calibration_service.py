from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from django.conf import settings

from .calibration_pipeline import (
    DEFAULT_SAMPLE_EXTENSIONS,
    CameraModel,
    GridSpec,
    build_correspondences,
    calibrate_fisheye,
    load_samples,
    load_target_image,
    undistort_image,
    write_image,
)

logger = logging.getLogger(__name__)

Reporter = Callable[[str], None]


@dataclass(frozen=True)
class UndistortRequest:
    source_path: str
    destination_path: str
    samples_dir: str
    grid: GridSpec
    square_size: Optional[float] = None
    scale: float = 1.0


@dataclass(frozen=True, eq=False)
class RunResult:
    model: CameraModel
    loaded_count: int
    accepted_count: int
    destination_path: str


def _silent(message: str) -> None:
    pass


def run_undistortion(request: UndistortRequest, report: Optional[Reporter] = None) -> RunResult:
    """Calibrates from the samples directory and writes the undistorted target.

    Every stage finishes before the next starts; any stage failure raises a
    ``CalibrationComputationError`` subclass and nothing downstream runs.
    """
    report = report or _silent
    extensions = getattr(settings, 'FISHEYE_SAMPLE_EXTENSIONS', DEFAULT_SAMPLE_EXTENSIONS)
    square_size = request.square_size
    if square_size is None:
        square_size = getattr(settings, 'FISHEYE_SQUARE_SIZE', 1.0)

    report(f"Loading samples from {request.samples_dir}...")
    rasters = load_samples(request.samples_dir, extensions)
    report(f"Loaded {len(rasters)} images.")

    report("Calibrating...")
    records = build_correspondences(rasters, request.grid, square_size)

    # All samples are assumed to share the first sample's resolution; this is
    # reported but not enforced.
    height, width = rasters[0].shape[:2]
    mismatched = sum(1 for raster in rasters if raster.shape[:2] != (height, width))
    if mismatched:
        logger.warning(
            "%d sample(s) differ from the first sample's %dx%d resolution; calibrating at %dx%d anyway",
            mismatched, width, height, width, height,
        )
    loaded_count = len(rasters)
    del rasters

    model = calibrate_fisheye(records, (width, height))
    report(f"Calibration done. Reprojection error: {model.rms_error}")
    logger.debug("Accepted %d detection(s); K=%s D=%s", len(records), model.camera_matrix.tolist(), model.dist_coeffs.tolist())

    report(f"Undistorting {request.source_path}...")
    distorted = load_target_image(request.source_path)
    undistorted = undistort_image(distorted, model, request.scale)

    write_image(undistorted, request.destination_path)
    report(f"Saved to {request.destination_path}")

    return RunResult(
        model=model,
        loaded_count=loaded_count,
        accepted_count=len(records),
        destination_path=request.destination_path,
    )
