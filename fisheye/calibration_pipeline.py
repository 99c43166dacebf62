from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import cv2  # type: ignore[import]
import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.bmp')

DETECTION_FLAGS = cv2.CALIB_CB_ADAPTIVE_THRESH | cv2.CALIB_CB_NORMALIZE_IMAGE
SUBPIX_WINDOW = (3, 3)
SUBPIX_ZERO_ZONE = (-1, -1)
SUBPIX_CRITERIA = (cv2.TERM_CRITERIA_EPS + cv2.TERM_CRITERIA_MAX_ITER, 30, 0.1)

CALIBRATION_FLAGS = (
    cv2.fisheye.CALIB_RECOMPUTE_EXTRINSIC
    | cv2.fisheye.CALIB_CHECK_COND
    | cv2.fisheye.CALIB_FIX_SKEW
)
CALIBRATION_CRITERIA = (cv2.TERM_CRITERIA_EPS + cv2.TERM_CRITERIA_MAX_ITER, 30, 1e-6)


class CalibrationComputationError(RuntimeError):
    """Raised when the calibration pipeline cannot produce a result."""


class SampleLoadError(CalibrationComputationError):
    pass


class BoardDetectionError(CalibrationComputationError):
    pass


class CalibrationSolveError(CalibrationComputationError):
    pass


class ImageReadError(CalibrationComputationError):
    pass


class ImageWriteError(CalibrationComputationError):
    pass


@dataclass(frozen=True)
class GridSpec:
    """Interior corner counts of the checkerboard along each axis."""

    columns: int
    rows: int

    def __post_init__(self) -> None:
        if self.columns < 2 or self.rows < 2:
            raise ValueError(f"Checkerboard grid must be at least 2x2, got {self}")

    @property
    def pattern_size(self) -> Tuple[int, int]:
        return self.columns, self.rows

    @property
    def point_count(self) -> int:
        return self.columns * self.rows

    def __str__(self) -> str:
        return f"{self.columns}x{self.rows}"


@dataclass(frozen=True, eq=False)
class DetectionRecord:
    object_points: np.ndarray
    image_points: np.ndarray

    def __post_init__(self) -> None:
        object_count = self.object_points.reshape(-1, 3).shape[0]
        image_count = self.image_points.reshape(-1, 2).shape[0]
        if object_count != image_count:
            raise ValueError(
                f"Detection record mismatch: {object_count} object points vs {image_count} image points"
            )


@dataclass(frozen=True, eq=False)
class CameraModel:
    camera_matrix: np.ndarray
    dist_coeffs: np.ndarray
    rms_error: float
    image_size: Tuple[int, int] = (0, 0)

    def scaled_camera_matrix(self, scale: float) -> np.ndarray:
        """Returns K with both focal lengths multiplied by ``scale``."""
        scaled = self.camera_matrix.copy()
        scaled[0, 0] *= scale
        scaled[1, 1] *= scale
        return scaled


def _has_sample_extension(filename: str, extensions: Sequence[str]) -> bool:
    ext = os.path.splitext(filename)[1].lower()
    return ext in {e.lower() for e in extensions}


def load_samples(
    directory: str,
    extensions: Sequence[str] = DEFAULT_SAMPLE_EXTENSIONS,
) -> List[np.ndarray]:
    """Decodes every recognised image in ``directory`` as grayscale."""
    if not os.path.isdir(directory):
        raise SampleLoadError(f"Samples directory '{directory}' not found.")

    rasters: List[np.ndarray] = []
    with os.scandir(directory) as entries:
        for entry in entries:
            if not entry.is_file() or not _has_sample_extension(entry.name, extensions):
                continue
            raster = cv2.imread(entry.path, cv2.IMREAD_GRAYSCALE)
            if raster is None:
                logger.debug("Skipping unreadable sample %s", entry.path)
                continue
            rasters.append(raster)

    if not rasters:
        raise SampleLoadError(f"No images found in {directory}")
    return rasters


def build_object_points(grid: GridSpec, square_size: float = 1.0) -> np.ndarray:
    """Planar board corners, row-major, shaped (1, N, 3) for cv2.fisheye."""
    objp = np.zeros((1, grid.point_count, 3), np.float32)
    objp[0, :, :2] = np.mgrid[0 : grid.columns, 0 : grid.rows].T.reshape(-1, 2)
    objp *= square_size
    return objp


def detect_board(
    raster: np.ndarray,
    grid: GridSpec,
    object_points: np.ndarray,
) -> Optional[DetectionRecord]:
    try:
        found, corners = cv2.findChessboardCorners(raster, grid.pattern_size, None, DETECTION_FLAGS)
    except cv2.error as exc:
        raise BoardDetectionError(f"Checkerboard detection rejected grid size {grid}: {exc}") from exc
    if not found:
        return None

    refined = cv2.cornerSubPix(raster, corners, SUBPIX_WINDOW, SUBPIX_ZERO_ZONE, SUBPIX_CRITERIA)
    return DetectionRecord(object_points=object_points, image_points=refined)


def build_correspondences(
    rasters: Iterable[np.ndarray],
    grid: GridSpec,
    square_size: float = 1.0,
) -> List[DetectionRecord]:
    """Keeps one record per raster whose whole board was found, in input order."""
    object_points = build_object_points(grid, square_size)
    records: List[DetectionRecord] = []
    for index, raster in enumerate(rasters):
        record = detect_board(raster, grid, object_points)
        if record is None:
            logger.debug("No %s checkerboard in sample %d", grid, index)
            continue
        records.append(record)

    if not records:
        raise BoardDetectionError(f"Could not detect any checkerboards with size {grid}")
    return records


def calibrate_fisheye(
    records: Sequence[DetectionRecord],
    image_size: Tuple[int, int],
) -> CameraModel:
    """Solves K and D. ``image_size`` is (width, height) of the first sample."""
    if not records:
        raise CalibrationSolveError("No detection records supplied")

    object_points = [record.object_points for record in records]
    image_points = [record.image_points for record in records]
    K = np.zeros((3, 3))
    D = np.zeros((4, 1))

    try:
        rms, K, D, _, _ = cv2.fisheye.calibrate(
            object_points,
            image_points,
            image_size,
            K,
            D,
            None,
            None,
            CALIBRATION_FLAGS,
            CALIBRATION_CRITERIA,
        )
    except cv2.error as exc:
        raise CalibrationSolveError(f"Fisheye calibration failed: {exc}") from exc

    if not np.isfinite(rms) or not np.all(np.isfinite(K)) or not np.all(np.isfinite(D)):
        raise CalibrationSolveError("Fisheye calibration produced a non-finite camera model")

    return CameraModel(
        camera_matrix=K,
        dist_coeffs=D.reshape(4),
        rms_error=float(rms),
        image_size=(int(image_size[0]), int(image_size[1])),
    )


def load_target_image(path: str) -> np.ndarray:
    image = cv2.imread(path, cv2.IMREAD_COLOR)
    if image is None:
        raise ImageReadError(f"Failed to read source image: {path}")
    return image


def undistort_image(image: np.ndarray, model: CameraModel, scale: float = 1.0) -> np.ndarray:
    """Removes fisheye distortion, keeping the input's pixel dimensions.

    With ``scale`` of 1.0 the solved K is reused as the new camera matrix, so
    the output keeps the original focal length rather than a refitted field
    of view.
    """
    h, w = image.shape[:2]
    new_K = model.scaled_camera_matrix(scale)
    return cv2.fisheye.undistortImage(
        image,
        model.camera_matrix,
        model.dist_coeffs,
        Knew=new_K,
        new_size=(w, h),
    )


def write_image(image: np.ndarray, path: str) -> None:
    try:
        written = cv2.imwrite(path, image)
    except cv2.error as exc:
        raise ImageWriteError(f"Failed to save image to {path}: {exc}") from exc
    if not written:
        raise ImageWriteError(f"Failed to save image to {path}")
