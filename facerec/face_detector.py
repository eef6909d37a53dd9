"""
Face Detection Module

Thin adapter over the InsightFace model bundle (SCRFD detector + ArcFace
recognition, executed by ONNX Runtime). All numerical work happens inside
the external package; this module only converts its output into
DetectionResult objects.

Usage:
    from facerec.face_detector import FaceDetector

    detector = FaceDetector(config)
    detector.init()
    detections = detector.detect_faces(frame_bgr, with_descriptors=True)
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from facerec.exceptions import DetectorError
from facerec.models import BoundingBox, DetectionResult

logger = logging.getLogger(__name__)

# Backend availability flag
_INSIGHTFACE_AVAILABLE = False

try:
    from insightface.app import FaceAnalysis
    _INSIGHTFACE_AVAILABLE = True
except ImportError:
    pass


class FaceDetector:
    """
    Detect faces, landmarks and descriptors with InsightFace.

    Args:
        config: Dictionary with optional keys:
            - model: Model bundle name (default "buffalo_l")
            - device: "cuda" or "cpu" (default "cpu")
            - det_size: Detector input size [w, h] (default [640, 640])
            - score_threshold: Minimum detection score kept (default 0.3)
        model: Pre-built FaceAnalysis-like object. When given, init() does
               not load anything. It must expose get(image) returning faces
               with bbox, det_score, and optionally kps / landmark_2d_106 /
               normed_embedding attributes.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, model: Any = None):
        if config is None:
            config = {}

        self.model_name = config.get("model", "buffalo_l")
        self.device = config.get("device", "cpu")
        self.det_size = tuple(config.get("det_size", (640, 640)))
        self.score_threshold = float(config.get("score_threshold", 0.3))

        self._model = model
        self.is_initialized = model is not None

    def init(self) -> None:
        """
        Load the model bundle. Idempotent.

        Raises:
            DetectorError: If insightface is not installed or loading fails.
        """
        if self.is_initialized:
            return

        if not _INSIGHTFACE_AVAILABLE:
            raise DetectorError(
                "insightface not installed. Run: pip install insightface onnxruntime"
            )

        logger.info(f"Loading face detection models ({self.model_name})...")

        if self.device == "cuda":
            providers = ["CUDAExecutionProvider", "CPUExecutionProvider"]
        else:
            providers = ["CPUExecutionProvider"]

        try:
            model = FaceAnalysis(name=self.model_name, providers=providers)
            model.prepare(ctx_id=0 if self.device == "cuda" else -1, det_size=self.det_size)
        except Exception as e:
            logger.error(f"Error loading face detection models: {e}")
            raise DetectorError("Failed to initialize face detection models") from e

        self._model = model
        self.is_initialized = True
        logger.info("Face detection models loaded successfully")

    load_model = init

    def detect_faces(
        self,
        image: np.ndarray,
        with_landmarks: bool = True,
        with_descriptors: bool = True,
    ) -> List[DetectionResult]:
        """
        Detect all faces in a BGR image.

        Args:
            image: BGR image (H, W, 3), uint8.
            with_landmarks: Attach facial landmark points.
            with_descriptors: Attach L2-normalized embeddings.

        Returns:
            Detections scoring at least score_threshold, sorted left to right.
            Inference errors are logged and yield an empty list.

        Raises:
            DetectorError: If the detector was not initialized.
        """
        if not self.is_initialized:
            raise DetectorError("Face detector not initialized")

        if image is None or getattr(image, "size", 0) == 0:
            return []

        try:
            faces = self._model.get(image)
        except Exception as e:
            logger.error(f"Error detecting faces: {e}")
            return []

        detections = []
        for face in faces or []:
            score = float(getattr(face, "det_score", 1.0))
            if score < self.score_threshold:
                continue
            detections.append(self._to_detection(face, score, with_landmarks, with_descriptors))

        detections.sort(key=lambda d: d.bounding_box.x)
        return detections

    @staticmethod
    def _to_detection(face, score: float, with_landmarks: bool, with_descriptors: bool) -> DetectionResult:
        x1, y1, x2, y2 = [float(v) for v in np.asarray(face.bbox).ravel()[:4]]

        landmarks = None
        if with_landmarks:
            points = getattr(face, "landmark_2d_106", None)
            if points is None:
                points = getattr(face, "kps", None)
            if points is not None:
                landmarks = np.asarray(points, dtype=np.float32).reshape(-1, 2)

        descriptor = None
        if with_descriptors:
            embedding = getattr(face, "normed_embedding", None)
            if embedding is None:
                embedding = getattr(face, "embedding", None)
                if embedding is not None:
                    embedding = np.asarray(embedding, dtype=np.float32)
                    norm = np.linalg.norm(embedding)
                    embedding = embedding / norm if norm > 1e-8 else None
            if embedding is not None:
                descriptor = np.asarray(embedding, dtype=np.float32).ravel()

        return DetectionResult(
            bounding_box=BoundingBox.from_corners(x1, y1, x2, y2),
            score=score,
            descriptor=descriptor,
            landmarks=landmarks,
        )

    @staticmethod
    def available_providers() -> List[str]:
        """ONNX Runtime execution providers usable on this machine."""
        try:
            import onnxruntime
        except ImportError:
            return []
        return list(onnxruntime.get_available_providers())
