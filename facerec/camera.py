"""
Camera Manager Module

Handles camera access and stream lifecycle through OpenCV VideoCapture:
- enumerating available devices
- starting / stopping a stream with resolution and FPS hints
- switching to the next available device
- reading frames

Usage:
    from facerec.camera import CameraManager

    with CameraManager(config) as camera:
        ok, frame = camera.read_frame()
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import cv2
import numpy as np

from facerec.exceptions import CameraError

logger = logging.getLogger(__name__)


class CameraManager:
    """
    Manages one active camera stream.

    Args:
        config: Dictionary with optional keys:
            - device_id: Default device index (default 0)
            - width / height / fps: Capture hints (default 640x480 @ 30)
            - max_devices: Device indices probed by get_available_devices()
        capture_factory: Callable creating a capture from a device id.
                         Defaults to cv2.VideoCapture.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        capture_factory: Optional[Callable[[int], Any]] = None,
    ):
        if config is None:
            config = {}

        self.default_device_id = int(config.get("device_id", 0))
        self.width = int(config.get("width", 640))
        self.height = int(config.get("height", 480))
        self.fps = int(config.get("fps", 30))
        self.max_devices = int(config.get("max_devices", 5))

        self._capture_factory = capture_factory or cv2.VideoCapture
        self._cap = None
        self.current_device_id: Optional[int] = None
        self.available_devices: List[int] = []

    def is_supported(self) -> bool:
        """Check whether any camera device can be opened."""
        return bool(self.get_available_devices())

    def get_available_devices(self, max_check: Optional[int] = None) -> List[int]:
        """
        Probe for available camera devices.

        The currently open device is reported without reopening it.

        Args:
            max_check: Maximum device IDs to check (default: max_devices).

        Returns:
            List of available camera device IDs.
        """
        if max_check is None:
            max_check = self.max_devices

        available = []
        for i in range(max_check):
            if self.is_active and i == self.current_device_id:
                available.append(i)
                continue
            cap = self._capture_factory(i)
            try:
                if cap.isOpened():
                    available.append(i)
            finally:
                cap.release()

        self.available_devices = available
        return available

    def start(self, device_id: Optional[int] = None):
        """
        Open a camera stream, closing any existing one first.

        Args:
            device_id: Device to open (default: configured device_id).

        Returns:
            The underlying capture object.

        Raises:
            CameraError: If the device cannot be opened.
        """
        self.stop()

        if device_id is None:
            device_id = self.default_device_id

        logger.info(f"Requesting camera {device_id} at {self.width}x{self.height}@{self.fps}")
        cap = self._capture_factory(device_id)

        if not cap.isOpened():
            cap.release()
            raise CameraError(f"No camera found at device {device_id}. Please connect a camera and try again.")

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        cap.set(cv2.CAP_PROP_FPS, self.fps)

        self._cap = cap
        self.current_device_id = device_id
        logger.info("Camera started successfully")
        return cap

    def stop(self) -> None:
        """Release the active camera, if any."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Camera stopped")

    def switch(self):
        """
        Switch to the next available camera (wrapping around).

        Returns:
            The new capture object.

        Raises:
            CameraError: If there is no other camera to switch to.
        """
        devices = self.get_available_devices()

        if len(devices) <= 1:
            raise CameraError("No additional cameras available")

        try:
            current_index = devices.index(self.current_device_id)
        except ValueError:
            current_index = -1

        next_device = devices[(current_index + 1) % len(devices)]
        logger.info(f"Switching to camera: {next_device}")
        return self.start(next_device)

    @property
    def is_active(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def read_frame(self) -> Tuple[bool, Optional[np.ndarray]]:
        """
        Read a single BGR frame.

        Returns:
            Tuple of (success, frame); frame is None on failure.
        """
        if not self.is_active:
            return False, None

        ret, frame = self._cap.read()
        if not ret:
            return False, None

        return True, frame

    def get_settings(self) -> Dict[str, Any]:
        """Current device and the resolution / FPS it actually delivers."""
        if not self.is_active:
            return {"device_id": None, "active": False}
        return {
            "device_id": self.current_device_id,
            "active": True,
            "width": int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            "height": int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            "fps": float(self._cap.get(cv2.CAP_PROP_FPS)),
        }

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
