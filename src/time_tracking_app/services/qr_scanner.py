from __future__ import annotations

import logging
import threading
import time
import unicodedata
from contextlib import suppress
from pathlib import Path
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

SCAN_INTERVAL_SECONDS = 0.1
DEDUP_INTERVAL_SECONDS = 0.8


def _decode_symbol_data(raw: bytes | str) -> str:
    if not raw:
        return ""

    if isinstance(raw, str):
        decoded = raw
    else:
        decoded = bytes(raw).decode("utf-8", errors="ignore")

    return unicodedata.normalize("NFC", decoded).strip()


def _payloads_from_results(results) -> list[str]:
    payloads: list[str] = []
    for result in results:
        if hasattr(result, "valid") and not result.valid:
            continue
        payload = _decode_symbol_data(getattr(result, "text", ""))
        if not payload:
            payload = _decode_symbol_data(getattr(result, "bytes", b"") or b"")
        if payload:
            payloads.append(payload)
    return payloads


def _read_qr_codes(zxing_module, image) -> list[str]:
    results = zxing_module.read_barcodes(
        image,
        formats=zxing_module.BarcodeFormat.QRCode,
        try_rotate=True,
        try_downscale=True,
    )
    return _payloads_from_results(results)


def decode_image(path: Path) -> list[str]:
    """Return the QR payloads found in an image file."""
    import zxingcpp
    from PIL import Image

    with Image.open(path) as image:
        return _read_qr_codes(zxingcpp, image.convert("RGB"))


class QRScanner:
    """Background camera loop that reports each QR payload it reads.

    The same payload seen again within ``DEDUP_INTERVAL_SECONDS`` is dropped;
    the scan handler applies its own cooldown on top of this.
    """

    def __init__(self, camera_index: int = 0) -> None:
        self._camera_index = camera_index
        self._running = False
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._lock = threading.Lock()

    def start(
        self,
        on_payload: Callable[[str], None],
        *,
        on_error: Optional[Callable[[str], None]] = None,
        on_frame: Optional[Callable[[Any], None]] = None,
    ) -> bool:
        with self._lock:
            if self._running:
                return True

            try:
                import cv2
                import zxingcpp
            except ImportError as exc:
                logger.error("QR scanner dependencies are missing: %s", exc)
                if on_error:
                    on_error("Missing QR scanner dependencies. Install opencv-python and zxing-cpp.")
                return False

            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run_loop,
                args=(on_payload, on_error, on_frame, cv2, zxingcpp),
                name="qr-scanner",
                daemon=True,
            )
            self._running = True
            self._thread.start()
            return True

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._stop_event.set()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=1.5)
        self._thread = None

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _run_loop(
        self,
        on_payload: Callable[[str], None],
        on_error: Optional[Callable[[str], None]],
        on_frame: Optional[Callable[[Any], None]],
        cv2_module,
        zxing_module,
    ) -> None:
        capture = None
        last_payload: Optional[str] = None
        last_timestamp = 0.0

        try:
            capture = self._open_capture(cv2_module, on_error)
            if capture is None:
                return

            while not self._stop_event.is_set():
                ok, frame = capture.read()
                if not ok:
                    time.sleep(SCAN_INTERVAL_SECONDS)
                    continue

                if on_frame:
                    on_frame(frame)

                now = time.monotonic()
                for payload in _read_qr_codes(zxing_module, frame):
                    if payload == last_payload and (now - last_timestamp) < DEDUP_INTERVAL_SECONDS:
                        continue
                    last_payload = payload
                    last_timestamp = now
                    try:
                        on_payload(payload)
                    except Exception:
                        logger.exception("Scan callback failed for payload %r", payload)

                time.sleep(SCAN_INTERVAL_SECONDS)
        finally:
            if capture is not None:
                with suppress(Exception):
                    capture.release()
            self._stop_event.clear()
            with self._lock:
                self._running = False

    def _open_capture(self, cv2_module, on_error: Optional[Callable[[str], None]]):
        capture = cv2_module.VideoCapture(self._camera_index)
        if capture.isOpened():
            return capture

        capture.release()
        logger.error("Unable to open camera %s", self._camera_index)
        if on_error:
            on_error("Unable to access the camera. Check that it is connected and not used by another app.")
        return None
