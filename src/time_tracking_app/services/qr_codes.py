from __future__ import annotations

import logging
from pathlib import Path

import qrcode
from qrcode.constants import ERROR_CORRECT_M

logger = logging.getLogger(__name__)


def build_qr_image(payload: str, *, box_size: int = 10, border: int = 4):
    payload = payload.strip()
    if not payload:
        raise ValueError("QR payload cannot be empty.")

    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, box_size=box_size, border=border)
    qr.add_data(payload)
    qr.make(fit=True)
    return qr.make_image(fill_color="black", back_color="white")


def generate_student_qr(student_id: str, destination: Path) -> Path:
    """Write a PNG ID card code whose payload is the student's business key."""
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    image = build_qr_image(student_id)
    image.save(destination)
    logger.info("Wrote QR code for %s to %s", student_id.strip(), destination)
    return destination
