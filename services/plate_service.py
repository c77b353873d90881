import base64
import binascii
import json
import logging
from typing import Optional

import requests
from fastapi import HTTPException

from core import config

log = logging.getLogger(__name__)


def decode_base64_image(base64_image: Optional[str]) -> bytes:
    if not base64_image:
        raise HTTPException(status_code=400, detail="Base64 image is required")

    # Accept data URLs straight from the camera
    if base64_image.startswith("data:") and "," in base64_image:
        base64_image = base64_image.split(",", 1)[1]

    try:
        return base64.b64decode(base64_image, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="Image is not valid base64")


def recognize_plate(base64_image: Optional[str], session: Optional[requests.Session] = None) -> dict:
    """Read the licence plate off a truck or trailer photo via PlateRecognizer."""
    image_bytes = decode_base64_image(base64_image)

    if not config.PLATERECOGNIZER_API_KEY:
        log.error("PLATERECOGNIZER_API_KEY is not configured")
        raise HTTPException(
            status_code=500,
            detail="PlateRecognizer API key not configured. Add PLATERECOGNIZER_API_KEY to your .env file."
        )

    http = session or requests
    region = config.PLATERECOGNIZER_REGION
    try:
        res = http.post(
            config.PLATERECOGNIZER_URL,
            headers={"Authorization": f"Token {config.PLATERECOGNIZER_API_KEY}"},
            files={"upload": ("plate_photo.jpg", image_bytes, "image/jpeg")},
            data={
                "regions": region,
                "config": json.dumps({
                    "regions": [region],
                    "detect_vehicle": False,
                    "detect_plate": True,
                    "detect_region": False,
                }),
            },
            timeout=30,
        )
        res.raise_for_status()
        data = res.json()
    except (requests.RequestException, ValueError) as exc:
        log.error("PlateRecognizer request failed: %s", exc, exc_info=True)
        raise HTTPException(status_code=502, detail="Failed to recognize licence plate")

    results = data.get("results") or []
    if not results:
        log.info("No licence plate detected")
        return {"licence_plate": "", "confidence": 0.0, "raw_response": data}

    best = results[0]
    plate = str(best.get("plate", "")).upper()
    confidence = float(best.get("score", 0.0))
    log.info("Detected plate %s (score %.3f)", plate, confidence)
    return {"licence_plate": plate, "confidence": confidence, "raw_response": data}
