import base64
import logging
import math
import re
from typing import Optional

import requests
from fastapi import HTTPException

from core import config
from services.plate_service import decode_base64_image

log = logging.getLogger(__name__)

# Owner code + serial + check digit; a separate check digit stays on the serial's line
CONTAINER_NUMBER_PATTERN = re.compile(r"[A-Z]{4}\s*(?:\d{7}|\d{6}[ \t]*\d?)")
ISO_CODE_PATTERN = re.compile(r"\b\d{2}[A-Z]\d\b")
FOUR_DIGITS_PATTERN = re.compile(r"\b\d{4}\b")
# Digits OCR tends to return in place of the ISO type letter
OCR_LETTER_FIXES = {"0": "O", "1": "I", "5": "S", "6": "G", "8": "B"}

FULL_NUMBER_CONFIDENCE = 0.95
PARTIAL_NUMBER_CONFIDENCE = 0.85
ISO_MATCH_CONFIDENCE = 0.95
ISO_CORRECTED_CONFIDENCE = 0.80

PARKPOW_OWNER_LABEL = "Owner Code and Category Identifier"
PARKPOW_SERIAL_LABEL = "Serial Number"
PARKPOW_SIZE_TYPE_LABEL = "Size and Type Codes"

# name, reference RGB, max distance
COLOR_REFERENCES = [
    ("Red", (255, 0, 0), 50),
    ("Blue", (0, 0, 255), 50),
    ("Green", (0, 255, 0), 50),
    ("Yellow", (255, 255, 0), 50),
    ("Orange", (255, 165, 0), 50),
    ("Purple", (128, 0, 128), 50),
    ("Pink", (255, 192, 203), 50),
    ("Brown", (165, 42, 42), 50),
    ("Gray", (128, 128, 128), 50),
    ("Black", (0, 0, 0), 30),
    ("White", (255, 255, 255), 30),
    ("Silver", (192, 192, 192), 40),
    ("Gold", (255, 215, 0), 50),
    ("Cyan", (0, 255, 255), 50),
    ("Magenta", (255, 0, 255), 50),
    ("Navy", (0, 0, 128), 40),
    ("Maroon", (128, 0, 0), 40),
    ("Olive", (128, 128, 0), 40),
    ("Teal", (0, 128, 128), 40),
]
TEXT_COLORS = ("red", "blue", "green", "yellow", "white", "grey", "gray", "orange", "brown", "black", "silver")

LICENCE_NUMBER_PATTERN = re.compile(r"\b\d{10}\b")
PHONE_PATTERN = re.compile(r"(\+?\d{1,4}[\s-]?)?\(?\d{3,4}\)?[\s-]?\d{3,4}[\s-]?\d{3,4}")


# ==================== TEXT PARSING ====================

def extract_container_number(text: str) -> tuple[str, float]:
    match = CONTAINER_NUMBER_PATTERN.search(text or "")
    if not match:
        return "", 0.0
    number = re.sub(r"\s", "", match.group())
    confidence = FULL_NUMBER_CONFIDENCE if len(number) == 11 else PARTIAL_NUMBER_CONFIDENCE
    return number, confidence


def extract_iso_code(text: str) -> tuple[str, float]:
    """
    Find the size/type code (e.g. 45G1).

    When no code reads cleanly, a four-digit group whose third character is a
    digit OCR commonly confuses with a letter is corrected, e.g. 4561 -> 45G1.
    """
    match = ISO_CODE_PATTERN.search(text or "")
    if match:
        return match.group(), ISO_MATCH_CONFIDENCE

    for candidate in FOUR_DIGITS_PATTERN.findall(text or ""):
        letter = OCR_LETTER_FIXES.get(candidate[2])
        if letter:
            corrected = f"{candidate[:2]}{letter}{candidate[3]}"
            log.info("OCR correction: %s -> %s", candidate, corrected)
            return corrected, ISO_CORRECTED_CONFIDENCE
    return "", 0.0


def parse_container_text(text: str) -> dict:
    container_number, number_confidence = extract_container_number(text)
    iso_code, iso_confidence = extract_iso_code(text)
    return {
        "container_number": container_number,
        "iso_code": iso_code,
        "container_number_confidence": number_confidence,
        "iso_code_confidence": iso_confidence,
    }


def format_parkpow_response(payload: dict) -> dict:
    """Reduce a ParkPow prediction to the container number and ISO code."""
    container_number, iso_code = "", ""
    number_confidence, iso_confidence = 0.0, 0.0
    owner, serial = ("", 0.0), ("", 0.0)

    for result in payload.get("results") or []:
        texts = result.get("texts") or []
        label = (result.get("object") or {}).get("label")
        if not texts or not label:
            continue
        value, score = texts[0].get("value", ""), float(texts[0].get("score") or 0)
        if label == PARKPOW_OWNER_LABEL:
            owner = (value, score)
        elif label == PARKPOW_SERIAL_LABEL:
            serial = (value, score)
        elif label == PARKPOW_SIZE_TYPE_LABEL:
            iso_code, iso_confidence = value, score

    if owner[0] and serial[0]:
        container_number = owner[0] + serial[0]
        number_confidence = (owner[1] + serial[1]) / 2

    # Older responses carry the fields directly or only as raw text
    container_number = container_number or payload.get("container_number") or payload.get("containerNumber") or ""
    iso_code = iso_code or payload.get("iso_code") or payload.get("isoCode") or ""
    raw_text = payload.get("raw_text") or ""
    if raw_text and not container_number:
        container_number, _ = extract_container_number(raw_text)
    if raw_text and not iso_code:
        iso_code, _ = extract_iso_code(raw_text)

    return {
        "container_number": container_number,
        "iso_code": iso_code,
        "container_number_confidence": number_confidence,
        "iso_code_confidence": iso_confidence,
    }


def rgb_to_hex(red: float, green: float, blue: float) -> str:
    return "#" + "".join(f"{math.floor(channel + 0.5):02x}" for channel in (red, green, blue))


def color_name(red: float, green: float, blue: float) -> str:
    """Closest named colour within tolerance, else a rough hue bucket."""
    closest, best = None, math.inf
    for name, reference, tolerance in COLOR_REFERENCES:
        distance = math.dist((red, green, blue), reference)
        if distance < best and distance <= tolerance:
            closest, best = name, distance
    if closest:
        return closest

    brightest, darkest = max(red, green, blue), min(red, green, blue)
    if brightest - darkest < 30:
        if brightest > 200:
            return "White"
        if brightest < 80:
            return "Black"
        return "Gray"

    if red > green and red > blue:
        if green > 100 and blue < 100:
            return "Orange"
        if red > 150 and green < 100 and blue < 100:
            return "Red"
        return "Brown"
    if green > red and green > blue:
        return "Green"
    if blue > red and blue > green:
        return "Cyan" if green > 100 else "Blue"
    if red > 150 and green > 150 and blue < 100:
        return "Yellow"
    return "Unknown"


def color_from_text(text: str) -> str:
    lowered = (text or "").lower()
    for color in TEXT_COLORS:
        if color in lowered:
            return color.capitalize()
    return ""


def _value_below(lines: list[str], index: int, skip: tuple = (), min_length: int = 1) -> str:
    for candidate in lines[index + 1:index + 3]:
        lowered = candidate.lower()
        if len(candidate) >= min_length and not any(word in lowered for word in skip):
            return candidate
    return ""


def parse_driver_details(text: str) -> dict:
    """Pull the driver's names, licence number, phone and transporter off a licence card."""
    lines = [line.strip() for line in (text or "").splitlines() if line.strip()]
    details = {
        "first_name": "",
        "last_name": "",
        "full_name": "",
        "phone_number": "",
        "licence_number": "",
        "transporter_name": "",
    }

    licence = LICENCE_NUMBER_PATTERN.search(text or "")
    if licence:
        details["licence_number"] = licence.group()

    for index, line in enumerate(lines):
        lowered = line.lower()

        if "family name" in lowered:
            details["last_name"] = _value_below(lines, index, ("given names", "date of birth")) or details["last_name"]

        if "given names" in lowered:
            details["first_name"] = _value_below(lines, index, ("date of birth", "family name")) or details["first_name"]

        if any(word in lowered for word in ("phone", "mobile", "contact")):
            phone = PHONE_PATTERN.search(lowered)
            if phone:
                details["phone_number"] = re.sub(r"[\s-]", "", phone.group())

        if any(word in lowered for word in ("transporter", "company", "employer")):
            details["transporter_name"] = _value_below(lines, index, min_length=3) or details["transporter_name"]

    details["full_name"] = " ".join(part for part in (details["first_name"], details["last_name"]) if part)
    return details


# ==================== EXTERNAL CALLS ====================

def annotate_image(base64_image: Optional[str], features: list[dict], session: Optional[requests.Session] = None) -> dict:
    """Run Google Vision on one image and return its annotation block."""
    image_bytes = decode_base64_image(base64_image)

    if not config.GOOGLE_VISION_API_KEY:
        log.error("GOOGLE_VISION_API_KEY is not configured")
        raise HTTPException(
            status_code=500,
            detail="Vision API key not configured. Add GOOGLE_VISION_API_KEY to your .env file."
        )

    http = session or requests
    body = {
        "requests": [{
            "image": {"content": base64.b64encode(image_bytes).decode("ascii")},
            "features": features,
        }]
    }
    try:
        res = http.post(
            config.GOOGLE_VISION_URL,
            params={"key": config.GOOGLE_VISION_API_KEY},
            json=body,
            timeout=30,
        )
        data = res.json()
    except (requests.RequestException, ValueError) as exc:
        log.error("Google Vision request failed: %s", exc, exc_info=True)
        raise HTTPException(status_code=502, detail="Failed to process image with Google Vision")

    if data.get("error"):
        message = data["error"].get("message", "Unknown error")
        log.error("Google Vision API error: %s", message)
        raise HTTPException(status_code=502, detail=f"Google Vision API Error: {message}")
    if res.status_code >= 400:
        log.error("Google Vision answered %s", res.status_code)
        raise HTTPException(status_code=502, detail="Failed to process image with Google Vision")

    responses = data.get("responses") or [{}]
    return responses[0]


def _detected_text(annotation: dict) -> str:
    texts = annotation.get("textAnnotations") or []
    return texts[0].get("description", "") if texts else ""


def read_container_text(base64_image: Optional[str], session: Optional[requests.Session] = None) -> dict:
    annotation = annotate_image(base64_image, [{"type": "TEXT_DETECTION", "maxResults": 1}], session)
    text = _detected_text(annotation)
    if not text:
        raise HTTPException(status_code=422, detail="No text detected in image")

    reading = parse_container_text(text)
    reading["raw_text"] = text
    log.info("Vision read container %s, ISO %s", reading["container_number"] or "-", reading["iso_code"] or "-")
    return reading


def read_container_color(base64_image: Optional[str], session: Optional[requests.Session] = None) -> dict:
    """Container number, ISO code and the dominant colour of the photo."""
    annotation = annotate_image(
        base64_image,
        [{"type": "TEXT_DETECTION", "maxResults": 1}, {"type": "IMAGE_PROPERTIES", "maxResults": 1}],
        session,
    )
    text = _detected_text(annotation)
    if not text:
        raise HTTPException(status_code=422, detail="No text detected in image")

    container_number, _ = extract_container_number(text)
    iso_code, _ = extract_iso_code(text)

    colors = ((annotation.get("imagePropertiesAnnotation") or {}).get("dominantColors") or {}).get("colors") or []
    color_hex, name, details = "", "", None
    if colors:
        dominant = colors[0]
        rgb = dominant.get("color") or {}
        red, green, blue = (rgb.get(channel) or 0 for channel in ("red", "green", "blue"))
        color_hex = rgb_to_hex(red, green, blue)
        name = color_name(red, green, blue)
        details = {
            "rgb": {"red": red, "green": green, "blue": blue},
            "hex": color_hex,
            "name": name,
            "score": dominant.get("score"),
            "pixel_fraction": dominant.get("pixelFraction"),
        }

    return {
        "container_number": container_number,
        "iso_code": iso_code,
        "container_color": name or color_from_text(text),
        "color_hex": color_hex,
        "color_details": details,
        "raw_text": text,
    }


def read_container_parkpow(base64_image: Optional[str], session: Optional[requests.Session] = None) -> dict:
    """Container number and ISO code from the ParkPow container reader."""
    image_bytes = decode_base64_image(base64_image)

    if not config.PARKPOW_API_KEY:
        log.error("PARKPOW_API_KEY is not configured")
        raise HTTPException(
            status_code=500,
            detail="ParkPow API key not configured. Add PARKPOW_API_KEY to your .env file."
        )

    http = session or requests
    try:
        res = http.post(
            config.PARKPOW_URL,
            headers={"Authorization": f"Token {config.PARKPOW_API_KEY}"},
            files={"image": ("container.jpg", image_bytes, "image/jpeg")},
            timeout=30,
        )
        data = res.json()
    except (requests.RequestException, ValueError) as exc:
        log.error("ParkPow request failed: %s", exc, exc_info=True)
        raise HTTPException(status_code=502, detail="Failed to process image with ParkPow")

    if res.status_code >= 400:
        message = data.get("error") or data.get("message") or "Unknown error"
        log.error("ParkPow answered %s: %s", res.status_code, message)
        raise HTTPException(status_code=502, detail=f"ParkPow API Error: {message}")

    reading = format_parkpow_response(data)
    log.info("ParkPow read container %s, ISO %s", reading["container_number"] or "-", reading["iso_code"] or "-")
    return reading


def extract_driver_details(base64_image: Optional[str], session: Optional[requests.Session] = None) -> dict:
    annotation = annotate_image(base64_image, [{"type": "TEXT_DETECTION", "maxResults": 50}], session)
    text = _detected_text(annotation)
    if not text:
        raise HTTPException(status_code=422, detail="No text detected in the image")
    return {"details": parse_driver_details(text), "raw_text": text}
