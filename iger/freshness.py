"""
Fish freshness scanner.

The image itself is classified by a hosted model (a Hugging Face Space);
this module validates the upload, forwards it, and reshapes the model's
answer into the envelope the scan pages expect.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional

import requests

from iger import config
from iger.errors import ApiError, InvalidUpstreamResponse, UpstreamUnavailable

logger = logging.getLogger(__name__)

MODEL_SOURCE = "huggingface"

FRESH = "Segar"
NOT_FRESH = "Tidak Segar"
FRESH_KEYWORDS = ("fresh", "segar")

# Labels seen on scan history and product cards; the classifier itself returns "Segar" or "Tidak Segar"
FRESHNESS_LEVELS = ("Sangat Segar", "Segar", "Cukup Segar", "Kurang Segar", "Tidak Segar")
BADGE_COLORS = {
    "Sangat Segar": "emerald",
    "Segar": "emerald",
    "Cukup Segar": "yellow",
    "Kurang Segar": "orange",
    "Tidak Segar": "red",
}


def validate_upload(content_type: Optional[str], size: Optional[int], present: bool = True) -> None:
    """Reject a missing file, an unsupported image type or anything over 5MB."""
    if not present:
        raise ApiError("File tidak ditemukan.", status_code=400)

    if (content_type or "").lower() not in config.ALLOWED_IMAGE_TYPES:
        raise ApiError("Format file tidak didukung. Gunakan JPG, PNG, atau WEBP.", status_code=400)

    if size is not None and size > config.MAX_IMAGE_SIZE:
        raise ApiError(
            f"Ukuran file terlalu besar. Maksimal {config.MAX_IMAGE_SIZE // (1024 * 1024)}MB.",
            status_code=400,
        )


def is_fresh(prediction: str) -> bool:
    label = str(prediction).lower()
    return any(keyword in label for keyword in FRESH_KEYWORDS)


def build_result(prediction: str, confidence: float, api_url: Optional[str] = None) -> Dict:
    freshness = FRESH if is_fresh(prediction) else NOT_FRESH
    confidence_percent = f"{confidence * 100:.1f}"

    if freshness == FRESH:
        reason = (
            f"Ikan terdeteksi segar oleh model AI dengan tingkat keyakinan {confidence_percent}%. "
            "Mata jernih, insang cerah, dan tekstur daging tampak baik."
        )
    else:
        reason = (
            f"Ikan terdeteksi tidak segar oleh model AI dengan tingkat keyakinan {confidence_percent}%. "
            "Periksa kembali mata, insang, dan aroma sebelum membeli."
        )

    return {
        "freshness": freshness,
        "reason": reason,
        "confidence": confidence,
        "confidencePercent": confidence_percent,
        "prediction": prediction,
        "model_source": MODEL_SOURCE,
        "api_url": api_url or config.FISH_CLASSIFIER_URL,
    }


def parse_prediction(payload) -> tuple:
    """Pull ``(prediction, confidence)`` out of the classifier's JSON body."""
    if not isinstance(payload, dict):
        raise InvalidUpstreamResponse("Respons layanan AI tidak valid.", details="Body bukan objek JSON")

    prediction = payload.get("prediction")
    confidence = payload.get("confidence")
    if prediction in (None, "") or confidence is None:
        raise InvalidUpstreamResponse(
            "Respons layanan AI tidak valid.",
            details="Field prediction atau confidence tidak ditemukan",
        )

    try:
        confidence = float(confidence)
    except (TypeError, ValueError):
        raise InvalidUpstreamResponse(
            "Respons layanan AI tidak valid.",
            details=f"Confidence bukan angka: {confidence!r}",
        )

    return str(prediction), confidence


def classify_image(data: bytes, filename: str, content_type: str) -> Dict:
    """Send the image to the hosted classifier and map its answer."""
    url = config.FISH_CLASSIFIER_URL
    files = {"file": (filename or "image.jpg", data, content_type)}

    try:
        resp = requests.post(url, files=files, timeout=config.HTTP_TIMEOUT)
    except requests.RequestException as e:
        logger.error("Fish classifier unreachable: %s", e)
        raise UpstreamUnavailable("Layanan analisis AI sedang tidak tersedia. Silakan coba lagi.", details=str(e))

    if not resp.ok:
        logger.warning("Fish classifier returned %s: %s", resp.status_code, resp.text[:200])
        raise UpstreamUnavailable(
            "Layanan analisis AI sedang tidak tersedia. Silakan coba lagi.",
            details=f"HTTP {resp.status_code}",
        )

    try:
        payload = resp.json()
    except ValueError as e:
        raise InvalidUpstreamResponse("Respons layanan AI tidak valid.", details=str(e))

    prediction, confidence = parse_prediction(payload)
    logger.info("Fish classified as %r (%.3f)", prediction, confidence)
    return build_result(prediction, confidence, api_url=url)


def freshness_badge(level: Optional[str]) -> str:
    return BADGE_COLORS.get(level or "", "gray")


def scan_stats(scans: Iterable[Dict], now: Optional[datetime] = None) -> Dict[str, int]:
    """Count a user's scan results per freshness label and by recency."""
    now = now or datetime.now()
    week_ago = now - timedelta(days=7)
    month_ago = now - timedelta(days=30)

    stats = {"total": 0, "this_week": 0, "this_month": 0}
    for level in FRESHNESS_LEVELS:
        stats[level.lower().replace(" ", "_")] = 0

    for scan in scans:
        stats["total"] += 1
        key = str(scan.get("freshness", "")).lower().replace(" ", "_")
        if key in stats and key not in ("total", "this_week", "this_month"):
            stats[key] += 1

        created = _parse_timestamp(scan.get("$createdAt") or scan.get("created_at"))
        if created is None:
            continue
        if created >= week_ago:
            stats["this_week"] += 1
        if created >= month_ago:
            stats["this_month"] += 1

    return stats


def _parse_timestamp(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        return None
