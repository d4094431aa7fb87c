"""
iGer - fish marketplace backend
Fish freshness scanner (Hugging Face), iGer AI chat (Gemini), Nominatim geocoding,
role-gated buyer/pangkalan APIs
"""

import asyncio
import logging
import traceback
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, File, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from iger import __version__, auth, chat, config, delivery, freshness, geocoding, marketplace
from iger.errors import ApiError, api_error_handler, validation_error_handler

logger = logging.getLogger("iger")

UPLOAD_CHUNK_SIZE = 64 * 1024

app = FastAPI(title="iGer", description="Fish marketplace backend", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(ApiError, api_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)


@app.on_event("startup")
async def startup_event():
    config.configure_logging()
    if not config.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY not set, /api/chat will answer 500")
    if not config.APPWRITE_PROJECT_ID:
        logger.warning("APPWRITE_PROJECT_ID not set, sessions cannot be resolved")


# Request/Response Models
class ChatMessage(BaseModel):
    role: str = "user"
    content: Optional[str] = None


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = []


class ChatResponse(BaseModel):
    message: str


class FreshnessResponse(BaseModel):
    freshness: str
    reason: str
    confidence: float
    confidencePercent: str
    prediction: str
    model_source: str
    api_url: str


class AddressResponse(BaseModel):
    full_address: str
    formatted_address: str
    city: str = ""
    district: str = ""
    province: str = ""
    country: str = ""
    postcode: str = ""


class GeocodeCandidate(BaseModel):
    latitude: float
    longitude: float
    display_name: str
    formatted_address: str
    city: str = ""
    district: str = ""
    province: str = ""
    country: str = ""
    postcode: str = ""


class SessionResponse(BaseModel):
    authenticated: bool
    user: Optional[Dict[str, Any]] = None
    redirect: str


class ScanStatsRequest(BaseModel):
    scans: List[Dict[str, Any]] = []


class CartSummaryRequest(BaseModel):
    items: List[Dict[str, Any]] = []


class StockCheckRequest(BaseModel):
    items: List[Dict[str, Any]]
    products: Dict[str, Dict[str, Any]] = {}


class ValidationResult(BaseModel):
    valid: bool
    errors: List[str] = []


class EtaRequest(BaseModel):
    driver: Optional[List[float]] = None
    destination: Optional[List[float]] = None


class EtaResponse(BaseModel):
    estimate: str
    minutes: Optional[int] = None
    center: Optional[List[float]] = None


def _validation(errors: List[str]) -> ValidationResult:
    return ValidationResult(valid=not errors, errors=errors)


# Endpoints

@app.get("/")
async def health():
    return {
        "status": "ok",
        "version": __version__,
        "chat_configured": bool(config.GEMINI_API_KEY),
        "classifier_url": config.FISH_CLASSIFIER_URL,
    }


async def read_upload(file: UploadFile) -> bytes:
    """Read the upload in chunks, stopping as soon as it passes the size limit."""
    chunks = []
    total_size = 0
    while True:
        chunk = await file.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        chunks.append(chunk)
        total_size += len(chunk)
        if total_size > config.MAX_IMAGE_SIZE:
            break
    freshness.validate_upload(file.content_type, total_size)
    return b"".join(chunks)


@app.post("/api/analyze-fish", response_model=FreshnessResponse)
async def analyze_fish(file: Optional[UploadFile] = File(None)):
    if file is None:
        freshness.validate_upload(None, None, present=False)

    freshness.validate_upload(file.content_type, None)
    data = await read_upload(file)
    logger.info("Analyzing %s (%s, %d bytes)", file.filename, file.content_type, len(data))

    try:
        return await asyncio.to_thread(freshness.classify_image, data, file.filename, file.content_type)
    except ApiError:
        raise
    except Exception as e:
        logger.error("Analyze failed: %s\n%s", e, traceback.format_exc())
        raise ApiError("Gagal menganalisis gambar. Silakan coba lagi.", details=str(e), status_code=500)


@app.post("/api/chat", response_model=ChatResponse)
async def chat_endpoint(request: ChatRequest):
    reply = await chat.generate_reply(request.messages)
    return ChatResponse(message=reply)


@app.get("/api/geocode/reverse", response_model=AddressResponse)
async def reverse_geocode(lat: str, lng: str):
    if not geocoding.is_valid_coordinate(lat, lng):
        raise ApiError("Koordinat tidak valid.", details=f"lat={lat}, lng={lng}", status_code=400)
    return await asyncio.to_thread(geocoding.reverse_geocode, lat, lng)


@app.get("/api/geocode/search", response_model=List[GeocodeCandidate])
async def search_address(q: str):
    return await asyncio.to_thread(geocoding.forward_geocode, q)


@app.post("/api/delivery/eta", response_model=EtaResponse)
async def delivery_eta(request: EtaRequest):
    for point in (request.driver, request.destination):
        if point is not None and (len(point) != 2 or not geocoding.is_valid_coordinate(*point)):
            raise ApiError("Koordinat tidak valid.", details=str(point), status_code=400)

    if not request.driver or not request.destination:
        return EtaResponse(estimate=delivery.estimated_arrival(None, None))

    return EtaResponse(
        estimate=delivery.estimated_arrival(request.driver, request.destination),
        minutes=delivery.estimate_minutes(request.driver, request.destination),
        center=list(delivery.map_center(request.driver, request.destination)),
    )


# Sessions

@app.get("/api/session", response_model=SessionResponse)
async def session(user: Optional[Dict] = Depends(auth.current_user)):
    return SessionResponse(authenticated=user is not None, user=user, redirect=auth.redirect_by_role(user))


@app.get("/api/buyer/session", response_model=SessionResponse)
async def buyer_session(user: Dict = Depends(auth.require_area("buyer"))):
    return SessionResponse(authenticated=True, user=user, redirect=auth.BUYER_DASHBOARD)


@app.get("/api/pangkalan/session", response_model=SessionResponse)
async def pangkalan_session(user: Dict = Depends(auth.require_area("pangkalan"))):
    return SessionResponse(authenticated=True, user=user, redirect=auth.PANGKALAN_DASHBOARD)


# Buyer area

@app.post("/api/buyer/cart/summary")
async def cart_summary(request: CartSummaryRequest, user: Dict = Depends(auth.require_area("buyer"))):
    summary = marketplace.cart_summary(request.items)
    summary["totalAmountFormatted"] = marketplace.format_currency(summary["totalAmount"])
    return summary


@app.post("/api/buyer/checkout/validate-stock")
async def validate_stock(request: StockCheckRequest, user: Dict = Depends(auth.require_area("buyer"))):
    """Checks quantities against the stock figures the client sends; not an authoritative stock check."""
    return marketplace.validate_stock(request.items, request.products)


@app.post("/api/buyer/scans/stats")
async def scans_stats(request: ScanStatsRequest, user: Dict = Depends(auth.require_area("buyer"))):
    return {
        "stats": freshness.scan_stats(request.scans),
        "badges": {level: freshness.freshness_badge(level) for level in freshness.FRESHNESS_LEVELS},
    }


@app.post("/api/buyer/addresses/validate", response_model=ValidationResult)
async def validate_address(data: Dict[str, Any], user: Dict = Depends(auth.require_area("buyer"))):
    return _validation(marketplace.validate_address(data))


# Pangkalan area

@app.post("/api/pangkalan/products/validate", response_model=ValidationResult)
async def validate_product(data: Dict[str, Any], user: Dict = Depends(auth.require_area("pangkalan"))):
    return _validation(marketplace.validate_product(data))


@app.post("/api/pangkalan/drivers/validate", response_model=ValidationResult)
async def validate_driver(data: Dict[str, Any], user: Dict = Depends(auth.require_area("pangkalan"))):
    return _validation(marketplace.validate_driver(data))


if __name__ == "__main__":
    import uvicorn
    config.configure_logging()
    uvicorn.run(app, host="0.0.0.0", port=8000)
