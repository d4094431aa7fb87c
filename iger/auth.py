"""
Sessions and role-based access for the buyer and pangkalan areas.

Sessions live in Appwrite. The client sends an Appwrite JWT and the
current account is read from Appwrite's REST API; the role is stored in
the account prefs.
"""

import logging
from typing import Callable, Dict, Optional

import requests
from cachetools import TTLCache
from fastapi import Depends, Header

from iger import config
from iger.errors import ApiError, AuthRedirect, InvalidUpstreamResponse, UpstreamUnavailable

logger = logging.getLogger(__name__)

ROLE_USER = "user"
ROLE_PANGKALAN = "pangkalan"

LOGIN = "/login"
REGISTER = "/register"
BUYER_DASHBOARD = "/buyer/dashboard"
PANGKALAN_DASHBOARD = "/pangkalan/dashboard"

# Protected area -> roles allowed in it ("buyer" is a legacy alias of "user")
AREA_ROLES = {
    "buyer": (ROLE_USER, "buyer"),
    "pangkalan": (ROLE_PANGKALAN,),
}

session_cache = TTLCache(maxsize=1024, ttl=config.SESSION_CACHE_TTL)


def redirect_by_role(user: Optional[Dict]) -> str:
    if not user:
        return LOGIN
    if user.get("role") == ROLE_PANGKALAN:
        return PANGKALAN_DASHBOARD
    return BUYER_DASHBOARD


def is_protected_route(pathname: str) -> bool:
    return pathname.startswith("/buyer") or pathname.startswith("/pangkalan")


def is_auth_route(pathname: str) -> bool:
    return pathname in (LOGIN, REGISTER, "/")


def has_role(user: Optional[Dict], role: str) -> bool:
    return bool(user) and user.get("role") == role


def is_pangkalan(user: Optional[Dict]) -> bool:
    return has_role(user, ROLE_PANGKALAN)


def is_user(user: Optional[Dict]) -> bool:
    return has_role(user, ROLE_USER)


def format_backend_error(code: Optional[int], message: Optional[str] = None) -> str:
    if code == 401:
        return "Sesi Anda telah berakhir. Silakan login kembali."
    if code == 404:
        return "Data tidak ditemukan. Periksa konfigurasi database."
    if code == 409:
        return "Email sudah terdaftar. Silakan gunakan email lain atau login."
    if code == 400:
        return "Data yang dikirim tidak valid."
    return message or "Terjadi kesalahan yang tidak diketahui."


def to_user(account: Dict) -> Dict:
    prefs = account.get("prefs") or {}
    return {
        "id": account.get("$id"),
        "name": account.get("name", ""),
        "email": account.get("email", ""),
        "role": prefs.get("role") or ROLE_USER,
        "created_at": account.get("$createdAt"),
    }


def fetch_account(jwt: str) -> Optional[Dict]:
    """Current Appwrite account for ``jwt``, or None when there is no session."""
    if jwt in session_cache:
        return session_cache[jwt]

    headers = {
        "X-Appwrite-Project": config.APPWRITE_PROJECT_ID or "",
        "X-Appwrite-JWT": jwt,
        "Content-Type": "application/json",
    }
    try:
        resp = requests.get(f"{config.APPWRITE_ENDPOINT}/account", headers=headers, timeout=config.HTTP_TIMEOUT)
    except requests.RequestException as e:
        logger.error("Appwrite unreachable: %s", e)
        raise UpstreamUnavailable("Layanan autentikasi tidak tersedia.", details=str(e))

    if resp.status_code == 401:
        return None
    if not resp.ok:
        try:
            message = resp.json().get("message")
        except (ValueError, AttributeError):
            message = resp.text[:200]
        logger.warning("Appwrite account lookup failed with %s: %s", resp.status_code, message)
        raise ApiError(format_backend_error(resp.status_code, message), details=message, status_code=502)

    try:
        account = resp.json()
    except ValueError:
        account = None
    if not isinstance(account, dict):
        logger.warning("Appwrite account lookup returned an unreadable body: %s", resp.text[:200])
        raise InvalidUpstreamResponse("Respons layanan autentikasi tidak valid.", details=resp.text[:200])

    user = to_user(account)
    session_cache[jwt] = user
    return user


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def current_user(
    authorization: Optional[str] = Header(None),
    x_appwrite_jwt: Optional[str] = Header(None),
) -> Optional[Dict]:
    """FastAPI dependency: the signed-in user, or None."""
    jwt = _bearer(authorization) or x_appwrite_jwt
    if not jwt:
        return None
    return fetch_account(jwt)


def check_area(user: Optional[Dict], area: str) -> Dict:
    """Gate a protected area; both a missing session and a wrong role go to the login view."""
    if not user:
        raise AuthRedirect("Silakan login terlebih dahulu.", redirect=LOGIN, status_code=401)
    if user.get("role") not in AREA_ROLES[area]:
        logger.info("User %s with role %r denied access to %s area", user.get("id"), user.get("role"), area)
        raise AuthRedirect("Anda tidak memiliki akses ke halaman ini.", redirect=LOGIN, status_code=403)
    return user


def require_area(area: str) -> Callable:
    if area not in AREA_ROLES:
        raise ValueError(f"Unknown area: {area}")

    def guard(user: Optional[Dict] = Depends(current_user)) -> Dict:
        return check_area(user, area)

    return guard
