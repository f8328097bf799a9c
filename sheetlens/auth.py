"""
auth.py – Sessionsvakt för SheetLens Upload API.

Löser ut anroparens identitet (id, e-post, roll) ur requesten och håller den
enda behörighetsregeln: en anropare får agera på user_id X om dess id är X
eller om dess roll är "admin".

Stöder tre lägen via miljövariabeln AUTH_MODE:
  off      – Ingen autentisering, alla anrop körs som en fast utvecklaridentitet
  apikey   – API-nyckel i X-API-Key-headern (default)
  firebase – Firebase ID-token i Authorization: Bearer-headern

API-nycklar lagras som kommaseparerad lista i SHEETLENS_API_KEYS.
Varje post kan ange ägare och roll: "user1:abc123,admin1:admin:xyz456".
Utan prefix används "anonymous" som user_id och "user" som roll.
"""

import asyncio
import logging
import os
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from sheetlens.errors import Forbidden, Unauthenticated

logger = logging.getLogger("sheetlens.auth")

ADMIN_ROLE = "admin"
DEFAULT_ROLE = "user"


@dataclass(frozen=True)
class Identity:
    id: str
    role: str = DEFAULT_ROLE
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def parse_api_keys(raw: str) -> dict[str, Identity]:
    """Bygg upp en dict med nyckel -> Identity från SHEETLENS_API_KEYS."""
    keys: dict[str, Identity] = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        parts = [part.strip() for part in entry.split(":", 2)]
        if len(parts) == 3:
            uid, role, key = parts
        elif len(parts) == 2:
            uid, key = parts
            role = DEFAULT_ROLE
        else:
            uid, role, key = "anonymous", DEFAULT_ROLE, parts[0]
        keys[key] = Identity(id=uid, role=role or DEFAULT_ROLE)
    return keys


AUTH_MODE = os.getenv("AUTH_MODE", "apikey").lower()
DEV_IDENTITY = Identity(
    id=os.getenv("AUTH_DEV_USER_ID", "anonymous"),
    role=os.getenv("AUTH_DEV_ROLE", DEFAULT_ROLE),
)
_API_KEY_MAP: dict[str, Identity] = parse_api_keys(os.getenv("SHEETLENS_API_KEYS", ""))

_bearer_scheme = HTTPBearer(auto_error=False)


def _resolve_apikey_identity(request: Request) -> Identity | None:
    """Försök att lösa ut identiteten från X-API-Key-headern."""
    key = request.headers.get("X-API-Key", "").strip()
    if not key:
        return None
    return _API_KEY_MAP.get(key)


def _ensure_firebase_app() -> None:
    import firebase_admin
    from firebase_admin import credentials as fb_creds

    try:
        firebase_admin.get_app()
    except ValueError:
        creds_file = os.getenv("FIREBASE_CREDENTIALS_FILE")
        creds_json = os.getenv("FIREBASE_CREDENTIALS_JSON")
        if creds_file:
            firebase_admin.initialize_app(fb_creds.Certificate(creds_file))
        elif creds_json:
            import json

            firebase_admin.initialize_app(fb_creds.Certificate(json.loads(creds_json)))
        else:
            firebase_admin.initialize_app()


async def _resolve_firebase_identity(
    credentials: HTTPAuthorizationCredentials | None,
) -> Identity | None:
    """Löser ut identiteten från ett Firebase ID-token (Bearer).

    Rollen läses från custom claim "role".
    """
    if credentials is None or not credentials.credentials:
        return None
    try:
        from firebase_admin import auth as fb_auth

        _ensure_firebase_app()
        # verify_id_token kan hämta certifikat synkront över nätverket
        decoded = await asyncio.to_thread(fb_auth.verify_id_token, credentials.credentials)
    except Exception as exc:
        logger.warning("Firebase token verification failed: %s", exc)
        return None

    uid = decoded.get("uid") or decoded.get("email")
    if not uid:
        return None
    return Identity(
        id=uid,
        role=decoded.get("role") or DEFAULT_ROLE,
        email=decoded.get("email"),
    )


async def get_session(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> Identity | None:
    """
    FastAPI-dependency som returnerar anroparens identitet, eller None.

    Saknad eller ogiltig identitet avgörs av operationen själv (401), så att
    sessionskontrollen alltid sker före validering av request-kroppen.
    """
    if AUTH_MODE == "off":
        return DEV_IDENTITY

    if AUTH_MODE == "apikey":
        identity = _resolve_apikey_identity(request)
        if identity is None:
            logger.info(
                "No valid API key from %s",
                request.client.host if request.client else "unknown",
            )
        return identity

    if AUTH_MODE == "firebase":
        return await _resolve_firebase_identity(credentials)

    # Okänt läge – fail-closed
    raise HTTPException(status_code=500, detail=f"Okänt AUTH_MODE: {AUTH_MODE}")


def require_identity(identity: Identity | None) -> Identity:
    if identity is None:
        raise Unauthenticated("Authentication required")
    return identity


def authorize(identity: Identity, user_id: str) -> None:
    """Anroparen får agera på user_id om det är dess eget id eller om den är admin."""
    if identity.id == user_id or identity.is_admin:
        return
    logger.warning(
        "Access denied: caller=%s role=%s target_user=%s",
        identity.id, identity.role, user_id,
    )
    raise Forbidden("Access denied")
