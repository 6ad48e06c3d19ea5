"""
Credential exchange against the operator's login endpoint and the session
record the web app keeps while a user is signed in.

The engine never imports this module.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, MutableMapping, Optional

import requests

from abono_sheets.errors import AuthError

logger = logging.getLogger(__name__)

DEFAULT_AUTH_URL = "https://api.taximonterrico.com/api/Eventos/Login"
AUTH_URL_ENV = "ABONO_SHEETS_AUTH_URL"
SESSION_KEY = "abono_sheets_session"
REQUEST_TIMEOUT = 30


def auth_url() -> str:
    return os.environ.get(AUTH_URL_ENV) or DEFAULT_AUTH_URL


@dataclass
class LoginResponse:
    estatus: Any = None
    message: str = ""
    idusuario: Any = None
    idacceso: Any = None
    fotop: str = ""
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "LoginResponse":
        return cls(
            estatus=payload.get("estatus"),
            message=str(payload.get("message") or ""),
            idusuario=payload.get("idusuario"),
            idacceso=payload.get("idacceso"),
            fotop=str(payload.get("fotop") or ""),
            raw=dict(payload),
        )

    @property
    def succeeded(self) -> bool:
        """Success is reported in the body (``estatus == 200``), not the HTTP status."""
        try:
            return int(self.estatus) == 200
        except (TypeError, ValueError):
            return False


def login(
    agente: str,
    contrasena: str,
    idempresas: int = 0,
    url: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> LoginResponse:
    payload = {"agente": agente, "contrasena": contrasena, "idempresas": idempresas}
    http = session or requests
    try:
        response = http.post(url or auth_url(), json=payload, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as exc:
        raise AuthError(f"Could not reach the login service: {exc}") from exc
    # Rejections come back as JSON bodies too, whatever the HTTP status.
    try:
        body = response.json()
    except ValueError as exc:
        raise AuthError(
            f"The login service returned an unreadable response (HTTP {response.status_code})."
        ) from exc

    if not isinstance(body, dict):
        raise AuthError("The login service returned an unexpected response.")
    result = LoginResponse.from_payload(body)
    logger.info("login for %s: estatus=%s", agente, result.estatus)
    return result


class SessionStore:
    """Session record kept in any mutable mapping (``st.session_state`` in the app)."""

    def __init__(self, backing: MutableMapping[str, Any], key: str = SESSION_KEY) -> None:
        self._backing = backing
        self._key = key

    def get(self) -> Optional[dict[str, Any]]:
        value = self._backing.get(self._key)
        return value if isinstance(value, dict) else None

    def save(self, response: LoginResponse) -> dict[str, Any]:
        session = {
            "idusuario": response.idusuario,
            "idacceso": response.idacceso,
            "fotop": response.fotop,
            "is_authenticated": True,
        }
        self._backing[self._key] = session
        return session

    def clear(self) -> None:
        self._backing.pop(self._key, None)

    def is_authenticated(self) -> bool:
        session = self.get()
        return bool(session and session.get("is_authenticated"))
