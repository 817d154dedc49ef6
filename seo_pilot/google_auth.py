# seo_pilot/google_auth.py

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence, Union

import httpx
from google.auth import jwt
from google.oauth2 import service_account

from seo_pilot.errors import ApiError, AuthError
from seo_pilot.utils.http import client_scope, json_body

logger = logging.getLogger(__name__)

TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME_S = 3600
REFRESH_MARGIN_S = 60


@dataclass
class CachedToken:
    token: str
    expires_at: float


@dataclass
class TokenCache:
    """Bearer tokens keyed by the space-joined scope string."""
    entries: Dict[str, CachedToken] = field(default_factory=dict)

    def get(self, scope_key: str, now: float) -> Optional[str]:
        cached = self.entries.get(scope_key)
        if cached and cached.expires_at > now + REFRESH_MARGIN_S:
            return cached.token
        return None

    def put(self, scope_key: str, token: str, expires_at: float) -> None:
        self.entries[scope_key] = CachedToken(token=token, expires_at=expires_at)

    def clear(self) -> None:
        self.entries.clear()


class GoogleAuth:
    """
    Service-account bearer tokens for Google APIs.

      • Signs an RS256 assertion (iss, scope, aud, iat, exp = iat + 1h).
      • Exchanges it at the OAuth token endpoint (jwt-bearer grant).
      • Caches per scope set; reuses a token while > 60s of life remain.

    No lock guards the cache: two concurrent callers asking for the same
    uncached scope may both hit the token endpoint.
    """

    def __init__(
        self,
        service_account_path: Union[str, Path],
        *,
        cache: Optional[TokenCache] = None,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.service_account_path = Path(service_account_path)
        self.cache = cache if cache is not None else TokenCache()
        self._client = client
        self._clock = clock
        self._credentials: Optional[service_account.Credentials] = None

    def _load_credentials(self) -> service_account.Credentials:
        if self._credentials is not None:
            return self._credentials
        if not self.service_account_path.is_file():
            raise AuthError(f"Service account file not found: {self.service_account_path}")
        try:
            info = json.loads(self.service_account_path.read_text(encoding="utf-8"))
            self._credentials = service_account.Credentials.from_service_account_info(info)
        except (ValueError, KeyError) as e:
            raise AuthError(f"Invalid service account file {self.service_account_path}: {e}") from e
        return self._credentials

    def build_assertion(self, scopes: Sequence[str], now: Optional[int] = None) -> str:
        creds = self._load_credentials()
        iat = int(self._clock() if now is None else now)
        payload = {
            "iss": creds.service_account_email,
            "scope": " ".join(scopes),
            "aud": TOKEN_ENDPOINT,
            "iat": iat,
            "exp": iat + ASSERTION_LIFETIME_S,
        }
        signed = jwt.encode(creds.signer, payload)
        return signed.decode("utf-8") if isinstance(signed, bytes) else signed

    async def get_access_token(self, scopes: Sequence[str]) -> str:
        scope_key = " ".join(scopes)
        now = self._clock()
        cached = self.cache.get(scope_key, now)
        if cached:
            return cached

        assertion = self.build_assertion(scopes, now=int(now))
        async with client_scope(self._client) as http:
            resp = await http.post(
                TOKEN_ENDPOINT,
                data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
            )
        if not resp.is_success:
            raise ApiError(f"Failed to get access token: {resp.status_code} {resp.text}".rstrip(), status=resp.status_code)

        data = json_body(resp, "Failed to get access token")
        token = data.get("access_token")
        if not token:
            raise AuthError("Token response did not include an access_token")
        try:
            expires_in = float(data.get("expires_in", ASSERTION_LIFETIME_S))
        except (TypeError, ValueError) as e:
            raise AuthError(f"Token response has an invalid expires_in: {data.get('expires_in')!r}") from e
        self.cache.put(scope_key, token, now + expires_in)
        logger.info("Obtained Google access token for scope %s", scope_key)
        return token
