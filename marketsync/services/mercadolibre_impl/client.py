import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from django.conf import settings
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from marketsync.services.mercadolibre_impl.exceptions import MLAPIError, MLRateLimitError, MLTokenExpiredError

logger = logging.getLogger(__name__)

SENSITIVE_KEYS = frozenset({"client_id", "client_secret", "access_token", "refresh_token", "code"})


@dataclass
class MercadoLibreConfig:
    """Configuration for the Mercado Libre API client."""

    client_id: str
    client_secret: str
    base_url: str = "https://api.mercadolibre.com"
    timeout: int = 30
    max_retries: int = 3
    backoff_factor: float = 2.0

    @classmethod
    def from_settings(cls) -> "MercadoLibreConfig":
        return cls(
            client_id=getattr(settings, "MERCADOLIBRE_CLIENT_ID", ""),
            client_secret=getattr(settings, "MERCADOLIBRE_CLIENT_SECRET", ""),
            base_url=getattr(settings, "MERCADOLIBRE_BASE_URL", "https://api.mercadolibre.com"),
        )


class MercadoLibreClient:
    """
    Read-only HTTP client for the Mercado Libre orders, shipments and OAuth endpoints.

    Transport-level retries cover 429 and 5xx responses. Token refresh is not
    handled here: a 401 surfaces as MLTokenExpiredError for the caller to
    decide whether its refresh budget allows another attempt.
    """

    def __init__(self, access_token: Optional[str] = None, config: Optional[MercadoLibreConfig] = None):
        self.access_token = access_token
        self.config = config or MercadoLibreConfig.from_settings()
        self._session = self._create_session()

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        retry_strategy = Retry(
            total=self.config.max_retries,
            backoff_factor=self.config.backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET", "POST"],
            respect_retry_after_header=True,
        )
        # Enrichment workers share this session.
        pool_size = max(10, getattr(settings, "ORDER_SYNC_MAX_WORKERS", 5) * 2)
        adapter = HTTPAdapter(max_retries=retry_strategy, pool_maxsize=pool_size)
        session.mount("https://", adapter)
        session.headers.update({"Accept": "application/json", "Content-Type": "application/json"})
        return session

    def _url(self, path: str) -> str:
        return f"{self.config.base_url}/{path.lstrip('/')}"

    def _get_headers(self) -> Dict[str, str]:
        if not self.access_token:
            raise MLAPIError("No access token provided. Client must be initialized with a token for this operation.")
        return {"Authorization": f"Bearer {self.access_token}"}

    @staticmethod
    def _mask_sensitive_data(data: Dict[str, Any]) -> Dict[str, Any]:
        return {k: ("***" if k in SENSITIVE_KEYS else v) for k, v in data.items()}

    def _handle_response(self, response: requests.Response) -> Dict[str, Any]:
        """Maps error statuses onto the ML exception family and decodes the JSON body."""
        if response.status_code == 401:
            logger.warning("Mercado Libre access token rejected (401).")
            raise MLTokenExpiredError("Token expired. Refresh required.", status_code=401)

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            logger.error(f"Mercado Libre rate limit reached (429) after retries. Retry-After: {retry_after}")
            raise MLRateLimitError(
                "Rate limit exceeded.",
                retry_after=int(retry_after) if retry_after and str(retry_after).isdigit() else None,
            )

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            error_body = e.response.text if e.response is not None else ""
            logger.error(f"ML API HTTP Error: {status_code} - {error_body[:500]}")
            raise MLAPIError(f"HTTP Error {status_code}: {error_body}", status_code=status_code, response_body=error_body)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            logger.error(f"Mercado Libre returned a non-JSON body: {response.text[:500]}")
            raise MLAPIError("Invalid JSON in Mercado Libre response.", status_code=response.status_code, response_body=response.text)

    def _send_request(self, method: str, url: str, use_auth: bool = True, **kwargs: Any) -> Dict[str, Any]:
        kwargs.setdefault("timeout", self.config.timeout)
        if use_auth:
            kwargs["headers"] = {**kwargs.get("headers", {}), **self._get_headers()}

        try:
            response = self._session.request(method, url, **kwargs)
        except requests.RequestException as e:
            logger.error(f"ML API Network Error on {method} {url}: {e}")
            raise MLAPIError(f"Network Error: {e}")
        return self._handle_response(response)

    def _token_request(self, grant_type: str, **fields: str) -> Dict[str, Any]:
        payload = {
            "grant_type": grant_type,
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            **fields,
        }
        logger.debug(f"Requesting OAuth token ({grant_type}) with payload: {self._mask_sensitive_data(payload)}")
        return self._send_request("POST", self._url("oauth/token"), use_auth=False, json=payload)

    def refresh_token(self, refresh_token: str) -> Dict[str, Any]:
        """Trades a refresh token for a new token pair. Refresh tokens are single use."""
        return self._token_request("refresh_token", refresh_token=refresh_token)

    def exchange_code_for_token(self, code: str, redirect_uri: str) -> Dict[str, Any]:
        """Trades the authorization code from the OAuth callback for a token pair."""
        return self._token_request("authorization_code", code=code, redirect_uri=redirect_uri)

    def get(self, path: str, params: Optional[Dict] = None, **kwargs: Any) -> Dict[str, Any]:
        return self._send_request("GET", self._url(path), use_auth=True, params=params, **kwargs)
