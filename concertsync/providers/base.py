from abc import ABC, abstractmethod
from typing import Any, Optional

import requests

from concertsync.errors import ConfigurationError, ProviderError, ValidationError
from concertsync.log import get_logger
from concertsync.models import Concert, SyncRequest

log = get_logger(__name__)

_HEADERS = {"User-Agent": "concertsync/0.1"}

_STATUS_HINTS = {
    401: "invalid credentials, check the API key/token",
    403: "access denied, check the API permissions",
    429: "rate limit exceeded, try again later",
}

# Query parameters that carry credentials
_SECRET_PARAMS = {"apikey", "app_id", "api_key", "token"}


def redact_params(params: Optional[dict]) -> dict:
    return {k: ("***" if k in _SECRET_PARAMS else v) for k, v in (params or {}).items()}


class BaseProvider(ABC):
    # Subclasses must set these class attributes
    source: str = ""
    display_name: str = ""
    base_url: str = ""
    credential_key: str = ""        # Key under cfg["secrets"]
    default_limit: int = 50
    timeout: float = 30

    def __init__(self, provider_cfg: dict, credential: Optional[str] = None):
        """
        Args:
            provider_cfg: The [providers.<source>] section from config.toml as a dict.
                          May override 'url', 'timeout' and 'limit'.
            credential:   API key/token for this provider, if configured.
        """
        self.provider_cfg = provider_cfg
        self.credential = credential
        self.base_url = provider_cfg.get("url", self.base_url)
        self.timeout = provider_cfg.get("timeout", self.timeout)
        self.default_limit = int(provider_cfg.get("limit", self.default_limit))
        self.last_fetched = 0
        self.last_dropped = 0

    def fetch(self, request: SyncRequest) -> list[Concert]:
        """
        Fetch raw records for `request` and normalise them.

        Records that cannot be normalised are dropped and logged; the count of
        dropped records is left on self.last_dropped for the caller's report.
        """
        self.require_credential()
        limit = self.effective_limit(request)
        try:
            raw_records = self.fetch_raw(request, limit)
        except (KeyError, TypeError, AttributeError) as exc:
            raise ProviderError(f"malformed payload ({exc!r})", provider=self.source) from exc

        concerts: list[Concert] = []
        self.last_dropped = 0
        self.last_fetched = len(raw_records)
        for raw in raw_records:
            try:
                concerts.append(self.to_concert(raw))
            except ValidationError as exc:
                self.last_dropped += 1
                log.warning("record_dropped", provider=self.source, reason=exc.message)
            except (KeyError, TypeError, AttributeError, ValueError) as exc:
                self.last_dropped += 1
                log.warning("record_dropped", provider=self.source, reason=repr(exc))

        log.info(
            "provider_fetched",
            provider=self.source,
            fetched=len(raw_records),
            normalised=len(concerts),
            dropped=self.last_dropped,
        )
        return concerts

    @abstractmethod
    def fetch_raw(self, request: SyncRequest, limit: int) -> list[dict]:
        """Return at most `limit` raw provider records matching `request`."""
        ...

    @abstractmethod
    def to_concert(self, raw: dict) -> Concert:
        """Map one raw provider record to a Concert, raising ValidationError if unusable."""
        ...

    def effective_limit(self, request: SyncRequest) -> int:
        limit = request.limit if request.limit is not None else self.default_limit
        return max(int(limit), 0)

    def require_credential(self) -> str:
        if not self.credential:
            raise ConfigurationError(
                f"{self.display_name} credential not configured", provider=self.source
            )
        return self.credential

    def get_json(
        self,
        url: str,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> Any:
        """GET `url` and decode JSON, turning every failure mode into ProviderError."""
        log.debug("provider_request", provider=self.source, url=url, params=redact_params(params))
        try:
            r = requests.get(
                url,
                params=params,
                headers={**_HEADERS, **(headers or {})},
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise ProviderError(f"timed out after {self.timeout}s", provider=self.source) from exc
        except requests.RequestException as exc:
            raise ProviderError(f"request failed: {exc}", provider=self.source) from exc

        if not r.ok:
            hint = _STATUS_HINTS.get(r.status_code)
            message = f"HTTP {r.status_code}: {hint or r.reason}"
            raise ProviderError(message, provider=self.source, status_code=r.status_code)

        try:
            return r.json()
        except ValueError as exc:
            raise ProviderError("response is not valid JSON", provider=self.source) from exc
