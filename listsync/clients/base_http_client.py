import requests
import time
import re

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, Dict, Any, Optional
from urllib.parse import urljoin
from abc import ABC

from listsync.core.exceptions.exceptions import (
    FetchTimeoutError,
    MalformedResponseError,
    NetworkFetchError,
    RemoteStatusError,
)
from listsync.utils.log import app_logger

TokenProvider = Callable[[], Optional[str]]


class BaseHTTPClient(ABC):
    """Base HTTP client with GET, retries and typed network errors.

    Transport failures, timeouts, non-2xx statuses and unparseable bodies are
    raised as subclasses of `NetworkFetchError` so callers can classify a
    failure without inspecting its message.
    """

    USER_AGENT = "listsync/0.1 (+requests)"
    MAX_RETRY_AFTER = 10

    def __init__(self,
                 base_url: str,
                 token_provider: Optional[TokenProvider] = None,
                 timeout: float = 15, max_retries: int = 1,
                 retry_delay: float = 1.0,
                 content_type: Optional[str] = 'application/json',
                 accept: Optional[str] = 'application/json',
                 session: Optional[requests.Session] = None,
                 ):
        self.base_url = base_url.rstrip('/')
        self.token_provider = token_provider
        self.timeout = timeout
        self.content_type = content_type
        self.accept = accept
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.session = session or requests.Session()

        # setup default headers
        self._setup_default_headers()

    def _setup_default_headers(self):
        """setup default headers for the client"""
        self.session.headers.update({
            'User-Agent': self.USER_AGENT,
            'Accept': self.accept,
            'Content-Type': self.content_type,
        })

    def _auth_headers(self) -> Dict[str, str]:
        """bearer header from the token provider; the token may change between calls"""
        if not self.token_provider:
            return {}
        token = self.token_provider()
        return {'Authorization': f'Bearer {token}'} if token else {}

    def _build_url(self, endpoint: str) -> str:
        """build full URL"""
        return urljoin(f"{self.base_url}/", endpoint.lstrip('/'))

    @classmethod
    def _retry_after(cls, header: Optional[str]) -> float:
        """seconds to wait for a 429: delta-seconds or an HTTP-date, clamped to [0, MAX_RETRY_AFTER]"""
        if header is None:
            return 1
        try:
            wait = float(header)
        except ValueError:
            try:
                when = parsedate_to_datetime(header)
            except (TypeError, ValueError):
                app_logger.warning("request.bad_retry_after", value=header)
                return 1
            if when.tzinfo is None:
                when = when.replace(tzinfo=timezone.utc)
            wait = (when - datetime.now(timezone.utc)).total_seconds()
        return max(0, min(wait, cls.MAX_RETRY_AFTER))

    @staticmethod
    def _sanitize(error: Exception) -> str:
        # remove memory addresses like <HTTPSConnection(...) at 0x...>
        return re.sub(r'0x[0-9a-fA-F]+', '<ptr>', str(error))

    @staticmethod
    def _parse_body(response: requests.Response, resource: str) -> Dict[str, Any]:
        text = response.text
        if not text or not text.strip():
            return {}
        try:
            body = response.json()
        except ValueError:
            raise MalformedResponseError(resource, "invalid JSON body")
        if not isinstance(body, dict):
            raise MalformedResponseError(resource, f"expected an object, got {type(body).__name__}")
        return body

    def _make_request(self, method: str, endpoint: str,
                     params: Optional[Dict] = None,
                     data: Optional[Dict] = None,
                     headers: Optional[Dict] = None) -> Dict[str, Any]:
        """do HTTP request with retries"""
        url = self._build_url(endpoint)
        request_headers = {**self._auth_headers(), **(headers or {})}

        for attempt in range(self.max_retries + 1):
            last_attempt = attempt == self.max_retries
            try:
                response = self.session.request(
                    method=method,
                    url=url,
                    params=params,
                    json=data,
                    headers=request_headers,
                    timeout=self.timeout
                )
            except requests.exceptions.Timeout as e:
                app_logger.warning("request.timeout", method=method, url=url, attempt=attempt + 1)
                if last_attempt:
                    raise FetchTimeoutError(endpoint, self.timeout) from e
            except requests.exceptions.RequestException as e:
                app_logger.error("request.failed", method=method, url=url, attempt=attempt + 1,
                                 exc_type=type(e).__name__, error=self._sanitize(e))
                if last_attempt:
                    raise NetworkFetchError(endpoint, self._sanitize(e)) from e
            else:
                # check rate limiting
                if response.status_code == 429 and not last_attempt:
                    retry_after = self._retry_after(response.headers.get('Retry-After'))
                    app_logger.warning("request.rate_limited", url=url, attempt=attempt + 1, wait=retry_after)
                    time.sleep(retry_after)
                    continue

                if response.status_code >= 500 and not last_attempt:
                    app_logger.debug("request.status", method=method, url=url, status_code=response.status_code)
                else:
                    if response.status_code >= 400:
                        app_logger.debug("request.status", method=method, url=url, status_code=response.status_code)
                        try:
                            body = self._parse_body(response, endpoint)
                        except MalformedResponseError:
                            body = {}
                        raise RemoteStatusError(endpoint, response.status_code, body.get('message', ''))
                    return self._parse_body(response, endpoint)

            # exponential backoff
            wait_time = self.retry_delay * (2 ** attempt)
            time.sleep(wait_time)

        raise NetworkFetchError(endpoint, f"failed after {self.max_retries + 1} attempts")

    def get(self, endpoint: str, params: Optional[Dict] = None,
            headers: Optional[Dict] = None) -> Dict[str, Any]:
        """do GET request"""
        return self._make_request('GET', endpoint, params=params, headers=headers)

    def close(self):
        """close HTTP session"""
        self.session.close()
