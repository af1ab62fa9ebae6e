"""Shared HTTP fetch client used by package sources.

Encapsulates request/timeout error handling so feed code never touches
``requests`` directly. Each FeedHttpClient owns its own session, so
credentials and the certificate override stay scoped to one package source
instead of being applied process-wide.
"""
from __future__ import annotations

import logging
import warnings
from typing import Dict, Optional

import requests
from urllib3.exceptions import InsecureRequestWarning

from constants import Constants
from common.errors import NotFoundError, TransportError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


class FeedHttpClient:
    """Blocking HTTP fetcher for one package source.

    Certificate validation is disabled by default: feeds are frequently
    served from hosts whose chain the runtime trust store does not know
    (the historical client ran on Mono, which shipped without a CA bundle),
    so this client accepts any certificate unless told otherwise.
    """

    def __init__(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        accept_all_certificates: bool = True,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            username: Optional basic-auth user name.
            password: Optional basic-auth password (None means no password).
            timeout: Seconds before a request is abandoned; defaults to Constants.REQUEST_TIMEOUT.
            accept_all_certificates: Skip TLS chain validation for this client's requests.
            session: Pre-built session, mainly for tests.
        """
        self.timeout = timeout if timeout is not None else Constants.REQUEST_TIMEOUT
        self.accept_all_certificates = accept_all_certificates
        self.session = session or requests.Session()
        self.session.verify = not accept_all_certificates
        if username:
            self.session.auth = (username, password or "")

    def close(self) -> None:
        """Release pooled connections held by the session."""
        self.session.close()

    def fetch(self, url: str, headers: Optional[Dict[str, str]] = None) -> bytes:
        """GET a URL and return the response body.

        Raises:
            NotFoundError: the server answered 404.
            TransportError: timeout, connection/TLS failure or any other non-2xx status.
        """
        safe_target = safe_url(url)
        with Timer() as t:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request",
                    extra=extra_context(
                        event="http_request",
                        component="http_client",
                        action="GET",
                        target=safe_target,
                    ),
                )
            try:
                with warnings.catch_warnings():
                    if self.accept_all_certificates:
                        warnings.simplefilter("ignore", InsecureRequestWarning)
                    # Per-request verify; requests lets REQUESTS_CA_BUNDLE override session.verify
                    res = self.session.get(
                        url,
                        timeout=self.timeout,
                        headers=headers,
                        verify=not self.accept_all_certificates,
                    )
            except requests.Timeout as exc:
                logger.warning(
                    "Request timed out after %s seconds: %s",
                    self.timeout,
                    safe_target,
                    extra=extra_context(event="http_exception", outcome="timeout", target=safe_target),
                )
                raise TransportError(f"timed out after {self.timeout} seconds", url=url) from exc
            except requests.RequestException as exc:  # includes ConnectionError and SSLError
                logger.warning(
                    "Connection error for %s: %s",
                    safe_target,
                    exc,
                    extra=extra_context(event="http_exception", outcome="request_exception", target=safe_target),
                )
                raise TransportError(str(exc), url=url) from exc

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    status_code=res.status_code,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                ),
            )

        if res.status_code == 404:
            raise NotFoundError("not found", url=url, status_code=404)
        if not 200 <= res.status_code < 300:
            raise TransportError(
                f"unexpected status code {res.status_code}",
                url=url,
                status_code=res.status_code,
            )
        return res.content
