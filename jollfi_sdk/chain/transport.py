"""
Transport layer for the Sui JSON-RPC API.

This module provides an abstraction over the JSON-RPC endpoint used by the
chain client, with an HTTP implementation for real nodes and a factory that
selects the in-process stub for ``stub://`` URLs.
"""
import itertools
import logging
import threading
import urllib.parse
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

import requests
from requests.adapters import HTTPAdapter

from ..exceptions import RemoteRPCError, TransportError, TransportTimeoutError

logger = logging.getLogger(__name__)

STUB_SCHEME = "stub"


class RpcTransport(ABC):
    """
    Abstract base class for JSON-RPC transports.

    Implementations issue exactly one request per :meth:`call` and never
    retry; retry policy belongs to callers.
    """

    @abstractmethod
    def call(self, method: str, params: Sequence[Any]) -> Any:
        """
        Invoke a JSON-RPC method.

        Args:
            method: RPC method name (e.g. ``suix_getCoins``)
            params: Ordered positional parameters

        Returns:
            The decoded ``result`` member of the response

        Raises:
            RemoteRPCError: If the node returned an error object
            TransportError: On network, timeout or decoding failures
        """
        pass

    def close(self) -> None:
        """Release any open connections or resources."""
        pass


def _check_url(rpc_url: str) -> None:
    parsed = urllib.parse.urlparse(rpc_url)
    host = parsed.hostname or ""
    is_local = host in ("localhost", "127.0.0.1")
    if parsed.scheme != "https" and not is_local:
        raise ValueError(f"rpc_url must use https:// for security (got: {parsed.scheme}://)")


class HttpRpcTransport(RpcTransport):
    """
    JSON-RPC 2.0 over HTTPS using a pooled ``requests`` session.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the transport.

        Args:
            rpc_url: Node endpoint (https, or http for localhost)
            timeout: Per-call timeout in seconds
            session: Optional pre-configured session
            logger: Optional logger instance

        Raises:
            ValueError: If the URL is not https and not local
        """
        _check_url(rpc_url)
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

        self.session = session or requests.Session()
        if session is None:
            # Connection pooling only; the adapter must not retry
            adapter = HTTPAdapter(max_retries=0)
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)

        self._ids = itertools.count(1)
        self._id_lock = threading.Lock()

    def _next_id(self) -> int:
        with self._id_lock:
            return next(self._ids)

    def call(self, method: str, params: Sequence[Any]) -> Any:
        request_id = self._next_id()
        body = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": method,
            "params": list(params),
        }
        self.logger.debug("RPC -> %s id=%d", method, request_id)

        try:
            response = self.session.post(self.rpc_url, json=body, timeout=self.timeout)
        except requests.Timeout as e:
            self.logger.error(f"RPC {method} timed out after {self.timeout}s")
            raise TransportTimeoutError(f"{method} timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            self.logger.error(f"RPC {method} request failed: {e}")
            raise TransportError(f"{method} request failed: {e}") from e

        try:
            envelope = response.json()
        except ValueError as e:
            raise TransportError(
                f"{method} returned a non-JSON body (HTTP {response.status_code})"
            ) from e

        if not isinstance(envelope, dict):
            raise TransportError(f"{method} returned a malformed envelope: {type(envelope).__name__}")

        error = envelope.get("error")
        if error is not None:
            if not isinstance(error, dict):
                raise TransportError(f"{method} returned a malformed error object")
            self.logger.warning(f"RPC {method} error [{error.get('code')}]: {error.get('message')}")
            raise RemoteRPCError(
                error.get("code", 0),
                str(error.get("message", "")),
                method=method,
                data=error.get("data"),
            )

        if response.status_code >= 400:
            raise TransportError(f"{method} failed with HTTP {response.status_code}")

        if "result" not in envelope:
            raise TransportError(f"{method} response has neither result nor error")

        return envelope["result"]

    def close(self) -> None:
        self.session.close()


def get_transport(rpc_url: str, timeout: float = 30, **kwargs: Any) -> RpcTransport:
    """
    Get a transport for the given endpoint.

    ``stub://`` URLs select the in-process :class:`StubTransport`; anything
    else gets an :class:`HttpRpcTransport`.

    Args:
        rpc_url: Node endpoint
        timeout: Per-call timeout in seconds
        **kwargs: Passed to the stub transport (``owner``, ``coins``)

    Returns:
        Transport implementation
    """
    if urllib.parse.urlparse(rpc_url).scheme == STUB_SCHEME:
        from .stub_transport import StubTransport
        logger.info("Using stub transport for %s", rpc_url)
        return StubTransport(**kwargs)

    logger.info("Using HTTP transport for %s", rpc_url)
    return HttpRpcTransport(rpc_url, timeout=timeout)
