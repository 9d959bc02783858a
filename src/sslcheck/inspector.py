from __future__ import annotations

import asyncio
import logging
import socket
import ssl
import threading
from contextlib import closing
from datetime import datetime
from typing import Any, Callable, List, Optional

from diagnostics.errors import NetworkError, ParseError, ValidationError
from diagnostics.targets import require_port

from .backend import StdlibTLSBackend, TLSBackend
from .certificate import parse_certificate
from .models import ConnectionStatus, SslCheckResult

logger = logging.getLogger(__name__)

DEFAULT_PORT = 443
RESPONSE_PEEK = 1024
HTTP_PEEK = 128


def _head_request(host: str) -> bytes:
    return f"HEAD / HTTP/1.1\r\nHost: {host}\r\nConnection: close\r\n\r\n".encode("ascii", errors="replace")


class ConnectionGuard:
    """
    Connections opened by one inspection, so a cancelled caller can abort them.

    Each connection is held through a dup() of its socket: shutdown() on the
    duplicate still reaches the connection after ssl has taken over the
    original descriptor, and wakes any call blocked on it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handles: List[Any] = []
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def track(self, sock: Any) -> bool:
        """Register sock; False if the inspection was already cancelled."""
        try:
            handle = sock.dup()
        except OSError as e:
            logger.debug("could not duplicate socket for cancellation: %s", e)
            handle = None

        with self._lock:
            if not self._cancelled:
                if handle is not None:
                    self._handles.append(handle)
                return True
        if handle is not None:
            handle.close()
        return False

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            handles, self._handles = self._handles, []
        for handle in handles:
            try:
                handle.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass  # peer already gone
            handle.close()

    def release(self) -> None:
        with self._lock:
            handles, self._handles = self._handles, []
        for handle in handles:
            handle.close()


class SSLInspector:
    """
    Connects to host:port and reports on the TLS certificate it presents.

    connect -> TLS handshake -> HEAD probe -> certificate parse. A failed
    handshake falls back to a plain-HTTP probe on a fresh connection to tell
    an HTTP-only endpoint apart from a dead one.
    """

    def __init__(
        self,
        connect_timeout: float = 10.0,
        http_probe_timeout: float = 5.0,
        backend: Optional[TLSBackend] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.connect_timeout = float(connect_timeout)
        self.http_probe_timeout = float(http_probe_timeout)
        self.backend: TLSBackend = backend or StdlibTLSBackend()
        self._clock = clock

    async def inspect(self, domain: str, port: Optional[int] = None) -> SslCheckResult:
        """
        Run check() on a worker thread so a stalled peer never blocks the loop.

        Cancelling the awaiting task shuts down whatever connection the worker
        holds and stops it from opening new ones.
        """
        guard = ConnectionGuard()
        try:
            return await asyncio.to_thread(self.check, domain, port, guard)
        except asyncio.CancelledError:
            logger.debug("ssl %s:%s inspection cancelled", domain, port)
            guard.cancel()
            raise
        except OSError as e:
            raise NetworkError(f"TLS inspection failed: {type(e).__name__}: {e}") from e

    # -------------------------
    # Blocking implementation
    # -------------------------

    def check(
        self,
        domain: str,
        port: Optional[int] = None,
        guard: Optional[ConnectionGuard] = None,
    ) -> SslCheckResult:
        domain = (domain or "").strip()
        if not domain:
            raise ValidationError("Empty domain provided.")
        port = require_port(port, default=DEFAULT_PORT)

        guard = guard or ConnectionGuard()
        try:
            return self._check(domain, port, guard)
        finally:
            guard.release()

    def _check(self, domain: str, port: int, guard: ConnectionGuard) -> SslCheckResult:
        if guard.cancelled:
            return self._cancelled(domain, port)

        try:
            sock = self.backend.connect(domain, port, self.connect_timeout)
        except (OSError, UnicodeError) as e:
            logger.info("ssl %s:%d connect failed: %s", domain, port, e)
            return SslCheckResult(
                domain=domain,
                port=port,
                connection_status=ConnectionStatus.FAILED,
                error=f"Connection failed: {e}",
            )

        with closing(sock):
            if not guard.track(sock):
                return self._cancelled(domain, port)

            try:
                tls_sock = self.backend.handshake(sock, domain)
            except (ssl.SSLError, OSError, ValueError) as e:
                if guard.cancelled:
                    return self._cancelled(domain, port)
                logger.debug("ssl %s:%d handshake failed: %s", domain, port, e)
                return self._after_failed_handshake(domain, port, guard)

            with closing(tls_sock):
                return self._inspect_tls(domain, port, tls_sock)

    @staticmethod
    def _cancelled(domain: str, port: int) -> SslCheckResult:
        return SslCheckResult(
            domain=domain,
            port=port,
            connection_status=ConnectionStatus.FAILED,
            error="Inspection cancelled",
        )

    def _after_failed_handshake(self, domain: str, port: int, guard: ConnectionGuard) -> SslCheckResult:
        if self.probe_http(domain, port, guard):
            logger.info("ssl %s:%d speaks plain HTTP", domain, port)
            return SslCheckResult(domain=domain, port=port, connection_status=ConnectionStatus.HTTP)
        return SslCheckResult(
            domain=domain,
            port=port,
            connection_status=ConnectionStatus.FAILED,
            error="TLS handshake failed and the endpoint is not plain HTTP",
        )

    def _inspect_tls(self, domain: str, port: int, tls_sock) -> SslCheckResult:
        # Drive the connection; the response itself is unused.
        try:
            tls_sock.sendall(_head_request(domain))
            tls_sock.recv(RESPONSE_PEEK)
        except (OSError, ValueError) as e:
            logger.debug("ssl %s:%d HEAD probe over TLS failed: %s", domain, port, e)

        try:
            chain = self.backend.peer_chain(tls_sock)
        except (OSError, ValueError) as e:
            logger.warning("ssl %s:%d could not read peer certificates: %s", domain, port, e)
            chain = []

        if not chain:
            return SslCheckResult(
                domain=domain,
                port=port,
                connection_status=ConnectionStatus.HTTPS,
                error="No certificate found",
            )

        now = self._clock() if self._clock else None
        try:
            info = parse_certificate(domain, chain[0], chain, now=now)
        except ParseError as e:
            logger.warning("ssl %s:%d leaf certificate unreadable: %s", domain, port, e)
            return SslCheckResult(
                domain=domain,
                port=port,
                connection_status=ConnectionStatus.HTTPS,
                error=str(e),
            )

        logger.info(
            "ssl %s:%d https, %d days remaining, valid=%s",
            domain,
            port,
            info.days_remaining,
            info.is_valid,
        )
        return SslCheckResult(domain=domain, port=port, connection_status=ConnectionStatus.HTTPS, cert_info=info)

    def probe_http(self, domain: str, port: int, guard: Optional[ConnectionGuard] = None) -> bool:
        """Does a fresh plaintext connection answer HEAD with an HTTP status line?"""
        if guard is not None and guard.cancelled:
            return False
        try:
            sock = self.backend.connect(domain, port, self.http_probe_timeout)
        except (OSError, UnicodeError):
            return False

        with closing(sock):
            if guard is not None and not guard.track(sock):
                return False
            try:
                sock.settimeout(self.http_probe_timeout)
                sock.sendall(_head_request(domain))
                head = sock.recv(HTTP_PEEK)
            except OSError:
                return False
        return head.startswith(b"HTTP/")
