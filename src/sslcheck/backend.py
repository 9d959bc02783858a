from __future__ import annotations

import _ssl
import socket
import ssl
from typing import Any, List, Optional, Protocol


class TLSBackend(Protocol):
    """
    What the certificate inspector needs from a TLS implementation.

    Every method is blocking; the inspector runs them on a worker thread.
    """

    def connect(self, host: str, port: int, timeout: float) -> socket.socket:
        ...

    def handshake(self, sock: socket.socket, server_hostname: str) -> Any:
        ...

    def peer_chain(self, tls_sock: Any) -> List[bytes]:
        ...


class StdlibTLSBackend:
    """
    TLS via the ssl module, verification disabled.

    The inspector reports on whatever certificate the peer presents; expiry
    and name matching are judged afterwards, so trust failures must not abort
    the handshake.
    """

    def __init__(self, context: Optional[ssl.SSLContext] = None) -> None:
        if context is None:
            context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        self.context = context

    def connect(self, host: str, port: int, timeout: float) -> socket.socket:
        host_idna = host.encode("idna").decode("ascii")
        sock = socket.create_connection((host_idna, port), timeout=timeout)
        sock.settimeout(timeout)
        return sock

    def handshake(self, sock: socket.socket, server_hostname: str) -> ssl.SSLSocket:
        host_idna = server_hostname.encode("idna").decode("ascii")
        return self.context.wrap_socket(sock, server_hostname=host_idna)

    def peer_chain(self, tls_sock: ssl.SSLSocket) -> List[bytes]:
        """DER certificates as presented by the peer, leaf first."""
        # Python 3.13+
        getter = getattr(tls_sock, "get_unverified_chain", None)
        if getter is not None:
            chain = getter() or []
            if chain:
                return [bytes(c) for c in chain]

        # CPython internals: 3.10-3.12 expose the chain only on the private
        # _ssl object, whose certificates are not part of the public ssl API.
        sslobj = getattr(tls_sock, "_sslobj", None)
        raw_getter = getattr(sslobj, "get_unverified_chain", None)
        if raw_getter is not None:
            try:
                chain = [c.public_bytes(_ssl.ENCODING_DER) for c in raw_getter() or []]
            except AttributeError:
                chain = []
            if chain:
                return chain

        leaf = tls_sock.getpeercert(binary_form=True)
        return [leaf] if leaf else []
