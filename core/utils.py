"""
Common utilities: TLS transport provider, local FQDN resolution, socket cleanup.
"""
import socket
import ssl
import logging

from core.constants import CONNECT_TIMEOUT
from core.errors import TransportError

logger = logging.getLogger("mailkey.utils")

# DNS: timeouts for the PTR fallback used by local_fqdn
DNS_TIMEOUT = 3.0
DNS_LIFETIME = 5.0


def resolve_ptr(ip: str) -> tuple[list[str], str, str]:
    """
    Reverse DNS (PTR) lookup for an IP address.
    Returns (list of PTR hostnames, status, message). status: ok | empty | timeout | error
    """
    import dns.reversename
    import dns.resolver
    import dns.exception

    try:
        rev = dns.reversename.from_address(ip)
    except Exception as e:
        return ([], "error", str(e))
    resolver = dns.resolver.Resolver()
    resolver.timeout = DNS_TIMEOUT
    resolver.lifetime = DNS_LIFETIME
    try:
        answers = resolver.resolve(rev, "PTR")
        ptr_list = [str(r.target).rstrip(".") for r in answers]
        return (ptr_list, "ok", "") if ptr_list else ([], "empty", "No PTR records")
    except dns.resolver.NXDOMAIN:
        return ([], "empty", "No PTR records")
    except dns.resolver.NoAnswer:
        return ([], "empty", "No PTR records")
    except dns.exception.Timeout:
        return ([], "timeout", "Timeout")
    except Exception as e:
        logger.debug("PTR for %s failed: %s", ip, e)
        return ([], "error", str(e))


def local_fqdn() -> str:
    """
    Fully-qualified name of this machine, for the SMTP EHLO greeting.
    Uses the system resolver first; if that yields a bare hostname, tries a PTR lookup
    of the host's address. Falls back to the bare hostname.
    """
    name = socket.getfqdn()
    if "." in name:
        return name
    try:
        addr = socket.gethostbyname(socket.gethostname())
    except OSError as e:
        logger.debug("Address lookup for %s failed: %s", name, e)
        return name or "localhost"
    ptr, status, _ = resolve_ptr(addr)
    if status == "ok":
        return ptr[0]
    return name or "localhost"


def open_tls_transport(host: str, port: int, timeout: float = CONNECT_TIMEOUT) -> ssl.SSLSocket:
    """Connect to host:port and complete the TLS handshake. Raises TransportError on failure."""
    try:
        sock = socket.create_connection((host, port), timeout=timeout)
    except (socket.error, OSError) as e:
        logger.debug("Connect %s:%s failed: %s", host, port, e)
        raise TransportError(f"cannot connect to {host}:{port}: {e}") from e
    try:
        ctx = ssl.create_default_context()
        tls_sock = ctx.wrap_socket(sock, server_hostname=host)
    except (ssl.SSLError, OSError) as e:
        close_quietly(sock)
        raise TransportError(f"TLS handshake with {host}:{port} failed: {e}") from e
    logger.debug("Connected to %s:%s (%s, %s)", host, port, tls_sock.version(), (tls_sock.cipher() or ("?",))[0])
    return tls_sock


def close_quietly(sock) -> None:
    """Shut down and close a socket, ignoring errors from an already-dead connection."""
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass
    try:
        sock.close()
    except OSError:
        pass
