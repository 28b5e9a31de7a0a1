from __future__ import annotations

import errno
import logging
import socket
import threading
import time
from typing import Callable, Optional

import httpx

from party_starter.runtime.schema import (
    DEFAULT_HEALTH_PATH,
    MAX_PORT,
    NoPortAvailable,
    ProbeAttempt,
    ReadinessOutcome,
    ReadinessResult,
    ServerStartTimeout,
)

__all__ = [
    "MAX_PORT",
    "NoPortAvailable",
    "ServerStartTimeout",
    "find_available_port",
    "http_probe",
    "is_port_in_use",
    "wait_until_ready",
]

logger = logging.getLogger(__name__)

Probe = Callable[[str, float], bool]

# Errors meaning the family or address cannot be used here at all, not that the port is taken.
_UNSUPPORTED_ERRNOS = {errno.EADDRNOTAVAIL, errno.EAFNOSUPPORT, errno.EPROTONOSUPPORT}


def _bind_fails(family: int, address: tuple) -> bool:
    try:
        sock = socket.socket(family, socket.SOCK_STREAM)
    except OSError:
        return False
    with sock:
        if family == socket.AF_INET6:
            # Dual-stack, so IPv4 listeners block the bind as well.
            try:
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
            except (AttributeError, OSError):
                pass
        try:
            sock.bind(address)
        except OSError as e:
            if family == socket.AF_INET6 and e.errno in _UNSUPPORTED_ERRNOS:
                logger.debug("IPv6 bind unavailable for port %s: %s", address[1], e)
                return False
            return True
    return False


def is_port_in_use(port: int, host: str = "") -> bool:
    """Check whether a local TCP port is bound on IPv4 or IPv6.

    The probe sockets are closed before returning.
    """
    if _bind_fails(socket.AF_INET, (host, port)):
        return True
    if not host and socket.has_ipv6:
        return _bind_fails(socket.AF_INET6, ("::", port))
    return False


def find_available_port(
    start_port: int = 3000,
    max_port: int = MAX_PORT,
    in_use: Callable[[int], bool] = is_port_in_use,
) -> int:
    """Find the first unbound port at or above ``start_port``.

    The result is advisory: nothing is reserved, so another process may take
    the port before the caller binds it. Callers treat their own bind failure
    as authoritative and may scan again.
    """
    if not 1 <= start_port <= MAX_PORT:
        raise ValueError(f"start_port must be within 1-{MAX_PORT}, got {start_port}")
    if max_port > MAX_PORT or max_port < start_port:
        raise ValueError(f"max_port must be within {start_port}-{MAX_PORT}, got {max_port}")

    for port in range(start_port, max_port + 1):
        if not in_use(port):
            logger.debug("Port %d is free", port)
            return port
        logger.debug("Port %d is in use", port)
    raise NoPortAvailable(start_port, max_port)


def http_probe(url: str, timeout: float) -> bool:
    """Issue one GET; any 2xx counts as ready."""
    try:
        resp = httpx.get(url, timeout=timeout, follow_redirects=True)
    except httpx.HTTPError as e:
        logger.debug("Probe %s failed: %s", url, e)
        return False
    return resp.is_success


def wait_until_ready(
    port: int,
    path: str = DEFAULT_HEALTH_PATH,
    max_attempts: int = 30,
    interval: float = 1.0,
    cancel_event: Optional[threading.Event] = None,
    probe: Probe = http_probe,
    host: str = "localhost",
    request_timeout: float = 2.0,
    on_attempt: Optional[Callable[[ProbeAttempt], None]] = None,
) -> ReadinessResult:
    """Poll ``http://host:port/path`` until it answers with a 2xx.

    Probes run one at a time, ``interval`` seconds apart. Setting
    ``cancel_event`` stops the loop before the next probe, including in the
    middle of a pause, and yields ``CANCELLED``. Connection errors and non-2xx
    responses are all treated as "not ready yet".
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    if interval < 0:
        raise ValueError("interval must be >= 0")
    if not path.startswith("/"):
        path = f"/{path}"

    url = f"http://{host}:{port}{path}"
    cancel = cancel_event if cancel_event is not None else threading.Event()
    start = time.monotonic()
    attempts = 0

    def _result(outcome: ReadinessOutcome) -> ReadinessResult:
        return ReadinessResult(
            outcome=outcome,
            port=port,
            url=url,
            attempts=attempts,
            elapsed=time.monotonic() - start,
        )

    while attempts < max_attempts:
        if cancel.is_set():
            return _result(ReadinessOutcome.CANCELLED)

        attempts += 1
        error = None
        try:
            ok = bool(probe(url, request_timeout))
        except Exception as e:
            # Custom probes may raise; a failed probe is just "not ready".
            ok = False
            error = str(e)
        logger.debug("Readiness probe %d/%d %s: %s", attempts, max_attempts, url, "ok" if ok else "not ready")
        if on_attempt is not None:
            on_attempt(ProbeAttempt(index=attempts, ok=ok, error=error))
        if ok:
            return _result(ReadinessOutcome.READY)

        if attempts < max_attempts and cancel.wait(interval):
            return _result(ReadinessOutcome.CANCELLED)

    return _result(ReadinessOutcome.TIMED_OUT)
