"""
HTTP liveness probe for the dev server endpoint.

Sends a single ``HEAD /`` and classifies the outcome:
  - any response with status < 500 -> responding
  - status >= 500, timeout, refused/reset, DNS or other transport failure -> not responding

Failures are returned as values (ProbeResult.error), never raised. There are no
retries here; the state machine's failure counter is the retry policy.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

import httpx

from .errors import ProbeConnectionError, ProbeTimeout, ProbeTransportError
from .types import ProbeResult

log = logging.getLogger(__name__)

ProbeFn = Callable[[str, int, int], ProbeResult]


def endpoint_url(host: str, port: int) -> str:
    return f"http://{host}:{port}/"


def probe(
    host: str,
    port: int,
    timeout_ms: int,
    transport: Optional[httpx.BaseTransport] = None,
) -> ProbeResult:
    """
    Probe ``http://host:port/`` once. Returns within ``timeout_ms`` (plus
    scheduling slack) even when the server trickles its response, since the
    httpx timeout only bounds each socket operation.
    """
    url = endpoint_url(host, port)
    # trust_env=False: a local endpoint must never be routed through a proxy
    client = httpx.Client(timeout=httpx.Timeout(timeout_ms / 1000.0), transport=transport, trust_env=False)
    outcome: list = []
    done = threading.Event()

    def run() -> None:
        try:
            outcome.append(_head(client, url, timeout_ms))
        except Exception as e:
            outcome.append(e)
        finally:
            done.set()

    threading.Thread(target=run, name="DevServerProbeRequest", daemon=True).start()
    finished = done.wait(timeout_ms / 1000.0)
    # on expiry this aborts the request at its next socket operation
    client.close()

    if not finished:
        log.debug(f"Probe {url} exceeded its {timeout_ms}ms deadline")
        return ProbeResult(responding=False, error=ProbeTimeout())
    result = outcome[0]
    if isinstance(result, Exception):
        raise result
    return result


def _head(client: httpx.Client, url: str, timeout_ms: int) -> ProbeResult:
    try:
        response = client.head(url)
    except httpx.TimeoutException:
        log.debug(f"Probe {url} timed out after {timeout_ms}ms")
        return ProbeResult(responding=False, error=ProbeTimeout())
    except httpx.ConnectError as e:
        log.debug(f"Probe {url} connection failed: {e}")
        return ProbeResult(responding=False, error=ProbeConnectionError(str(e) or "connection refused"))
    except httpx.RemoteProtocolError as e:
        # server closed the socket mid-response (reset)
        log.debug(f"Probe {url} connection reset: {e}")
        return ProbeResult(responding=False, error=ProbeConnectionError(str(e) or "connection reset"))
    except httpx.TransportError as e:
        log.debug(f"Probe {url} transport error: {e}")
        return ProbeResult(responding=False, error=ProbeTransportError(str(e) or type(e).__name__))

    status = response.status_code
    log.debug(f"Probe {url} answered {status}")
    return ProbeResult(responding=status < 500, status_code=status)
