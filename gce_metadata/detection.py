"""Detection of the Compute Engine environment.

on_gce() runs detection once per process and caches the answer. Detection
never raises: every failure counts as "not on GCE".
"""

import socket
import sys
import threading
from concurrent import futures
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Sequence

import httpx
from loguru import logger
from pydantic import ValidationError

from .config import (
    METADATA_FLAVOR_HEADER,
    METADATA_FLAVOR_VALUE,
    METADATA_HOSTNAME,
    MetadataSettings,
    get_host_settings,
    get_settings,
)

DMI_PRODUCT_NAME = Path("/sys/class/dmi/id/product_name")

Signal = Callable[[MetadataSettings], bool]


class DetectionState(Enum):
    UNKNOWN = "unknown"
    ON_GCE = "on_gce"
    NOT_ON_GCE = "not_on_gce"


class DetectionCache:
    """Compute-once holder for the detection result.

    Concurrent first callers block until the single detection run finishes.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = DetectionState.UNKNOWN

    @property
    def state(self) -> DetectionState:
        return self._state

    def resolve(self, detector: Callable[[], bool]) -> bool:
        state = self._state
        if state is DetectionState.UNKNOWN:
            with self._lock:
                if self._state is DetectionState.UNKNOWN:
                    self._state = (
                        DetectionState.ON_GCE
                        if detector()
                        else DetectionState.NOT_ON_GCE
                    )
                    logger.debug(f"GCE detection resolved to {self._state.value}")
                state = self._state
        return state is DetectionState.ON_GCE

    def reset(self) -> None:
        with self._lock:
            self._state = DetectionState.UNKNOWN


def probe_metadata_ip(settings: MetadataSettings) -> bool:
    """Asks the metadata server's IP directly. Avoids the cost of a DNS lookup."""
    res = httpx.get(
        f"http://{settings.metadata_ip}",
        headers={METADATA_FLAVOR_HEADER: METADATA_FLAVOR_VALUE},
        timeout=settings.detect_timeout,
        # Link-local: never reachable through a proxy
        trust_env=False,
    )
    return res.headers.get(METADATA_FLAVOR_HEADER) == METADATA_FLAVOR_VALUE


def probe_dns(settings: MetadataSettings) -> bool:
    """Resolves the metadata server's hostname. It must point at the metadata IP."""
    addrs = socket.getaddrinfo(METADATA_HOSTNAME, 80)
    return any(addr[4][0] == settings.metadata_ip for addr in addrs)


def system_info_suggests_gce(settings: MetadataSettings) -> bool:
    """Checks the DMI product name. Only available on Linux."""
    if not sys.platform.startswith("linux"):
        return False
    name = DMI_PRODUCT_NAME.read_text().strip()
    return name.startswith("Google") or name == "Google Compute Engine"


NETWORK_SIGNALS: tuple[Signal, ...] = (probe_metadata_ip, probe_dns)


def _check(signal: Signal, settings: MetadataSettings) -> bool:
    try:
        result = bool(signal(settings))
    except Exception as e:
        logger.debug(f"GCE detection signal {signal.__name__} failed: {e!r}")
        return False
    logger.debug(f"GCE detection signal {signal.__name__} returned {result}")
    return result


def _any_signal(signals: Sequence[Signal], settings: MetadataSettings) -> bool:
    """Runs ``signals`` concurrently. True as soon as one of them is."""
    if not signals:
        return False
    executor = futures.ThreadPoolExecutor(max_workers=len(signals))
    pending = [executor.submit(_check, signal, settings) for signal in signals]
    try:
        for future in futures.as_completed(pending, timeout=settings.detect_timeout):
            if future.result():
                return True
    except futures.TimeoutError:
        logger.debug(
            f"GCE detection timed out after {settings.detect_timeout} seconds"
        )
    finally:
        # A stuck DNS lookup must not hold up the caller
        executor.shutdown(wait=False, cancel_futures=True)
    return False


def detect(
    signals: Optional[Sequence[Signal]] = None,
    fallback: Optional[Signal] = system_info_suggests_gce,
    settings: Optional[MetadataSettings] = None,
) -> bool:
    """Uncached environment detection.

    An explicit GCE_METADATA_HOST means we are (or pretend to be) on GCE. Otherwise
    the network ``signals`` race against the detection timeout, and ``fallback``
    is consulted if none of them is positive.
    """
    host_settings = settings or get_host_settings()
    if host_settings.host_overridden:
        logger.debug(f"GCE_METADATA_HOST is set to {host_settings.metadata_host!r}")
        return True

    if settings is None:
        try:
            settings = get_settings()
        except ValidationError as e:
            logger.warning(f"Invalid metadata settings, assuming not on GCE: {e}")
            return False

    if _any_signal(NETWORK_SIGNALS if signals is None else signals, settings):
        return True
    return fallback is not None and _check(fallback, settings)


_cache = DetectionCache()


def on_gce() -> bool:
    """Reports whether this process is running on Google Compute Engine."""
    return _cache.resolve(detect)


def _reset_detection() -> None:
    """Forgets the cached detection result. For tests."""
    _cache.reset()
