"""
Process-wide configuration and capability state.

The stores hold immutable documents and swap them under a lock, so a reader
always gets either the previous or the new document. Nothing here does I/O;
pushing an updated config to the producer is the relay's job.
"""

import logging
import math
import threading
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .models import (
    ASPECT_MODES,
    BITRATE_MAX_KBPS,
    BITRATE_MIN_KBPS,
    FACINGS,
    CameraDescriptor,
    CameraFormat,
    Capabilities,
    CaptureConfig,
)

logger = logging.getLogger(__name__)


# ------------------ field parsers ------------------

def _parse_int(value: Any) -> Optional[int]:
    """Best-effort integer parse; None when the value is not a finite number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
        return int(parsed) if math.isfinite(parsed) else None
    return None


def _positive_int(value: Any) -> Optional[int]:
    n = _parse_int(value)
    if n is None or n <= 0:
        return None
    return n


def clamp_bitrate(kbps: int) -> int:
    return max(BITRATE_MIN_KBPS, min(BITRATE_MAX_KBPS, kbps))


# ------------------ config ------------------

class ConfigStore:
    def __init__(self, initial: Optional[CaptureConfig] = None):
        self._doc = initial or CaptureConfig()
        self._lock = threading.Lock()

    def get(self) -> CaptureConfig:
        return self._doc

    def apply(self, partial: Dict[str, Any]) -> CaptureConfig:
        """
        Merge the valid fields of `partial` into the current document.

        Unparseable fields keep their previous value, the bitrate is clamped
        into range, and everything else in the same update still applies.
        """
        with self._lock:
            update = self._validated_fields(partial)
            self._doc = self._doc.model_copy(update=update)
            return self._doc

    def _validated_fields(self, partial: Dict[str, Any]) -> Dict[str, Any]:
        update: Dict[str, Any] = {}
        rejected: List[str] = []

        if "micEnabled" in partial:
            if isinstance(partial["micEnabled"], bool):
                update["micEnabled"] = partial["micEnabled"]
            else:
                rejected.append("micEnabled")

        for key in ("width", "height", "fps"):
            if key in partial:
                n = _positive_int(partial[key])
                if n is None:
                    rejected.append(key)
                else:
                    update[key] = n

        if "bitrateKbps" in partial:
            n = _parse_int(partial["bitrateKbps"])
            if n is None:
                rejected.append("bitrateKbps")
            else:
                update["bitrateKbps"] = clamp_bitrate(n)

        if "aspect" in partial:
            if partial["aspect"] in ASPECT_MODES:
                update["aspect"] = partial["aspect"]
            else:
                rejected.append("aspect")

        if "camera" in partial:
            if partial["camera"] in FACINGS:
                update["camera"] = partial["camera"]
            else:
                rejected.append("camera")

        if "cameraName" in partial:
            name = partial["cameraName"]
            if name is None or (isinstance(name, str) and not name.strip()):
                update["cameraName"] = None  # fall back to facing
            elif isinstance(name, str):
                update["cameraName"] = name.strip()
            else:
                rejected.append("cameraName")

        if rejected:
            logger.warning(f"Ignoring invalid config fields: {', '.join(rejected)}")
        return update


# ------------------ capabilities ------------------

def _parse_cameras(raw: Any) -> List[CameraDescriptor]:
    if not isinstance(raw, list):
        return []
    cameras = []
    for item in raw:
        try:
            cameras.append(CameraDescriptor.model_validate(item))
        except ValidationError:
            logger.warning(f"Skipping malformed camera descriptor: {item!r}")
    return cameras


def _parse_formats(raw: Any) -> Dict[str, List[CameraFormat]]:
    if not isinstance(raw, dict):
        return {}
    formats: Dict[str, List[CameraFormat]] = {}
    for name, entries in raw.items():
        if not isinstance(entries, list):
            continue
        parsed = []
        for entry in entries:
            try:
                parsed.append(CameraFormat.model_validate(entry))
            except ValidationError:
                logger.warning(f"Skipping malformed format for camera {name}: {entry!r}")
        formats[str(name)] = parsed
    return formats


def _parse_aspects(raw: Any) -> List[str]:
    if not isinstance(raw, list):
        return list(ASPECT_MODES)
    aspects = []
    for item in raw:
        if isinstance(item, str) and item not in aspects:
            aspects.append(item)
    return aspects or list(ASPECT_MODES)


class CapabilityStore:
    def __init__(self):
        self._doc = Capabilities()
        self._lock = threading.Lock()

    def get(self) -> Capabilities:
        return self._doc

    def replace(self, report: Any) -> Capabilities:
        """Overwrite with a fresh hardware snapshot, defaulting what is missing."""
        if not isinstance(report, dict):
            report = {}
        doc = Capabilities(
            cameras=_parse_cameras(report.get("cameras")),
            formatsByCameraName=_parse_formats(report.get("formatsByCameraName")),
            supportedAspects=_parse_aspects(report.get("supportedAspects")),
        )
        with self._lock:
            self._doc = doc
        return doc
