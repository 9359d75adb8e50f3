"""
Loudness normalization for spot-sync.

Freshly fetched tracks are leveled with two FFmpeg passes:

    1. volumedetect measures the peak ("max_volume: -3.2 dB")
    2. the volume filter raises the file by that many dB, re-encoding at
       320 kbps into a ".norm" sibling, which then replaces the input

Normalization never blocks a commit. A failed measurement falls back to
a zero delta, and a failed application leaves the input untouched.

Dependencies:
    - FFmpeg: must be installed and on PATH

Usage:
    from spot_sync.download.normalizer import normalize

    normalize(record.filename_temporary, record.filename_normalized)
"""

import math
import os
import re
import subprocess
from pathlib import Path

from spot_sync.core.exceptions import NormalizationError
from spot_sync.core.logger import get_logger

logger = get_logger(__name__)


FFMPEG_TIMEOUT = 300  # seconds
NORMALIZED_BITRATE = "320k"
NULL_SINK = "NUL" if os.name == "nt" else "null"

_MAX_VOLUME_PATTERN = re.compile(r"max_volume:\s*(\S+)\s*dB")


def _run_ffmpeg(args: list[str]) -> subprocess.CompletedProcess:
    """
    Run ffmpeg with the given arguments.

    Raises:
        NormalizationError: If ffmpeg is missing or times out.
    """
    cmd = ["ffmpeg", *args]
    try:
        return subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=FFMPEG_TIMEOUT
        )
    except FileNotFoundError as e:
        raise NormalizationError(
            "FFmpeg not found - install FFmpeg to normalize audio",
            details={"command": cmd}
        ) from e
    except subprocess.TimeoutExpired as e:
        raise NormalizationError(
            f"FFmpeg timed out after {FFMPEG_TIMEOUT}s",
            details={"command": cmd}
        ) from e


def measure_delta(path: str | Path) -> str:
    """
    Measure how many dB a file can be raised before clipping.

    Args:
        path: Audio file to analyze.

    Returns:
        The peak level with its sign stripped, as ffmpeg printed it
        (e.g. "3.2"). "0" when the measurement fails for any reason.
    """
    try:
        result = _run_ffmpeg([
            "-i", str(path),
            "-af", "volumedetect",
            "-f", "null",
            "-y", NULL_SINK
        ])
    except NormalizationError as e:
        logger.warning(f"Volume detection failed for {path}: {e}")
        return "0"

    if result.returncode != 0:
        logger.warning(f"Volume detection failed for {path}: {result.stderr.strip()[-200:]}")
        return "0"

    match = _MAX_VOLUME_PATTERN.search(result.stderr)
    if match is None:
        logger.debug(f"No max_volume in ffmpeg output for {path}")
        return "0"

    delta = match.group(1).replace("-", "")
    try:
        finite = math.isfinite(float(delta))
    except ValueError:
        finite = False
    if not finite:
        logger.debug(f"Unparsable max_volume \"{match.group(1)}\" for {path}")
        return "0"

    return delta


def apply_delta(path: str | Path, delta: str, output: str | Path) -> Path:
    """
    Write a copy of path raised by delta dB to output.

    Args:
        path: Source audio file, left untouched.
        delta: Gain in dB, as returned by measure_delta().
        output: Destination file. Its extension selects the container.

    Returns:
        Path of the normalized file.

    Raises:
        NormalizationError: If ffmpeg fails. Any partial output is removed.
    """
    output = Path(output)
    try:
        result = _run_ffmpeg([
            "-i", str(path),
            "-af", f"volume=+{delta}dB",
            "-b:a", NORMALIZED_BITRATE,
            "-y", str(output)
        ])
    except NormalizationError:
        output.unlink(missing_ok=True)
        raise

    if result.returncode != 0:
        output.unlink(missing_ok=True)
        raise NormalizationError(
            f"FFmpeg normalization failed: {result.stderr.strip()[-200:]}",
            details={"file_path": str(path), "delta": delta}
        )

    return output


def normalize(path: str | Path, output: str | Path) -> bool:
    """
    Measure and apply the loudness delta, replacing path in place.

    Args:
        path: Audio file to normalize (the track's temporary file).
        output: Scratch name for the normalized copy.

    Returns:
        True if path now holds the normalized audio, False if it was
        left as it was.
    """
    delta = measure_delta(path)
    logger.debug(f"Normalizing {Path(path).name} by +{delta}dB")

    try:
        normalized = apply_delta(path, delta, output)
        os.replace(normalized, path)
    except (NormalizationError, OSError) as e:
        logger.warning(f"Normalization skipped for {Path(path).name}: {e}")
        Path(output).unlink(missing_ok=True)
        return False

    return True
