"""Sticker media conversion via external command-line tools.

WHY: Telegram stickers come in three formats SeaTalk cannot show
natively: static WEBP, animated TGS (gzipped Lottie JSON) and video WEBM.
SeaTalk accepts PNG and GIF images, so each sticker is converted before
it is posted.

HOW: Each converter is a plain blocking function that shells out to
ffmpeg / ffprobe / gifsicle / lottie_to_png with subprocess.run, working
in a private scratch directory. Callers in async code run them through
asyncio.to_thread. convert_sticker() picks the converter for a
StickerKind and names the output after the source file.

Pipelines:
- static WEBP → PNG: a single ffmpeg call
- video WEBM → GIF: ffprobe duration, ffmpeg frames at 15 fps 256x256,
  ffmpeg palettegen, ffmpeg paletteuse trimmed to the duration,
  gifsicle -O3 --colors 64
- animated TGS → GIF: gzip decompress, lottie_to_png frames at 15 fps
  216x216, ffmpeg palettegen, ffmpeg paletteuse, gifsicle -O3 --colors 64

RULES:
- Every failure raises ConvertError (missing tool, non-zero exit, bad output)
- On failure no partial output file is left at the destination path
- Scratch files never outlive the call
"""

from __future__ import annotations

import gzip
import logging
import subprocess
import tempfile
import zlib
from enum import Enum
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)

GIF_FPS = "15"
WEBM_FRAME_SIZE = "256x256"
TGS_FRAME_SIZE = "216"
GIF_COLORS = "64"

_FFMPEG_QUIET = ["ffmpeg", "-hide_banner", "-loglevel", "quiet", "-nostats", "-y"]


class StickerKind(str, Enum):
    """Telegram sticker media format."""

    STATIC = "static"
    ANIMATED = "animated"
    VIDEO = "video"

    @property
    def output_suffix(self) -> str:
        return ".png" if self is StickerKind.STATIC else ".gif"


class ConvertError(Exception):
    """Raised when a sticker could not be converted.

    RULES:
    - message names the failing tool and its exit status where known
    """


# ---------------------------------------------------------------------------
# Process helpers
# ---------------------------------------------------------------------------


def _run(args: List[str]) -> subprocess.CompletedProcess:
    """Run a tool to completion, raising ConvertError on any failure."""
    tool = args[0]
    try:
        result = subprocess.run(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError as exc:
        raise ConvertError(f"failed to start {tool}: {exc}") from exc
    if result.returncode != 0:
        raise ConvertError(f"{tool} exited with status {result.returncode}")
    return result


def _probe_duration(source: Path) -> float:
    result = _run([
        "ffprobe", "-loglevel", "quiet",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(source),
    ])
    text = result.stdout.decode("utf-8", errors="replace").strip()
    try:
        return float(text)
    except ValueError as exc:
        raise ConvertError(f"ffprobe returned an invalid duration: {text!r}") from exc


def _frames_to_gif(work: Path, out_path: Path, duration_s: float | None = None) -> None:
    """Build an optimized GIF from ``work/%03d.png`` frames."""
    frames = str(work / "%03d.png")
    palette = str(work / "palette.png")
    unoptimized = str(work / "out.gif")

    _run(_FFMPEG_QUIET + ["-i", frames, "-vf", "palettegen", palette])

    paletteuse = _FFMPEG_QUIET + [
        "-framerate", GIF_FPS, "-i", frames, "-i", palette, "-lavfi", "paletteuse",
    ]
    if duration_s is not None:
        paletteuse += ["-t", f"{duration_s:.3f}"]
    _run(paletteuse + [unoptimized])

    _run(["gifsicle", "-O3", "--colors", GIF_COLORS, "-i", unoptimized, "-o", str(out_path)])


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


# ---------------------------------------------------------------------------
# Converters
# ---------------------------------------------------------------------------


def convert_webp(source: Path, out_path: Path) -> None:
    """Static WEBP sticker → PNG."""
    try:
        _run(_FFMPEG_QUIET + ["-i", str(source), str(out_path)])
    except ConvertError:
        _discard(out_path)
        raise


def convert_webm(source: Path, out_path: Path) -> None:
    """Video WEBM sticker → optimized GIF of the same duration."""
    try:
        duration_s = _probe_duration(source)
        with tempfile.TemporaryDirectory(prefix="webm_") as tmp:
            work = Path(tmp)
            _run(_FFMPEG_QUIET + [
                "-c:v", "libvpx-vp9", "-i", str(source),
                "-pix_fmt", "rgba", "-r", GIF_FPS, "-s", WEBM_FRAME_SIZE,
                str(work / "%03d.png"),
            ])
            _frames_to_gif(work, out_path, duration_s)
    except ConvertError:
        _discard(out_path)
        raise


def convert_tgs(source: Path, out_path: Path) -> None:
    """Animated TGS (gzipped Lottie) sticker → optimized GIF."""
    try:
        with tempfile.TemporaryDirectory(prefix="tgs_") as tmp:
            work = Path(tmp)
            lottie = work / "sticker.json"
            try:
                lottie.write_bytes(gzip.decompress(source.read_bytes()))
            except (OSError, EOFError, zlib.error) as exc:
                raise ConvertError(f"failed to decompress {source.name}: {exc}") from exc
            _run([
                "lottie_to_png",
                "--width", TGS_FRAME_SIZE, "--height", TGS_FRAME_SIZE,
                "--fps", GIF_FPS, "--threads", "1",
                "--output", str(work), str(lottie),
            ])
            _frames_to_gif(work, out_path)
    except ConvertError:
        _discard(out_path)
        raise


_CONVERTERS = {
    StickerKind.STATIC: convert_webp,
    StickerKind.ANIMATED: convert_tgs,
    StickerKind.VIDEO: convert_webm,
}


def convert_sticker(source: Path, kind: StickerKind, dest_dir: Path) -> Path:
    """Convert ``source`` into a SeaTalk-compatible image inside ``dest_dir``.

    Returns:
        Path of the PNG (static) or GIF (animated, video) output.

    Raises:
        ConvertError: if any step of the pipeline fails.
    """
    out_path = dest_dir / f"{source.stem}{kind.output_suffix}"
    logger.debug("Converting %s (%s) → %s", source.name, kind.value, out_path.name)
    _CONVERTERS[kind](source, out_path)
    return out_path
