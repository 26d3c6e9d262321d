from __future__ import annotations

import base64
import io
import logging
import mimetypes
import re
from pathlib import Path
from typing import Optional, Sequence, Tuple
from urllib.parse import unquote_to_bytes

import numpy as np
from PIL import Image

from .geometry import Point

logger = logging.getLogger(__name__)

PLACEHOLDER_SIZE = (1200, 800)
_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w/+.-]*)(?P<params>(;[^,;]*)*?)(?P<b64>;base64)?,(?P<data>.*)$", re.S)


def require_cv2():
    try:
        import cv2  # noqa
    except Exception as e:
        raise RuntimeError(
            "OpenCV (cv2) is required for region overlays. "
            "Install with:\n"
            "  pip install opencv-python"
        ) from e


# ---------- data URIs ----------

def is_data_uri(s: str) -> bool:
    return bool(s) and s.startswith("data:")


def split_data_uri(uri: str) -> Tuple[str, str]:
    """Return (mime, base64 payload). Non-base64 payloads are re-encoded."""
    m = _DATA_URI_RE.match(uri or "")
    if not m:
        raise ValueError("Not a data URI")
    mime = m.group("mime") or "text/plain"
    data = m.group("data")
    if not m.group("b64"):
        data = base64.b64encode(unquote_to_bytes(data)).decode("ascii")
    return mime, data


def bytes_to_data_uri(raw: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(raw).decode('ascii')}"


def file_to_data_uri(path: str) -> str:
    """Photo attachment: embed the file, the project file never references paths."""
    p = Path(path)
    mime = mimetypes.guess_type(p.name)[0] or "application/octet-stream"
    return bytes_to_data_uri(p.read_bytes(), mime)


def data_uri_to_image(uri: str) -> Image.Image:
    _mime, data = split_data_uri(uri)
    img = Image.open(io.BytesIO(base64.b64decode(data)))
    img.load()
    return img


def load_base_image(ref: str) -> Image.Image:
    """
    Base image for a task: data URI or local file. Remote URLs are not fetched;
    a neutral placeholder keeps the map usable.
    """
    try:
        if is_data_uri(ref):
            return data_uri_to_image(ref).convert("RGB")
        if ref and Path(ref).is_file():
            return Image.open(ref).convert("RGB")
    except Exception:
        logger.warning("Could not decode base image, using placeholder", exc_info=True)
    return Image.new("RGB", PLACEHOLDER_SIZE, (203, 213, 225))


def thumbnail(img: Image.Image, size: int = 96) -> Image.Image:
    t = img.convert("RGB")
    t.thumbnail((size, size))
    return t


# ---------- region masks ----------

def _points_to_px(points: Sequence[Point], size: Tuple[int, int]) -> np.ndarray:
    w, h = size
    arr = np.array([[p.x / 100.0 * w, p.y / 100.0 * h] for p in points], dtype=np.float64)
    return np.round(arr).astype(np.int32)


def region_mask(points: Sequence[Point], size: Tuple[int, int]) -> np.ndarray:
    """uint8 (H,W) mask, 255 inside the polygon. Fewer than 3 points -> empty."""
    w, h = size
    mask = np.zeros((h, w), dtype=np.uint8)
    if len(points) < 3:
        return mask
    require_cv2()
    import cv2

    cv2.fillPoly(mask, [_points_to_px(points, size).reshape(-1, 1, 2)], 255)
    return mask


def region_area_pct(points: Sequence[Point]) -> float:
    """Polygon area as a percentage of the image area."""
    if len(points) < 3:
        return 0.0
    require_cv2()
    import cv2

    contour = np.array([[p.x, p.y] for p in points], dtype=np.float32).reshape(-1, 1, 2)
    # normalized space is 100 x 100
    return float(cv2.contourArea(contour)) / 100.0


def mask_overlay(mask: np.ndarray, rgb: Tuple[int, int, int], alpha_val: int = 90) -> Image.Image:
    h, w = mask.shape[:2]
    alpha = (mask > 0).astype(np.uint8) * alpha_val
    overlay = Image.new("RGBA", (w, h), (*rgb, alpha_val))
    overlay.putalpha(Image.fromarray(alpha))
    return overlay


def hex_to_rgb(color: str) -> Tuple[int, int, int]:
    c = color.lstrip("#")
    return int(c[0:2], 16), int(c[2:4], 16), int(c[4:6], 16)


def optional_image(uri: str) -> Optional[Image.Image]:
    try:
        return data_uri_to_image(uri)
    except Exception:
        logger.debug("Photo is not a decodable data URI", exc_info=True)
        return None
