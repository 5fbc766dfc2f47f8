"""Load source images from local files or HTTP(S) URLs.

Images are decoded eagerly and normalized to "L" or "RGBA" so the result can
be shared read-only between dithering runs.
"""

from __future__ import annotations

import logging
import tempfile
import urllib.error
import urllib.request
from pathlib import Path
from urllib.parse import urlparse

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".bmp", ".tif", ".tiff", ".webp")


def is_url(path: str) -> bool:
    """Check if the input looks like an HTTP(S) URL."""
    try:
        parsed = urlparse(str(path))
        return parsed.scheme in ("http", "https")
    except ValueError:
        return False


def _guess_extension_from_url(url: str) -> str:
    parsed = urlparse(url)
    suffix = Path(parsed.path).suffix.lower()
    if suffix in IMAGE_EXTENSIONS:
        return suffix
    return ".png"


def download_image(url: str, timeout: float = 30.0) -> Path:
    """Download an image to a temporary file and return its path.

    Raises:
        ValueError: if the URL is unreachable or the response is empty.
    """
    ext = _guess_extension_from_url(url)
    tmp = tempfile.NamedTemporaryFile(suffix=ext, delete=False)
    tmp_path = Path(tmp.name)

    try:
        req = urllib.request.Request(url, headers={"User-Agent": "dither-maker/0.1"})
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            while True:
                chunk = resp.read(65536)
                if not chunk:
                    break
                tmp.write(chunk)
        tmp.close()
    except urllib.error.URLError as e:
        tmp.close()
        tmp_path.unlink(missing_ok=True)
        raise ValueError(f"Failed to download {url}: {e}") from e
    except Exception:
        tmp.close()
        tmp_path.unlink(missing_ok=True)
        raise

    if tmp_path.stat().st_size == 0:
        tmp_path.unlink(missing_ok=True)
        raise ValueError(f"Downloaded file is empty: {url}")

    logger.debug("Downloaded %s to %s", url, tmp_path)
    return tmp_path


def normalize_mode(image: Image.Image) -> Image.Image:
    """Convert to "L" for single-channel sources and "RGBA" for the rest."""
    if image.mode in ("L", "RGBA"):
        return image
    if image.mode in ("1", "I", "I;16", "F"):
        return image.convert("L")
    return image.convert("RGBA")


def open_image(path: str | Path) -> Image.Image:
    """Open and fully decode an image from a path or URL.

    Multi-frame files (animated GIF, TIFF stacks) yield their first frame.

    Raises:
        FileNotFoundError: if a local path does not exist.
        ValueError: if the data cannot be decoded or downloaded.
    """
    path_str = str(path)
    remote = is_url(path_str)
    if remote:
        local_path = download_image(path_str)
    else:
        local_path = Path(path_str)
        if not local_path.exists():
            raise FileNotFoundError(f"File not found: {local_path}")

    try:
        with Image.open(local_path) as img:
            img.load()
            image = normalize_mode(img)
            if image is img:
                image = img.copy()
    except UnidentifiedImageError as e:
        raise ValueError(f"Failed to decode image '{path_str}'") from e
    finally:
        # Downloaded copies are temporary
        if remote:
            local_path.unlink(missing_ok=True)

    if image.width == 0 or image.height == 0:
        raise ValueError(f"Image has no pixels: '{path_str}'")

    logger.debug("Loaded %s (%dx%d, %s)", path_str, image.width, image.height, image.mode)
    return image
