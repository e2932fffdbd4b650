"""Display helpers for bundles: size, contents summary, import deep link and QR code."""
from __future__ import annotations

import base64
import io
from dataclasses import dataclass
from urllib.parse import quote

import qrcode
from PIL import Image
from qrcode.image.pil import PilImage

from interact_bundle.bundler.manifest import BundleManifest

DEEP_LINK_SCHEME = "ankrinteract"

QR_SIZE_PX = 256
QR_MARGIN = 2

_KIB = 1024
_MIB = 1024 * 1024


@dataclass(frozen=True)
class BundleSize:
    """Archive size in bytes plus a human-readable rendering."""

    bytes: int
    human: str


def bundle_size(data: bytes) -> BundleSize:
    """Return the size of *data* as bytes and as ``B`` / ``KB`` / ``MB`` text."""
    size = len(data)
    if size < _KIB:
        return BundleSize(size, f"{size} B")
    if size < _MIB:
        return BundleSize(size, f"{size / _KIB:.1f} KB")
    return BundleSize(size, f"{size / _MIB:.1f} MB")


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


def bundle_summary(manifest: BundleManifest) -> str:
    """Summarise the contents index, e.g. ``"2 docs · 1 quiz · 1 deck"``."""
    contents = manifest.contents
    parts: list[str] = []
    if contents.docs:
        parts.append(_plural(len(contents.docs), "doc", "docs"))
    if contents.quizzes:
        parts.append(_plural(len(contents.quizzes), "quiz", "quizzes"))
    if contents.flashcards:
        parts.append(_plural(len(contents.flashcards), "deck", "decks"))
    if contents.courses:
        parts.append(_plural(len(contents.courses), "course", "courses"))
    if contents.canvas:
        parts.append(f"{len(contents.canvas)} canvas")
    return " · ".join(parts) or "Empty bundle"


def build_deep_link(bundle_url: str) -> str:
    """Build the app deep link that imports the bundle at *bundle_url*."""
    return f"{DEEP_LINK_SCHEME}://import?url={quote(bundle_url, safe='')}"


def generate_bundle_qr(
    bundle_url: str, *, size: int = QR_SIZE_PX, margin: int = QR_MARGIN
) -> str:
    """Render *bundle_url* as a QR code and return it as a PNG data URI.

    Parameters
    ----------
    bundle_url:
        URL the code should encode; usually where the bundle is hosted.
    size:
        Width and height of the square image in pixels, margin included.
    margin:
        Quiet-zone width in modules.

    Returns
    -------
    str
        ``data:image/png;base64,...`` with black modules on white.

    Raises
    ------
    ValueError
        If *bundle_url* is empty or *size* is not positive.
    """
    if not bundle_url:
        raise ValueError("bundle_url must not be empty")
    if size <= 0:
        raise ValueError(f"size must be positive, got {size}")
    qr = qrcode.QRCode(box_size=1, border=margin, image_factory=PilImage)
    qr.add_data(bundle_url)
    qr.make(fit=True)
    span = qr.modules_count + 2 * margin
    qr.box_size = max(1, size // span)
    image = qr.make_image(fill_color="#000000", back_color="#ffffff").get_image()
    if image.size != (size, size):
        image = image.resize((size, size), Image.Resampling.NEAREST)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


__all__ = [
    "BundleSize",
    "bundle_size",
    "bundle_summary",
    "build_deep_link",
    "generate_bundle_qr",
]
