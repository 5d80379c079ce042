"""Generate the waitlist QR code used on printed flyers.

Writes ``leo-waitlist-qr.png`` and ``leo-waitlist-qr.svg`` to the current
directory.

Usage:
    leo-generate-qr
    python -m portal.qr
"""

import logging
from pathlib import Path

import qrcode
from PIL import Image
from qrcode.image.svg import SvgPathFillImage, SvgPathImage

logger = logging.getLogger("leo-portal-qr")

WAITLIST_URL = "https://leovoiceagent-landing.netlify.app/waitlist"

DARK_COLOR = "#1E293B"  # Brand dark blue
LIGHT_COLOR = "#FFFFFF"

PNG_FILENAME = "leo-waitlist-qr.png"
SVG_FILENAME = "leo-waitlist-qr.svg"
PNG_SIZE = 500
BORDER = 1


class BrandSvgImage(SvgPathFillImage):
    """Single-path SVG in the brand colors on a solid background."""

    background = LIGHT_COLOR
    QR_PATH_STYLE = {**SvgPathImage.QR_PATH_STYLE, "fill": DARK_COLOR}


def build_qr(data: str = WAITLIST_URL) -> qrcode.QRCode:
    """QR code with high error correction and a one-module margin."""
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_H,
        box_size=10,
        border=BORDER,
    )
    qr.add_data(data)
    qr.make(fit=True)
    return qr


def write_png(qr: qrcode.QRCode, path: Path, size: int = PNG_SIZE) -> Path:
    """Render the code as a ``size`` x ``size`` PNG."""
    image = qr.make_image(fill_color=DARK_COLOR, back_color=LIGHT_COLOR)
    image = image.get_image().convert("RGB")
    # Nearest keeps module edges sharp for scanners
    image = image.resize((size, size), Image.NEAREST)
    image.save(path, format="PNG")
    return path


def write_svg(qr: qrcode.QRCode, path: Path) -> Path:
    """Render the code as a scalable SVG."""
    image = qr.make_image(image_factory=BrandSvgImage)
    image.save(str(path))
    return path


def generate(output_dir: Path | None = None, data: str = WAITLIST_URL) -> dict[str, Path | None]:
    """Write both files. A format that fails is logged and reported as None."""
    output_dir = output_dir or Path.cwd()
    qr = build_qr(data)
    written: dict[str, Path | None] = {"png": None, "svg": None}

    try:
        written["png"] = write_png(qr, output_dir / PNG_FILENAME)
        logger.info(f"QR code generated successfully: {PNG_FILENAME}")
        logger.info(f"URL encoded: {data}")
    except OSError as e:
        logger.error(f"Error generating QR code: {e}")

    try:
        written["svg"] = write_svg(qr, output_dir / SVG_FILENAME)
        logger.info(f"QR code SVG generated successfully: {SVG_FILENAME}")
    except OSError as e:
        logger.error(f"Error generating SVG: {e}")

    return written


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    generate()


if __name__ == "__main__":
    main()
