"""
Slide generation: one HTML slide per script section, rendered to PNG.
"""

import html
import logging
import os
from collections.abc import Callable

from PIL import Image, ImageDraw, ImageFont
from tqdm import tqdm

from .config import parse_resolution
from .exceptions import SlideRenderError
from .io_ffmpeg import ensure_dir
from .models import ScriptSection, SlideImage, SlideResult, VideoScript

logger = logging.getLogger("issuecast")

# (html, out_path, width, height) -> None
RenderFunc = Callable[[str, str, int, int], None]

WATERMARK = "IssueCast"


def escape_html(text: str) -> str:
    return html.escape(text, quote=True)


def _bullet_list(points: tuple[str, ...], marker: str, accent_color: str) -> str:
    items = "".join(
        f'<li style="margin: 20px 0; padding-left: 40px; position: relative;">'
        f'<span style="position: absolute; left: 0; color: {accent_color};">{marker}</span>'
        f"{escape_html(point)}</li>"
        for point in points
    )
    return (
        '<ul style="font-size: 32px; text-align: left; max-width: 80%; margin: 0 auto; '
        f'list-style: none; padding: 0;">{items}</ul>'
    )


def _slide_content(section: ScriptSection, script: VideoScript, accent_color: str) -> str:
    heading = escape_html(section.heading)

    if section.type == "intro":
        return (
            f'<h1 style="font-size: 72px; margin-bottom: 30px; color: {accent_color};">'
            f"{escape_html(script.title)}</h1>"
            f'<p style="font-size: 36px; opacity: 0.9;">{heading}</p>'
        )

    if section.type == "code":
        code = ""
        if section.code_snippet:
            code = (
                '<pre style="background: rgba(0,0,0,0.3); padding: 30px; border-radius: 10px; '
                "font-family: 'Courier New', monospace; font-size: 24px; text-align: left; "
                'max-width: 80%; margin: 0 auto; overflow: hidden;">'
                f"<code>{escape_html(section.code_snippet)}</code></pre>"
            )
        return (
            f'<h2 style="font-size: 56px; margin-bottom: 40px; color: {accent_color};">'
            f"{heading}</h2>{code}"
        )

    if section.type in ("summary", "outro"):
        bullets = (
            _bullet_list(section.bullet_points, "✓", accent_color)
            if section.bullet_points
            else ""
        )
        return (
            f'<h2 style="font-size: 64px; margin-bottom: 40px; color: {accent_color};">'
            f"{heading}</h2>{bullets}"
        )

    # main and anything else
    if section.bullet_points:
        body = _bullet_list(section.bullet_points, "•", accent_color)
    else:
        excerpt = section.visual_notes or section.narration[:200]
        body = (
            '<p style="font-size: 32px; max-width: 80%; margin: 0 auto; line-height: 1.6;">'
            f"{escape_html(excerpt)}</p>"
        )
    return (
        f'<h2 style="font-size: 56px; margin-bottom: 40px; color: {accent_color};">'
        f"{heading}</h2>{body}"
    )


def generate_slide_html(
    section: ScriptSection,
    script: VideoScript,
    *,
    width: int,
    height: int,
    background_color: str,
    text_color: str,
    accent_color: str,
) -> str:
    """Build the full HTML document for one slide."""
    content = _slide_content(section, script, accent_color)
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <style>
    * {{ margin: 0; padding: 0; box-sizing: border-box; }}
    body {{
      width: {width}px;
      height: {height}px;
      background: {background_color};
      color: {text_color};
      font-family: 'Arial', 'Helvetica', sans-serif;
      display: flex;
      flex-direction: column;
      justify-content: center;
      align-items: center;
      padding: 60px;
      text-align: center;
      overflow: hidden;
    }}
  </style>
</head>
<body>
  {content}
  <div style="position: absolute; bottom: 40px; right: 60px; font-size: 24px; opacity: 0.5;">
    {WATERMARK}
  </div>
</body>
</html>"""


class BrowserSlideRenderer:
    """Render slide HTML to PNG with headless Chromium (Playwright).

    Use as a context manager so one browser serves every slide of a run.
    """

    def __init__(self) -> None:
        self._playwright = None
        self._browser = None

    def __enter__(self) -> "BrowserSlideRenderer":
        from playwright.sync_api import sync_playwright

        self._playwright = sync_playwright().start()
        self._browser = self._playwright.chromium.launch(
            headless=True,
            args=["--no-sandbox", "--disable-dev-shm-usage", "--disable-gpu"],
        )
        return self

    def __exit__(self, *exc) -> None:
        if self._browser is not None:
            self._browser.close()
        if self._playwright is not None:
            self._playwright.stop()
        self._browser = None
        self._playwright = None

    def __call__(self, html_doc: str, out_path: str, width: int, height: int) -> None:
        if self._browser is None:
            raise RuntimeError("BrowserSlideRenderer must be used as a context manager")
        page = self._browser.new_page(viewport={"width": width, "height": height})
        try:
            page.set_content(html_doc, wait_until="load")
            page.screenshot(path=out_path, full_page=False)
        finally:
            page.close()


def _load_font(size: int) -> ImageFont.ImageFont:
    try:
        return ImageFont.truetype("DejaVuSans.ttf", size=size)
    except OSError:
        return ImageFont.load_default()


def _draw_centered(draw: ImageDraw.ImageDraw, text: str, width: int, y: int, font, fill: str) -> None:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    draw.text(((width - (right - left)) // 2, y - (bottom - top) // 2), text, fill=fill, font=font)


def render_placeholder_slide(
    section: ScriptSection,
    out_path: str,
    width: int,
    height: int,
    *,
    background_color: str = "#1a1a2e",
    text_color: str = "#ffffff",
    accent_color: str = "#00d4ff",
) -> None:
    """Draw a plain slide (heading and visual notes) with Pillow, no browser needed."""
    img = Image.new("RGB", (width, height), background_color)
    draw = ImageDraw.Draw(img)
    heading_font = _load_font(max(24, height // 15))
    small_font = _load_font(max(14, height // 40))

    _draw_centered(draw, section.heading, width, height // 2, heading_font, accent_color)
    if section.visual_notes:
        _draw_centered(
            draw, section.visual_notes[:120], width, height // 2 + height // 10, small_font, text_color
        )
    left, top, right, bottom = draw.textbbox((0, 0), WATERMARK, font=small_font)
    draw.text(
        (width - 60 - (right - left), height - 40 - (bottom - top)),
        WATERMARK,
        fill=text_color,
        font=small_font,
    )
    img.save(out_path, format="PNG")


def render_slides(
    script: VideoScript,
    output_dir: str,
    render_func: RenderFunc | None = None,
    *,
    resolution: str = "1920x1080",
    background_color: str = "#1a1a2e",
    text_color: str = "#ffffff",
    accent_color: str = "#00d4ff",
) -> SlideResult:
    """Render one slide per section, in order.

    ``render_func`` turns slide HTML into a PNG; without one, Pillow
    placeholder slides are drawn instead.
    """
    width, height = parse_resolution(resolution)
    ensure_dir(output_dir)
    slides: list[SlideImage] = []

    for i, section in enumerate(tqdm(script.sections, desc="Slides")):
        base = os.path.join(output_dir, f"slide_{i}_{section.type}")
        image_path = base + ".png"
        logger.info("Generating slide %d/%d: %s", i + 1, len(script.sections), section.heading)

        doc = generate_slide_html(
            section,
            script,
            width=width,
            height=height,
            background_color=background_color,
            text_color=text_color,
            accent_color=accent_color,
        )
        # Kept next to the PNG for debugging
        with open(base + ".html", "w", encoding="utf-8") as f:
            f.write(doc)

        try:
            if render_func is None:
                render_placeholder_slide(
                    section,
                    image_path,
                    width,
                    height,
                    background_color=background_color,
                    text_color=text_color,
                    accent_color=accent_color,
                )
            else:
                render_func(doc, image_path, width, height)
        except Exception as e:
            raise SlideRenderError(f"Failed to render slide {i} ({section.heading}): {e}") from e

        if not os.path.exists(image_path):
            raise SlideRenderError(f"Renderer produced no image for slide {i}: {image_path}")
        slides.append(SlideImage(section_index=i, path=image_path, section=section))

    return SlideResult(slides=tuple(slides), output_dir=output_dir)
