"""HTML for processed images."""

from __future__ import annotations

from html import escape
from typing import Any

from .service import InlineImage


def build_picture_html(
    picture: dict[str, Any] | None,
    alt: str = "",
    picture_class: str = "",
    img_class: str = "",
    loading: str | None = None,
) -> str:
    """<picture> with the modern variant as preferred source."""
    if not picture:
        return ""

    source = picture["sources"][0]
    img = picture["img"]
    width = f' width="{img["width"]}"' if img.get("width") else ""
    height = f' height="{img["height"]}"' if img.get("height") else ""
    loading_attr = f' loading="{escape(loading)}"' if loading else ""
    picture_class_attr = f' class="{escape(picture_class)}"' if picture_class else ""
    img_class_attr = f' class="{escape(img_class)}"' if img_class else ""

    return (
        f"\n<picture{picture_class_attr}>\n"
        f'  <source srcset="{escape(source["src"])}" type="{escape(source["type"])}" />\n'
        f'  <img src="{escape(img["src"])}" alt="{escape(alt)}"'
        f"{img_class_attr}{width}{height}{loading_attr} />\n"
        f"</picture>\n"
    )


def build_img_html(src: str, alt: str = "", title: str | None = None, img_class: str = "") -> str:
    """Plain, unprocessed image tag."""
    title_attr = f' title="{escape(title)}"' if title else ""
    class_attr = f' class="{escape(img_class)}"' if img_class else ""
    return f'<img src="{escape(src)}" alt="{escape(alt)}"{title_attr}{class_attr} />'


def render_inline_image(
    inline: InlineImage,
    alt: str = "",
    title: str | None = None,
    img_class: str = "article-image",
) -> str:
    if inline.picture:
        return build_picture_html(inline.picture, alt=alt, img_class=img_class)
    return build_img_html(inline.src, alt=alt, title=title)
