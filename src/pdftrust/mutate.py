"""Metadata rewrites and light content transforms.

Every function here loads its own mutable copy of the document and returns
freshly serialized bytes; the caller's buffer is never modified.
"""

import logging
import math
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import TypedDict

from pypdf.generic import (
    ArrayObject,
    ContentStream,
    DictionaryObject,
    FloatObject,
    IndirectObject,
    NameObject,
    create_string_object,
)

from .document import PdfSource, format_pdf_date, inherited_attribute, load_document
from .tables import (
    HELVETICA_WIDTHS,
    METADATA_TEMPLATES,
    OUTPUT_PREFIXES,
    SRGB_OUTPUT_INTENT,
    WATERMARK_FONT,
    WATERMARK_FONT_SIZE,
    WATERMARK_GRAY,
    WATERMARK_OPACITY,
    WATERMARK_ROTATION,
)

logger = logging.getLogger("pdftrust")

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Patch field -> info dictionary key
INFO_FIELDS: dict[str, str] = {
    "title": "/Title",
    "author": "/Author",
    "subject": "/Subject",
    "keywords": "/Keywords",
    "creator": "/Creator",
    "producer": "/Producer",
}


class MetadataPatch(TypedDict, total=False):
    """Partial metadata update.

    A missing key or None leaves the field alone, an empty string clears it
    and any other string replaces it. Keywords are comma-separated.
    """

    title: str | None
    author: str | None
    subject: str | None
    keywords: str | None
    creator: str | None
    producer: str | None


def _patch_fields(patch: Mapping[str, str | None]) -> dict[str, str]:
    unknown = set(patch) - set(INFO_FIELDS)
    if unknown:
        raise ValueError(f"Unknown metadata fields: {', '.join(sorted(unknown))}")

    fields: dict[str, str] = {}
    for name, key in INFO_FIELDS.items():
        value = patch.get(name)
        if value is None:
            continue
        if name == "keywords":
            value = ", ".join(token.strip() for token in value.split(",") if token.strip())
        fields[key] = value
    return fields


def modify_metadata(source: PdfSource, patch: Mapping[str, str | None]) -> bytes:
    """Apply a metadata patch and stamp the modification date.

    Args:
        source: Raw bytes or a path to the PDF file.
        patch: Field updates, see :class:`MetadataPatch`.

    Returns:
        The re-serialized document.

    Raises:
        ValueError: If the patch names a field that isn't a standard one.
    """
    fields = _patch_fields(patch)
    handle = load_document(source, normalize_metadata=True)

    fields["/ModDate"] = format_pdf_date(datetime.now(timezone.utc))
    handle.set_info(fields)

    logger.info("Updated metadata fields: %s", ", ".join(sorted(fields)))
    return handle.save()


def sanitize_metadata(source: PdfSource) -> bytes:
    """Blank the standard fields and reset both dates to the Unix epoch."""
    handle = load_document(source, normalize_metadata=True)

    fields = {key: "" for key in INFO_FIELDS.values()}
    fields["/CreationDate"] = format_pdf_date(EPOCH)
    fields["/ModDate"] = format_pdf_date(EPOCH)
    handle.set_info(fields)

    logger.info("Sanitized metadata")
    return handle.save()


def template_patch(template_id: str) -> MetadataPatch:
    """Return a copy of a named template's fields as a patch."""
    try:
        template = METADATA_TEMPLATES[template_id]
    except KeyError:
        raise KeyError(f"Unknown metadata template: {template_id}") from None
    return MetadataPatch(**template["fields"])


def text_width(text: str, size: float = WATERMARK_FONT_SIZE) -> float:
    """Width of a string set in Helvetica at the given size, in points.

    Raises:
        ValueError: If the text has characters outside printable ASCII.
    """
    try:
        units = sum(HELVETICA_WIDTHS[char] for char in text)
    except KeyError as exc:
        raise ValueError(
            f"Watermark text must be printable ASCII, got {exc.args[0]!r}"
        ) from None
    return units * size / 1000


def watermark_placement(text: str, width: float, height: float) -> tuple[float, float]:
    """Return the (x, y) origin that centres the watermark on a page."""
    return width / 2 - text_width(text) / 2, height / 2


def _unique_name(resources: DictionaryObject, prefix: str) -> NameObject:
    number = 0
    while f"/{prefix}{number}" in resources:
        number += 1
    return NameObject(f"/{prefix}{number}")


def _resource_category(resources: DictionaryObject, key: str) -> DictionaryObject:
    existing = resources.get(key)
    category = DictionaryObject(existing.get_object()) if existing is not None else DictionaryObject()
    resources[NameObject(key)] = category
    return category


def _escape_pdf_string(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def _watermark_font() -> DictionaryObject:
    return DictionaryObject({
        NameObject("/Type"): NameObject("/Font"),
        NameObject("/Subtype"): NameObject("/Type1"),
        NameObject("/BaseFont"): NameObject(f"/{WATERMARK_FONT}"),
        NameObject("/Encoding"): NameObject("/WinAnsiEncoding"),
    })


def _stamp_page(page: DictionaryObject, text: str, font: IndirectObject) -> None:
    box = page.mediabox
    x, y = watermark_placement(text, float(box.width), float(box.height))

    current = inherited_attribute(page, "/Resources")
    resources = DictionaryObject(current.get_object()) if current is not None else DictionaryObject()

    fonts = _resource_category(resources, "/Font")
    font_name = _unique_name(fonts, "WmF")
    fonts[font_name] = font

    states = _resource_category(resources, "/ExtGState")
    state_name = _unique_name(states, "WmGS")
    states[state_name] = DictionaryObject({
        NameObject("/Type"): NameObject("/ExtGState"),
        NameObject("/ca"): FloatObject(WATERMARK_OPACITY),
        NameObject("/CA"): FloatObject(WATERMARK_OPACITY),
    })

    page[NameObject("/Resources")] = resources

    angle = math.radians(WATERMARK_ROTATION)
    cos, sin = math.cos(angle), math.sin(angle)
    stamp = (
        f"q {state_name} gs {WATERMARK_GRAY} g BT {font_name} {WATERMARK_FONT_SIZE} Tf "
        f"{cos:.6f} {sin:.6f} {-sin:.6f} {cos:.6f} {x:.4f} {y:.4f} Tm "
        f"({_escape_pdf_string(text)}) Tj ET Q\n"
    )

    original = page.get_contents()
    original_data = original.get_data() if original is not None else b""

    # Existing content may leave the graphics state modified
    content = ContentStream(None, None)
    content.set_data(b"q\n" + original_data + b"\nQ\n" + stamp.encode("latin-1"))
    page.replace_contents(content)


def watermark_pdf(source: PdfSource, text: str) -> bytes:
    """Stamp diagonal, semi-transparent text across every page.

    Placement is computed from each page's own media box, so mixed page
    sizes are each centred correctly.

    Raises:
        ValueError: If the text is empty or not printable ASCII.
    """
    if not text:
        raise ValueError("Watermark text must not be empty")
    text_width(text)

    handle = load_document(source, writable=True)
    font = handle.add_object(_watermark_font())
    for page in handle.pages:
        _stamp_page(page, text, font)

    logger.info("Watermarked %d page(s)", handle.page_count)
    return handle.save()


def compress_pdf(source: PdfSource) -> bytes:
    """Re-save with merged duplicate objects and compressed content streams.

    Images and fonts are left untouched.
    """
    handle = load_document(source, writable=True)
    return handle.save(compact_objects=True)


def convert_to_pdfa(source: PdfSource) -> bytes:
    """Declare an sRGB output intent for archival tagging.

    This only adds the output intent when the catalog has none. It does not
    embed fonts or check anything else PDF/A requires.
    """
    handle = load_document(source, writable=True)

    if not handle.catalog_has("/OutputIntents"):
        intent = DictionaryObject({NameObject("/Type"): NameObject("/OutputIntent")})
        for key, value in SRGB_OUTPUT_INTENT.items():
            intent[NameObject(f"/{key}")] = (
                NameObject(value) if value.startswith("/") else create_string_object(value)
            )
        handle.catalog_set("/OutputIntents", ArrayObject([intent]))
        logger.info("Added sRGB output intent")
    else:
        logger.info("Output intent already present")

    return handle.save()


def output_filename(operation: str, filename: str) -> str:
    """Name of the file a mutating operation produces, e.g. ``sanitized_cv.pdf``."""
    return f"{OUTPUT_PREFIXES[operation]}_{Path(filename).name}"
