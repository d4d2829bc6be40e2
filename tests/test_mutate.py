"""Tests for metadata rewrites and content transforms."""

import io
import re
from datetime import datetime, timedelta, timezone

import pytest
from pypdf import PdfReader

from conftest import MINIMAL_PDF, XMP_PACKET, build_pdf
from pdftrust.core import analyze_risk, extract_metadata
from pdftrust.document import extract_text, load_document
from pdftrust.mutate import (
    compress_pdf,
    convert_to_pdfa,
    modify_metadata,
    output_filename,
    sanitize_metadata,
    template_patch,
    text_width,
    watermark_pdf,
    watermark_placement,
)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
STANDARD_FIELDS = ("title", "author", "subject", "creator", "producer")


def _original():
    return build_pdf(info={
        "/Title": "Original Title",
        "/Author": "Alex Doe",
        "/Subject": "Resume",
        "/Keywords": "python, pdf",
        "/Creator": "Writer",
        "/Producer": "iLovePDF",
        "/CreationDate": "D:20200101000000Z",
    })


def test_modify_metadata_sets_fields():
    data = modify_metadata(_original(), {"title": "New Title", "producer": "Microsoft Word"})
    metadata = extract_metadata(data)
    assert metadata["title"] == "New Title"
    assert metadata["producer"] == "Microsoft Word"
    assert metadata["author"] == "Alex Doe"


def test_modify_metadata_empty_string_clears():
    data = modify_metadata(_original(), {"author": "", "keywords": ""})
    metadata = extract_metadata(data)
    assert metadata["author"] == ""
    assert metadata["keywords"] == []
    assert metadata["title"] == "Original Title"


def test_modify_metadata_none_leaves_field():
    data = modify_metadata(_original(), {"title": None})
    assert extract_metadata(data)["title"] == "Original Title"


def test_modify_metadata_normalizes_keywords():
    data = modify_metadata(_original(), {"keywords": " cv , , senior engineer,python "})
    assert extract_metadata(data)["keywords"] == ["cv", "senior engineer", "python"]
    assert load_document(data).info_text("/Keywords") == "cv, senior engineer, python"


def test_modify_metadata_stamps_modification_date():
    before = datetime.now(timezone.utc) - timedelta(seconds=5)
    data = modify_metadata(_original(), {})
    modified = extract_metadata(data)["modification_date"]
    assert modified is not None
    assert modified >= before


def test_modify_metadata_rejects_unknown_fields():
    with pytest.raises(ValueError, match="Unknown metadata fields: colour"):
        modify_metadata(_original(), {"colour": "red"})


def test_modify_metadata_does_not_touch_input():
    original = _original()
    copy = bytes(original)
    modify_metadata(original, {"title": "Changed"})
    assert original == copy


def test_modify_metadata_syncs_xmp():
    data = build_pdf(info={"/Title": "Old Title"}, xmp=XMP_PACKET)
    result = modify_metadata(data, {"title": "Brand New"})
    packet = load_document(result).catalog_get("/Metadata").get_data()
    assert b"Brand New" in packet
    assert b"Old Title" not in packet
    assert b"pdfaid" in packet


def test_sanitize_metadata_clears_xmp_title():
    data = build_pdf(info={"/Title": "Old Title"}, xmp=XMP_PACKET)
    metadata = load_document(sanitize_metadata(data)).catalog_get("/Metadata")
    assert metadata is None or b"Old Title" not in metadata.get_data()


def test_sanitize_metadata():
    metadata = extract_metadata(sanitize_metadata(_original()))
    for field in STANDARD_FIELDS:
        assert metadata[field] == ""
    assert metadata["keywords"] == []
    assert metadata["creation_date"] == EPOCH
    assert metadata["modification_date"] == EPOCH


def test_sanitize_metadata_is_idempotent():
    once = sanitize_metadata(_original())
    twice = sanitize_metadata(once)
    first, second = extract_metadata(once), extract_metadata(twice)
    for field in (*STANDARD_FIELDS, "keywords", "creation_date", "modification_date"):
        assert first[field] == second[field]


def test_sanitize_lowers_risk_producer_flag():
    flags = analyze_risk(sanitize_metadata(_original()))["flags"]
    assert not any("Suspicious producer" in flag for flag in flags)


def test_text_width():
    # D + R + A + F + T = 722 + 722 + 667 + 611 + 611
    assert text_width("DRAFT") == pytest.approx(3333 * 50 / 1000)
    assert text_width("DRAFT", size=10) == pytest.approx(33.33)


def test_text_width_rejects_non_ascii():
    with pytest.raises(ValueError, match="printable ASCII"):
        text_width("Entwürf")


def test_watermark_placement():
    x, y = watermark_placement("DRAFT", 612, 792)
    assert x == pytest.approx(306 - 166.65 / 2)
    assert y == 396


def _stamp_origin(page) -> tuple[float, float]:
    content = page.get_contents().get_data().decode("latin-1")
    match = re.search(r"([-\d.]+) ([-\d.]+) Tm", content)
    assert match, content
    return float(match.group(1)), float(match.group(2))


def test_watermark_every_page_uses_its_own_size():
    data = build_pdf(
        pages=(b"BT /F1 12 Tf 72 700 Td (Page one) Tj ET", b"BT /F1 12 Tf 36 200 Td (Page two) Tj ET"),
        sizes=[(612, 792), (300, 400)],
    )
    reader = PdfReader(io.BytesIO(watermark_pdf(data, "DRAFT")))
    width = text_width("DRAFT")

    x, y = _stamp_origin(reader.pages[0])
    assert x == pytest.approx(612 / 2 - width / 2, abs=1e-3)
    assert y == pytest.approx(396, abs=1e-3)

    x, y = _stamp_origin(reader.pages[1])
    assert x == pytest.approx(300 / 2 - width / 2, abs=1e-3)
    assert y == pytest.approx(200, abs=1e-3)


def test_watermark_keeps_existing_content_and_adds_resources():
    data = build_pdf()
    reader = PdfReader(io.BytesIO(watermark_pdf(data, "CONFIDENTIAL")))
    page = reader.pages[0]

    assert "Hello World" in page.extract_text()
    fonts = page["/Resources"]["/Font"]
    assert "/F1" in fonts
    assert fonts["/WmF0"]["/BaseFont"] == "/Helvetica"
    assert float(page["/Resources"]["/ExtGState"]["/WmGS0"]["/ca"]) == pytest.approx(0.3)


def test_watermark_page_without_content():
    reader = PdfReader(io.BytesIO(watermark_pdf(MINIMAL_PDF, "DRAFT")))
    assert "DRAFT" in reader.pages[0].get_contents().get_data().decode("latin-1")


def test_watermark_escapes_parentheses():
    reader = PdfReader(io.BytesIO(watermark_pdf(build_pdf(), "A (copy)")))
    assert "A \\(copy\\)" in reader.pages[0].get_contents().get_data().decode("latin-1")


@pytest.mark.parametrize("text", ["", "café"])
def test_watermark_rejects_bad_text(text):
    with pytest.raises(ValueError):
        watermark_pdf(build_pdf(), text)


def test_compress_pdf_keeps_content():
    data = build_pdf(pages=(
        b"BT /F1 12 Tf 72 700 Td (Same text) Tj ET",
        b"BT /F1 12 Tf 72 700 Td (Same text) Tj ET",
    ))
    compressed = compress_pdf(data)
    reader = PdfReader(io.BytesIO(compressed))
    assert len(reader.pages) == 2
    assert "Same text" in extract_text(compressed)
    assert reader.pages[0]["/Contents"]["/Filter"] == "/FlateDecode"


def test_convert_to_pdfa_adds_output_intent():
    handle = load_document(convert_to_pdfa(build_pdf()))
    intents = handle.catalog_get("/OutputIntents")
    assert len(intents) == 1
    intent = intents[0].get_object()
    assert intent["/Type"] == "/OutputIntent"
    assert intent["/S"] == "/GTS_PDFA1"
    assert intent["/OutputConditionIdentifier"] == "sRGB IEC61966-2.1"
    assert intent["/RegistryName"] == "http://www.color.org"


def test_convert_to_pdfa_is_idempotent():
    twice = convert_to_pdfa(convert_to_pdfa(build_pdf()))
    assert len(load_document(twice).catalog_get("/OutputIntents")) == 1


def test_template_patch():
    patch = template_patch("hr-verified")
    assert patch["author"] == "HR Department"
    assert patch["keywords"] == "Verified, Internal, HR Review, Cleared"

    patch["author"] = "changed"
    assert template_patch("hr-verified")["author"] == "HR Department"


def test_template_patch_unknown():
    with pytest.raises(KeyError, match="no-such-template"):
        template_patch("no-such-template")


def test_template_applies_as_patch():
    metadata = extract_metadata(modify_metadata(_original(), template_patch("ats-optimized")))
    assert metadata["producer"] == "Microsoft Word"
    assert metadata["keywords"] == ["Resume", "CV", "Job Application", "Candidate"]
    assert metadata["title"] == "Original Title"


@pytest.mark.parametrize("operation, expected", [
    ("modify", "modified_cv.pdf"),
    ("sanitize", "sanitized_cv.pdf"),
    ("watermark", "watermarked_cv.pdf"),
    ("compress", "compressed_cv.pdf"),
    ("pdfa", "pdfa_cv.pdf"),
])
def test_output_filename(operation, expected):
    assert output_filename(operation, "cv.pdf") == expected


def test_watermark_shares_one_font_object():
    data = build_pdf(pages=(b"BT /F1 12 Tf 72 700 Td (One) Tj ET", b"BT /F1 12 Tf 72 700 Td (Two) Tj ET"))
    reader = PdfReader(io.BytesIO(watermark_pdf(data, "DRAFT")))
    refs = [page["/Resources"]["/Font"].raw_get("/WmF0") for page in reader.pages]
    assert refs[0].idnum == refs[1].idnum


@pytest.mark.parametrize("transform", [
    lambda data: watermark_pdf(data, "DRAFT"),
    compress_pdf,
    convert_to_pdfa,
])
def test_transforms_keep_xmp(transform):
    data = build_pdf(info={"/Title": "Old Title"}, xmp=XMP_PACKET)
    packet = load_document(transform(data)).catalog_get("/Metadata").get_data()
    assert b"pdfaid:part" in packet
    assert b"GPSLatitude" in packet
    assert b"Old Title" in packet
