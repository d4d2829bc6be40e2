"""ATS matching and document quality heuristics.

None of these checks is a conformance test. The spell-check only knows a
short list of common typos, language detection counts stop-words, and the
contrast check looks for light-grey operators in page content streams.
"""

import logging
import math
import re
from collections import Counter
from typing import TypedDict

from pypdf import PageObject

from .document import DocumentHandle, PdfSource, extract_text, load_document, read_source
from .tables import (
    ACCESSIBILITY_PENALTY,
    ATS_MIN_LENGTH,
    ATS_MISSING_LIMIT,
    COMMON_TYPOS,
    DEFAULT_DECLARED_LANGUAGE,
    HEATMAP_MIN_LENGTH,
    HEATMAP_SIZE,
    LOW_CONTRAST_RATIO,
    LOW_CONTRAST_TOKENS,
    PRINT_MARGIN,
    STOP_WORDS,
)

logger = logging.getLogger("pdftrust")


class AtsReport(TypedDict):
    """Job description keyword coverage of a resume."""

    score: int
    found_keywords: list[str]
    missing_keywords: list[str]


class HeatmapEntry(TypedDict):
    word: str
    count: int
    density: float


class LanguageReport(TypedDict):
    declared: str
    detected: str
    is_mismatch: bool


class MarginIssue(TypedDict):
    page: int
    issue: str


class AccessibilityReport(TypedDict):
    has_title: bool
    has_language: bool
    is_tagged: bool
    score: int
    issues: list[str]


class ContrastIssue(TypedDict):
    page: int
    text: str
    contrast_ratio: float


class QualityReport(TypedDict):
    """Combined quality and accessibility findings for one document."""

    heatmap: list[HeatmapEntry]
    spelling_errors: list[str]
    language_mismatch: LanguageReport
    margin_issues: list[MarginIssue]
    accessibility: AccessibilityReport
    contrast_issues: list[ContrastIssue]


_WORD = re.compile(r"\b\w+\b")
_PUNCTUATION = re.compile(r"[^\w\s]")


def tokenize(text: str) -> list[str]:
    """Lower-cased word tokens in text order."""
    return _WORD.findall(text.lower())


def _normalize(text: str) -> str:
    return _PUNCTUATION.sub("", text.lower())


def analyze_ats(text: str, job_description: str) -> AtsReport:
    """Score how many job description keywords a resume mentions.

    Keywords are the distinct words of at least four characters in the job
    description. A keyword counts as found when it appears anywhere in the
    resume text, so "python" matches "pythonic".

    Args:
        text: Extracted resume text.
        job_description: Free-form job posting.

    Returns:
        AtsReport with an integer score from 0 to 100. The missing list is
        cut to the first ten keywords.
    """
    resume = _normalize(text)
    keywords = list(dict.fromkeys(
        word for word in _normalize(job_description).split() if len(word) >= ATS_MIN_LENGTH
    ))

    found = [keyword for keyword in keywords if keyword in resume]
    missing = [keyword for keyword in keywords if keyword not in resume]

    score = math.floor(len(found) / len(keywords) * 100 + 0.5) if keywords else 0

    return AtsReport(
        score=score,
        found_keywords=found,
        missing_keywords=missing[:ATS_MISSING_LIMIT],
    )


def keyword_heatmap(words: list[str]) -> list[HeatmapEntry]:
    """Most frequent long words with their share of all tokens."""
    counts = Counter(word for word in words if len(word) >= HEATMAP_MIN_LENGTH)
    # sorted() is stable, so equal counts keep first-seen order
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [
        HeatmapEntry(word=word, count=count, density=count / len(words))
        for word, count in ranked[:HEATMAP_SIZE]
    ]


def spell_check(words: list[str]) -> list[str]:
    return [word for word in words if word in COMMON_TYPOS]


def detect_language(words: list[str]) -> str:
    """Guess the language code from stop-word counts.

    A language other than the first table entry wins only with a strictly
    higher count than every other language.
    """
    languages = list(STOP_WORDS)
    counts = {
        language: sum(1 for word in words if word in stop_words)
        for language, stop_words in STOP_WORDS.items()
    }
    for language in languages[1:]:
        if all(counts[language] > counts[other] for other in languages if other != language):
            return language
    return languages[0]


def language_mismatch(words: list[str], declared: str | None) -> LanguageReport:
    declared = declared or DEFAULT_DECLARED_LANGUAGE
    detected = detect_language(words)
    return LanguageReport(
        declared=declared,
        detected=detected,
        is_mismatch=not declared.lower().startswith(detected),
    )


def _text_origins(page: PageObject) -> list[tuple[float, float]]:
    origins: list[tuple[float, float]] = []

    def visitor(text, cm, tm, font_dict, font_size):
        if text.strip():
            origins.append((
                cm[0] * tm[4] + cm[2] * tm[5] + cm[4],
                cm[1] * tm[4] + cm[3] * tm[5] + cm[5],
            ))

    page.extract_text(visitor_text=visitor)
    return origins


def margin_issues(handle: DocumentHandle) -> list[MarginIssue]:
    """Find pages whose text starts too close to a media box edge.

    Only text run origins are checked; a run that starts inside the margin
    but extends past the right edge is not measured.
    """
    issues: list[MarginIssue] = []

    for number, page in enumerate(handle.pages, start=1):
        try:
            origins = _text_origins(page)
            box = page.mediabox
            left, bottom = float(box.left), float(box.bottom)
            right, top = float(box.right), float(box.top)
        except Exception as exc:
            logger.warning("Margin check failed on page %d: %s", number, exc)
            continue

        edges = []
        if any(x - left < PRINT_MARGIN for x, _ in origins):
            edges.append("left")
        if any(right - x < PRINT_MARGIN for x, _ in origins):
            edges.append("right")
        if any(top - y < PRINT_MARGIN for _, y in origins):
            edges.append("top")
        if any(y - bottom < PRINT_MARGIN for _, y in origins):
            edges.append("bottom")

        if edges:
            issues.append(MarginIssue(
                page=number,
                issue=f"Text starts within 0.5 in of the {', '.join(edges)} edge",
            ))

    return issues


def accessibility(has_title: bool, has_language: bool, is_tagged: bool) -> AccessibilityReport:
    issues = []
    if not has_title:
        issues.append("Missing Document Title")
    if not has_language:
        issues.append("Missing Language Definition")
    if not is_tagged:
        issues.append(
            "Document is not Tagged (Required for screen readers, usually optional for printing)"
        )

    return AccessibilityReport(
        has_title=has_title,
        has_language=has_language,
        is_tagged=is_tagged,
        score=max(0, 100 - ACCESSIBILITY_PENALTY * len(issues)),
        issues=issues,
    )


def contrast_issues(handle: DocumentHandle) -> list[ContrastIssue]:
    """Flag the first page whose content sets a light-grey colour.

    This is a token match on decoded content streams, so operators written
    with other spacing or precision are missed.
    """
    try:
        for number, page in enumerate(handle.pages, start=1):
            content = page.get_contents()
            if content is None:
                continue
            data = content.get_data().decode("latin-1")
            if any(token in data for token in LOW_CONTRAST_TOKENS):
                return [ContrastIssue(
                    page=number,
                    text="Potential low contrast text detected (light gray)",
                    contrast_ratio=LOW_CONTRAST_RATIO,
                )]
    except Exception as exc:
        logger.warning("Contrast scan failed: %s", exc)
    return []


def analyze_quality(source: PdfSource) -> QualityReport:
    """Run every quality heuristic over one document.

    Args:
        source: Raw bytes or a path to the PDF file.

    Returns:
        QualityReport combining the keyword heatmap, spelling, language,
        margin, accessibility and contrast findings.
    """
    data = read_source(source)
    words = tokenize(extract_text(data))
    handle = load_document(data)

    title = handle.info_text("/Title")
    lang = handle.catalog_get("/Lang")
    declared = str(lang).strip() if lang is not None else ""

    return QualityReport(
        heatmap=keyword_heatmap(words),
        spelling_errors=spell_check(words),
        language_mismatch=language_mismatch(words, declared),
        margin_issues=margin_issues(handle),
        accessibility=accessibility(
            has_title=bool(title and title.strip()),
            has_language=bool(declared),
            is_tagged=handle.catalog_has("/MarkInfo"),
        ),
        contrast_issues=contrast_issues(handle),
    )
