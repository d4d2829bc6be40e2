"""Tests for ATS matching and quality heuristics."""

import pytest

from conftest import MINIMAL_PDF, build_pdf
from pdftrust.document import load_document
from pdftrust.quality import (
    accessibility,
    analyze_ats,
    analyze_quality,
    contrast_issues,
    detect_language,
    keyword_heatmap,
    language_mismatch,
    margin_issues,
    spell_check,
    tokenize,
)


def test_tokenize():
    assert tokenize("Hello, World! It's 2024.") == ["hello", "world", "it", "s", "2024"]


def test_ats_example():
    report = analyze_ats(
        "Experienced in PYTHON, daily.",
        "Senior Software Engineer with Python experience",
    )
    assert report["found_keywords"] == ["python", "experience"]
    assert report["missing_keywords"] == ["senior", "software", "engineer", "with"]
    assert report["score"] == 33


def test_ats_only_python_found():
    report = analyze_ats("I write python daily", "Senior Software Engineer with Python experience")
    assert report["found_keywords"] == ["python"]
    for keyword in ("senior", "software", "engineer", "experience"):
        assert keyword in report["missing_keywords"]
    # 1 of 6 keywords
    assert report["score"] == 17


def test_ats_punctuation_and_case_insensitive():
    report = analyze_ats("Kubernetes; DOCKER!", "docker, kubernetes.")
    assert report["found_keywords"] == ["docker", "kubernetes"]
    assert report["score"] == 100


def test_ats_rounds_half_up():
    report = analyze_ats("alpha", "alpha bravo")
    assert report["score"] == 50
    report = analyze_ats("aaaa", "aaaa bbbb cccc dddd eeee ffff gggg hhhh")
    # 12.5 rounds up, unlike round()
    assert report["score"] == 13


def test_ats_empty_job_description():
    assert analyze_ats("anything", "a an the") == {
        "score": 0,
        "found_keywords": [],
        "missing_keywords": [],
    }


def test_ats_missing_list_is_truncated():
    job = " ".join(f"keyword{n:02d}" for n in range(15))
    report = analyze_ats("nothing relevant", job)
    assert len(report["missing_keywords"]) == 10
    assert report["missing_keywords"][0] == "keyword00"
    assert report["score"] == 0


def test_keyword_heatmap():
    words = tokenize("python java python go rust python java the")
    heatmap = keyword_heatmap(words)
    assert heatmap[0] == {"word": "python", "count": 3, "density": 3 / 8}
    assert heatmap[1]["word"] == "java"
    assert heatmap[2]["word"] == "rust"
    assert all(len(entry["word"]) > 3 for entry in heatmap)


def test_keyword_heatmap_top_twenty():
    words = [f"word{n:02d}" for n in range(30)]
    assert len(keyword_heatmap(words)) == 20


def test_keyword_heatmap_empty():
    assert keyword_heatmap([]) == []


def test_spell_check_keeps_order_and_duplicates():
    words = tokenize("I recieve teh mail, teh end. Seperate.")
    assert spell_check(words) == ["recieve", "teh", "teh", "seperate"]


def test_detect_language():
    assert detect_language(tokenize("the skills and experience of the team")) == "en"
    assert detect_language(tokenize("le chef est pour la competences et le projet")) == "fr"
    assert detect_language(tokenize("el equipo y la experiencia para el proyecto")) == "es"


def test_detect_language_tie_defaults_to_english():
    # "la", "de", "en" are shared between French and Spanish
    assert detect_language(["la", "de", "en"]) == "en"
    assert detect_language([]) == "en"


def test_language_mismatch():
    words = tokenize("the skills and experience")
    assert language_mismatch(words, "fr-FR")["is_mismatch"] is True
    assert language_mismatch(words, "EN-gb")["is_mismatch"] is False

    report = language_mismatch(words, None)
    assert report == {"declared": "en-US", "detected": "en", "is_mismatch": False}


def test_accessibility_bare_document():
    report = accessibility(has_title=False, has_language=False, is_tagged=False)
    assert report["score"] == 40
    assert report["issues"] == [
        "Missing Document Title",
        "Missing Language Definition",
        "Document is not Tagged (Required for screen readers, usually optional for printing)",
    ]


def test_accessibility_complete():
    report = accessibility(has_title=True, has_language=True, is_tagged=True)
    assert report["score"] == 100
    assert report["issues"] == []


def test_margin_issues_text_near_edge():
    handle = load_document(build_pdf(pages=(b"BT /F1 12 Tf 10 700 Td (Too close) Tj ET",)))
    issues = margin_issues(handle)
    assert len(issues) == 1
    assert issues[0]["page"] == 1
    assert "left" in issues[0]["issue"]


def test_margin_issues_inside_margins():
    handle = load_document(build_pdf(pages=(b"BT /F1 12 Tf 72 700 Td (Fine) Tj ET",)))
    assert margin_issues(handle) == []


def test_margin_issues_blank_page():
    assert margin_issues(load_document(MINIMAL_PDF)) == []


def test_contrast_issue_names_first_page():
    data = build_pdf(pages=(
        b"BT /F1 12 Tf 72 700 Td (Dark) Tj ET",
        b"0.9 g BT /F1 12 Tf 72 700 Td (Faint) Tj ET",
        b"0.9 G BT /F1 12 Tf 72 700 Td (Faint) Tj ET",
    ))
    issues = contrast_issues(load_document(data))
    assert issues == [{
        "page": 2,
        "text": "Potential low contrast text detected (light gray)",
        "contrast_ratio": 2.1,
    }]


def test_contrast_issues_clean():
    assert contrast_issues(load_document(build_pdf())) == []


def test_analyze_quality_bare_document():
    report = analyze_quality(MINIMAL_PDF)
    assert report["accessibility"]["score"] == 40
    assert len(report["accessibility"]["issues"]) == 3
    assert report["accessibility"]["has_language"] is False
    assert report["language_mismatch"]["declared"] == "en-US"
    assert report["heatmap"] == []
    assert report["spelling_errors"] == []
    assert report["margin_issues"] == []
    assert report["contrast_issues"] == []


def test_analyze_quality_accessible_document():
    data = build_pdf(
        pages=(b"BT /F1 12 Tf 72 700 Td (le projet est pour la equipe et le chef) Tj ET",),
        info={"/Title": "CV"},
        lang="fr-FR",
        mark_info=True,
    )
    report = analyze_quality(data)
    assert report["accessibility"] == {
        "has_title": True,
        "has_language": True,
        "is_tagged": True,
        "score": 100,
        "issues": [],
    }
    assert report["language_mismatch"] == {"declared": "fr-FR", "detected": "fr", "is_mismatch": False}


def test_analyze_quality_path(pdf_file):
    assert analyze_quality(pdf_file)["accessibility"]["score"] == 40


@pytest.mark.parametrize("title", ["", "   "])
def test_blank_title_counts_as_missing(title):
    report = analyze_quality(build_pdf(info={"/Title": title}))
    assert report["accessibility"]["has_title"] is False
