"""Heuristic tables used by the analyzers and transformers.

Everything here is plain data so a deployment can swap a table (another
locale's stop-words, a longer typo list) without touching control flow.
"""

# Producer substrings associated with consumer-grade online converters.
SUSPICIOUS_PRODUCERS: list[str] = [
    "ilovepdf",
    "smallpdf",
    "phantompdf",
    "gpl ghostscript",
]

# Weights added to the risk score for each triggered signal.
RISK_WEIGHTS: dict[str, int] = {
    "missing_creation_date": 20,
    "suspicious_producer": 30,
    "date_anomaly": 10,
    "missing_author": 10,
    "javascript": 50,
    "open_action_js": 50,
    "embedded_files": 40,
}

RISK_SCORE_MAX = 100
DATE_ANOMALY_DAYS = 365

# (upper bound exclusive, level)
RISK_LEVELS: list[tuple[int, str]] = [
    (30, "low"),
    (70, "medium"),
]

GPS_TAGS: list[str] = ["exif:GPSLatitude", "GPSMapDatum"]
CAMERA_TAGS: list[str] = ["exif:Make", "exif:Model"]

SUSPICIOUS_LINK_MARKERS: list[str] = ["bit.ly", "tinyurl", "http:"]

COMMON_TYPOS: list[str] = [
    "teh",
    "recieve",
    "seperate",
    "occured",
    "definately",
    "experiance",
    "manger",
    "calender",
]

# Comparison order matters: ties resolve to the first language.
STOP_WORDS: dict[str, list[str]] = {
    "en": ["the", "and", "to", "of", "in", "is", "for", "experience", "skills"],
    "fr": ["le", "la", "et", "de", "en", "est", "pour", "experience", "competences"],
    "es": ["el", "la", "y", "de", "en", "es", "para", "experiencia", "habilidades"],
}

DEFAULT_DECLARED_LANGUAGE = "en-US"

# Grey-level fill/stroke operators that usually mean very light text.
LOW_CONTRAST_TOKENS: list[str] = ["0.9 g", "0.9 G"]
LOW_CONTRAST_RATIO = 2.1

# Minimum distance between text and the page edge, in points (0.5 in).
PRINT_MARGIN = 36.0

ACCESSIBILITY_PENALTY = 20

HEATMAP_SIZE = 20
HEATMAP_MIN_LENGTH = 4
ATS_MIN_LENGTH = 4
ATS_MISSING_LIMIT = 10

WATERMARK_FONT = "Helvetica"
WATERMARK_FONT_SIZE = 50
WATERMARK_GRAY = 0.7
WATERMARK_OPACITY = 0.3
WATERMARK_ROTATION = 45

# Helvetica advance widths (1/1000 em) for printable ASCII, from the
# standard Adobe font metrics.
HELVETICA_WIDTHS: dict[str, int] = dict(zip(
    " !\"#$%&'()*+,-./0123456789:;<=>?@"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ[\\]^_`"
    "abcdefghijklmnopqrstuvwxyz{|}~",
    [
        278, 278, 355, 556, 556, 889, 667, 191, 333, 333, 389, 584, 278, 333,
        278, 278, 556, 556, 556, 556, 556, 556, 556, 556, 556, 556, 278, 278,
        584, 584, 584, 556, 1015,
        667, 667, 722, 722, 667, 611, 778, 722, 278, 500, 667, 556, 833, 722,
        778, 667, 778, 722, 667, 611, 722, 667, 944, 667, 667, 611, 278, 278,
        278, 469, 556, 333,
        556, 556, 500, 556, 556, 278, 556, 556, 222, 222, 500, 222, 833, 556,
        556, 556, 556, 333, 500, 278, 556, 500, 722, 500, 500, 500, 334, 260,
        334, 584,
    ],
))

SRGB_OUTPUT_INTENT: dict[str, str] = {
    "S": "/GTS_PDFA1",
    "OutputConditionIdentifier": "sRGB IEC61966-2.1",
    "Info": "sRGB IEC61966-2.1",
    "RegistryName": "http://www.color.org",
}

OUTPUT_PREFIXES: dict[str, str] = {
    "modify": "modified",
    "sanitize": "sanitized",
    "watermark": "watermarked",
    "compress": "compressed",
    "pdfa": "pdfa",
}

REPORT_FILENAME = "pdf_analysis_report.json"

METADATA_TEMPLATES: dict[str, dict] = {
    "ats-optimized": {
        "name": "ATS Optimized",
        "description": "Clean metadata optimized for Applicant Tracking Systems.",
        "category": "job-seeker",
        "fields": {
            "producer": "Microsoft Word",
            "creator": "Microsoft Word",
            "keywords": "Resume, CV, Job Application, Candidate",
            "subject": "Resume",
        },
    },
    "standard-resume": {
        "name": "Standard Resume",
        "description": "Professional metadata for general use.",
        "category": "job-seeker",
        "fields": {
            "producer": "Adobe Acrobat Pro",
            "creator": "Adobe Acrobat Pro",
            "keywords": "Resume, Professional, Experience",
            "subject": "Professional Resume",
        },
    },
    "federal-resume": {
        "name": "Federal Resume",
        "description": "Strict metadata for government applications.",
        "category": "job-seeker",
        "fields": {
            "producer": "USAJOBS Resume Builder",
            "keywords": "Federal, Government, GS-Level, Clearance",
            "subject": "Federal Employment Application",
        },
    },
    "creative-portfolio": {
        "name": "Creative Portfolio",
        "description": "Metadata for design portfolios.",
        "category": "creative",
        "fields": {
            "producer": "Adobe InDesign 2024",
            "creator": "Adobe InDesign 2024",
            "keywords": "Portfolio, Design, UX/UI, Creative, Case Studies",
            "subject": "Design Portfolio",
        },
    },
    "academic-cv": {
        "name": "Academic CV",
        "description": "For research and academic positions.",
        "category": "academic",
        "fields": {
            "producer": "LaTeX with hyperref",
            "creator": "LaTeX",
            "keywords": "Curriculum Vitae, Research, Publications, Academic",
            "subject": "Academic Curriculum Vitae",
        },
    },
    "hr-verified": {
        "name": "HR Verified",
        "description": "Mark document as verified by HR department.",
        "category": "hr",
        "fields": {
            "keywords": "Verified, Internal, HR Review, Cleared",
            "subject": "Candidate Verification Document",
            "author": "HR Department",
        },
    },
    "background-check": {
        "name": "Background Cleared",
        "description": "Status update for background checks.",
        "category": "hr",
        "fields": {
            "keywords": "Background Check, Cleared, Verified, Safe",
            "subject": "Background Check Report",
        },
    },
    "internal-review": {
        "name": "Internal Review",
        "description": "Flag document for internal team review.",
        "category": "hr",
        "fields": {
            "keywords": "Confidential, Internal Use Only, Review Pending",
            "subject": "Internal Review Copy",
        },
    },
    "confidential-nda": {
        "name": "Confidential NDA",
        "description": "Strict confidentiality markers.",
        "category": "legal",
        "fields": {
            "keywords": "NDA, Confidential, Legal, Non-Disclosure",
            "subject": "Non-Disclosure Agreement",
            "author": "Legal Department",
        },
    },
    "public-release": {
        "name": "Public Release",
        "description": "Cleared for public distribution.",
        "category": "legal",
        "fields": {
            "keywords": "Public, Distribution, Cleared, Press Release",
            "subject": "Public Release Document",
        },
    },
}
