"""
Deterministic extraction of regulatory citations from page content.

Runs independently of the AI step so a page still yields candidates when the
AI call is skipped, rate limited or returns nothing useful.
"""
import re
from typing import List, Optional

from models.veille_models import DocumentCandidate

CITATION_CONFIDENCE = 0.75
AGREEMENT_CONFIDENCE = 0.7

CIRCULAIRE_PATTERN = re.compile(
    r"Circulaire\s+n[°o]?\s*(\d+/\d+)\s+du\s+(\d{2}/\d{2}/\d{4})", re.IGNORECASE
)
NOTE_PATTERN = re.compile(
    r"Note\s+n[°o]?\s*(\d+/\d+)\s+du\s+(\d{2}/\d{2}/\d{4})", re.IGNORECASE
)
AGREEMENT_PATTERN = re.compile(
    r"(Convention|Accord|Trait[ée])\s+(commerciale?|de\s+libre[- ][ée]change|tarifaire)?\s*"
    r"(?:Maroc[o-]?)?(\w+)",
    re.IGNORECASE,
)

# Words that follow "Accord"/"Convention" without naming a partner country.
_NOT_A_COUNTRY = {
    "avec", "entre", "sur", "pour", "des", "les", "the", "and", "with", "relatif", "relative",
    "portant", "signé", "signe", "cadre", "international", "internationale",
}


def _iso_date(date_str: str) -> Optional[str]:
    parts = date_str.split("/")
    if len(parts) != 3:
        return None
    day, month, year = parts
    return f"{year}-{month}-{day}"


def _reference_candidates(
    pattern: re.Pattern, label: str, category: str, content: str, base_url: str
) -> List[DocumentCandidate]:
    candidates = []
    for match in pattern.finditer(content):
        reference, date_str = match.group(1), match.group(2)
        candidates.append(DocumentCandidate(
            title=f"{label} n° {reference} du {date_str}",
            summary=f"{label} douanière marocaine référence {reference}",
            date=_iso_date(date_str),
            category=category,
            importance="moyenne",
            content=f"Référence: {label} n° {reference}\nDate: {date_str}\nSource: {base_url}",
            url=base_url,
            confidence=CITATION_CONFIDENCE,
            source_type="document",
        ))
    return candidates


def extract_circulaire_references(content: str, base_url: str) -> List[DocumentCandidate]:
    """Circulaires and notes cited as "Circulaire n° 1234/56 du 01/02/2024"."""
    if not content:
        return []
    return (
        _reference_candidates(CIRCULAIRE_PATTERN, "Circulaire", "circulaire", content, base_url)
        + _reference_candidates(NOTE_PATTERN, "Note", "note", content, base_url)
    )


def extract_agreement_mentions(content: str, base_url: str) -> List[DocumentCandidate]:
    """Bilateral trade agreements, one candidate per partner country."""
    if not content:
        return []

    candidates = []
    found = set()
    for match in AGREEMENT_PATTERN.finditer(content):
        agreement_type = match.group(1)
        qualifier = (match.group(2) or "").strip()
        country = match.group(3)
        key = country.lower() if country else ""

        if len(key) <= 2 or key in found or key in _NOT_A_COUNTRY or key.isdigit():
            continue
        found.add(key)

        title = " ".join(part for part in (agreement_type, qualifier, f"Maroc-{country}") if part)
        candidates.append(DocumentCandidate(
            title=title,
            summary=f"Accord commercial entre le Maroc et {country}",
            category="regulation",
            importance="haute",
            content=f"{agreement_type} {qualifier} avec {country}\nSource: {base_url}".replace("  ", " "),
            url=base_url,
            confidence=AGREEMENT_CONFIDENCE,
            source_type="page_content",
        ))
    return candidates


def extract_regex_citations(content: str, base_url: str) -> List[DocumentCandidate]:
    """All deterministic candidates found in ``content``."""
    return extract_circulaire_references(content, base_url) + extract_agreement_mentions(content, base_url)
