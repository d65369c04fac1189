"""
URL classification and filtering for site discovery.

Customs portals mix downloadable files, archive listings and regulatory
pages with assets and login screens. Legacy JSF portals also hide real
page URLs inside fragments (``page#https://host/x.jsf``) or malformed
double-slash paths (``accords//acceuilAccords.jsf``).
"""
import re
from typing import List, Pattern, Sequence
from urllib.parse import urlsplit

URL_DOWNLOAD = "download"
URL_ARCHIVE = "archive"
URL_CONTENT = "content"
URL_OTHER = "other"

_PRIORITY = {URL_DOWNLOAD: 0, URL_ARCHIVE: 1, URL_CONTENT: 2, URL_OTHER: 3}


def _compile(patterns: Sequence[str]) -> List[Pattern[str]]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


DOWNLOAD_PATTERNS = _compile([
    r"\.pdf$", r"\.xlsx?$", r"\.docx?$", r"\.csv$", r"\.zip$", r"\.rar$",
    r"download", r"t[ée]l[ée]charger", r"t[ée]l[ée]chargement",
    r"attachment", r"fichier", r"file",
])

CONTENT_PATTERNS = _compile([
    r"circulaire", r"note", r"decision", r"arrete", r"decret", r"loi",
    r"tarif", r"douane", r"reglementation", r"regulation",
    r"actualite", r"news", r"communique", r"bulletin",
    r"document", r"publication", r"revision", r"modification",
    r"import", r"export", r"customs", r"hts", r"harmonized",
    r"legislation", r"law", r"code", r"annonce", r"announcement",
    r"accord", r"convention", r"traite", r"protocole",
])

ARCHIVE_PATTERNS = _compile([
    r"archive", r"release", r"version", r"revision", r"historique",
    r"past", r"previous", r"ancien",
])

EXCLUDE_PATTERNS = _compile([
    r"\.(jpg|jpeg|png|gif|svg|ico|webp|mp4|mp3|wav|avi)$",
    r"\.(css|js|woff|woff2|ttf|eot)$",
    r"mailto:", r"tel:", r"javascript:",
    r"login|signin|signup|register|password|logout",
    r"facebook\.com|twitter\.com|linkedin\.com|youtube\.com|instagram\.com|(^|[/.])x\.com",
    r"/(share|like|follow|subscribe|comment)/?$",
])

# Dynamic (JSF-style) pages always count as content, even with a fragment.
DYNAMIC_PATTERNS = _compile([
    r"\.jsf", r"\.xhtml", r"\.faces",
    r"accords", r"conventions", r"recherche", r"circulaires",
])

_DOUBLE_SLASH_JSF = re.compile(r"(?<!:)//([^/]+\.jsf)", re.IGNORECASE)
_JSF_PATH = re.compile(r"/([^/#]+\.jsf[^#]*)", re.IGNORECASE)
_FILE_EXTENSION = re.compile(r"\.(pdf|xlsx?|docx?|csv|zip)$", re.IGNORECASE)


def _matches(url: str, patterns: Sequence[Pattern[str]]) -> bool:
    return any(p.search(url) for p in patterns)


def is_dynamic_page(url: str) -> bool:
    return _matches(url, DYNAMIC_PATTERNS)


def has_file_extension(url: str) -> bool:
    """Whether the URL path ends in a downloadable document extension."""
    return bool(_FILE_EXTENSION.search(url.split("?")[0].split("#")[0]))


def classify(url: str) -> str:
    """Categorize a URL as download, archive, content or other."""
    if is_dynamic_page(url):
        return URL_CONTENT
    if _matches(url, DOWNLOAD_PATTERNS):
        return URL_DOWNLOAD
    if _matches(url, ARCHIVE_PATTERNS):
        return URL_ARCHIVE
    if _matches(url, CONTENT_PATTERNS):
        return URL_CONTENT
    return URL_OTHER


def priority(url: str) -> int:
    """Sort key: downloads first, then archives, content, everything else."""
    return _PRIORITY[classify(url)]


def should_exclude(url: str) -> bool:
    """Whether a URL should never be scraped."""
    if is_dynamic_page(url):
        return False

    if "#" in url and "#http" not in url and "#/" not in url:
        fragment = url.split("#", 1)[1]
        if fragment and "/" not in fragment and "." not in fragment:
            return True

    return _matches(url, EXCLUDE_PATTERNS)


def strip_fragment(url: str) -> str:
    return url.split("#", 1)[0]


def extract_embedded_urls(url: str) -> List[str]:
    """Recover absolute URLs hidden in fragments or malformed JSF paths."""
    extracted: List[str] = []

    if "#http" in url:
        fragment = url.split("#", 1)[1]
        if fragment.startswith("http"):
            extracted.append(fragment)

    parts = urlsplit(url)
    if parts.scheme and parts.hostname:
        origin = f"{parts.scheme}://{parts.hostname}"
        location = url.split("#", 1)[0]

        double_slash = _DOUBLE_SLASH_JSF.search(location)
        if double_slash:
            jsf_page = double_slash.group(1)
            extracted.append(f"{origin}/{jsf_page}")
            extracted.append(f"{origin}/accords/{jsf_page}")

        path_and_query = location[len(origin):] if location.lower().startswith(origin.lower()) else parts.path
        jsf_path = _JSF_PATH.search(path_and_query)
        if jsf_path:
            normalized_path = re.sub(r"/{2,}", "/", path_and_query[:jsf_path.end()])
            extracted.append(f"{origin}{normalized_path}")

    seen = set()
    unique: List[str] = []
    for candidate in extracted:
        if candidate and candidate.startswith("http") and candidate not in seen:
            seen.add(candidate)
            unique.append(candidate)
    return unique
