"""
AI-based content classification for the veille pipeline.

Turns raw page content into candidate regulatory documents. The prompt
variant depends on what kind of URL the content came from.
"""
from typing import List, Optional

from loguru import logger

from clients.ai_client import AIClient
from crawler.extractors.content_utils import file_name_from_url, is_binary_content
from crawler.utils.url_classifier import URL_ARCHIVE, URL_DOWNLOAD, classify, has_file_extension
from models.veille_models import DocumentAnalysis, DocumentCandidate, Site
from utils.llm.response_parser import Empty, parse_response

SITE_ANALYSIS_MAX_TOKENS = 8192
DOCUMENT_ANALYSIS_MAX_TOKENS = 1024
DOCUMENT_ANALYSIS_MAX_CHARS = 4000
# Download links with less text than this get the "describe the link" prompt
SHORT_DOWNLOAD_CONTENT = 200


def build_download_prompt(site: Site, page_url: str) -> str:
    file_name = file_name_from_url(page_url)
    return f"""Ce lien pointe vers un fichier téléchargeable: {page_url}
Nom: {file_name}
Site: {site.name}

Crée une entrée basée sur ce lien. JSON uniquement:
{{"documents":[{{"title":"Titre descriptif","summary":"Description probable","date":null,"category":"tarif|regulation|publication|other","importance":"haute|moyenne|basse","hs_codes":[],"tariff_changes":[],"content":"Téléchargement: {page_url}","url":"{page_url}","confidence":0.7,"source_type":"document"}}]}}"""


def build_archive_prompt(content: str, site: Site, page_url: str) -> str:
    return f"""Page d'archives du site {site.name}.
URL: {page_url}

Contenu:
{content}

Extrait TOUS les documents/fichiers ET le contenu textuel pertinent (articles, réglementations, annonces). JSON:
{{"documents":[{{"title":"Nom","summary":"Description","date":"YYYY-MM-DD ou null","category":"tarif|regulation|publication|archive|article|annonce|other","importance":"haute|moyenne|basse","hs_codes":[],"tariff_changes":[],"content":"Contenu extrait ou description","url":"URL si dispo","confidence":0.8,"source_type":"document|page_content"}}]}}"""


def build_general_prompt(content: str, site: Site, page_url: str) -> str:
    return f"""Tu es un expert en réglementation douanière. Analyse ce contenu web du site officiel "{site.name}".
URL: {page_url}
Longueur: {len(content)} caractères

Contenu:
{content}

=== INSTRUCTIONS ===
Tu dois extraire DEUX types d'informations:

1. **DOCUMENTS TÉLÉCHARGEABLES**: PDF, circulaires, notes officielles référencées sur la page
2. **CONTENU TEXTUEL DE LA PAGE**: Articles, actualités, réglementations, annonces, informations importantes qui sont DIRECTEMENT sur la page (pas dans un document externe)

Pour le contenu textuel, extrait:
- Les articles de presse/actualités douanières
- Les annonces officielles (changements de taux, nouvelles procédures)
- Les textes de loi/réglementation affichés in-page
- Les tableaux de tarifs/droits de douane
- Les guides/instructions affichés directement
- Les FAQ importantes

=== FORMAT JSON ===
{{"documents":[{{
  "title": "Titre clair et descriptif",
  "summary": "Résumé 2-3 phrases du contenu",
  "date": "YYYY-MM-DD ou null",
  "category": "circulaire|note|tarif|regulation|article|annonce|guide|faq|tableau|other",
  "importance": "haute|moyenne|basse",
  "hs_codes": ["codes SH mentionnés"],
  "tariff_changes": [{{"hs_code":"","description":"","old_rate":"","new_rate":""}}],
  "content": "EXTRAIT COMPLET du texte pertinent (max 5000 caractères) - pour le contenu in-page, copier le texte entier",
  "url": "URL du document ou de la page",
  "confidence": 0.85,
  "source_type": "document|page_content|table|article|announcement"
}}]}}

IMPORTANT:
- Pour le contenu de page (source_type: page_content/article/announcement), copie le texte complet dans "content"
- N'ignore pas les informations affichées directement sur la page même s'il n'y a pas de PDF
- Si la page contient un tableau de tarifs, extrait-le entièrement avec source_type: "table"
- Si aucun contenu pertinent: {{"documents":[]}}"""


def build_document_prompt(content: str, title: str) -> str:
    return f"""Analyse ce document douanier: "{title}"

Contenu:
{content[:DOCUMENT_ANALYSIS_MAX_CHARS]}

JSON uniquement:
{{"summary":"Résumé 2-3 phrases","importance":"haute|moyenne|basse","hs_codes":["codes SH"],"tariff_changes":[{{"hs_code":"","description":"","change":""}}],"confidence":0.8}}"""


class ContentClassifier:
    """Extracts candidate documents from page content with the AI vendor."""

    def __init__(self, ai_client: AIClient, max_content_length: int = 15000):
        self.ai_client = ai_client
        self.max_content_length = max_content_length

    @staticmethod
    def is_binary(content: str) -> bool:
        return is_binary_content(content)

    def build_site_prompt(self, content: str, site: Site, page_url: str) -> str:
        """Pick the prompt variant for a page based on its URL class."""
        url_type = classify(page_url)
        is_download = url_type == URL_DOWNLOAD or has_file_extension(page_url)

        if is_download and len(content) < SHORT_DOWNLOAD_CONTENT:
            return build_download_prompt(site, page_url)

        truncated = content[:self.max_content_length]
        if url_type == URL_ARCHIVE:
            return build_archive_prompt(truncated, site, page_url)
        return build_general_prompt(truncated, site, page_url)

    async def analyze_site_content(self, content: str, site: Site, page_url: str) -> List[DocumentCandidate]:
        """Ask the AI vendor for every document and relevant passage on a page.

        Returns:
            Candidate documents; empty when the vendor is unavailable or the
            response cannot be parsed
        """
        prompt = self.build_site_prompt(content, site, page_url)
        text = await self.ai_client.complete(prompt, max_tokens=SITE_ANALYSIS_MAX_TOKENS,
                                             request_type="site_analysis")
        if text is None:
            return []

        parsed = parse_response(text)
        if isinstance(parsed, Empty):
            logger.warning(f"[{site.name}] No candidates parsed for {page_url}: {parsed.reason}")
            return []

        candidates = []
        for raw in parsed.documents:
            try:
                candidates.append(DocumentCandidate.model_validate(raw))
            except ValueError as e:
                logger.debug(f"[{site.name}] Dropping malformed candidate from {page_url}: {e}")
        return candidates

    async def analyze_one(self, content: str, title: str) -> Optional[DocumentAnalysis]:
        """Summarize a single search result."""
        text = await self.ai_client.complete(build_document_prompt(content, title),
                                             max_tokens=DOCUMENT_ANALYSIS_MAX_TOKENS,
                                             request_type="document_analysis")
        if text is None:
            return None

        parsed = parse_response(text)
        if isinstance(parsed, Empty):
            return None
        try:
            return DocumentAnalysis.model_validate(parsed.data)
        except ValueError as e:
            logger.debug(f"Dropping malformed analysis for '{title[:60]}': {e}")
            return None
