"""Text and identifier normalization utilities."""

import re
from typing import Optional


def normalize_title(title: str) -> str:
    """Normalize a title for comparison."""
    if not title:
        return ""
    title = title.lower()
    title = re.sub(r'[^\w\s]', '', title)
    title = ' '.join(title.split())
    return title


def clean_doi(doi: Optional[str]) -> Optional[str]:
    """Normalize DOI to canonical form."""
    if not doi:
        return None
    doi = doi.lower().strip()
    prefixes = [
        "https://doi.org/",
        "http://doi.org/",
        "https://dx.doi.org/",
        "http://dx.doi.org/",
        "doi:",
    ]
    for prefix in prefixes:
        if doi.startswith(prefix):
            doi = doi[len(prefix):]
    return doi.strip() or None


def clean_pmid(pmid: Optional[str]) -> Optional[str]:
    """Keep only the digits of a PubMed identifier."""
    if not pmid:
        return None
    digits = re.sub(r'\D', '', str(pmid))
    return digits or None


def title_words(normalized_title: str, min_length: int = 3) -> set:
    """Word set of a normalized title, ignoring short words."""
    return {w for w in normalized_title.split(' ') if len(w) >= min_length}
