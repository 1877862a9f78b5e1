"""Exact-key and fuzzy-title deduplication for bibliographic records."""

from typing import Dict, List, Optional, Tuple
from rapidfuzz import fuzz

from ..core.models import Record, DuplicateGroup, DedupStats, SourceCounts
from ..core.normalization import title_words
from ..utils.logging import get_logger

logger = get_logger(__name__)


def jaccard_similarity(a: str, b: str) -> float:
    """Jaccard similarity of the word sets of two normalized titles."""
    words_a = title_words(a)
    words_b = title_words(b)
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / len(words_a | words_b)


def ratio_similarity(a: str, b: str) -> float:
    """Normalized Indel similarity of two normalized titles."""
    if not a or not b:
        return 0.0
    return fuzz.ratio(a, b) / 100.0


SCORERS = {
    "jaccard": jaccard_similarity,
    "ratio": ratio_similarity,
}


class Deduplicator:
    """
    Single-pass deduplication using DOI, PMID and fuzzy title matching.

    Records are visited in input order and the first occurrence of a work
    becomes the master of its group.  Each record is checked against:
    1. Exact DOI match
    2. Exact PMID match
    3. Title similarity against every unique title seen so far
    """

    def __init__(self, threshold: float = 0.90, scorer: str = "jaccard") -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"Similarity threshold must be within [0, 1], got {threshold}")
        if scorer not in SCORERS:
            raise ValueError(f"Unknown title scorer '{scorer}' (expected one of {sorted(SCORERS)})")
        self.threshold = threshold
        self.scorer = scorer
        self._similarity = SCORERS[scorer]

    def _match_title(self, title: str, seen_titles: Dict[str, Record]) -> Tuple[Optional[Record], Optional[float]]:
        for existing_title, existing in seen_titles.items():
            similarity = self._similarity(title, existing_title)
            if similarity >= self.threshold:
                return existing, similarity
        return None, None

    def deduplicate(self, records: List[Record]) -> Tuple[List[Record], List[DuplicateGroup], DedupStats]:
        logger.info(f"Starting deduplication of {len(records)} records")
        unique: List[Record] = []
        groups: Dict[str, DuplicateGroup] = {}
        seen_dois: Dict[str, Record] = {}
        seen_pmids: Dict[str, Record] = {}
        seen_titles: Dict[str, Record] = {}
        match_counts = {"doi": 0, "pmid": 0, "title": 0}
        by_source: Dict[str, SourceCounts] = {}

        for record in records:
            by_source.setdefault(record.source, SourceCounts()).input += 1

        for record in records:
            master: Optional[Record] = None
            match_type = "title"
            similarity: Optional[float] = None

            if record.doi:
                master = seen_dois.get(record.doi)
                if master is not None:
                    match_type = "doi"
                else:
                    seen_dois[record.doi] = record

            if master is None and record.pmid:
                master = seen_pmids.get(record.pmid)
                if master is not None:
                    match_type = "pmid"
                else:
                    seen_pmids[record.pmid] = record

            title = record.normalized_title
            if master is None and title:
                master, similarity = self._match_title(title, seen_titles)
                if master is None:
                    seen_titles[title] = record

            if master is not None:
                match_counts[match_type] += 1
                group = groups.get(master.id)
                if group is None:
                    group = DuplicateGroup(master=master, match_type=match_type, similarity=similarity)
                    groups[master.id] = group
                group.duplicates.append(record)
            else:
                unique.append(record)
                by_source[record.source].output += 1

        stats = DedupStats(
            total_input=len(records),
            unique_output=len(unique),
            duplicates_removed=len(records) - len(unique),
            by_match_type=match_counts,
            by_source=by_source,
        )
        logger.info(
            f"Deduplication complete: {stats.total_input} -> {stats.unique_output} records "
            f"(doi={match_counts['doi']}, pmid={match_counts['pmid']}, title={match_counts['title']})"
        )
        return unique, list(groups.values()), stats
