"""Unit tests for bibliographic record deduplication."""

import pytest

from srma.core.models import Record
from srma.dedup.deduplicator import Deduplicator, jaccard_similarity, ratio_similarity

TITLE = "Effect of aspirin on cardiovascular outcomes in adults"


def make_record(
    record_id: str,
    title: str = TITLE,
    doi: str | None = None,
    pmid: str | None = None,
    source: str = "pubmed",
) -> Record:
    """Helper to construct a Record for testing."""
    return Record(id=record_id, title=title, doi=doi, pmid=pmid, source=source)


class TestSimilarity:
    """Tests for title similarity scorers."""

    def test_jaccard_identical(self) -> None:
        """Test identical titles score 1."""
        assert jaccard_similarity("effect of aspirin", "effect of aspirin") == 1.0

    def test_jaccard_ignores_short_words(self) -> None:
        """Test words of two characters or fewer are ignored."""
        assert jaccard_similarity("aspirin in adults", "aspirin of adults") == 1.0

    def test_jaccard_partial(self) -> None:
        """Test overlapping word sets."""
        assert jaccard_similarity("aspirin heart adults", "aspirin heart elderly") == pytest.approx(0.5)

    def test_jaccard_empty(self) -> None:
        """Test titles without scoring words score 0."""
        assert jaccard_similarity("a b", "a b") == 0.0
        assert jaccard_similarity("", "aspirin") == 0.0

    def test_ratio(self) -> None:
        """Test the edit-distance scorer."""
        assert ratio_similarity("aspirin trial", "aspirin trial") == 1.0
        assert ratio_similarity("", "aspirin") == 0.0
        assert 0.0 < ratio_similarity("aspirin trial", "aspirin trials") < 1.0


class TestExactKeys:
    """Tests for DOI and PMID matching."""

    def test_doi_match(self) -> None:
        """Test normalized DOIs match exactly."""
        records = [
            make_record("r1", title="First title here", doi="10.1000/ABC"),
            make_record("r2", title="Completely different wording", doi="https://doi.org/10.1000/abc"),
        ]
        unique, groups, stats = Deduplicator().deduplicate(records)
        assert [r.id for r in unique] == ["r1"]
        assert len(groups) == 1
        assert groups[0].match_type == "doi"
        assert groups[0].master.id == "r1"
        assert stats.by_match_type["doi"] == 1

    def test_pmid_match(self) -> None:
        """Test PMIDs match after stripping non-digits."""
        records = [
            make_record("r1", title="Alpha study", pmid="PMID: 123456"),
            make_record("r2", title="Beta study", pmid="123456"),
        ]
        unique, groups, stats = Deduplicator().deduplicate(records)
        assert len(unique) == 1
        assert groups[0].match_type == "pmid"
        assert stats.by_match_type == {"doi": 0, "pmid": 1, "title": 0}

    def test_different_dois_fall_through_to_title(self) -> None:
        """Test distinct DOIs still allow a title match."""
        records = [
            make_record("r1", doi="10.1/a"),
            make_record("r2", doi="10.1/b", title=TITLE.upper() + "."),
        ]
        unique, groups, _ = Deduplicator().deduplicate(records)
        assert len(unique) == 1
        assert groups[0].match_type == "title"
        assert groups[0].similarity == 1.0


class TestFuzzyTitle:
    """Tests for title similarity matching."""

    def test_below_threshold_kept(self) -> None:
        """Test similar but distinct titles are both kept."""
        records = [
            make_record("r1"),
            make_record("r2", title="Effect of aspirin on cardiovascular outcomes in elderly adults"),
        ]
        unique, groups, _ = Deduplicator().deduplicate(records)
        assert len(unique) == 2
        assert groups == []

    def test_lower_threshold_matches(self) -> None:
        """Test the threshold is configurable."""
        records = [
            make_record("r1"),
            make_record("r2", title="Effect of aspirin on cardiovascular outcomes in elderly adults"),
        ]
        unique, groups, _ = Deduplicator(threshold=0.8).deduplicate(records)
        assert len(unique) == 1
        assert groups[0].similarity == pytest.approx(5 / 6)

    def test_group_collects_all_duplicates(self) -> None:
        """Test repeated records join the first occurrence's group."""
        records = [make_record("r1"), make_record("r2"), make_record("r3", source="embase")]
        unique, groups, stats = Deduplicator().deduplicate(records)
        assert [r.id for r in unique] == ["r1"]
        assert len(groups) == 1
        assert [r.id for r in groups[0].duplicates] == ["r2", "r3"]
        assert stats.duplicates_removed == 2
        assert stats.by_source["pubmed"].input == 2
        assert stats.by_source["pubmed"].output == 1
        assert stats.by_source["embase"].output == 0

    def test_short_titles_never_match(self) -> None:
        """Test titles without scoring words are not deduplicated."""
        records = [make_record("r1", title="A B"), make_record("r2", title="A B")]
        unique, _, _ = Deduplicator().deduplicate(records)
        assert len(unique) == 2

    def test_ratio_scorer(self) -> None:
        """Test the alternative scorer."""
        records = [make_record("r1"), make_record("r2", title=TITLE + "s")]
        unique, groups, _ = Deduplicator(scorer="ratio").deduplicate(records)
        assert len(unique) == 1
        assert groups[0].similarity > 0.9


class TestValidation:
    """Tests for constructor validation and empty input."""

    @pytest.mark.parametrize("threshold", [-0.1, 1.5])
    def test_threshold_range(self, threshold: float) -> None:
        with pytest.raises(ValueError):
            Deduplicator(threshold=threshold)

    def test_unknown_scorer(self) -> None:
        with pytest.raises(ValueError):
            Deduplicator(scorer="cosine")

    def test_empty_input(self) -> None:
        unique, groups, stats = Deduplicator().deduplicate([])
        assert unique == [] and groups == []
        assert stats.total_input == 0
        assert stats.unique_output == 0
