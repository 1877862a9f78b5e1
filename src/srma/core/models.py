"""Core domain models for study records, pooled results and bibliographic records."""

from enum import Enum
from typing import Optional, List, Dict
from pydantic import BaseModel, Field, field_validator

from .normalization import clean_doi, clean_pmid, normalize_title


class EffectMeasure(str, Enum):
    """Effect measures supported by the effect calculator.

    Ratio measures (OR, RR, HR) are computed and pooled on the natural
    log scale.
    """

    SMD = "SMD"
    MD = "MD"
    OR = "OR"
    RR = "RR"
    RD = "RD"
    HR = "HR"

    @property
    def is_log_scale(self) -> bool:
        return self in (EffectMeasure.OR, EffectMeasure.RR, EffectMeasure.HR)

    @property
    def is_continuous(self) -> bool:
        return self in (EffectMeasure.MD, EffectMeasure.SMD)

    @property
    def is_binary(self) -> bool:
        return self in (EffectMeasure.OR, EffectMeasure.RR, EffectMeasure.RD)


class PoolingMethod(str, Enum):
    """Inverse-variance fixed effect or DerSimonian-Laird random effects."""

    FIXED = "fixed"
    RANDOM = "random"


class StudyRecord(BaseModel):
    """One row of meta-analysis input.

    All measurement fields are optional.  A record may carry continuous
    arm summaries, binary event counts and/or a pre-computed effect with
    its standard error; which group is used depends on the effect
    measure (see :func:`srma.meta.effects.compute_effect`).
    """

    id: Optional[str] = None
    name: Optional[str] = None
    year: Optional[int] = None

    # Continuous outcome (1 = treatment, 2 = control)
    n1: Optional[float] = None
    mean1: Optional[float] = None
    sd1: Optional[float] = None
    n2: Optional[float] = None
    mean2: Optional[float] = None
    sd2: Optional[float] = None

    # Binary outcome
    events1: Optional[float] = None
    total1: Optional[float] = None
    events2: Optional[float] = None
    total2: Optional[float] = None

    # Pre-computed (log scale for ratio measures)
    effect: Optional[float] = None
    se: Optional[float] = None

    @property
    def label(self) -> str:
        if self.name:
            return f"{self.name} ({self.year})" if self.year else self.name
        return self.id or "Study"


class NormalizedEffect(BaseModel):
    """Effect size of a single study on the measure's analysis scale."""

    effect: float
    se: float = Field(..., ge=0.0)
    variance: float


class PooledResult(BaseModel):
    """Pooled estimate with heterogeneity statistics."""

    effect: float
    se: float
    ci_lower: float
    ci_upper: float
    z: float
    p: float = Field(..., ge=0.0, le=1.0)
    weights: List[float] = Field(default_factory=list, description="Percent weights of poolable studies")
    q: float
    df: int
    p_het: float = Field(..., ge=0.0, le=1.0)
    i2: float = Field(..., ge=0.0, le=100.0)
    tau2: Optional[float] = None


class Record(BaseModel):
    """Bibliographic record used for deduplication."""

    id: str
    title: str = ""
    doi: Optional[str] = None
    pmid: Optional[str] = None
    abstract: Optional[str] = None
    authors: str = ""
    journal: Optional[str] = None
    year: Optional[int] = None
    source: str = "unknown"

    @field_validator("doi")
    @classmethod
    def _normalize_doi(cls, v: Optional[str]) -> Optional[str]:
        return clean_doi(v)

    @field_validator("pmid")
    @classmethod
    def _normalize_pmid(cls, v: Optional[str]) -> Optional[str]:
        return clean_pmid(v)

    @property
    def normalized_title(self) -> str:
        return normalize_title(self.title)


class DuplicateGroup(BaseModel):
    """A master record and the records identified as its duplicates."""

    master: Record
    duplicates: List[Record] = Field(default_factory=list)
    match_type: str = Field(..., description="doi, pmid, title")
    similarity: Optional[float] = Field(None, ge=0.0, le=1.0)


class SourceCounts(BaseModel):
    input: int = 0
    output: int = 0


class DedupStats(BaseModel):
    """Summary counts of a deduplication run."""

    total_input: int
    unique_output: int
    duplicates_removed: int
    by_match_type: Dict[str, int] = Field(default_factory=lambda: {"doi": 0, "pmid": 0, "title": 0})
    by_source: Dict[str, SourceCounts] = Field(default_factory=dict)
