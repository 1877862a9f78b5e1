"""Per-study effect size calculation.

:func:`compute_effect` converts one :class:`~srma.core.models.StudyRecord`
into an effect, standard error and variance on the analysis scale of the
chosen measure.  Records without enough data return ``None`` and are
simply left out of pooling.

Field resolution by measure:

* ``MD`` / ``SMD``: continuous arm summaries, else the pre-computed pair.
* ``OR`` / ``RR`` / ``RD``: event counts, else the pre-computed pair.
* ``HR`` (and anything else): the pre-computed pair only.

For OR and RR a continuity correction of 0.5 is added to all four cells
of the 2x2 table whenever either arm has zero events.  RD always uses the
raw proportions.
"""

from __future__ import annotations

import math
import sys
from typing import Optional, Union

from ..core.models import EffectMeasure, NormalizedEffect, StudyRecord

CONTINUITY_CORRECTION = 0.5


def _from_variance(effect: float, variance: float) -> Optional[NormalizedEffect]:
    # A study needs a finite, normal positive variance so that 1 / variance
    # is a finite weight.
    if not (math.isfinite(effect) and math.isfinite(variance)) or variance < sys.float_info.min:
        return None
    return NormalizedEffect(effect=effect, se=math.sqrt(variance), variance=variance)


def _precomputed(study: StudyRecord) -> Optional[NormalizedEffect]:
    if study.effect is None or study.se is None:
        return None
    return _from_variance(study.effect, study.se * study.se)


def _has_continuous(study: StudyRecord) -> bool:
    # Means may legitimately be 0; sample sizes and SDs may not.
    return bool(
        study.n1 and study.n2 and study.sd1 and study.sd2
        and study.mean1 is not None and study.mean2 is not None
    )


def _has_binary(study: StudyRecord) -> bool:
    return bool(
        study.events1 is not None and study.events2 is not None
        and study.total1 and study.total2
    )


def mean_difference(study: StudyRecord) -> Optional[NormalizedEffect]:
    """Raw mean difference (treatment minus control)."""
    md = study.mean1 - study.mean2
    variance = (study.sd1 * study.sd1 / study.n1) + (study.sd2 * study.sd2 / study.n2)
    return _from_variance(md, variance)


def hedges_g(study: StudyRecord) -> Optional[NormalizedEffect]:
    """Standardized mean difference with Hedges' small-sample correction."""
    n1, n2 = study.n1, study.n2
    dof = n1 + n2 - 2
    if dof <= 0:
        return None
    pooled_sd = math.sqrt(
        ((n1 - 1) * study.sd1 * study.sd1 + (n2 - 1) * study.sd2 * study.sd2) / dof
    )
    if pooled_sd <= 0:
        return None
    d = (study.mean1 - study.mean2) / pooled_sd
    j = 1 - (3 / (4 * dof - 1))
    g = d * j
    variance = ((n1 + n2) / (n1 * n2)) + (g * g / (2 * (n1 + n2)))
    return _from_variance(g, variance)


def _two_by_two(study: StudyRecord, corrected: bool):
    a = study.events1
    b = study.total1 - study.events1
    c = study.events2
    d = study.total2 - study.events2
    if corrected and (a == 0 or c == 0):
        cc = CONTINUITY_CORRECTION
        return a + cc, b + cc, c + cc, d + cc
    return a, b, c, d


def log_odds_ratio(study: StudyRecord) -> Optional[NormalizedEffect]:
    a, b, c, d = _two_by_two(study, corrected=True)
    if min(a, b, c, d) <= 0:
        return None
    effect = math.log((a * d) / (b * c))
    variance = (1 / a) + (1 / b) + (1 / c) + (1 / d)
    return _from_variance(effect, variance)


def log_risk_ratio(study: StudyRecord) -> Optional[NormalizedEffect]:
    a, b, c, d = _two_by_two(study, corrected=True)
    if a <= 0 or c <= 0 or a + b <= 0 or c + d <= 0:
        return None
    p1 = a / (a + b)
    p2 = c / (c + d)
    effect = math.log(p1 / p2)
    variance = (1 / a) - (1 / (a + b)) + (1 / c) - (1 / (c + d))
    return _from_variance(effect, variance)


def risk_difference(study: StudyRecord) -> Optional[NormalizedEffect]:
    p1 = study.events1 / study.total1
    p2 = study.events2 / study.total2
    variance = (p1 * (1 - p1) / study.total1) + (p2 * (1 - p2) / study.total2)
    return _from_variance(p1 - p2, variance)


_CALCULATORS = {
    EffectMeasure.MD: mean_difference,
    EffectMeasure.SMD: hedges_g,
    EffectMeasure.OR: log_odds_ratio,
    EffectMeasure.RR: log_risk_ratio,
    EffectMeasure.RD: risk_difference,
}


def _has_raw_data(study: StudyRecord, measure: EffectMeasure) -> bool:
    if measure.is_continuous:
        return _has_continuous(study)
    if measure.is_binary:
        return _has_binary(study)
    return False


def compute_effect(
    study: StudyRecord,
    measure: Union[EffectMeasure, str],
) -> Optional[NormalizedEffect]:
    """Normalize one study for ``measure``, or return ``None`` if it cannot be pooled.

    Never raises for missing or degenerate data.  Unknown measure tags
    are treated like ``HR`` and only consult the pre-computed pair.
    """
    try:
        measure = EffectMeasure(measure)
    except ValueError:
        return _precomputed(study)

    if _has_raw_data(study, measure):
        return _CALCULATORS[measure](study)
    return _precomputed(study)
