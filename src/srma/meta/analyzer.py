"""Inverse-variance meta-analysis.

This module pools per-study effect sizes under a fixed effect or a
DerSimonian-Laird random effects model and reports heterogeneity
(Cochran's Q, I², tau²).  :func:`pool_studies` is the stateless entry
point; :class:`MetaAnalyzer` binds a measure and method and adds the
per-study table used for forest plots and exports.
"""

from __future__ import annotations

import math
import sys
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..core.models import EffectMeasure, NormalizedEffect, PooledResult, PoolingMethod, StudyRecord
from ..utils.logging import get_logger
from .effects import compute_effect
from .report import null_value, to_display_scale
from .stats import chi_squared_cdf, two_sided_p

logger = get_logger(__name__)

Z_CRIT = 1.96
_MAX_FLOAT = sys.float_info.max


def _poolable(
    studies: Sequence[StudyRecord],
    measure: Union[EffectMeasure, str],
) -> List[Tuple[StudyRecord, NormalizedEffect]]:
    pairs = []
    for study in studies:
        normalized = compute_effect(study, measure)
        if normalized is not None:
            pairs.append((study, normalized))
    return pairs


def _weighted_mean(effects: np.ndarray, weights: np.ndarray) -> Optional[Tuple[float, float]]:
    """Weighted mean and its variance, or ``None`` when the weights are unusable."""
    sum_w = float(np.sum(weights))
    if not (sum_w > 0 and math.isfinite(sum_w)):
        return None
    mean = float(np.sum(weights * effects)) / sum_w
    variance = 1.0 / sum_w
    if not (math.isfinite(mean) and math.isfinite(variance)):
        return None
    return mean, variance


def _heterogeneity(effects: np.ndarray, weights: np.ndarray) -> Tuple[float, float, int]:
    """Fixed effect estimate, Cochran's Q and its degrees of freedom.

    Q is capped at the largest finite float when the squared deviations
    overflow.
    """
    fixed_effect = float(np.sum(weights * effects) / np.sum(weights))
    df = len(effects) - 1
    if df == 0:
        return fixed_effect, 0.0, 0
    q = float(np.sum(weights * (effects - fixed_effect) ** 2))
    if not math.isfinite(q):
        q = _MAX_FLOAT
    return fixed_effect, q, df


def dersimonian_laird_tau2(weights: np.ndarray, q: float, df: int) -> float:
    """Between-study variance; 0 when the scaling constant is not positive."""
    sum_w = np.sum(weights)
    c = float(sum_w - np.sum(weights ** 2) / sum_w)
    if not c > 0:
        return 0.0
    return min(_MAX_FLOAT, max(0.0, (q - df) / c))


def i_squared(q: float, df: int) -> float:
    """I² as a percentage; 0 when Q is 0 or there is a single study."""
    if q <= 0 or df <= 0:
        return 0.0
    return min(100.0, max(0.0, (q - df) / q * 100.0))


def pool_effects(
    normalized: Sequence[NormalizedEffect],
    method: Union[PoolingMethod, str] = PoolingMethod.RANDOM,
) -> Optional[PooledResult]:
    """Pool already normalized effects.  Returns ``None`` for an empty list.

    If the random effects weights underflow to nothing usable, the fixed
    effect weights are kept and ``tau2`` is still reported.
    """
    if not normalized:
        return None
    method = PoolingMethod(method)

    effects = np.array([n.effect for n in normalized], dtype=float)
    variances = np.array([n.variance for n in normalized], dtype=float)
    weights = 1.0 / variances

    fixed_effect, q, df = _heterogeneity(effects, weights)
    p_het = 1.0 - chi_squared_cdf(q, df)
    i2 = i_squared(q, df)
    pooled_effect, pooled_variance = fixed_effect, 1.0 / float(np.sum(weights))

    tau2: Optional[float] = None
    if method == PoolingMethod.RANDOM:
        tau2 = dersimonian_laird_tau2(weights, q, df)
        re_weights = 1.0 / (variances + tau2)
        pooled = _weighted_mean(effects, re_weights)
        if pooled is not None:
            weights = re_weights
            pooled_effect, pooled_variance = pooled
        else:
            logger.debug(f"Random effects weights unusable (tau2={tau2:.3g}); keeping fixed effect weights")

    se = float(np.sqrt(pooled_variance))
    z = pooled_effect / se if se > 0 else 0.0
    return PooledResult(
        effect=pooled_effect,
        se=se,
        ci_lower=pooled_effect - Z_CRIT * se,
        ci_upper=pooled_effect + Z_CRIT * se,
        z=z,
        p=two_sided_p(z),
        weights=[float(w) for w in weights / np.sum(weights) * 100.0],
        q=q,
        df=df,
        p_het=min(1.0, max(0.0, p_het)),
        i2=i2,
        tau2=tau2,
    )


def pool_studies(
    studies: Sequence[StudyRecord],
    measure: Union[EffectMeasure, str],
    method: Union[PoolingMethod, str] = PoolingMethod.RANDOM,
) -> Optional[PooledResult]:
    """Normalize ``studies`` for ``measure`` and pool the poolable ones.

    Records lacking data for the measure are skipped.  ``weights`` in the
    result follow the order of the surviving records.  Returns ``None``
    when no record can be pooled.
    """
    return pool_effects([n for _, n in _poolable(studies, measure)], method)


class MetaAnalyzer:
    """Perform meta-analysis on a set of study records.

    The analyser binds an effect measure and pooling method so the same
    configuration can be applied to many study sets.
    """

    def __init__(
        self,
        measure: Union[EffectMeasure, str] = EffectMeasure.SMD,
        method: Union[PoolingMethod, str] = PoolingMethod.RANDOM,
    ) -> None:
        self.measure = EffectMeasure(measure)
        self.method = PoolingMethod(method)

    def pool(self, studies: Sequence[StudyRecord]) -> Optional[PooledResult]:
        pairs = _poolable(studies, self.measure)
        dropped = len(studies) - len(pairs)
        if dropped:
            logger.debug(f"Skipped {dropped} of {len(studies)} records without usable {self.measure.value} data")
        result = pool_effects([n for _, n in pairs], self.method)
        if result is None:
            logger.warning(f"No poolable studies for {self.measure.value}")
            return None
        logger.info(
            f"Pooled {len(pairs)} studies ({self.measure.value}, {self.method.value}): "
            f"effect={result.effect:.4f}, se={result.se:.4f}, I2={result.i2:.1f}%",
            extra={"extra": {
                "n_studies": len(pairs),
                "n_dropped": dropped,
                "measure": self.measure.value,
                "method": self.method.value,
                "effect": result.effect,
                "q": result.q,
                "i2": result.i2,
                "tau2": result.tau2,
            }},
        )
        return result

    def build_study_table(
        self,
        studies: Sequence[StudyRecord],
        result: Optional[PooledResult] = None,
    ) -> pd.DataFrame:
        """Create a DataFrame of per-study and pooled estimates on display scale.

        ``crosses_null`` marks intervals that contain the line of no effect
        (1 for ratio measures, 0 otherwise).
        """
        pairs = _poolable(studies, self.measure)
        if result is None:
            result = pool_effects([n for _, n in pairs], self.method)
        rows = []
        for i, (study, normalized) in enumerate(pairs):
            rows.append({
                "study": study.label,
                "effect": to_display_scale(normalized.effect, self.measure),
                "se": normalized.se,
                "ci_lower": to_display_scale(normalized.effect - Z_CRIT * normalized.se, self.measure),
                "ci_upper": to_display_scale(normalized.effect + Z_CRIT * normalized.se, self.measure),
                "weight": result.weights[i] if result is not None else None,
                "type": "study",
            })
        if result is not None:
            rows.append({
                "study": "Pooled",
                "effect": to_display_scale(result.effect, self.measure),
                "se": result.se,
                "ci_lower": to_display_scale(result.ci_lower, self.measure),
                "ci_upper": to_display_scale(result.ci_upper, self.measure),
                "weight": 100.0,
                "type": "pooled",
            })
        table = pd.DataFrame(rows, columns=["study", "effect", "se", "ci_lower", "ci_upper", "weight", "type"])
        line = null_value(self.measure)
        table["crosses_null"] = (table["ci_lower"] <= line) & (table["ci_upper"] >= line)
        return table
