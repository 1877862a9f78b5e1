"""Display-scale conversion and plain-text summaries of pooled results."""

from __future__ import annotations

import math
from typing import Optional, Union

from ..core.models import EffectMeasure, PooledResult, PoolingMethod

METHOD_LABELS = {
    PoolingMethod.RANDOM: "Random Effects (DerSimonian-Laird)",
    PoolingMethod.FIXED: "Fixed Effect (Inverse Variance)",
}


def to_display_scale(value: float, measure: Union[EffectMeasure, str]) -> float:
    """Exponentiate log-scale values (OR, RR, HR); pass others through."""
    try:
        measure = EffectMeasure(measure)
    except ValueError:
        return value
    return math.exp(value) if measure.is_log_scale else value


def null_value(measure: Union[EffectMeasure, str]) -> float:
    """Line of no effect on the display scale."""
    return 1.0 if EffectMeasure(measure).is_log_scale else 0.0


def format_p(p: float) -> str:
    return "<0.001" if p < 0.001 else f"{p:.3f}"


def format_summary(
    result: PooledResult,
    measure: Union[EffectMeasure, str],
    method: Union[PoolingMethod, str],
    n_studies: Optional[int] = None,
) -> str:
    """Render a pooled result as the plain-text summary used for exports."""
    measure = EffectMeasure(measure)
    method = PoolingMethod(method)
    if n_studies is None:
        n_studies = len(result.weights)

    effect = to_display_scale(result.effect, measure)
    lower = to_display_scale(result.ci_lower, measure)
    upper = to_display_scale(result.ci_upper, measure)

    lines = [
        "Meta-Analysis Results",
        "",
        f"Effect Measure: {measure.value}",
        f"Method: {METHOD_LABELS[method]}",
        "",
        f"Pooled Effect: {effect:.3f}",
        f"95% CI: [{lower:.3f}, {upper:.3f}]",
        f"Z: {result.z:.3f}",
        f"P-value: {format_p(result.p)}",
        "",
        "Heterogeneity:",
        f"Q: {result.q:.2f} (df={result.df}, p={format_p(result.p_het)})",
        f"I²: {result.i2:.1f}%",
    ]
    if method == PoolingMethod.RANDOM and result.tau2 is not None:
        lines.append(f"τ²: {result.tau2:.4f}")
    lines.extend(["", f"Studies: {n_studies}"])
    return "\n".join(lines)
