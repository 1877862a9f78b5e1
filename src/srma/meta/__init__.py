"""Meta‑analysis utilities.

This package converts per-study data into effect sizes and pools them
with fixed or random effects models, reporting heterogeneity and
plain-text summaries.

"""

from .analyzer import MetaAnalyzer, pool_effects, pool_studies  # noqa: F401
from .effects import compute_effect  # noqa: F401
from .report import format_summary, to_display_scale  # noqa: F401
from .stats import chi_squared_cdf, normal_cdf  # noqa: F401
