"""Descriptive statistics and regression fits over validated records.

All fits regress crime rate (y) on incarceration rate (x).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
import polars as pl
from scipy import stats

from incarceration_analysis.config import OUTLIER_Z
from incarceration_analysis.ingest import records_to_frame
from incarceration_analysis.models import Record


@dataclass(frozen=True)
class RegressionFit:
    slope: float
    intercept: float
    r_value: float

    def __str__(self) -> str:
        return f"y = {self.slope:.4f}x + {self.intercept:.4f} (r={self.r_value:.4f})"


def _xy(records: Sequence[Record], min_points: int) -> tuple[np.ndarray, np.ndarray]:
    if len(records) < min_points:
        raise ValueError(f"Need at least {min_points} records, got {len(records)}")
    x = np.array([r.incarceration_rate for r in records], dtype=float)
    y = np.array([r.crime_rate for r in records], dtype=float)
    return x, y


def linear_regression(records: Sequence[Record]) -> RegressionFit:
    x, y = _xy(records, 2)
    fit = stats.linregress(x, y)
    return RegressionFit(float(fit.slope), float(fit.intercept), float(fit.rvalue))


def quadratic_regression(records: Sequence[Record]) -> tuple[float, float, float]:
    """Least-squares fit of y = a*x^2 + b*x + c. Returns (a, b, c)."""
    x, y = _xy(records, 3)
    a, b, c = np.polyfit(x, y, 2)
    return float(a), float(b), float(c)


def logarithmic_fit(records: Sequence[Record]) -> tuple[float, float]:
    """Fit y = a + b*ln(x + 1), the diminishing-returns model. Returns (a, b)."""
    x, y = _xy(records, 2)
    fit = stats.linregress(np.log(x + 1.0), y)
    return float(fit.intercept), float(fit.slope)


def t_test(sample1: Sequence[float], sample2: Sequence[float]) -> tuple[float, float]:
    """Pooled-variance two-sample Student's t-test. Returns (t statistic, two-sided p)."""
    if len(sample1) < 2 or len(sample2) < 2:
        raise ValueError("Each sample needs at least 2 values for a pooled t-test")
    result = stats.ttest_ind(sample1, sample2, equal_var=True)
    t_stat, p_value = float(result.statistic), float(result.pvalue)
    # Zero variance in both samples leaves the statistic infinite or undefined
    if not (np.isfinite(t_stat) and np.isfinite(p_value)):
        raise ValueError("t-test undefined: both samples have zero variance")
    return t_stat, p_value


def identify_outliers(records: Sequence[Record], z: float = OUTLIER_Z) -> list[Record]:
    """Records whose incarceration rate lies more than z population SDs from the mean."""
    if not records:
        return []
    rates = np.array([r.incarceration_rate for r in records], dtype=float)
    mean = rates.mean()
    std = rates.std()
    if std == 0:
        return []
    return [r for r, v in zip(records, rates) if abs(v - mean) > z * std]


def national_averages(records: Sequence[Record]) -> pl.DataFrame:
    """Mean incarceration and crime rate across jurisdictions, per year."""
    return (
        records_to_frame(list(records))
        .group_by("year")
        .agg(
            pl.col("incarceration_rate").mean().alias("mean_incarceration_rate"),
            pl.col("crime_rate").mean().alias("mean_crime_rate"),
            pl.len().alias("n_jurisdictions"),
        )
        .sort("year")
    )
