#!/usr/bin/env python3
# ==============================================================================
# Copyright (c) 2025 Aaron Johnson, Drexel University
# Licensed under the MIT License - see LICENSE file for details
# ==============================================================================
"""
Bed aggregation and the population join.

  1. aggregate_qualifying_beds: sum beds of open general acute care and
     critical access hospitals per county FIPS code.
  2. join_population_beds: join the county population table with the bed
     totals (inner join, or left join with explicit zeros).
  3. add_per_capita_metrics: beds per person and beds per 1,000 people.
"""

import logging
from typing import Dict, Iterable, Optional, Tuple

import numpy as np
import pandas as pd

from county_beds_config import (
    BED_SENTINEL,
    FACILITY_COLUMNS,
    OPEN_STATUS,
    POPULATION_COLUMNS,
    QUALIFYING_TYPES,
    ZERO_BED_POLICIES,
    population_column,
)
from county_beds_loading import normalize_fips

SAFE_FLOAT = np.float64

# Column order of the per-county table handed to the name normalization step
COUNTY_COLUMNS = ["county_fips", "state", "area_name", "population", "beds"]


def to_numeric_clean(series: pd.Series) -> pd.Series:
    """Coerce a column to float, tolerating thousands separators and stray spaces."""
    if series.dtype.kind in "biuf":  # already numeric
        return series.astype(SAFE_FLOAT)
    s = series.astype(str).str.replace(",", "", regex=False)
    s = s.str.replace(r"\s+", "", regex=True)
    return pd.to_numeric(s, errors="coerce").astype(SAFE_FLOAT)


def _clean_category(series: pd.Series) -> pd.Series:
    return series.astype(str).str.strip().str.upper()


def aggregate_qualifying_beds(
    facilities: pd.DataFrame,
    columns: Optional[Dict[str, str]] = None,
    sentinel: int = BED_SENTINEL,
    qualifying_types: Iterable[str] = QUALIFYING_TYPES,
    open_status: str = OPEN_STATUS,
) -> pd.Series:
    """
    Sums qualifying hospital beds per county.

    A facility qualifies when its status is open, its type is one of the
    qualifying types and its bed count is positive. Sentinel bed counts
    (-999, "not available") are never summed. Counties without a qualifying
    facility are absent from the result rather than present with 0.

    Returns an int64 Series named 'beds' indexed by 5-digit 'county_fips'.
    """
    columns = {**FACILITY_COLUMNS, **(columns or {})}
    logging.info("Aggregating qualifying beds from %d facility records...", len(facilities))

    beds = to_numeric_clean(facilities[columns["beds"]])
    status = _clean_category(facilities[columns["status"]])
    ftype = _clean_category(facilities[columns["type"]])
    fips = normalize_fips(facilities[columns["county_fips"]])

    is_sentinel = beds == sentinel
    non_numeric = beds.isna() & facilities[columns["beds"]].notna()
    qualifying_types = {t.strip().upper() for t in qualifying_types}

    mask = (
        (beds > 0)
        & ~is_sentinel
        & (status == open_status.strip().upper())
        & ftype.isin(qualifying_types)
    )
    logging.info("  %d facilities carry the bed sentinel (%d) and are excluded.", int(is_sentinel.sum()), sentinel)
    if non_numeric.any():
        logging.warning("  %d facilities have non-numeric bed counts and are excluded.", int(non_numeric.sum()))
    logging.info("  %d facilities are not open.", int((status != open_status.strip().upper()).sum()))
    logging.info("  %d facilities have a non-qualifying type.", int((~ftype.isin(qualifying_types)).sum()))

    no_fips = mask & fips.isna()
    if no_fips.any():
        logging.warning("  %d qualifying facilities have no usable county FIPS and are excluded.", int(no_fips.sum()))
        mask &= fips.notna()

    qualifying = pd.DataFrame({"county_fips": fips[mask], "beds": beds[mask]})
    totals = qualifying.groupby("county_fips", sort=True)["beds"].sum().round().astype("int64")
    totals.name = "beds"

    logging.info(
        "%d qualifying facilities contribute %s beds across %d counties.",
        len(qualifying), f"{int(totals.sum()):,}", len(totals),
    )
    return totals


def join_population_beds(
    population: pd.DataFrame,
    beds: pd.Series,
    year: int,
    zero_bed_policy: str = "drop",
    columns: Optional[Dict[str, str]] = None,
) -> Tuple[pd.DataFrame, Dict[str, int]]:
    """
    Joins county population estimates with aggregated bed totals on FIPS.

    zero_bed_policy controls counties that have no qualifying facility:
      'drop' -- inner join; such counties are excluded from all output.
      'zero' -- left join from population; such counties get beds = 0.

    Returns the per-county table (county_fips, state, area_name, population,
    beds) and a dict of row counts excluded at each step.
    """
    if zero_bed_policy not in ZERO_BED_POLICIES:
        raise ValueError(f"zero_bed_policy must be one of {ZERO_BED_POLICIES}, got {zero_bed_policy!r}")
    columns = {**POPULATION_COLUMNS, **(columns or {})}
    pop_col = columns.get("population", population_column(year))

    pop = population[[columns["county_fips"], columns["state"], columns["area_name"], pop_col]].copy()
    pop.columns = ["county_fips", "state", "area_name", "population"]
    pop["county_fips"] = normalize_fips(pop["county_fips"])
    pop["population"] = to_numeric_clean(pop["population"])
    pop["state"] = pop["state"].astype(str).str.strip()
    pop["area_name"] = pop["area_name"].astype(str).str.strip()

    audit = {}
    # State and national summary rows normalize to NA
    audit["population_rows_without_county_fips"] = int(pop["county_fips"].isna().sum())
    pop = pop[pop["county_fips"].notna()]

    duplicated = pop["county_fips"].duplicated(keep="first")
    audit["population_duplicate_fips"] = int(duplicated.sum())
    if duplicated.any():
        logging.warning("%d duplicate county FIPS codes in the population table; keeping the first of each.",
                        audit["population_duplicate_fips"])
        pop = pop[~duplicated]

    bed_fips = set(beds.index)
    pop_fips = set(pop["county_fips"])
    audit["population_counties_without_beds"] = len(pop_fips - bed_fips)
    audit["bed_counties_without_population"] = len(bed_fips - pop_fips)

    beds_df = beds.rename("beds").rename_axis("county_fips").reset_index()
    if zero_bed_policy == "drop":
        joined = pop.merge(beds_df, on="county_fips", how="inner", validate="one_to_one")
        if audit["population_counties_without_beds"]:
            logging.warning(
                "%d counties have no qualifying hospital beds and are dropped by the inner join.",
                audit["population_counties_without_beds"],
            )
    else:
        joined = pop.merge(beds_df, on="county_fips", how="left", validate="one_to_one")
        joined["beds"] = joined["beds"].fillna(0)
        logging.info(
            "%d counties have no qualifying hospital beds and are kept with beds = 0.",
            audit["population_counties_without_beds"],
        )
    joined["beds"] = joined["beds"].astype("int64")

    if audit["bed_counties_without_population"]:
        missing = sorted(bed_fips - pop_fips)
        logging.warning(
            "%d counties with qualifying beds have no population row and are dropped: %s",
            audit["bed_counties_without_population"], ", ".join(missing[:20]) + (" ..." if len(missing) > 20 else ""),
        )

    joined = joined.sort_values("county_fips").reset_index(drop=True)[COUNTY_COLUMNS]
    logging.info("Population/beds join produced %d county rows (policy '%s').", len(joined), zero_bed_policy)
    return joined, audit


def add_per_capita_metrics(df: pd.DataFrame, scale: int = 1000) -> pd.DataFrame:
    """
    Adds 'percapitabeds' (beds / population) and 'beds_per_<scale>'.

    Counties with zero or missing population keep their row with NaN metrics.
    """
    df = df.copy()
    population = df["population"].astype(SAFE_FLOAT)
    valid = population > 0
    df["percapitabeds"] = np.where(valid, df["beds"] / population.where(valid), np.nan)
    df[f"beds_per_{scale}"] = df["percapitabeds"] * scale

    n_invalid = int((~valid).sum())
    if n_invalid:
        logging.warning("%d counties have zero or missing population; their per-capita metric is left empty.", n_invalid)

    described = df[f"beds_per_{scale}"].describe()
    logging.info("Beds per %d people:\n%s", scale, described.to_string())
    return df
