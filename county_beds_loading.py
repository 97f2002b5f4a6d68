#!/usr/bin/env python3
# ==============================================================================
# Copyright (c) 2025 Aaron Johnson, Drexel University
# Licensed under the MIT License - see LICENSE file for details
# ==============================================================================
"""
Loading of the two tabular inputs: hospital facility records and county
population estimates. Columns keep their source names; FIPS columns are read
as text so leading zeros survive.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional

import pandas as pd

from county_beds_config import FACILITY_COLUMNS, POPULATION_COLUMNS, population_column
from county_beds_errors import DataLoadError


def normalize_fips(s: pd.Series) -> pd.Series:
    """
    Normalize any FIPS-like series to 5-digit county codes.

    Handles ints, floats (e.g., 6001.0) and string-coded FIPS with or without
    padding. State and national summary rows (codes ending in '000') and
    blanks are masked to NA.
    """
    ser = pd.Series(s, copy=True)
    numeric = pd.to_numeric(ser, errors="coerce")

    norm = pd.Series(index=ser.index, dtype="object")

    numeric_mask = numeric.notna()
    if numeric_mask.any():
        norm.loc[numeric_mask] = (
            numeric.loc[numeric_mask]
            .round()
            .astype("Int64")
            .astype(str)
            .str.zfill(5)
        )

    non_numeric_mask = ~numeric_mask & ser.notna()
    if non_numeric_mask.any():
        cleaned = ser.loc[non_numeric_mask].astype(str).str.strip()
        cleaned = cleaned.str.replace(r"\.0$", "", regex=True)
        cleaned = cleaned.str.replace(r"[^0-9]", "", regex=True)
        norm.loc[non_numeric_mask] = cleaned.str[-5:].str.zfill(5)

    norm = norm.where(norm.str.len() > 0)
    norm = norm.mask(norm.str.len() > 5)
    norm = norm.mask(norm.str.endswith("000", na=False))
    return norm


def _read_table(path, required: Iterable[str], text_columns: Iterable[str] = ()) -> pd.DataFrame:
    """Read a CSV and verify that every required column is present."""
    path = Path(path)
    required = list(required)
    if not path.exists():
        raise DataLoadError(path, "file not found")

    dtype = {c: str for c in text_columns}
    try:
        df = pd.read_csv(path, dtype=dtype, low_memory=False)
    except UnicodeDecodeError:
        logging.warning("%s is not valid UTF-8; retrying with latin-1 encoding.", path.name)
        try:
            df = pd.read_csv(path, dtype=dtype, low_memory=False, encoding="latin-1")
        except (pd.errors.ParserError, ValueError) as e:
            raise DataLoadError(path, f"could not be parsed ({e})") from e
    except pd.errors.EmptyDataError as e:
        raise DataLoadError(path, "file is empty") from e
    except (pd.errors.ParserError, ValueError) as e:
        raise DataLoadError(path, f"could not be parsed ({e})") from e

    # Some exports pad header cells with whitespace
    df.columns = [str(c).strip() for c in df.columns]

    missing = [c for c in required if c not in df.columns]
    if missing:
        raise DataLoadError(
            path,
            f"missing expected column(s) {missing}; available columns: {list(df.columns)}",
            missing_columns=missing,
        )
    if df.empty:
        raise DataLoadError(path, "file contains a header but no rows")

    logging.info("Successfully loaded %d records from %s.", len(df), path.name)
    return df


def load_facility_data(path, columns: Optional[Dict[str, str]] = None) -> pd.DataFrame:
    """Loads hospital facility records (county FIPS, beds, status, type)."""
    columns = {**FACILITY_COLUMNS, **(columns or {})}
    df = _read_table(path, columns.values(), text_columns=[columns["county_fips"]])
    logging.info("Facility status counts:\n%s", df[columns["status"]].value_counts(dropna=False).to_string())
    logging.info("Facility type counts:\n%s", df[columns["type"]].value_counts(dropna=False).to_string())
    return df


def load_population_data(path, year, columns: Optional[Dict[str, str]] = None) -> pd.DataFrame:
    """Loads county population estimates for the given reference year."""
    columns = {**POPULATION_COLUMNS, **(columns or {})}
    pop_col = columns.get("population", population_column(year))
    required = [columns["county_fips"], columns["state"], columns["area_name"], pop_col]
    df = _read_table(path, required, text_columns=[columns["county_fips"]])
    logging.info("Using '%s' as the population column.", pop_col)
    return df
