#!/usr/bin/env python3
# ==============================================================================
# Copyright (c) 2025 Aaron Johnson, Drexel University
# Licensed under the MIT License - see LICENSE file for details
# ==============================================================================
"""
State reference data and the region/subregion keys used to match county
records to county polygons by name.

  region    -- lowercase full state name, e.g. 'california'
  subregion -- lowercase county name with a trailing ' County' removed,
               e.g. 'Los Angeles County' -> 'los angeles'

Names that still differ between the population file and the county
boundaries after this normalization are mapped through SUBREGION_ALIASES.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Tuple

import pandas as pd

from county_beds_errors import DataLoadError, UnknownStateAbbreviationError

# ---------------------------------------------------------------------------
# State reference data
# ---------------------------------------------------------------------------
# Fields:
#   name       – canonical full name (title case)
#   usps_code  – 2-letter USPS postal code
#   fips_code  – 2-digit zero-padded FIPS state code
# ---------------------------------------------------------------------------
STATES = [
    {"name": "Alabama",                  "usps_code": "AL", "fips_code": "01"},
    {"name": "Alaska",                   "usps_code": "AK", "fips_code": "02"},
    {"name": "Arizona",                  "usps_code": "AZ", "fips_code": "04"},
    {"name": "Arkansas",                 "usps_code": "AR", "fips_code": "05"},
    {"name": "California",               "usps_code": "CA", "fips_code": "06"},
    {"name": "Colorado",                 "usps_code": "CO", "fips_code": "08"},
    {"name": "Connecticut",              "usps_code": "CT", "fips_code": "09"},
    {"name": "Delaware",                 "usps_code": "DE", "fips_code": "10"},
    {"name": "District of Columbia",     "usps_code": "DC", "fips_code": "11"},
    {"name": "Florida",                  "usps_code": "FL", "fips_code": "12"},
    {"name": "Georgia",                  "usps_code": "GA", "fips_code": "13"},
    {"name": "Hawaii",                   "usps_code": "HI", "fips_code": "15"},
    {"name": "Idaho",                    "usps_code": "ID", "fips_code": "16"},
    {"name": "Illinois",                 "usps_code": "IL", "fips_code": "17"},
    {"name": "Indiana",                  "usps_code": "IN", "fips_code": "18"},
    {"name": "Iowa",                     "usps_code": "IA", "fips_code": "19"},
    {"name": "Kansas",                   "usps_code": "KS", "fips_code": "20"},
    {"name": "Kentucky",                 "usps_code": "KY", "fips_code": "21"},
    {"name": "Louisiana",                "usps_code": "LA", "fips_code": "22"},
    {"name": "Maine",                    "usps_code": "ME", "fips_code": "23"},
    {"name": "Maryland",                 "usps_code": "MD", "fips_code": "24"},
    {"name": "Massachusetts",            "usps_code": "MA", "fips_code": "25"},
    {"name": "Michigan",                 "usps_code": "MI", "fips_code": "26"},
    {"name": "Minnesota",                "usps_code": "MN", "fips_code": "27"},
    {"name": "Mississippi",              "usps_code": "MS", "fips_code": "28"},
    {"name": "Missouri",                 "usps_code": "MO", "fips_code": "29"},
    {"name": "Montana",                  "usps_code": "MT", "fips_code": "30"},
    {"name": "Nebraska",                 "usps_code": "NE", "fips_code": "31"},
    {"name": "Nevada",                   "usps_code": "NV", "fips_code": "32"},
    {"name": "New Hampshire",            "usps_code": "NH", "fips_code": "33"},
    {"name": "New Jersey",               "usps_code": "NJ", "fips_code": "34"},
    {"name": "New Mexico",               "usps_code": "NM", "fips_code": "35"},
    {"name": "New York",                 "usps_code": "NY", "fips_code": "36"},
    {"name": "North Carolina",           "usps_code": "NC", "fips_code": "37"},
    {"name": "North Dakota",             "usps_code": "ND", "fips_code": "38"},
    {"name": "Ohio",                     "usps_code": "OH", "fips_code": "39"},
    {"name": "Oklahoma",                 "usps_code": "OK", "fips_code": "40"},
    {"name": "Oregon",                   "usps_code": "OR", "fips_code": "41"},
    {"name": "Pennsylvania",             "usps_code": "PA", "fips_code": "42"},
    {"name": "Rhode Island",             "usps_code": "RI", "fips_code": "44"},
    {"name": "South Carolina",           "usps_code": "SC", "fips_code": "45"},
    {"name": "South Dakota",             "usps_code": "SD", "fips_code": "46"},
    {"name": "Tennessee",                "usps_code": "TN", "fips_code": "47"},
    {"name": "Texas",                    "usps_code": "TX", "fips_code": "48"},
    {"name": "Utah",                     "usps_code": "UT", "fips_code": "49"},
    {"name": "Vermont",                  "usps_code": "VT", "fips_code": "50"},
    {"name": "Virginia",                 "usps_code": "VA", "fips_code": "51"},
    {"name": "Washington",               "usps_code": "WA", "fips_code": "53"},
    {"name": "West Virginia",            "usps_code": "WV", "fips_code": "54"},
    {"name": "Wisconsin",                "usps_code": "WI", "fips_code": "55"},
    {"name": "Wyoming",                  "usps_code": "WY", "fips_code": "56"},
    {"name": "American Samoa",           "usps_code": "AS", "fips_code": "60"},
    {"name": "Guam",                     "usps_code": "GU", "fips_code": "66"},
    {"name": "Northern Mariana Islands", "usps_code": "MP", "fips_code": "69"},
    {"name": "Puerto Rico",              "usps_code": "PR", "fips_code": "72"},
    {"name": "Virgin Islands",           "usps_code": "VI", "fips_code": "78"},
]

STATE_NAME_BY_ABBREVIATION = {s["usps_code"]: s["name"] for s in STATES}
STATE_NAME_BY_FIPS = {s["fips_code"]: s["name"] for s in STATES}

# (region, subregion as normalized from the population file) -> subregion as
# spelled by the TIGER/Line county boundaries
SUBREGION_ALIASES: Dict[Tuple[str, str], str] = {
    ("new mexico", "dona ana"): "doña ana",
    ("south dakota", "shannon"): "oglala lakota",
    ("alaska", "wade hampton census area"): "kusilvak census area",
    ("alaska", "prince of wales-outer ketchikan census area"): "prince of wales-hyder census area",
    ("missouri", "saint louis"): "st. louis",
    ("missouri", "sainte genevieve"): "ste. genevieve",
    ("minnesota", "saint louis"): "st. louis",
    ("illinois", "la salle"): "lasalle",
    ("indiana", "la porte"): "laporte",
    ("louisiana", "la salle parish"): "lasalle parish",
    ("florida", "de soto"): "desoto",
    ("mississippi", "de soto"): "desoto",
}


def state_name(abbreviation: str, fips: Optional[str] = None) -> str:
    """Full state name for a USPS abbreviation; raises UnknownStateAbbreviationError."""
    key = str(abbreviation).strip().upper()
    try:
        return STATE_NAME_BY_ABBREVIATION[key]
    except KeyError:
        raise UnknownStateAbbreviationError(abbreviation, fips) from None


def normalize_subregion(area_names: pd.Series) -> pd.Series:
    """Strip a trailing ' County' and lowercase: 'Los Angeles County' -> 'los angeles'."""
    return (
        area_names.astype(str)
        .str.strip()
        .str.replace(r" County$", "", regex=True)
        .str.lower()
    )


def load_alias_file(path) -> Dict[Tuple[str, str], str]:
    """Reads extra aliases from a CSV with columns region, subregion, alias."""
    path = Path(path)
    if not path.exists():
        raise DataLoadError(path, "alias file not found")
    try:
        df = pd.read_csv(path, dtype=str)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise DataLoadError(path, f"could not be parsed ({e})") from e
    missing = [c for c in ("region", "subregion", "alias") if c not in df.columns]
    if missing:
        raise DataLoadError(path, f"missing expected column(s) {missing}", missing_columns=missing)
    df = df.dropna(subset=["region", "subregion", "alias"])
    aliases = {
        (r.strip().lower(), s.strip().lower()): a.strip().lower()
        for r, s, a in zip(df["region"], df["subregion"], df["alias"])
    }
    logging.info("Loaded %d subregion aliases from %s.", len(aliases), path.name)
    return aliases


def add_region_keys(df: pd.DataFrame, aliases: Optional[Dict[Tuple[str, str], str]] = None) -> pd.DataFrame:
    """
    Adds 'region' and 'subregion' columns derived from 'state' and 'area_name'.

    aliases extends (and overrides) SUBREGION_ALIASES. Raises
    UnknownStateAbbreviationError for the first abbreviation that is not in
    the state table.
    """
    df = df.copy()
    alias_table = {**SUBREGION_ALIASES, **(aliases or {})}

    abbreviations = df["state"].astype(str).str.strip().str.upper()
    unknown = ~abbreviations.isin(STATE_NAME_BY_ABBREVIATION.keys())
    if unknown.any():
        first = df.loc[unknown].iloc[0]
        logging.error(
            "%d rows have state abbreviations outside the reference table: %s",
            int(unknown.sum()), sorted(abbreviations[unknown].unique()),
        )
        state_name(first["state"], first.get("county_fips"))

    df["region"] = abbreviations.map(STATE_NAME_BY_ABBREVIATION).str.lower()
    df["subregion"] = normalize_subregion(df["area_name"])

    keys = list(zip(df["region"], df["subregion"]))
    aliased = [alias_table.get(k) for k in keys]
    n_aliased = sum(a is not None for a in aliased)
    if n_aliased:
        df["subregion"] = [a if a is not None else k[1] for k, a in zip(keys, aliased)]
        logging.info("Applied %d subregion aliases.", n_aliased)
    return df
