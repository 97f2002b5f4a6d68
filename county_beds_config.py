#!/usr/bin/env python3
# ==============================================================================
# Copyright (c) 2025 Aaron Johnson, Drexel University
# Licensed under the MIT License - see LICENSE file for details
# ==============================================================================
"""
Run configuration for the county hospital beds per capita analysis.

Defaults live in CONFIG; every entry can be overridden with a COUNTY_BEDS_*
environment variable, and county_beds_analysis.parse_args() applies any
command-line overrides on top.
"""

import os
from pathlib import Path

# ======================= PATHS ==========================
BASE_DIR = Path(__file__).resolve().parent
DATA_DIR = BASE_DIR / "data"
SHAPE_DIR = BASE_DIR / "shapefiles"
DEFAULT_OUTDIR = BASE_DIR / "county_beds_output"

# --- External Data Files (USER MUST PROVIDE) ---
# Hospitals: HIFLD "Hospitals" CSV extract (COUNTYFIPS, BEDS, STATUS, TYPE)
# Population: USDA ERS PopulationEstimates CSV (FIPS, State, Area_Name, POP_ESTIMATE_<year>)
# Counties: https://www.census.gov/geographies/mapping-files/time-series/geo/tiger-line-file.html
FACILITY_FILE = DATA_DIR / "Hospitals.csv"
POPULATION_FILE = DATA_DIR / "PopulationEstimates.csv"
COUNTY_FILE = SHAPE_DIR / "tl_2024_us_county.shp"

# ======================= ANALYSIS CONSTANTS ==========================
BED_SENTINEL = -999
OPEN_STATUS = "OPEN"
QUALIFYING_TYPES = ("GENERAL ACUTE CARE", "CRITICAL ACCESS")

ZERO_BED_POLICIES = ("drop", "zero")
JOIN_KEYS = ("names", "fips")

# Source column names. Population estimate column is resolved from POP_YEAR.
FACILITY_COLUMNS = {
    "county_fips": "COUNTYFIPS",
    "beds": "BEDS",
    "status": "STATUS",
    "type": "TYPE",
}
POPULATION_COLUMNS = {
    "county_fips": "FIPS",
    "state": "State",
    "area_name": "Area_Name",
}
POP_ESTIMATE_PREFIX = "POP_ESTIMATE_"

# --- Projections ---
WGS84_CRS = "EPSG:4326"

# Alaska, Hawaii and the territories are left off the continental maps
NON_CONTIGUOUS_STATEFP = ["02", "15", "60", "66", "69", "72", "78"]


def _env_path(name, default):
    value = os.getenv(name)
    return Path(value) if value else default


CONFIG = {
    "FACILITY_FILE": _env_path("COUNTY_BEDS_FACILITY_FILE", FACILITY_FILE),
    "POPULATION_FILE": _env_path("COUNTY_BEDS_POPULATION_FILE", POPULATION_FILE),
    "COUNTY_FILE": _env_path("COUNTY_BEDS_COUNTY_FILE", COUNTY_FILE),
    "OUTDIR": _env_path("COUNTY_BEDS_OUTDIR", DEFAULT_OUTDIR),
    "ALIAS_FILE": _env_path("COUNTY_BEDS_ALIAS_FILE", None),
    "POP_YEAR": int(os.getenv("COUNTY_BEDS_POP_YEAR", "2018")),
    "ZERO_BED_POLICY": os.getenv("COUNTY_BEDS_ZERO_BED_POLICY", "drop"),
    "JOIN_KEY": os.getenv("COUNTY_BEDS_JOIN_KEY", "names"),
    "MAP_STATE": os.getenv("COUNTY_BEDS_MAP_STATE", "california"),
    "PER_CAPITA_SCALE": 1000,
    "MAP_CLASSES": int(os.getenv("COUNTY_BEDS_MAP_CLASSES", "5")),
    "RENDER_MAPS": os.getenv("COUNTY_BEDS_RENDER_MAPS", "1") not in ("0", "false", "False"),
}


def population_column(year):
    """Name of the population-estimate column for a reference year."""
    return f"{POP_ESTIMATE_PREFIX}{int(year)}"
