#!/usr/bin/env python3
# ==============================================================================
# Copyright (c) 2025 Aaron Johnson, Drexel University
# Licensed under the MIT License - see LICENSE file for details
# ==============================================================================
"""
County Hospital Beds per Capita

End-to-end workflow joining hospital facility records with county population
estimates and mapping qualifying hospital beds per 1,000 residents:
  1. Load the facility and population CSV files.
  2. Sum beds of open general acute care and critical access hospitals per county.
  3. Join with population and compute beds per capita / per 1,000.
  4. Derive region/subregion name keys and join onto county polygons.
  5. Write the per-county table, a join audit and the figures.

Usage example
-------------
python county_beds_analysis.py --facilities data/Hospitals.csv \
    --population data/PopulationEstimates.csv --counties shapefiles/tl_2024_us_county.shp
"""

import argparse
import json
import logging
import sys
import warnings
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from county_beds_aggregation import add_per_capita_metrics, aggregate_qualifying_beds, join_population_beds
from county_beds_config import CONFIG, JOIN_KEYS, ZERO_BED_POLICIES
from county_beds_errors import CountyBedsError
from county_beds_loading import load_facility_data, load_population_data
from county_beds_maps import render_all
from county_geometry import join_geometry, load_county_geometry, polygons_to_vertices
from county_names import add_region_keys, load_alias_file


# ======================= SETUP ================================
def setup_environment(outdir: Path) -> None:
    """Create the output directory and configure logging."""
    outdir.mkdir(parents=True, exist_ok=True)
    log_file = outdir / "analysis_log.txt"
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)-8s] %(message)s",
        handlers=[
            logging.FileHandler(log_file, mode='w'),
            logging.StreamHandler(sys.stdout)
        ],
    )
    logging.info("=" * 60)
    logging.info(f"RUN STARTED: {datetime.now().isoformat()}")
    logging.info("=" * 60)


def parse_args(argv=None) -> Dict[str, Any]:
    """Parse command-line overrides and return the effective configuration."""
    p = argparse.ArgumentParser(description="Qualifying hospital beds per capita by US county")
    p.add_argument("--facilities", type=Path, default=CONFIG["FACILITY_FILE"], help="Hospital facility CSV")
    p.add_argument("--population", type=Path, default=CONFIG["POPULATION_FILE"], help="County population estimates CSV")
    p.add_argument("--counties", type=Path, default=CONFIG["COUNTY_FILE"], help="County boundary shapefile")
    p.add_argument("--outdir", type=Path, default=CONFIG["OUTDIR"], help=f"Output directory (default: {CONFIG['OUTDIR']})")
    p.add_argument("--pop-year", type=int, default=CONFIG["POP_YEAR"], help=f"Population estimate year (default: {CONFIG['POP_YEAR']})")
    p.add_argument("--zero-bed-policy", choices=ZERO_BED_POLICIES, default=CONFIG["ZERO_BED_POLICY"],
                   help="'drop' excludes counties without qualifying beds, 'zero' keeps them with 0 beds")
    p.add_argument("--join-key", choices=JOIN_KEYS, default=CONFIG["JOIN_KEY"],
                   help="Match counties to polygons by state/county names or by FIPS code")
    p.add_argument("--state", default=CONFIG["MAP_STATE"], help=f"State for the single-state map (default: {CONFIG['MAP_STATE']})")
    p.add_argument("--classes", type=int, choices=range(2, 8), default=CONFIG["MAP_CLASSES"], help="Number of map classes")
    p.add_argument("--aliases", type=Path, default=CONFIG["ALIAS_FILE"], help="Extra subregion aliases CSV (region,subregion,alias)")
    p.add_argument("--no-maps", action="store_true", help="Skip figure generation")

    args = p.parse_args(argv)
    config = dict(CONFIG)
    config.update({
        "FACILITY_FILE": args.facilities,
        "POPULATION_FILE": args.population,
        "COUNTY_FILE": args.counties,
        "OUTDIR": args.outdir,
        "POP_YEAR": args.pop_year,
        "ZERO_BED_POLICY": args.zero_bed_policy,
        "JOIN_KEY": args.join_key,
        "MAP_STATE": args.state,
        "MAP_CLASSES": args.classes,
        "ALIAS_FILE": args.aliases,
        "RENDER_MAPS": CONFIG["RENDER_MAPS"] and not args.no_maps,
    })
    return config


# ======================= PIPELINE ==========================
def run_pipeline(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Runs every stage once. Load and normalization errors propagate as
    CountyBedsError subclasses; join mismatches are logged and counted.
    """
    outdir = Path(config["OUTDIR"])
    outdir.mkdir(parents=True, exist_ok=True)
    scale = config["PER_CAPITA_SCALE"]
    metric_col = f"beds_per_{scale}"

    logging.info("\n" + "=" * 20 + " LOADING DATA " + "=" * 20)
    facilities = load_facility_data(config["FACILITY_FILE"])
    population = load_population_data(config["POPULATION_FILE"], config["POP_YEAR"])

    logging.info("\n" + "=" * 20 + " AGGREGATING AND JOINING " + "=" * 20)
    beds = aggregate_qualifying_beds(facilities)
    counties, population_audit = join_population_beds(
        population, beds, config["POP_YEAR"], zero_bed_policy=config["ZERO_BED_POLICY"]
    )
    counties = add_per_capita_metrics(counties, scale=scale)

    aliases = load_alias_file(config["ALIAS_FILE"]) if config.get("ALIAS_FILE") else None
    counties = add_region_keys(counties, aliases)

    county_csv = outdir / "county_beds_per_capita.csv"
    counties.to_csv(county_csv, index=False)
    logging.info(f"Saved per-county table ({len(counties)} rows) to {county_csv}")

    logging.info("\n" + "=" * 20 + " GEOMETRY JOIN " + "=" * 20)
    county_shapes = load_county_geometry(config["COUNTY_FILE"])
    vertices = polygons_to_vertices(county_shapes)
    joined_vertices, geometry_audit, unmatched = join_geometry(vertices, counties, key=config["JOIN_KEY"])

    unmatched_csv = outdir / "counties_without_polygon.csv"
    unmatched.to_csv(unmatched_csv, index=False)
    logging.info(f"Saved {len(unmatched)} unmatched counties to {unmatched_csv}")

    figures = []
    if config["RENDER_MAPS"]:
        figures = render_all(
            counties, joined_vertices, outdir / "figures",
            column=metric_col, state=config["MAP_STATE"], n_classes=config["MAP_CLASSES"],
        )

    audit = {**population_audit, **geometry_audit}
    summary_path = outdir / "run_summary.json"
    with open(summary_path, "w") as f:
        json.dump({
            "config": {k: (str(v) if isinstance(v, Path) else v) for k, v in config.items()},
            "counties_joined": len(counties),
            "qualifying_beds_total": int(counties["beds"].sum()),
            "audit": audit,
            "figures": [str(p) for p in figures],
        }, f, indent=2)
    logging.info(f"Run summary written to {summary_path}")
    for name, count in audit.items():
        logging.info(f"  {name}: {count}")

    return {
        "counties": counties,
        "joined_vertices": joined_vertices,
        "unmatched": unmatched,
        "audit": audit,
        "figures": figures,
    }


# ======================= MAIN EXECUTION ==========================
def main(argv=None):
    """Main function to orchestrate the analysis workflow."""
    config = parse_args(argv)
    setup_environment(Path(config["OUTDIR"]))
    warnings.filterwarnings("ignore", category=FutureWarning)
    try:
        run_pipeline(config)
    except CountyBedsError as e:
        logging.error(f"FATAL: {e}")
        sys.exit(1)

    logging.info("=" * 60)
    logging.info("RUN COMPLETED")
    logging.info("=" * 60)


if __name__ == "__main__":
    main()
