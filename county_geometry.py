#!/usr/bin/env python3
# ==============================================================================
# Copyright (c) 2025 Aaron Johnson, Drexel University
# Licensed under the MIT License - see LICENSE file for details
# ==============================================================================
"""
County polygon geometry: loading, per-vertex tables and the join of county
metrics onto polygon vertices.

The vertex table has one row per polygon vertex with columns
region, subregion, GEOID, group, order, long, lat. A 'group' is one closed
ring; 'order' is the 1-based position of the vertex along that ring and must
never be shuffled within a group.
"""

import logging
from pathlib import Path
from typing import Dict, Tuple

import geopandas as gpd
import numpy as np
import pandas as pd
from shapely.geometry import MultiPolygon, Polygon
from tqdm import tqdm

from county_beds_config import WGS84_CRS
from county_beds_errors import DataLoadError
from county_names import STATE_NAME_BY_FIPS, normalize_subregion

VERTEX_COLUMNS = ["region", "subregion", "GEOID", "group", "order", "long", "lat"]
JOIN_KEYS = {
    "names": (["region", "subregion"], ["region", "subregion"]),
    "fips": (["GEOID"], ["county_fips"]),
}


def load_county_geometry(path) -> gpd.GeoDataFrame:
    """
    Loads county boundaries (TIGER/Line style: STATEFP, GEOID, NAME/NAMELSAD)
    and derives the region/subregion keys used for the name join.
    """
    path = Path(path)
    logging.info(f"Attempting to load county boundaries from: {path.name}")
    if not path.exists():
        raise DataLoadError(path, "county boundary file not found")
    try:
        gdf = gpd.read_file(path)
    except Exception as e:
        raise DataLoadError(path, f"could not be read as vector data ({e})") from e

    name_col = "NAMELSAD" if "NAMELSAD" in gdf.columns else "NAME"
    missing = [c for c in ("STATEFP", "GEOID", name_col) if c not in gdf.columns]
    if missing:
        raise DataLoadError(path, f"missing expected column(s) {missing}", missing_columns=missing)

    if gdf.crs is not None and gdf.crs != WGS84_CRS:
        gdf = gdf.to_crs(WGS84_CRS)

    gdf["STATEFP"] = gdf["STATEFP"].astype(str).str.zfill(2)
    gdf["GEOID"] = gdf["GEOID"].astype(str).str.zfill(5)
    gdf["region"] = gdf["STATEFP"].map(STATE_NAME_BY_FIPS).str.lower()
    # NAMELSAD keeps 'Parish', 'city', 'Borough' etc., which is how the
    # population file spells those county equivalents
    gdf["subregion"] = normalize_subregion(gdf[name_col])

    unknown_state = gdf["region"].isna()
    if unknown_state.any():
        logging.warning(f"{unknown_state.sum()} county shapes have an unrecognized STATEFP and are skipped.")
        gdf = gdf[~unknown_state]

    logging.info(f"Loaded county boundaries with {len(gdf)} counties.")
    return gdf[["STATEFP", "GEOID", "region", "subregion", "geometry"]].reset_index(drop=True)


def _exterior_rings(geom):
    if geom is None or geom.is_empty:
        return []
    if isinstance(geom, Polygon):
        return [geom.exterior]
    if isinstance(geom, MultiPolygon):
        return [p.exterior for p in geom.geoms]
    return []


def polygons_to_vertices(gdf: gpd.GeoDataFrame) -> pd.DataFrame:
    """
    Explodes county (multi)polygons into the per-vertex table.

    Each exterior ring becomes one group; interior rings (holes) are not
    represented.
    """
    geoid = gdf["GEOID"] if "GEOID" in gdf.columns else pd.Series(pd.NA, index=gdf.index)
    regions, subregions, geoids, groups, orders, longs, lats = [], [], [], [], [], [], []
    group_id = 0
    for region, subregion, code, geom in tqdm(
        zip(gdf["region"], gdf["subregion"], geoid, gdf.geometry),
        total=len(gdf), desc="Extracting vertices", disable=len(gdf) < 500,
    ):
        for ring in _exterior_rings(geom):
            coords = np.asarray(ring.coords)
            n = len(coords)
            group_id += 1
            regions.append(np.repeat(region, n))
            subregions.append(np.repeat(subregion, n))
            geoids.append(np.repeat(code, n))
            groups.append(np.full(n, group_id))
            orders.append(np.arange(1, n + 1))
            longs.append(coords[:, 0])
            lats.append(coords[:, 1])

    if not groups:
        logging.warning("No polygon vertices extracted.")
        return pd.DataFrame(columns=VERTEX_COLUMNS)

    vertices = pd.DataFrame({
        "region": np.concatenate(regions),
        "subregion": np.concatenate(subregions),
        "GEOID": np.concatenate(geoids),
        "group": np.concatenate(groups),
        "order": np.concatenate(orders),
        "long": np.concatenate(longs),
        "lat": np.concatenate(lats),
    })
    logging.info(f"Extracted {len(vertices):,} vertices in {group_id:,} polygon groups.")
    return vertices


def join_geometry(
    vertices: pd.DataFrame, counties: pd.DataFrame, key: str = "names"
) -> Tuple[pd.DataFrame, Dict[str, int], pd.DataFrame]:
    """
    Left-joins county metrics onto polygon vertices.

    key='names' matches on (region, subregion); key='fips' matches the
    vertex GEOID against county_fips. Every vertex row is kept, in its
    original order; polygons without a matching county carry NaN metrics.

    Returns the joined vertex table, a dict of match counts, and the county
    rows that found no polygon.
    """
    if key not in JOIN_KEYS:
        raise ValueError(f"key must be one of {tuple(JOIN_KEYS)}, got {key!r}")
    left_on, right_on = JOIN_KEYS[key]

    data = counties.copy()
    if key == "fips":
        # region/subregion come from the geometry side
        data = data.drop(columns=[c for c in ("region", "subregion") if c in data.columns])

    audit = {}
    duplicated = data.duplicated(subset=right_on, keep="first")
    audit["county_rows_with_duplicate_key"] = int(duplicated.sum())
    if duplicated.any():
        dupes = data.loc[duplicated, right_on].drop_duplicates().to_dict("records")
        logging.warning(
            f"{duplicated.sum()} county rows share a join key with an earlier row and are ignored: {dupes[:10]}"
        )
        data = data[~duplicated]

    merged = vertices.merge(
        data, how="left", left_on=left_on, right_on=right_on,
        indicator="_match", validate="many_to_one",
    )
    if key == "fips":
        merged = merged.drop(columns=right_on)

    unmatched_vertices = merged["_match"] == "left_only"
    audit["polygon_groups_without_data"] = int(merged.loc[unmatched_vertices, "group"].nunique())
    audit["polygon_groups_with_data"] = int(merged.loc[~unmatched_vertices, "group"].nunique())
    merged = merged.drop(columns="_match").reset_index(drop=True)

    vertex_keys = vertices[left_on].drop_duplicates()
    vertex_keys.columns = right_on
    probe = data.merge(vertex_keys, on=right_on, how="left", indicator="_match")
    unmatched_counties = probe.loc[probe["_match"] == "left_only"].drop(columns="_match").reset_index(drop=True)
    audit["counties_without_polygon"] = len(unmatched_counties)

    logging.info(
        f"Geometry join on {key}: {audit['polygon_groups_with_data']} polygon groups matched, "
        f"{audit['polygon_groups_without_data']} without data."
    )
    if len(unmatched_counties):
        examples = unmatched_counties[right_on].head(10).to_dict("records")
        logging.warning(f"{len(unmatched_counties)} counties found no polygon and will not be mapped: {examples}")
    return merged, audit, unmatched_counties


def order_vertices_by_metric(vertices: pd.DataFrame, column: str, ascending: bool = True) -> pd.DataFrame:
    """
    Reorders polygon groups by a per-group metric. Vertices of a group stay
    contiguous and in path order; groups without a value come first.
    """
    group_value = vertices.groupby("group", sort=False)[column].transform("first")
    ordered = vertices.assign(_group_value=group_value).sort_values(
        ["_group_value", "group", "order"],
        ascending=[ascending, True, True],
        kind="mergesort",
        na_position="first",
    )
    return ordered.drop(columns="_group_value").reset_index(drop=True)


def vertices_to_polygons(vertices: pd.DataFrame, crs: str = WGS84_CRS) -> gpd.GeoDataFrame:
    """Rebuilds one polygon per group from the vertex table, for plotting."""
    attr_cols = [c for c in vertices.columns if c not in ("order", "long", "lat")]
    records, geoms = [], []
    for _, g in vertices.groupby("group", sort=False):
        g = g.sort_values("order", kind="mergesort")
        geoms.append(Polygon(np.column_stack([g["long"].to_numpy(), g["lat"].to_numpy()])))
        records.append(g[attr_cols].iloc[0])
    attrs = pd.DataFrame(records, columns=attr_cols).reset_index(drop=True)
    return gpd.GeoDataFrame(attrs, geometry=geoms, crs=crs)
