import numpy as np
import pandas as pd
import pytest

from county_beds_aggregation import add_per_capita_metrics, aggregate_qualifying_beds, join_population_beds
from county_beds_errors import DataLoadError
from county_geometry import (
    join_geometry,
    load_county_geometry,
    order_vertices_by_metric,
    polygons_to_vertices,
    vertices_to_polygons,
)
from county_names import add_region_keys


@pytest.fixture
def counties(facilities, population):
    beds = aggregate_qualifying_beds(facilities)
    joined, _ = join_population_beds(population, beds, 2018)
    return add_region_keys(add_per_capita_metrics(joined))


def test_load_county_geometry_derives_keys(input_files):
    _, _, county_file = input_files
    gdf = load_county_geometry(county_file)
    assert gdf["region"].tolist() == ["california", "california", "california", "nevada", "new mexico"]
    assert gdf["subregion"].tolist() == ["alameda", "alpine", "los angeles", "clark", "doña ana"]
    assert gdf["GEOID"].iloc[0] == "06001"


def test_load_county_geometry_missing_file(tmp_path):
    with pytest.raises(DataLoadError):
        load_county_geometry(tmp_path / "missing.shp")


def test_polygons_to_vertices_one_group_per_ring(region_shapes):
    vertices = polygons_to_vertices(region_shapes)
    # five boxes, Los Angeles has two parts; each box ring has 5 coordinates
    assert vertices["group"].nunique() == 6
    assert len(vertices) == 30
    la_groups = vertices.loc[vertices["subregion"] == "los angeles", "group"].unique()
    assert len(la_groups) == 2
    for _, g in vertices.groupby("group"):
        assert g["order"].tolist() == [1, 2, 3, 4, 5]


def test_geometry_left_join_preserves_every_vertex(region_shapes, counties):
    vertices = polygons_to_vertices(region_shapes)
    merged, audit, unmatched = join_geometry(vertices, counties)

    assert len(merged) == len(vertices)
    pd.testing.assert_frame_equal(merged[vertices.columns], vertices)

    alpine = merged[merged["subregion"] == "alpine"]
    assert len(alpine) == 5
    assert alpine["beds_per_1000"].isna().all()
    assert alpine["beds"].isna().all()

    alameda = merged[merged["subregion"] == "alameda"]
    assert (alameda["beds"] == 1200).all()
    assert alameda["percapitabeds"].iloc[0] == pytest.approx(0.00072, rel=1e-3)

    assert audit["polygon_groups_with_data"] == 4
    assert audit["polygon_groups_without_data"] == 2
    assert audit["counties_without_polygon"] == 0
    assert unmatched.empty


def test_counties_without_polygon_are_reported(region_shapes, counties):
    vertices = polygons_to_vertices(region_shapes[region_shapes["subregion"] != "clark"])
    merged, audit, unmatched = join_geometry(vertices, counties)
    assert audit["counties_without_polygon"] == 1
    assert unmatched["county_fips"].tolist() == ["32003"]
    assert len(merged) == len(vertices)


def test_fips_join_matches_name_join(region_shapes, counties):
    vertices = polygons_to_vertices(region_shapes)
    by_names, _, _ = join_geometry(vertices, counties, key="names")
    by_fips, audit, _ = join_geometry(vertices, counties, key="fips")
    assert len(by_fips) == len(vertices)
    np.testing.assert_allclose(by_fips["beds_per_1000"].to_numpy(), by_names["beds_per_1000"].to_numpy())
    assert audit["polygon_groups_with_data"] == 4


def test_duplicate_county_keys_do_not_multiply_vertices(region_shapes, counties):
    vertices = polygons_to_vertices(region_shapes)
    doubled = pd.concat([counties, counties.iloc[[0]]], ignore_index=True)
    merged, audit, _ = join_geometry(vertices, doubled)
    assert len(merged) == len(vertices)
    assert audit["county_rows_with_duplicate_key"] == 1


def test_unknown_join_key_rejected(region_shapes, counties):
    with pytest.raises(ValueError):
        join_geometry(polygons_to_vertices(region_shapes), counties, key="zip")


def test_order_by_metric_keeps_groups_contiguous_and_in_path_order(region_shapes, counties):
    merged, _, _ = join_geometry(polygons_to_vertices(region_shapes), counties)
    ordered = order_vertices_by_metric(merged, "beds_per_1000", ascending=False)

    assert len(ordered) == len(merged)
    # each group appears as one contiguous run
    runs = (ordered["group"] != ordered["group"].shift()).sum()
    assert runs == ordered["group"].nunique()
    for _, g in ordered.groupby("group", sort=False):
        assert g["order"].is_monotonic_increasing

    # groups without data come first, then highest metric
    first_groups = ordered.drop_duplicates("group")
    assert first_groups["beds_per_1000"].iloc[:2].isna().all()
    values = first_groups["beds_per_1000"].dropna().tolist()
    assert values == sorted(values, reverse=True)


def test_vertices_to_polygons_round_trip(region_shapes):
    vertices = polygons_to_vertices(region_shapes)
    polygons = vertices_to_polygons(vertices)
    assert len(polygons) == 6
    alameda = polygons[polygons["subregion"] == "alameda"].geometry.iloc[0]
    assert alameda.equals(region_shapes.geometry.iloc[0])
    assert polygons.crs == "EPSG:4326"
