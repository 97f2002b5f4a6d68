import matplotlib

matplotlib.use("Agg")

import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import MultiPolygon, box


@pytest.fixture
def facilities():
    return pd.DataFrame({
        "COUNTYFIPS": ["06001", "06001", "06001", "06001", "06001", "06037", "06003", "32003", "48201"],
        "BEDS": [700, 500, 300, 400, -999, 2500, 20, 3000, 100],
        "STATUS": ["OPEN", "OPEN", "OPEN", "CLOSED", "OPEN", "OPEN", "OPEN", "OPEN", "OPEN"],
        "TYPE": [
            "GENERAL ACUTE CARE", "CRITICAL ACCESS", "PSYCHIATRIC", "GENERAL ACUTE CARE",
            "GENERAL ACUTE CARE", "GENERAL ACUTE CARE", "PSYCHIATRIC", "GENERAL ACUTE CARE",
            "GENERAL ACUTE CARE",
        ],
    })


@pytest.fixture
def population():
    return pd.DataFrame({
        "FIPS": ["00000", "06000", "06001", "06003", "06037", "32003", "35013"],
        "State": ["US", "CA", "CA", "CA", "CA", "NV", "NM"],
        "Area_Name": [
            "United States", "California", "Alameda County", "Alpine County",
            "Los Angeles County", "Clark County", "Dona Ana County",
        ],
        "POP_ESTIMATE_2018": [327167434, 39557045, 1666753, 1101, 10105518, 2231647, 217522],
    })


@pytest.fixture
def county_shapes():
    return gpd.GeoDataFrame(
        {
            "STATEFP": ["06", "06", "06", "32", "35"],
            "GEOID": ["06001", "06003", "06037", "32003", "35013"],
            "NAME": ["Alameda", "Alpine", "Los Angeles", "Clark", "Doña Ana"],
            "NAMELSAD": ["Alameda County", "Alpine County", "Los Angeles County", "Clark County", "Doña Ana County"],
        },
        geometry=[
            box(-122.0, 37.0, -121.0, 38.0),
            box(-120.0, 38.0, -119.0, 39.0),
            MultiPolygon([box(-119.0, 34.0, -118.0, 35.0), box(-118.6, 33.2, -118.3, 33.5)]),
            box(-116.0, 35.0, -114.0, 37.0),
            box(-107.5, 32.0, -106.0, 33.0),
        ],
        crs="EPSG:4326",
    )


@pytest.fixture
def region_shapes(county_shapes):
    """County shapes with the derived region/subregion keys."""
    shapes = county_shapes.copy()
    shapes["region"] = ["california", "california", "california", "nevada", "new mexico"]
    shapes["subregion"] = ["alameda", "alpine", "los angeles", "clark", "doña ana"]
    return shapes


@pytest.fixture
def input_files(tmp_path, facilities, population, county_shapes):
    """Facility CSV, population CSV (with thousands separators) and a county GeoJSON."""
    facility_csv = tmp_path / "Hospitals.csv"
    facilities.to_csv(facility_csv, index=False)

    population_csv = tmp_path / "PopulationEstimates.csv"
    pop = population.copy()
    pop["POP_ESTIMATE_2018"] = pop["POP_ESTIMATE_2018"].map("{:,}".format)
    pop.to_csv(population_csv, index=False)

    county_file = tmp_path / "counties.geojson"
    county_shapes.to_file(county_file, driver="GeoJSON")
    return facility_csv, population_csv, county_file
