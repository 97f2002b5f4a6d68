import pandas as pd
import pytest

from county_beds_errors import DataLoadError, UnknownStateAbbreviationError
from county_names import (
    STATE_NAME_BY_ABBREVIATION,
    STATE_NAME_BY_FIPS,
    add_region_keys,
    load_alias_file,
    normalize_subregion,
    state_name,
)


def _counties(**overrides):
    data = {
        "county_fips": ["06037", "06001"],
        "state": ["CA", "CA"],
        "area_name": ["Los Angeles County", "Alameda County"],
    }
    data.update(overrides)
    return pd.DataFrame(data)


def test_state_table_covers_states_dc_and_territories():
    assert len(STATE_NAME_BY_ABBREVIATION) == 56
    for code in ("DC", "PR", "GU", "VI", "AS", "MP"):
        assert code in STATE_NAME_BY_ABBREVIATION
    assert STATE_NAME_BY_FIPS["06"] == "California"


def test_state_name_lookup():
    assert state_name("CA") == "California"
    assert state_name(" ny ") == "New York"


def test_state_name_unknown_raises_with_context():
    with pytest.raises(UnknownStateAbbreviationError) as excinfo:
        state_name("XX", fips="99001")
    assert excinfo.value.abbreviation == "XX"
    assert excinfo.value.fips == "99001"
    assert "99001" in str(excinfo.value)


def test_normalize_subregion_strips_county_suffix():
    out = normalize_subregion(pd.Series(["Los Angeles County", "Acadia Parish", "Baltimore city", "County Line"]))
    assert out.tolist() == ["los angeles", "acadia parish", "baltimore city", "county line"]


def test_add_region_keys_los_angeles():
    out = add_region_keys(_counties())
    row = out.iloc[0]
    assert row["region"] == "california"
    assert row["subregion"] == "los angeles"
    assert out.iloc[1]["subregion"] == "alameda"


def test_add_region_keys_unknown_abbreviation_raises():
    with pytest.raises(UnknownStateAbbreviationError) as excinfo:
        add_region_keys(_counties(state=["CA", "ZZ"]))
    assert excinfo.value.abbreviation == "ZZ"
    assert excinfo.value.fips == "06001"


def test_builtin_alias_applied():
    df = pd.DataFrame({"county_fips": ["35013"], "state": ["NM"], "area_name": ["Dona Ana County"]})
    out = add_region_keys(df)
    assert out["subregion"].item() == "doña ana"


def test_extra_aliases_override(tmp_path):
    path = tmp_path / "aliases.csv"
    path.write_text("region,subregion,alias\nCalifornia,Alameda,Alameda Island\n")
    aliases = load_alias_file(path)
    assert aliases == {("california", "alameda"): "alameda island"}
    out = add_region_keys(_counties(), aliases)
    assert out["subregion"].tolist() == ["los angeles", "alameda island"]


def test_alias_file_missing_columns(tmp_path):
    path = tmp_path / "aliases.csv"
    path.write_text("region,alias\ncalifornia,x\n")
    with pytest.raises(DataLoadError):
        load_alias_file(path)
