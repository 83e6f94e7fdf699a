import pandas as pd
import pytest

from ecosurvey.config import SourceConfig
from ecosurvey.edna import EDNA_COLUMNS, edna_detection_matrix, normalize_edna

CFG = SourceConfig(
    file="edna_export.csv",
    skiprows=4,
    columns={"Sample Name": "sample_id", "Collection Date": "date", "Site Code": "site",
             "Species": "taxon", "Read Count": "reads"},
)


def _raw():
    return pd.DataFrame({
        "Sample Name": ["S1", "S1", "S1", "S2", "S2", None],
        "Collection Date": ["2021-05-04"] * 5 + [None],
        "Site Code": ["NEV", "NEV", "NEV", "SMP", "SMP", None],
        "Species": ["Gasterosteus aculeatus", "Gasterosteus aculeatus", "Eucyclogobius newberryi",
                    "Gasterosteus aculeatus", "Eucyclogobius newberryi", None],
        "Read Count": [120, 30, "<LOD", 0, 45, 9999],
    })


def test_reads_summed_per_sample_and_species():
    out = normalize_edna(_raw(), CFG, {"NEV": "NEC"})
    assert list(out.columns) == EDNA_COLUMNS
    s1 = out[(out.sample_id == "S1") & (out.taxon == "Gasterosteus aculeatus")].iloc[0]
    assert s1["reads"] == 150.0
    assert s1["site"] == "NEC"
    assert bool(s1["detected"])


def test_unparseable_reads_are_not_detections():
    out = normalize_edna(_raw(), CFG, {"NEV": "NEC"})
    row = out[(out.sample_id == "S1") & (out.taxon == "Eucyclogobius newberryi")].iloc[0]
    assert row["reads"] == 0.0
    assert not bool(row["detected"])


def test_summary_rows_without_species_are_dropped():
    out = normalize_edna(_raw(), CFG)
    assert len(out) == 4
    assert out["taxon"].notna().all()


def test_detection_matrix():
    m = edna_detection_matrix(normalize_edna(_raw(), CFG, {"NEV": "NEC"}))
    assert m.loc["NEC", "Gasterosteus aculeatus"]
    assert not m.loc["NEC", "Eucyclogobius newberryi"]
    assert not m.loc["SMP", "Gasterosteus aculeatus"]
    assert m.loc["SMP", "Eucyclogobius newberryi"]


def test_missing_vendor_column():
    with pytest.raises(KeyError, match="Read_Count"):
        normalize_edna(_raw().drop(columns=["Read Count"]), CFG)
