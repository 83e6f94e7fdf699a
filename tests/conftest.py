import pandas as pd
import pytest

from ecosurvey.config import parse_survey_config

TAXA = ["ostracod", "amphipod", "copepod"]


def survey_dict():
    return {
        "taxa": list(TAXA),
        "years": [
            {
                "year": 2018,
                "file": "inverts_2018.csv",
                "divisor": 7.5,
                "date_format": "%m/%d/%Y",
                "defaults": {"sample_type": "FB250"},
                "columns": {"Date": "date", "Site": "site", "ostracod": "ostracod", "amphipod": "amphipod"},
            },
            {
                "year": 2020,
                "file": "inverts_2020.csv",
                "skiprows": 2,
                "divisor": 70,
                "drop_rows": [2],
                "columns": {
                    "Date Collected": "date",
                    "Site": "site",
                    "Method": "sample_type",
                    "Amphipoda": "amphipod",
                    "Copepoda (calanoid)": "copepod",
                    "Copepoda (cyclopoid)": "copepod",
                },
                "overrides": [{"row": 1, "column": "amphipod", "op": "divide", "value": 10}],
            },
        ],
        "site_corrections": {"NEV": "NEC", "SCM": "SMC"},
        "sample_types": {
            "exact": {"FB 250": "FB250", "fb250": "FB250"},
            "contains": [{"pattern": "CORE", "canonical": "CORE"}],
        },
        "seasons": {
            "months": {1: "winter", 2: "winter", 3: "spring", 4: "spring", 5: "spring", 6: "summer",
                       7: "summer", 8: "summer", 9: "autum", 10: "autum", 11: "autum", 12: "winter"},
            "renames": {"autum": "fall", "autumn": "fall"},
        },
        "lookups": {"site_metadata": "site_metadata.csv", "breach_intervals": "breach_intervals.csv"},
    }


SITE_METADATA_CSV = """site,site_name,site_type,reserve,description
NEC,North Estuary Channel,slough,North Reserve,channel
SMC,South Marsh Channel,slough,South Reserve,channel
SMP,South Marsh Pool,pool,South Reserve,pool
"""

BREACH_CSV = """start,end,breach_status
2018-01-01,2018-05-31,open
2018-05-01,2018-12-31,closed
2020-01-01,2020-12-31,open
"""


@pytest.fixture
def lookup_dir(tmp_path):
    (tmp_path / "site_metadata.csv").write_text(SITE_METADATA_CSV)
    (tmp_path / "breach_intervals.csv").write_text(BREACH_CSV)
    return tmp_path


@pytest.fixture
def survey_raw():
    return survey_dict()


@pytest.fixture
def config(lookup_dir):
    return parse_survey_config(survey_dict(), base_dir=lookup_dir)


@pytest.fixture
def raw_2018():
    return pd.DataFrame({
        "Date": ["06/14/2018", "10/02/2018"],
        "Site": ["NEV", " SMC "],
        "ostracod": [0, "n/a"],
        "amphipod": [15, 75],
    })


@pytest.fixture
def raw_2020():
    # header rows already skipped; row 2 is an unfinished sample
    return pd.DataFrame({
        "Date Collected": ["2020-03-05", "2020-03-05", "2020-04-01"],
        "Site": ["SMP", "ZZZ9", "SMP"],
        "Method": ["FB 250", "core-a", "FB250"],
        "Amphipoda": [140, 1400, 7],
        "Copepoda (calanoid)": [70, 0, 1],
        "Copepoda (cyclopoid)": [70, None, 1],
    })
