from dataclasses import replace

import numpy as np
import pandas as pd
import pytest

from ecosurvey.config import Override
from ecosurvey.exceptions import ConfigError, RawSchemaError, TableValidationError
from ecosurvey.normalize import ID_COLUMNS, apply_overrides, normalize_year
from ecosurvey.validators import validate_normalized

TAXA = ["ostracod", "amphipod", "copepod"]


def test_normalized_table_has_every_taxon_zero_filled(config, raw_2018):
    out = normalize_year(raw_2018, config.year(2018), config.taxa)
    assert list(out.columns) == ID_COLUMNS + TAXA
    assert out[TAXA].notna().all().all()
    assert (out[TAXA].dtypes == float).all()
    # copepod is not recorded in 2018
    assert out["copepod"].tolist() == [0.0, 0.0]


def test_volume_normalization_is_raw_over_divisor(config, raw_2018):
    out = normalize_year(raw_2018, config.year(2018), config.taxa)
    assert out.loc[0, "ostracod"] == 0.0
    assert out.loc[0, "amphipod"] == 2.0
    assert out.loc[1, "amphipod"] == 10.0  # 75 / 7.5


def test_unparseable_counts_become_zero_not_dropped(config, raw_2018):
    out = normalize_year(raw_2018, config.year(2018), config.taxa)
    assert len(out) == 2
    assert out.loc[1, "ostracod"] == 0.0


def test_metadata_columns_and_defaults(config, raw_2018):
    out = normalize_year(raw_2018, config.year(2018), config.taxa)
    assert out["date"].tolist() == [pd.Timestamp("2018-06-14"), pd.Timestamp("2018-10-02")]
    assert out["site"].tolist() == ["NEV", "SMC"]  # stripped, not yet canonical
    assert out["sample_type"].tolist() == ["FB250", "FB250"]
    assert out["sample_id"].tolist() == ["2018-0", "2018-1"]
    assert (out["survey_year"] == 2018).all()


def test_several_raw_columns_sum_into_one_taxon(config, raw_2020):
    out = normalize_year(raw_2020, config.year(2020), config.taxa)
    # (70 + 70) / 70 and (0 + missing) / 70
    assert out["copepod"].tolist() == [2.0, 0.0]


def test_drop_rows_and_override(config, raw_2020):
    out = normalize_year(raw_2020, config.year(2020), config.taxa)
    assert out["sample_id"].tolist() == ["2020-0", "2020-1"]
    # raw row 1: 1400 / 70 = 20, then the documented /10 correction
    assert out.loc[1, "amphipod"] == pytest.approx(2.0)
    assert out.loc[0, "amphipod"] == 2.0


def test_missing_required_column_is_fatal(config, raw_2018):
    raw = raw_2018.drop(columns=["amphipod"])
    with pytest.raises(RawSchemaError, match="inverts_2018.csv") as exc:
        normalize_year(raw, config.year(2018), config.taxa)
    assert exc.value.missing == ["amphipod"]


def test_headers_matched_after_normalization(config, raw_2018):
    raw = raw_2018.rename(columns={"Date": " Date ", "amphipod": "amphipod "})
    out = normalize_year(raw, config.year(2018), config.taxa)
    assert out.loc[0, "amphipod"] == 2.0


def test_apply_overrides_ops():
    df = pd.DataFrame({"amphipod": [20.0, 3.0, 4.0]}, index=[5, 6, 7])
    out = apply_overrides(df, [
        Override(row=5, column="amphipod", op="divide", value=10),
        Override(row=6, column="amphipod", op="multiply", value=2),
        Override(row=7, column="amphipod", op="set", value=0),
    ])
    assert out["amphipod"].tolist() == [2.0, 6.0, 0.0]
    assert df["amphipod"].tolist() == [20.0, 3.0, 4.0]


def test_override_on_missing_row_is_a_config_error():
    df = pd.DataFrame({"amphipod": [1.0]})
    with pytest.raises(ConfigError):
        apply_overrides(df, [Override(row=9, column="amphipod", op="divide", value=10)])


def test_negative_counts_rejected(config, raw_2018):
    raw = raw_2018.assign(amphipod=[15, -3])
    with pytest.raises(ValueError):
        normalize_year(raw, config.year(2018), config.taxa)


def test_row_without_site_names_the_file(config, raw_2018):
    raw = raw_2018.assign(Site=[None, "SMC"])
    with pytest.raises(TableValidationError, match="inverts_2018.csv") as exc:
        normalize_year(raw, config.year(2018), config.taxa)
    assert any(f.startswith("site") for f in exc.value.failures)


def test_header_only_file_gives_empty_table(config, raw_2018):
    out = normalize_year(raw_2018.iloc[0:0], config.year(2018), config.taxa)
    assert out.empty
    assert list(out.columns) == ID_COLUMNS + TAXA


def test_tagged_file_prefixes_sample_ids(config, raw_2020):
    cfg = replace(config.year(2020), tag="core")
    out = normalize_year(raw_2020, cfg, config.taxa)
    assert out["sample_id"].tolist() == ["2020-core-0", "2020-core-1"]
    assert (out["survey_year"] == 2020).all()


def test_infinite_count_fails_validation(config, raw_2018):
    out = normalize_year(raw_2018, config.year(2018), config.taxa)
    out.loc[0, "amphipod"] = np.inf
    with pytest.raises(TableValidationError, match="amphipod"):
        validate_normalized(out, TAXA)
