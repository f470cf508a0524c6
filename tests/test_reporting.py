"""Tests for result export and charts."""

import json

import pytest
import sys
import os

import pandas as pd
import plotly.graph_objects as go

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from markov_cohort.config.loader import load_config
from markov_cohort.reporting.charts import plot_state_counts
from markov_cohort.reporting.export import export_csv, export_json, results_frame
from markov_cohort.simulation.runner import run_model


@pytest.fixture(scope="module")
def result():
    return run_model(load_config())


class TestExport:
    """File export of model results."""

    def test_results_frame_long_format(self, result):
        df = results_frame(result)
        assert list(df.columns) == ["strategy", "cycle", "state_names", "count"]
        assert len(df) == 61 * 4
        first = df[(df["state_names"] == "SD") & (df["cycle"] == 0)]
        assert first["count"].iloc[0] == 1.0

    def test_counts_long_keeps_state_order(self, result):
        long = result["AA"].counts_long()
        assert list(long["state_names"].cat.categories) == ["SD", "SD_FAT", "PD", "Death"]
        assert long["state_names"].iloc[0] == "SD"

    def test_export_csv(self, result, tmp_path):
        path = tmp_path / "counts.csv"
        export_csv(result, str(path))
        df = pd.read_csv(path)
        assert len(df) == 61 * 4
        assert set(df["state_names"]) == {"SD", "SD_FAT", "PD", "Death"}

    def test_export_json(self, result, tmp_path):
        path = tmp_path / "result.json"
        export_json(result, str(path))
        with open(path) as f:
            data = json.load(f)
        aa = data["strategies"]["AA"]
        assert data["config_hash"] == result.config_hash
        assert aa["effect"] == "SurvMo"
        assert aa["effect_total"] == pytest.approx(result["AA"].effect_total)
        assert len(aa["values"]["SurvMo"]["increments"]) == 60
        assert len(aa["counts"]["Death"]) == 61
        assert len(data["parameters"]["Pr_SD_to_SDFAT"]) == 61


class TestCharts:
    """Plotly chart construction."""

    def test_counts_by_state(self, result):
        fig = plot_state_counts(result)
        assert isinstance(fig, go.Figure)
        assert len(fig.data) == 4
        assert [a.text for a in fig.layout.annotations] == ["SD", "SD_FAT", "PD", "Death"]

    def test_counts_by_strategy(self, result):
        fig = plot_state_counts(result, panel="by_strategy")
        assert len(fig.data) == 4
        assert [trace.name for trace in fig.data] == ["SD", "SD_FAT", "PD", "Death"]

    def test_unknown_panel(self, result):
        with pytest.raises(ValueError):
            plot_state_counts(result, panel="by_color")


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
