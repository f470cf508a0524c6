"""Export functionality for CSV and JSON."""

import json

import pandas as pd

from ..simulation.results import ModelResult


def results_frame(result: ModelResult) -> pd.DataFrame:
    """Long-format counts for every strategy: strategy, cycle, state_names, count."""
    frames = []
    for name, strategy_result in result.strategies.items():
        long = strategy_result.counts_long()
        long.insert(0, "strategy", name)
        frames.append(long)
    df = pd.concat(frames, ignore_index=True)
    df["state_names"] = df["state_names"].astype(str)
    return df


def export_csv(result: ModelResult, filepath: str):
    """Export state counts by cycle for all strategies to CSV."""
    results_frame(result).to_csv(filepath, index=False)


def export_json(result: ModelResult, filepath: str):
    """Export counts, value totals and increments to JSON."""
    export_data = {
        'config_hash': result.config_hash,
        'strategies': {
            name: {
                'state_names': sr.state_names,
                'cohort_size': sr.cohort_size,
                'effect': sr.effect,
                'effect_total': sr.effect_total,
                'values': {
                    value_name: {
                        'total': acc.total,
                        'increments': acc.increments.tolist(),
                    }
                    for value_name, acc in sr.values.items()
                },
                'counts': sr.counts.to_dict(orient='list'),
            }
            for name, sr in result.strategies.items()
        },
        'parameters': result.parameter_trace.to_dict(orient='list'),
    }

    with open(filepath, 'w') as f:
        json.dump(export_data, f, indent=2)
