"""Reporting collaborators: file export and charts."""

from .charts import plot_state_counts
from .export import export_csv, export_json, results_frame

__all__ = ["export_csv", "export_json", "plot_state_counts", "results_frame"]
