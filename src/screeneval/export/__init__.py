"""Export payloads and the moderated dataset."""

from .payload import build_export_payload, format_metric, row_details
from .moderated import moderated_dataframe, write_moderated_csv

__all__ = [
    "build_export_payload",
    "format_metric",
    "row_details",
    "moderated_dataframe",
    "write_moderated_csv",
]
