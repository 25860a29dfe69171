"""
Observation I/O Subpackage

Reading water-level records from delimited text files and exporting
analysis results as CSV tables or Excel workbooks.
"""

from tidewatch.obs_io.export import (
    build_event_details_table,
    build_event_table,
    build_series_table,
    build_summary_table,
    export_workbook,
    write_event_table_csv,
)
from tidewatch.obs_io.read_water_level import (
    LoadedFile,
    parse_timestamp,
    read_water_level_file,
)

__all__ = [
    'LoadedFile',
    'parse_timestamp',
    'read_water_level_file',
    'build_event_table',
    'build_series_table',
    'build_summary_table',
    'build_event_details_table',
    'write_event_table_csv',
    'export_workbook',
]
