"""
Unit tests for the obs_io subpackage and the command-line entry point.

Tests cover:
- Timestamp parsing and the delimited water-level reader
- Event, series and summary tables; CSV and Excel export
- tidewatch.cli argument handling and exit codes
"""
import json
from datetime import date, datetime

import numpy as np
import pandas as pd
import pytest


def _write_record(path, levels, start='2024-01-01', freq='1min', delimiter='\t'):
    """Write a headerless timestamp/level file."""
    times = pd.date_range(start, periods=len(levels), freq=freq)
    with open(path, 'w') as f:
        for t, v in zip(times, levels):
            f.write(f"{t:%Y-%m-%d %H:%M}{delimiter}{v:.4f}\n")
    return path


def _result(n=360, gap=(100, 104)):
    """Analysis result for a gently varying record with one gap."""
    from tidewatch.event_analysis import AnalysisConfig, Sample, run_analysis

    times = pd.date_range('2024-01-01', periods=n, freq='1min')
    levels = 1.0 + 0.3 * np.sin(2 * np.pi * np.arange(n) / 745.2)
    levels[200:203] += 1.0
    samples = [
        Sample(timestamp=t.to_pydatetime(), level=float(v), original_index=i)
        for i, (t, v) in enumerate(zip(times, levels))
        if not gap[0] <= i < gap[1]
    ]
    return run_analysis(samples, AnalysisConfig(confidence_threshold='Low'))


# -----------------------------------------------------------------------
# Reader tests
# -----------------------------------------------------------------------

class TestParseTimestamp:
    """Tests for read_water_level.parse_timestamp."""

    def test_minutes(self):
        from tidewatch.obs_io import parse_timestamp
        assert parse_timestamp('2024-03-05 14:30') == datetime(2024, 3, 5, 14, 30)

    def test_seconds(self):
        from tidewatch.obs_io import parse_timestamp
        assert parse_timestamp(' 2024-03-05 14:30:15 ') == datetime(
            2024, 3, 5, 14, 30, 15,
        )

    def test_time_only_uses_today(self):
        from tidewatch.obs_io import parse_timestamp
        assert parse_timestamp('06:45', today=date(2024, 7, 1)) == datetime(
            2024, 7, 1, 6, 45,
        )

    def test_iso_offset_to_utc(self):
        """Offsets are converted to naive UTC."""
        from tidewatch.obs_io import parse_timestamp
        assert parse_timestamp('2024-03-05T14:30:00+02:00') == datetime(
            2024, 3, 5, 12, 30,
        )

    def test_rejects_garbage(self):
        from tidewatch.obs_io import parse_timestamp
        assert parse_timestamp('yesterday') is None
        assert parse_timestamp('2024-13-45 10:00') is None


class TestReader:
    """Tests for read_water_level.read_water_level_file."""

    def test_reads_tab_file(self, tmp_path):
        from tidewatch.obs_io import read_water_level_file

        path = _write_record(tmp_path / 'station.txt', np.linspace(1.0, 1.2, 20))
        loaded = read_water_level_file(path)

        assert loaded.filename == 'station.txt'
        assert len(loaded.samples) == 20
        assert loaded.errors == ()
        assert loaded.is_valid
        assert loaded.samples[0].original_index == 0
        assert loaded.samples[-1].level == pytest.approx(1.2)

    def test_bad_rows_reported(self, tmp_path):
        """Unreadable rows are skipped and reported with 1-based numbers."""
        from tidewatch.obs_io import read_water_level_file

        lines = [f"2024-01-01 00:{m:02d}\t{1 + m / 100:.2f}" for m in range(12)]
        lines[2] = 'not-a-time\t1.00'
        lines[5] = '2024-01-01 00:05\tabc'
        path = tmp_path / 'bad.txt'
        path.write_text('\n'.join(lines) + '\n')

        loaded = read_water_level_file(path)

        assert len(loaded.samples) == 10
        assert loaded.errors == (
            'Row 3: Invalid timestamp format "not-a-time"',
            'Row 6: Invalid sea level value "abc"',
        )
        assert not loaded.is_valid
        assert [s.original_index for s in loaded.samples][:3] == [0, 1, 3]

    def test_samples_sorted(self, tmp_path):
        from tidewatch.obs_io import read_water_level_file

        path = tmp_path / 'unordered.txt'
        path.write_text(
            '2024-01-01 00:02\t3.0\n'
            '2024-01-01 00:00\t1.0\n'
            '2024-01-01 00:01\t2.0\n'
        )
        loaded = read_water_level_file(path)

        assert [s.level for s in loaded.samples] == [1.0, 2.0, 3.0]
        assert [s.original_index for s in loaded.samples] == [1, 2, 0]
        # Fewer than 10 points only warns
        assert loaded.errors == (
            'Warning: File contains very few data points, analysis may be '
            'limited',
        )
        assert loaded.is_valid

    def test_custom_delimiter(self, tmp_path):
        from tidewatch.obs_io import read_water_level_file

        path = _write_record(
            tmp_path / 'station.csv', np.zeros(15), delimiter=',',
        )
        assert len(read_water_level_file(path, delimiter=',').samples) == 15

    def test_empty_file(self, tmp_path):
        from tidewatch.obs_io import read_water_level_file

        path = tmp_path / 'empty.txt'
        path.write_text('\n\n')
        with pytest.raises(ValueError, match='File is empty'):
            read_water_level_file(path)

    def test_single_column(self, tmp_path):
        from tidewatch.obs_io import read_water_level_file

        path = tmp_path / 'one.txt'
        path.write_text('2024-01-01 00:00\n2024-01-01 00:01\n')
        with pytest.raises(ValueError, match='at least 2 columns'):
            read_water_level_file(path)

    def test_short_row_skipped(self, tmp_path):
        """A row without a level column is dropped without an error."""
        from tidewatch.obs_io import read_water_level_file

        lines = [f"2024-01-01 00:{m:02d}\t{1 + m / 100:.2f}" for m in range(12)]
        lines[4] = '2024-01-01 00:04'
        path = tmp_path / 'short_row.txt'
        path.write_text('\n'.join(lines) + '\n')

        loaded = read_water_level_file(path)

        assert len(loaded.samples) == 11
        assert loaded.errors == ()
        assert 4 not in [s.original_index for s in loaded.samples]

    def test_short_first_row(self, tmp_path):
        from tidewatch.obs_io import read_water_level_file

        path = tmp_path / 'short_first.txt'
        path.write_text(
            '2024-01-01 00:00\n'
            '2024-01-01 00:01\t1.0\n'
            '2024-01-01 00:02\t1.1\n'
        )
        with pytest.raises(ValueError, match='at least 2 columns'):
            read_water_level_file(path)

    def test_level_with_trailing_text(self, tmp_path):
        """Only the leading number of the level field is read."""
        from tidewatch.obs_io import read_water_level_file

        path = tmp_path / 'units.txt'
        path.write_text(
            '2024-01-01 00:00\t1.25 m\n'
            '2024-01-01 00:01\t-0.5\n'
            '2024-01-01 00:02\tm 1.0\n'
        )
        loaded = read_water_level_file(path)

        assert [s.level for s in loaded.samples] == [1.25, -0.5]
        assert loaded.errors[0] == 'Row 3: Invalid sea level value "m 1.0"'

    def test_no_valid_rows(self, tmp_path):
        from tidewatch.obs_io import read_water_level_file

        path = tmp_path / 'junk.txt'
        path.write_text('a\tb\nc\td\n')
        with pytest.raises(ValueError, match='No valid data points'):
            read_water_level_file(path)


# -----------------------------------------------------------------------
# Export tests
# -----------------------------------------------------------------------

class TestTables:
    """Tests for the table builders in export.py."""

    def test_event_table(self):
        from tidewatch.obs_io import build_event_table

        result = _result()
        table = build_event_table(result.events)

        assert len(table) == len(result.events)
        assert list(table.columns[:3]) == ['Event ID', 'Type', 'Label']
        spikes = table[table['Type'] == 'Spike']
        assert set(spikes['Event ID']) == {'spike-200', 'spike-203'}
        props = json.loads(spikes['Properties'].iloc[0])
        assert 'magnitude' in props

    def test_event_table_empty(self):
        from tidewatch.obs_io import build_event_table

        table = build_event_table([])
        assert table.empty
        assert 'Confidence' in table.columns

    def test_series_table_marks_interpolated(self):
        from tidewatch.obs_io import build_series_table

        table = build_series_table(_result().decomposition)

        assert len(table) == 360
        source = table['Original Index']
        assert (source == 'Interpolated').sum() == 4
        assert source.iloc[0] == 0
        assert table['Timestamp'].iloc[1] == '2024-01-01T00:01:00'
        np.testing.assert_allclose(
            table['Original Sea Level (m)'] - table['Tidal Component (m)'],
            table['Residuals (m)'],
        )

    def test_summary_table(self):
        from tidewatch.obs_io import build_summary_table

        result = _result()
        table = build_summary_table(
            result.decomposition, result.events, 'station.txt',
        )
        summary = dict(zip(table['Parameter'], table['Value']))

        assert summary['Original File'] == 'station.txt'
        assert summary['Data Points'] == 360
        assert summary['Interpolated Points'] == 4
        assert summary['Total Events Detected'] == len(result.events)
        assert summary['Spike Events'] == 2
        assert summary['Analysis Period'].startswith('2024-01-01T00:00:00 to ')

    def test_event_details_expands_properties(self):
        from tidewatch.obs_io import build_event_details_table

        table = build_event_details_table(_result().events)
        assert 'magnitude' in table.columns
        assert 'level' in table.columns

        empty = build_event_details_table([])
        assert list(empty.columns) == [
            'Event ID', 'Type', 'Label', 'Start Time', 'End Time',
            'Confidence', 'Explanation',
        ]


class TestExport:
    """Tests for write_event_table_csv and export_workbook."""

    def test_csv_header_and_rows(self, tmp_path):
        from tidewatch.obs_io import build_event_table, write_event_table_csv

        result = _result()
        out = tmp_path / 'nested' / 'events.csv'
        write_event_table_csv(
            build_event_table(result.events), out,
            source='station.txt', metadata={'Method': 'lowpass'},
        )

        lines = out.read_text().splitlines()
        assert lines[0] == '# Source: station.txt'
        assert lines[1].startswith('# Generated: ')
        assert lines[2] == '# Method: lowpass'

        table = pd.read_csv(out, skiprows=3)
        assert len(table) == len(result.events)
        assert table['Event ID'].iloc[0] == result.events[0].id

    def test_workbook_sheets(self, tmp_path):
        from tidewatch.obs_io import export_workbook

        result = _result()
        path = export_workbook(result, tmp_path / 'analysis.xlsx', 'station.txt')

        sheets = pd.read_excel(path, sheet_name=None)
        assert list(sheets) == [
            'Event Timeline', 'Time Series Data', 'Analysis Summary',
            'Event Details',
        ]
        assert len(sheets['Time Series Data']) == 360
        assert len(sheets['Event Timeline']) == len(result.events)


# -----------------------------------------------------------------------
# Command-line tests
# -----------------------------------------------------------------------

class TestCli:
    """Tests for tidewatch.cli."""

    def test_load_config_overrides_file(self, tmp_path):
        from tidewatch.cli import build_parser, load_config

        config_file = tmp_path / 'config.json'
        config_file.write_text(json.dumps({
            'tide_removal_method': 'harmonic',
            'extreme_threshold': 0.5,
            'confidence_threshold': 'Low',
        }))
        args = build_parser().parse_args([
            'input.txt', '--config', str(config_file), '--confidence', 'High',
        ])
        config = load_config(args)

        assert config.tide_removal_method.value == 'harmonic'
        assert config.extreme_threshold == 0.5
        assert config.confidence_threshold.value == 'High'
        assert config.report_gaps is False

    def test_load_config_file_only(self, tmp_path):
        """Without command-line options every file value is kept."""
        from tidewatch.cli import build_parser, load_config

        config_file = tmp_path / 'config.json'
        config_file.write_text(json.dumps({
            'tide_removal_method': 'harmonic',
            'extreme_threshold': 0.45,
            'confidence_threshold': 'High',
            'start_time': '2024-01-01T06:00:00',
            'report_gaps': True,
        }))
        args = build_parser().parse_args(['input.txt', '--config', str(config_file)])
        config = load_config(args)

        assert config.tide_removal_method.value == 'harmonic'
        assert config.extreme_threshold == 0.45
        assert config.confidence_threshold.value == 'High'
        assert config.start_time == datetime(2024, 1, 1, 6, 0)
        assert config.report_gaps is True

    def test_main_writes_outputs(self, tmp_path):
        from tidewatch.cli import main

        levels = 1.0 + 0.3 * np.sin(np.arange(300) / 60.0)
        record = _write_record(tmp_path / 'station.txt', levels)
        csv_out = tmp_path / 'events.csv'
        xlsx_out = tmp_path / 'analysis.xlsx'

        status = main([
            str(record), '--confidence', 'Low', '--report-gaps',
            '--csv-out', str(csv_out), '--xlsx-out', str(xlsx_out),
            '--log-config', str(tmp_path / 'missing.conf'),
        ])

        assert status == 0
        assert csv_out.read_text().startswith('# Source: station.txt')
        assert xlsx_out.is_file()

    def test_main_missing_file(self, tmp_path):
        from tidewatch.cli import main

        status = main([
            str(tmp_path / 'nope.txt'),
            '--log-config', str(tmp_path / 'missing.conf'),
        ])
        assert status == 1

    def test_main_too_few_samples(self, tmp_path):
        from tidewatch.cli import main

        record = _write_record(tmp_path / 'short.txt', [1.0, 1.1])
        status = main([
            str(record), '--log-config', str(tmp_path / 'missing.conf'),
        ])
        assert status == 1

    def test_main_bad_window(self, tmp_path):
        from tidewatch.cli import main

        record = _write_record(tmp_path / 'station.txt', np.zeros(20))
        status = main([
            str(record), '--start', '2024-01-02T00:00', '--end', '2024-01-01T00:00',
            '--log-config', str(tmp_path / 'missing.conf'),
        ])
        assert status == 1
