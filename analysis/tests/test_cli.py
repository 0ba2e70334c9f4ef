"""
Tests for CLI entry points - subprocess calls in temp workspace.
Tests actual command execution against golden response files.
"""

import os
import pytest
import subprocess
import json
import shutil
import tempfile
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent.parent
cli_script = project_root / 'cli.py'
golden_dir = project_root / 'tests' / 'fixtures' / 'golden'


@pytest.fixture
def temp_workspace():
    """Create temporary workspace with raw response files."""
    with tempfile.TemporaryDirectory() as temp_dir:
        workspace = Path(temp_dir)

        shutil.copy2(golden_dir / 'analytics_response_raw.json', workspace / 'current.json')
        shutil.copy2(golden_dir / 'analytics_response_previous_raw.json', workspace / 'previous.json')
        (workspace / 'broken.json').write_text('{"payload": ', encoding='utf-8')

        yield workspace


def run_cli(*args, cwd=None):
    return subprocess.run(
        [sys.executable, str(cli_script), *args],
        capture_output=True, text=True, encoding='utf-8', cwd=str(cwd or project_root),
        env=dict(os.environ, PYTHONIOENCODING='utf-8'),
    )


class TestNormalizeCommand:
    """Tests for the normalize command."""

    def test_normalize_success(self, temp_workspace):
        result = run_cli('normalize', str(temp_workspace / 'current.json'))

        assert result.returncode == 0, f"CLI failed: {result.stderr}"

        output = json.loads(result.stdout)
        expected = json.loads((golden_dir / 'analytics_response_normalized.json').read_text(encoding='utf-8'))
        assert output['metrics'] == expected['metrics']
        assert output['errors'] == []
        assert output['stats']['total_metrics'] == 7

    def test_normalize_selected_metrics(self, temp_workspace):
        result = run_cli('normalize', str(temp_workspace / 'current.json'),
                         'revenue_per_day', 'nonexistent_metric')

        assert result.returncode == 0
        output = json.loads(result.stdout)
        assert list(output['metrics']) == ['revenue_per_day']
        assert output['errors'] == [
            "nonexistent_metric (classification): unknown metric identifier: 'nonexistent_metric'"
        ]

    def test_normalize_missing_file(self, temp_workspace):
        result = run_cli('normalize', str(temp_workspace / 'missing.json'))

        assert result.returncode == 1
        assert 'Response file not found' in result.stderr
        assert result.stdout == ''

    def test_normalize_invalid_json(self, temp_workspace):
        result = run_cli('normalize', str(temp_workspace / 'broken.json'))

        assert result.returncode == 1
        assert 'Invalid JSON' in result.stderr


class TestYoyCommand:
    """Tests for the yoy command."""

    def test_yoy_success(self, temp_workspace):
        result = run_cli('yoy', str(temp_workspace / 'current.json'),
                         str(temp_workspace / 'previous.json'), 'total_revenue')

        assert result.returncode == 0, f"CLI failed: {result.stderr}"
        output = json.loads(result.stdout)
        assert output['metrics']['total_revenue']['merchant'] == {
            'current': 125000.5,
            'previous': 100000.0,
        }

    def test_yoy_needs_two_files(self, temp_workspace):
        result = run_cli('yoy', str(temp_workspace / 'current.json'))
        assert result.returncode == 1


class TestFiltersCommand:
    """Tests for the filters command."""

    def test_filters_for_demographics(self):
        result = run_cli('filters', 'demographics',
                         'converted_customers_by_interest', 'converted_customers_by_gender')

        assert result.returncode == 0, f"CLI failed: {result.stderr}"
        output = json.loads(result.stdout)
        assert output['filters'] == [{
            'providerId': '56f9cf99-3727-4f2f-bf1c-58dc532ebaf5',
            'filterId': 'interest_type',
            'value': 'customers',
        }]


class TestUsage:
    """Tests for usage errors."""

    def test_no_arguments(self):
        result = run_cli()
        assert result.returncode == 1
        assert 'Usage:' in result.stderr

    def test_unknown_command(self):
        result = run_cli('report', 'AAPL')
        assert result.returncode == 1
        assert 'Unknown command: report' in result.stderr

    def test_runs_from_other_directory(self, temp_workspace):
        result = run_cli('normalize', 'current.json', 'total_revenue', cwd=temp_workspace)
        assert result.returncode == 0, f"CLI failed: {result.stderr}"
