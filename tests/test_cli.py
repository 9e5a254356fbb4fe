"""
Tests for the click command line interface
"""
import json
import os
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from cloud_cost_optimizer.cli import cli
from cloud_cost_optimizer.exceptions import CredentialsError
from cloud_cost_optimizer.tracking import ReportStore


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def reports_dir(tmp_path):
    return tmp_path / 'reports'


@pytest.fixture
def config_file(tmp_path, reports_dir, monkeypatch):
    monkeypatch.setenv('HOME', str(tmp_path))
    path = tmp_path / 'config.yaml'
    path.write_text(yaml.safe_dump({
        'scan': {'min_savings': 2.0},
        'aws': {'profile': 'from-config'},
        'reports': {'directory': str(reports_dir)},
        'logging': {'level': 'WARNING'},
    }))
    return str(path)


@pytest.fixture
def orchestrator(make_report, make_opportunity):
    report = make_report([
        make_opportunity('i-idle', 60.74, recommendation='Stop instance'),
        make_opportunity('vol-1', 8.0, resource_type='ebs', category='unused'),
    ])
    with patch('cloud_cost_optimizer.cli.ScanOrchestrator') as orchestrator_cls:
        instance = orchestrator_cls.return_value
        instance.run.return_value = report
        instance.scanner.region_label = 'region'
        yield orchestrator_cls


def test_version(runner):
    result = runner.invoke(cli, ['--version'])
    assert result.exit_code == 0
    assert '0.1.0' in result.output


def test_scan_table_saves_report(runner, config_file, orchestrator, reports_dir):
    result = runner.invoke(cli, ['--config', config_file, 'scan', '--region', 'us-west-2'])

    assert result.exit_code == 0, result.output
    assert 'Cloud Cost Optimization Report' in result.output
    assert 'Total potential savings: $68.74/month' in result.output
    assert len(ReportStore(reports_dir).list_reports()) == 1

    options = orchestrator.call_args[0][0]
    assert options.provider == 'aws'
    assert options.region == 'us-west-2'
    assert options.profile == 'from-config'
    assert options.min_savings == 2.0


def test_scan_flags_override_config(runner, config_file, orchestrator):
    result = runner.invoke(cli, [
        '--config', config_file, 'scan', '--min-savings', '0', '--profile', 'cli',
        '--batch-size', '3', '--analyzer-timeout', '30', '--detailed-metrics', '--no-save',
    ])

    assert result.exit_code == 0, result.output
    options = orchestrator.call_args[0][0]
    assert options.min_savings == 0.0
    assert options.profile == 'cli'
    assert options.batch_size == 3
    assert options.analyzer_timeout == 30.0
    assert options.detailed_metrics is True


def test_scan_json_no_save(runner, config_file, orchestrator, reports_dir):
    result = runner.invoke(cli, ['--config', config_file, 'scan', '--output', 'json', '--no-save'])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data['totalPotentialSavings'] == pytest.approx(68.74)
    assert data['opportunities'][0]['resourceId'] == 'i-idle'
    assert not reports_dir.exists()


def test_scan_csv_to_stdout(runner, config_file, orchestrator):
    result = runner.invoke(cli, ['--config', config_file, 'scan', '-o', 'csv', '--no-save'])

    assert result.exit_code == 0, result.output
    lines = result.output.strip().splitlines()
    assert lines[0].startswith('provider,region,resource_type,resource_id')
    assert 'i-idle' in lines[1]


def test_scan_all_regions_shows_breakdown(runner, config_file, orchestrator):
    result = runner.invoke(cli, ['--config', config_file, 'scan', '--all-regions', '--no-save'])

    assert result.exit_code == 0, result.output
    assert 'Region Breakdown:' in result.output
    assert orchestrator.call_args[0][0].all_regions is True


def test_scan_credentials_error(runner, config_file, orchestrator):
    orchestrator.return_value.run.side_effect = CredentialsError('AWS credentials check failed')

    result = runner.invoke(cli, ['--config', config_file, 'scan'])

    assert result.exit_code == 1
    assert 'Error: AWS credentials check failed' in result.output


def test_missing_config_file(runner, tmp_path):
    result = runner.invoke(cli, ['--config', str(tmp_path / 'missing.yaml'), 'reports'])
    assert result.exit_code == 1
    assert 'Error: Config file not found' in result.output


def _save_two(reports_dir, make_report, make_opportunity):
    store = ReportStore(reports_dir)
    first = store.save(make_report([make_opportunity('i-1', 50.0), make_opportunity('i-2', 30.0)]),
                       timestamp=datetime(2024, 6, 1, tzinfo=timezone.utc))
    second = store.save(make_report([make_opportunity('i-1', 20.0), make_opportunity('i-3', 5.0)]),
                        timestamp=datetime(2024, 6, 2, tzinfo=timezone.utc))
    os.utime(first, (1_700_000_000, 1_700_000_000))
    os.utime(second, (1_700_000_100, 1_700_000_100))
    return first, second


def test_compare_latest_pair(runner, config_file, reports_dir, make_report, make_opportunity):
    _save_two(reports_dir, make_report, make_opportunity)

    result = runner.invoke(cli, ['--config', config_file, 'compare'])

    assert result.exit_code == 0, result.output
    assert 'Previous potential savings: $80.00/month' in result.output
    assert 'Current potential savings:  $25.00/month' in result.output
    assert 'Total: 1 new, 1 resolved' in result.output


def test_compare_explicit_files_json(runner, config_file, reports_dir, make_report, make_opportunity):
    first, second = _save_two(reports_dir, make_report, make_opportunity)

    result = runner.invoke(cli, ['--config', config_file, 'compare',
                                 '--from', first.name, '--to', str(second), '-o', 'json'])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data['summary']['netChange'] == pytest.approx(-55.0)
    assert [o['resourceId'] for o in data['improvedOpportunities']] == ['i-1']


def test_compare_requires_both_paths(runner, config_file):
    result = runner.invoke(cli, ['--config', config_file, 'compare', '--from', 'a.json'])
    assert result.exit_code == 2
    assert '--from and --to must be given together' in result.output


def test_compare_needs_two_reports(runner, config_file, reports_dir, make_report):
    ReportStore(reports_dir).save(make_report([]))

    result = runner.invoke(cli, ['--config', config_file, 'compare'])

    assert result.exit_code == 1
    assert 'Error: Need at least 2 saved reports' in result.output


def test_compare_missing_report(runner, config_file):
    result = runner.invoke(cli, ['--config', config_file, 'compare', '--from', 'x.json', '--to', 'y.json'])
    assert result.exit_code == 1
    assert 'Report not found: x.json' in result.output


def test_reports_listing(runner, config_file, reports_dir, make_report, make_opportunity):
    first, second = _save_two(reports_dir, make_report, make_opportunity)

    result = runner.invoke(cli, ['--config', config_file, 'reports'])

    assert result.exit_code == 0, result.output
    assert result.output.index(second.name) < result.output.index(first.name)


def test_reports_empty(runner, config_file, reports_dir):
    result = runner.invoke(cli, ['--config', config_file, 'reports'])
    assert result.exit_code == 0
    assert 'No saved reports' in result.output


def test_configure_writes_file(runner, config_file):
    result = runner.invoke(cli, ['--config', config_file, 'configure'],
                           input='gcp\n25\n\n\n\nmy-project\n')

    assert result.exit_code == 0, result.output
    with open(config_file) as f:
        saved = yaml.safe_load(f)
    assert saved['scan']['default_provider'] == 'gcp'
    assert saved['scan']['min_savings'] == 25.0
    assert saved['aws']['profile'] == 'from-config'
    assert saved['gcp']['project_id'] == 'my-project'
    assert saved['azure']['subscription_id'] is None


def test_scan_csv_to_file(runner, config_file, orchestrator, tmp_path):
    target = tmp_path / 'out' / 'scan.csv'
    target.parent.mkdir()

    result = runner.invoke(cli, ['--config', config_file, 'scan', '-o', 'csv',
                                 '--output-file', str(target), '--no-save'])

    assert result.exit_code == 0, result.output
    assert f'CSV report saved to {target}' in result.output
    lines = target.read_text().strip().splitlines()
    assert lines[0].startswith('provider,region,resource_type,resource_id')
    assert 'i-idle' in lines[1]
