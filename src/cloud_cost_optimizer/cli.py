import logging
import sys
from datetime import datetime
from pathlib import Path

import click

from . import __version__
from .exceptions import CloudCostError
from .orchestrator import ScanOrchestrator
from .providers import SCANNERS, ScanOptions
from .reporting import (
    ConsoleRenderer,
    ExcelReporter,
    comparison_to_json,
    export_csv,
    opportunities_dataframe,
    report_to_json,
)
from .scanning import region_breakdown
from .tracking import DiffEngine, ReportStore
from .utils.config import CONFIG_FILENAME, ConfigManager
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def _store(ctx) -> ReportStore:
    return ReportStore(ctx.obj['config'].get('reports.directory'))


def _renderer() -> ConsoleRenderer:
    return ConsoleRenderer(color=sys.stdout.isatty())


@click.group()
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), help='Path to a YAML config file')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.option('--log-format', type=click.Choice(['console', 'json', 'detailed']), default='console')
@click.option('--log-file', type=click.Path(dir_okay=False), help='Also write logs to this file')
@click.version_option(__version__, prog_name='cloud-cost-optimizer')
@click.pass_context
def cli(ctx, config_path, verbose, log_format, log_file):
    """Cloud Cost Optimizer - find savings across AWS, Azure and GCP"""
    ctx.ensure_object(dict)

    try:
        config = ConfigManager(config_path)
    except CloudCostError as e:
        raise click.ClickException(str(e))

    log_level = 'DEBUG' if verbose else config.get('logging.level', 'INFO')
    setup_logging(log_level=log_level, log_file=log_file, log_format=log_format)

    ctx.obj['config'] = config
    ctx.obj['config_path'] = config_path


@cli.command()
@click.option('--provider', type=click.Choice(sorted(SCANNERS)), help='Cloud provider to scan')
@click.option('--region', '-r', help='AWS or GCP region to scan')
@click.option('--all-regions', is_flag=True, help='Scan every region/location in batches')
@click.option('--profile', help='AWS profile name')
@click.option('--subscription-id', help='Azure subscription ID')
@click.option('--location', help='Azure location filter')
@click.option('--project-id', help='GCP project ID')
@click.option('--top', type=int, help='Opportunities shown in the table')
@click.option('--output', '-o', type=click.Choice(['table', 'json', 'csv', 'excel']), default='table')
@click.option('--output-file', type=click.Path(dir_okay=False), help='File for csv/excel output')
@click.option('--days', type=click.IntRange(min=1), help='Lookback window in days')
@click.option('--min-savings', type=float, help='Hide opportunities below this monthly saving')
@click.option('--batch-size', type=click.IntRange(min=1), help='Regions scanned concurrently')
@click.option('--detailed-metrics', is_flag=True, help='Also check network metrics for idle instances')
@click.option('--analyzer-timeout', type=float, help='Abandon analyzers running longer than this (seconds)')
@click.option('--no-save', is_flag=True, help='Do not save the report for later comparison')
@click.pass_context
def scan(ctx, provider, region, all_regions, profile, subscription_id, location, project_id,
         top, output, output_file, days, min_savings, batch_size, detailed_metrics,
         analyzer_timeout, no_save):
    """Scan a cloud account for cost optimization opportunities"""
    config = ctx.obj['config']
    provider = provider or config.get('scan.default_provider', 'aws')

    options = ScanOptions(
        provider=provider,
        region=region or config.get(f'{provider}.region'),
        all_regions=all_regions,
        profile=profile or config.get('aws.profile'),
        subscription_id=subscription_id or config.get('azure.subscription_id'),
        location=location or config.get('azure.location'),
        project_id=project_id or config.get('gcp.project_id'),
        days=days,
        min_savings=min_savings if min_savings is not None else config.get('scan.min_savings', 0.0),
        batch_size=batch_size or config.get('scan.batch_size', 5),
        detailed_metrics=detailed_metrics,
        analyzer_timeout=analyzer_timeout if analyzer_timeout is not None else config.get('scan.analyzer_timeout'),
    )

    try:
        orchestrator = ScanOrchestrator(options)
        report = orchestrator.run()
    except CloudCostError as e:
        raise click.ClickException(str(e))

    if output == 'json':
        click.echo(report_to_json(report))
    elif output == 'csv':
        if output_file:
            path = export_csv(report, output_file)
            click.echo(f"✅ CSV report saved to {path}")
        else:
            click.echo(opportunities_dataframe(report).to_csv(index=False), nl=False)
    elif output == 'excel':
        path = output_file or f"cloud-cost-report-{datetime.now().strftime('%Y%m%d-%H%M%S')}.xlsx"
        ExcelReporter().generate_report(report, path)
        click.echo(f"✅ Excel report saved to {path}")
    else:
        renderer = _renderer()
        click.echo(renderer.render_report(report, top=top or config.get('scan.default_top', 5)))
        if all_regions:
            label = orchestrator.scanner.region_label.capitalize()
            click.echo('')
            click.echo(renderer.render_region_breakdown(region_breakdown(report.opportunities), label))

    if not no_save:
        try:
            _store(ctx).save(report)
        except OSError as e:
            raise click.ClickException(f"Could not save report: {e}")


@cli.command()
@click.option('--from', 'from_path', type=click.Path(dir_okay=False), help='Older report (default: second newest)')
@click.option('--to', 'to_path', type=click.Path(dir_okay=False), help='Newer report (default: newest)')
@click.option('--output', '-o', type=click.Choice(['table', 'json']), default='table')
@click.pass_context
def compare(ctx, from_path, to_path, output):
    """Compare two saved scan reports"""
    if bool(from_path) != bool(to_path):
        raise click.UsageError('--from and --to must be given together')

    store = _store(ctx)
    try:
        if from_path:
            from_report, to_report = store.load(from_path), store.load(to_path)
        else:
            from_report, to_report = store.latest_pair()
    except CloudCostError as e:
        raise click.ClickException(str(e))

    result = DiffEngine().diff(from_report, to_report)

    if output == 'json':
        click.echo(comparison_to_json(result))
    else:
        click.echo(_renderer().render_comparison(result))


@cli.command()
@click.pass_context
def reports(ctx):
    """List saved scan reports, newest first"""
    store = _store(ctx)
    paths = store.list_reports()
    if not paths:
        click.echo(f"No saved reports in {store.directory}")
        return

    click.echo(f"Saved reports in {store.directory}:")
    for path in paths:
        modified = datetime.fromtimestamp(path.stat().st_mtime).strftime('%Y-%m-%d %H:%M:%S')
        click.echo(f"  {modified}  {path.name}")


@cli.command()
@click.pass_context
def configure(ctx):
    """Interactively write a configuration file"""
    config = ctx.obj['config']
    target = ctx.obj.get('config_path') or config.loaded_from or Path.home() / CONFIG_FILENAME

    click.echo("🔧 Cloud Cost Optimizer configuration")
    data = config.config
    data['scan']['default_provider'] = click.prompt(
        'Default provider', type=click.Choice(sorted(SCANNERS)),
        default=config.get('scan.default_provider', 'aws'))
    data['scan']['min_savings'] = click.prompt(
        'Minimum monthly savings to report', type=float, default=config.get('scan.min_savings', 0.0))
    data['aws']['profile'] = click.prompt(
        'AWS profile', default=config.get('aws.profile', ''), show_default=False) or None
    data['aws']['region'] = click.prompt(
        'AWS region', default=config.get('aws.region', ''), show_default=False) or None
    data['azure']['subscription_id'] = click.prompt(
        'Azure subscription ID', default=config.get('azure.subscription_id', ''), show_default=False) or None
    data['gcp']['project_id'] = click.prompt(
        'GCP project ID', default=config.get('gcp.project_id', ''), show_default=False) or None

    path = ConfigManager.save_config(data, str(target))
    click.echo(f"✅ Configuration saved to {path}")


if __name__ == '__main__':
    cli()
