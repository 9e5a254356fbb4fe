"""
Tests for the scan orchestrator
"""
from types import SimpleNamespace

import pytest

from cloud_cost_optimizer.exceptions import ConfigurationError, CredentialsError
from cloud_cost_optimizer.orchestrator import ScanOrchestrator, ScanSession
from cloud_cost_optimizer.providers import ProviderScanner, ScanOptions, get_scanner


class FakeScanner(ProviderScanner):
    """Scanner whose regions and findings are fixed up front"""

    name = 'aws'
    region_label = 'region'
    default_days = 30

    def __init__(self, options, findings, failing_regions=(), unreachable_regions=(),
                 reject_credentials=False):
        super().__init__(options)
        self.findings = findings
        self.failing_regions = set(failing_regions)
        self.unreachable_regions = set(unreachable_regions)
        self.reject_credentials = reject_credentials
        self.created = []

    def create_client(self, region=None):
        region = region or 'us-east-1'
        if region in self.unreachable_regions:
            raise ConnectionError(f'cannot reach {region}')
        self.created.append(region)
        return SimpleNamespace(region=region)

    def test_connection(self, client):
        if self.reject_credentials:
            raise CredentialsError('rejected')

    def account_id(self, client):
        return '111122223333'

    def list_regions(self):
        return list(self.findings)

    def analyzers(self, client):
        region = client.region

        def analyze():
            if region in self.failing_regions:
                raise RuntimeError(f'{region} is down')
            return list(self.findings.get(region, []))

        return [('EC2', analyze)]


def test_single_region_scan(make_opportunity):
    options = ScanOptions(provider='aws', region='eu-west-1', min_savings=5.0)
    scanner = FakeScanner(options, {'eu-west-1': [make_opportunity('i-1', 10.0), make_opportunity('i-2', 1.0)]})

    report = ScanOrchestrator(options, scanner=scanner).run()

    assert report.region == 'eu-west-1'
    assert report.account_id == '111122223333'
    assert [o.resource_id for o in report.opportunities] == ['i-1']
    assert report.total_potential_savings == 10.0
    # single-region findings are not region-tagged
    assert report.opportunities[0].region is None


def test_credentials_failure_aborts_scan():
    options = ScanOptions(provider='aws')
    scanner = FakeScanner(options, {}, reject_credentials=True)

    with pytest.raises(CredentialsError):
        ScanOrchestrator(options, scanner=scanner).run()


REGIONS = ('us-east-1', 'us-west-2', 'eu-west-1')


def _three_regions(make_opportunity):
    return {
        region: [make_opportunity(f'i-{index}', 10.0 * index)]
        for index, region in enumerate(REGIONS, start=1)
    }


def test_all_regions_failed_analyzer_is_isolated(make_opportunity):
    options = ScanOptions(provider='aws', all_regions=True, batch_size=2)
    scanner = FakeScanner(options, _three_regions(make_opportunity), failing_regions={'us-west-2'})
    orchestrator = ScanOrchestrator(options, scanner=scanner)

    report = orchestrator.run()

    assert report.region == 'multi-region (2 regions)'
    assert [o.resource_id for o in report.opportunities] == ['[us-east-1] i-1', '[eu-west-1] i-3']
    assert report.total_potential_savings == 40.0
    assert orchestrator.last_result.skipped_regions == []
    assert orchestrator.last_result.scanned_regions == ['us-east-1', 'eu-west-1']


def test_all_regions_unreachable_region_is_skipped(make_opportunity, caplog):
    options = ScanOptions(provider='aws', all_regions=True, batch_size=2)
    scanner = FakeScanner(options, _three_regions(make_opportunity), unreachable_regions={'eu-west-1'})
    orchestrator = ScanOrchestrator(options, scanner=scanner)

    with caplog.at_level('WARNING'):
        report = orchestrator.run()

    assert report.region == 'multi-region (2 regions)'
    assert [o.region for o in report.opportunities] == ['us-east-1', 'us-west-2']
    assert orchestrator.last_result.skipped_regions == ['eu-west-1']
    assert 'Skipped eu-west-1: cannot reach eu-west-1' in caplog.text


def test_all_regions_with_no_findings(make_opportunity):
    options = ScanOptions(provider='aws', all_regions=True)
    scanner = FakeScanner(options, {'us-east-1': [], 'eu-west-1': []})

    report = ScanOrchestrator(options, scanner=scanner).run()

    assert report.region == 'multi-region (0 regions)'
    assert report.opportunities == []
    assert report.total_potential_savings == 0.0


def test_scan_period_follows_scanner_days(make_opportunity):
    options = ScanOptions(provider='aws', days=14)
    scanner = FakeScanner(options, {'us-east-1': []})

    report = ScanOrchestrator(options, scanner=scanner).run()

    assert (report.scan_period.end - report.scan_period.start).days == 14


def test_session_is_per_orchestrator():
    options = ScanOptions(provider='aws')
    first = ScanOrchestrator(options, scanner=FakeScanner(options, {}))
    second = ScanOrchestrator(options, scanner=FakeScanner(options, {}))

    first.session.zone_cache.get_or_load('us-central1', lambda region: ['us-central1-a'])

    assert 'us-central1' in first.session.zone_cache
    assert 'us-central1' not in second.session.zone_cache


def test_explicit_session_is_used():
    session = ScanSession()
    options = ScanOptions(provider='aws')

    orchestrator = ScanOrchestrator(options, scanner=FakeScanner(options, {}), session=session)

    assert orchestrator.session is session


def test_unknown_provider():
    with pytest.raises(ConfigurationError, match='Unknown provider'):
        get_scanner('digitalocean', ScanOptions(provider='digitalocean'))
