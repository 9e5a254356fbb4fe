"""
Shared fixtures
"""
import logging
from datetime import datetime, timezone

import pytest

from cloud_cost_optimizer.models import Opportunity
from cloud_cost_optimizer.scanning import ScanAggregator

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def restore_logging():
    """CLI tests reconfigure logging; put the root handlers back afterwards"""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    package_level = logging.getLogger('cloud_cost_optimizer').level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger('cloud_cost_optimizer').setLevel(package_level)


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def make_opportunity():
    """Factory for opportunities with sensible defaults"""
    def _make(resource_id='i-0001', savings=10.0, resource_type='ec2',
              provider='aws', category='idle', **kwargs):
        return Opportunity(
            provider=provider,
            resource_type=resource_type,
            resource_id=resource_id,
            category=category,
            current_cost=kwargs.pop('current_cost', savings),
            estimated_savings=savings,
            confidence=kwargs.pop('confidence', 'high'),
            recommendation=kwargs.pop('recommendation', f"Review {resource_id}"),
            detected_at=kwargs.pop('detected_at', FIXED_NOW),
            **kwargs,
        )
    return _make


@pytest.fixture
def make_report():
    """Factory building a ScanReport through the aggregator"""
    def _make(opportunities, provider='aws', region='us-east-1', min_savings=0.0):
        return ScanAggregator().aggregate(
            opportunities,
            min_savings,
            provider=provider,
            account_id='123456789012',
            region=region,
            days=30,
            now=FIXED_NOW,
        )
    return _make
