"""
Tests for the report diff engine
"""
import pytest

from cloud_cost_optimizer.tracking.diff_engine import DiffEngine, diff


@pytest.fixture
def engine():
    return DiffEngine()


def _keys(opportunities):
    return [o.key for o in opportunities]


def test_partition_is_complete_and_disjoint(engine, make_report, make_opportunity):
    """Every key of either report lands in exactly one bucket"""
    before = make_report([
        make_opportunity('i-1', 100.0),
        make_opportunity('i-2', 50.0),
        make_opportunity('vol-1', 20.0, resource_type='ebs'),
        make_opportunity('eip-1', 3.65, resource_type='eip'),
    ])
    after = make_report([
        make_opportunity('i-1', 100.0),
        make_opportunity('i-2', 20.0),
        make_opportunity('vol-1', 40.0, resource_type='ebs'),
        make_opportunity('snap-1', 5.0, resource_type='snapshot'),
    ])

    result = engine.diff(before, after)

    bucket_keys = [key for bucket in result.buckets().values() for key in _keys(bucket)]
    assert len(bucket_keys) == len(set(bucket_keys))
    all_keys = set(_keys(before.opportunities)) | set(_keys(after.opportunities))
    assert set(bucket_keys) == all_keys

    assert _keys(result.new_opportunities) == ['aws:snapshot:snap-1']
    assert _keys(result.resolved_opportunities) == ['aws:eip:eip-1']
    assert _keys(result.improved_opportunities) == ['aws:ec2:i-2']
    assert _keys(result.worsened_opportunities) == ['aws:ebs:vol-1']
    assert _keys(result.unchanged_opportunities) == ['aws:ec2:i-1']


def test_empty_baseline_makes_everything_new(engine, make_report, make_opportunity):
    before = make_report([])
    after = make_report([make_opportunity('a', 1.0), make_opportunity('b', 2.0)])

    result = engine.diff(before, after)

    assert _keys(result.new_opportunities) == ['aws:ec2:a', 'aws:ec2:b']
    assert result.resolved_opportunities == []
    assert result.summary.new_count == 2
    assert result.summary.resolved_count == 0
    assert result.summary.net_change == pytest.approx(3.0)


def test_diff_with_itself_is_all_unchanged(engine, make_report, make_opportunity):
    report = make_report([
        make_opportunity('i-1', 10.0),
        make_opportunity('vol-1', 0.0, resource_type='ebs'),
        make_opportunity('eip-1', 3.65, resource_type='eip'),
    ])

    result = engine.diff(report, report)

    assert len(result.unchanged_opportunities) == 3
    for name in ('new', 'resolved', 'improved', 'worsened'):
        assert result.buckets()[name] == []
    assert result.summary.net_change == 0


@pytest.mark.parametrize('to_savings, bucket', [
    (105.0, 'unchanged'),
    (95.0, 'unchanged'),
    (106.0, 'worsened'),
    (94.0, 'improved'),
])
def test_five_percent_boundary(engine, make_report, make_opportunity, to_savings, bucket):
    """Exactly 5% is not a change; anything beyond is"""
    before = make_report([make_opportunity('i-1', 100.0)])
    after = make_report([make_opportunity('i-1', to_savings)])

    result = engine.diff(before, after)

    assert len(result.buckets()[bucket]) == 1


def test_changed_opportunity_carries_absolute_delta(engine, make_report, make_opportunity):
    before = make_report([make_opportunity('i-1', 80.0), make_opportunity('i-2', 10.0)])
    after = make_report([make_opportunity('i-1', 20.0), make_opportunity('i-2', 30.0)])

    result = engine.diff(before, after)

    improved, = result.improved_opportunities
    worsened, = result.worsened_opportunities
    assert improved.estimated_savings == pytest.approx(60.0)
    assert worsened.estimated_savings == pytest.approx(20.0)
    # Inputs keep their own values
    assert after.opportunities[0].estimated_savings == 20.0


def test_zero_baseline_savings_is_unchanged(engine, make_report, make_opportunity):
    """Percent change is 0 when the old estimate was 0"""
    before = make_report([make_opportunity('i-1', 0.0)])
    after = make_report([make_opportunity('i-1', 500.0)])

    result = engine.diff(before, after)

    assert _keys(result.unchanged_opportunities) == ['aws:ec2:i-1']
    assert result.unchanged_opportunities[0].estimated_savings == 500.0


def test_later_duplicate_key_wins(engine, make_report, make_opportunity):
    before = make_report([make_opportunity('i-1', 100.0), make_opportunity('i-1', 50.0)])
    after = make_report([make_opportunity('i-1', 50.0)])

    result = engine.diff(before, after)

    assert _keys(result.unchanged_opportunities) == ['aws:ec2:i-1']


def test_region_tag_changes_identity(engine, make_report, make_opportunity):
    """A single-region id and a multi-region tagged id are different resources"""
    before = make_report([make_opportunity('vol-1', 10.0)])
    after = make_report([make_opportunity('[us-east-1] vol-1', 10.0)])

    result = engine.diff(before, after)

    assert len(result.new_opportunities) == 1
    assert len(result.resolved_opportunities) == 1


def test_end_to_end_scenario(make_report, make_opportunity):
    """One instance shrinks from $80 to $20 and a new $50 volume appears"""
    before = make_report([make_opportunity('i-1', 80.0)])
    after = make_report([
        make_opportunity('i-1', 20.0),
        make_opportunity('vol-1', 50.0, resource_type='ebs', category='unused'),
    ])

    result = diff(before, after)

    assert _keys(result.improved_opportunities) == ['aws:ec2:i-1']
    assert result.improved_opportunities[0].estimated_savings == pytest.approx(60.0)
    assert _keys(result.new_opportunities) == ['aws:ebs:vol-1']
    assert result.new_opportunities[0].estimated_savings == 50.0
    assert result.summary.from_savings == 80.0
    assert result.summary.to_savings == 70.0
    assert result.summary.net_change == pytest.approx(-10.0)
    assert result.summary.new_count == 1
    assert result.summary.resolved_count == 0


def test_summary_uses_stored_totals(engine, make_report, make_opportunity):
    before = make_report([make_opportunity('i-1', 10.0)])
    before.total_potential_savings = 999.0
    after = make_report([make_opportunity('i-1', 10.0)])

    result = engine.diff(before, after)

    assert result.summary.from_savings == 999.0
    assert result.summary.net_change == pytest.approx(10.0 - 999.0)


def test_to_dict_uses_camel_case(engine, make_report, make_opportunity):
    result = engine.diff(make_report([]), make_report([make_opportunity('a', 1.0)]))
    data = result.to_dict()
    assert set(data) == {
        'newOpportunities', 'resolvedOpportunities', 'improvedOpportunities',
        'worsenedOpportunities', 'unchangedOpportunities', 'summary',
    }
    assert data['summary']['newCount'] == 1
    assert data['newOpportunities'][0]['resourceId'] == 'a'
