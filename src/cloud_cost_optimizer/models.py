"""
Data models shared by the scanners, the aggregator and the diff engine
"""
import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from dateutil.parser import isoparse


class Provider(str, Enum):
    AWS = "aws"
    AZURE = "azure"
    GCP = "gcp"


class Category(str, Enum):
    IDLE = "idle"
    OVERSIZED = "oversized"
    UNUSED = "unused"
    MISCONFIGURED = "misconfigured"
    UNDERUTILIZED = "underutilized"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: Any) -> datetime:
    """Parse an ISO-8601 string (or pass through a datetime) into an aware UTC datetime"""
    if value is None or value == '':
        return utcnow()
    if isinstance(value, datetime):
        dt = value
    else:
        dt = isoparse(str(value))
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _format_datetime(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


@dataclass
class Opportunity:
    """A single detected savings candidate tied to one cloud resource"""
    provider: str
    resource_type: str
    resource_id: str
    category: str
    current_cost: float
    estimated_savings: float
    confidence: str
    recommendation: str
    id: str = ''
    resource_name: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    detected_at: datetime = field(default_factory=utcnow)
    region: Optional[str] = None

    def __post_init__(self):
        self.provider = _enum_value(self.provider)
        self.category = _enum_value(self.category)
        self.confidence = _enum_value(self.confidence)
        if not self.id:
            self.id = f"{self.resource_type}-{self.resource_id}"

    @property
    def key(self) -> str:
        """Identity used to match the same opportunity across two scans"""
        return f"{self.provider}:{self.resource_type}:{self.resource_id}"

    def with_savings(self, estimated_savings: float) -> 'Opportunity':
        return replace(self, estimated_savings=estimated_savings)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'provider': self.provider,
            'resourceType': self.resource_type,
            'resourceId': self.resource_id,
            'resourceName': self.resource_name,
            'category': self.category,
            'currentCost': self.current_cost,
            'estimatedSavings': self.estimated_savings,
            'confidence': self.confidence,
            'recommendation': self.recommendation,
            'metadata': self.metadata,
            'detectedAt': _format_datetime(self.detected_at),
        }
        if self.region is not None:
            data['region'] = self.region
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Opportunity':
        return cls(
            id=data.get('id', ''),
            provider=data['provider'],
            resource_type=data['resourceType'],
            resource_id=data['resourceId'],
            resource_name=data.get('resourceName'),
            category=data.get('category', ''),
            current_cost=data.get('currentCost', 0.0),
            estimated_savings=data.get('estimatedSavings') or 0.0,
            confidence=data.get('confidence', Confidence.LOW.value),
            recommendation=data.get('recommendation', ''),
            metadata=data.get('metadata') or {},
            detected_at=_parse_datetime(data.get('detectedAt')),
            region=data.get('region'),
        )


@dataclass
class ScanPeriod:
    start: datetime
    end: datetime


@dataclass
class ScanSummary:
    total_resources: int = 0
    idle_resources: int = 0
    oversized_resources: int = 0
    unused_resources: int = 0


@dataclass
class ScanReport:
    """Aggregated, filtered result of one scan invocation"""
    provider: str
    account_id: str
    region: str
    scan_period: ScanPeriod
    opportunities: List[Opportunity]
    total_potential_savings: float
    summary: ScanSummary

    def to_dict(self) -> Dict[str, Any]:
        return {
            'provider': self.provider,
            'accountId': self.account_id,
            'region': self.region,
            'scanPeriod': {
                'start': _format_datetime(self.scan_period.start),
                'end': _format_datetime(self.scan_period.end),
            },
            'opportunities': [o.to_dict() for o in self.opportunities],
            'totalPotentialSavings': self.total_potential_savings,
            'summary': {
                'totalResources': self.summary.total_resources,
                'idleResources': self.summary.idle_resources,
                'oversizedResources': self.summary.oversized_resources,
                'unusedResources': self.summary.unused_resources,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScanReport':
        period = data.get('scanPeriod') or {}
        summary = data.get('summary') or {}
        return cls(
            provider=data['provider'],
            account_id=data.get('accountId', 'unknown'),
            region=data.get('region', 'unknown'),
            scan_period=ScanPeriod(
                start=_parse_datetime(period.get('start')),
                end=_parse_datetime(period.get('end')),
            ),
            opportunities=[Opportunity.from_dict(o) for o in data.get('opportunities', [])],
            total_potential_savings=data.get('totalPotentialSavings', 0.0),
            summary=ScanSummary(
                total_resources=summary.get('totalResources', 0),
                idle_resources=summary.get('idleResources', 0),
                oversized_resources=summary.get('oversizedResources', 0),
                unused_resources=summary.get('unusedResources', 0),
            ),
        )


@dataclass
class ComparisonSummary:
    from_savings: float
    to_savings: float
    net_change: float
    new_count: int
    resolved_count: int


@dataclass
class ComparisonResult:
    """Classified difference between two scan reports"""
    new_opportunities: List[Opportunity]
    resolved_opportunities: List[Opportunity]
    improved_opportunities: List[Opportunity]
    worsened_opportunities: List[Opportunity]
    unchanged_opportunities: List[Opportunity]
    summary: ComparisonSummary

    def buckets(self) -> Dict[str, List[Opportunity]]:
        return {
            'new': self.new_opportunities,
            'resolved': self.resolved_opportunities,
            'improved': self.improved_opportunities,
            'worsened': self.worsened_opportunities,
            'unchanged': self.unchanged_opportunities,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'newOpportunities': [o.to_dict() for o in self.new_opportunities],
            'resolvedOpportunities': [o.to_dict() for o in self.resolved_opportunities],
            'improvedOpportunities': [o.to_dict() for o in self.improved_opportunities],
            'worsenedOpportunities': [o.to_dict() for o in self.worsened_opportunities],
            'unchangedOpportunities': [o.to_dict() for o in self.unchanged_opportunities],
            'summary': {
                'fromSavings': self.summary.from_savings,
                'toSavings': self.summary.to_savings,
                'netChange': self.summary.net_change,
                'newCount': self.summary.new_count,
                'resolvedCount': self.summary.resolved_count,
            },
        }


def normalize_savings(value: Any) -> float:
    """Coerce a missing, NaN or negative savings value to 0.0"""
    if value is None:
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(amount) or amount < 0:
        return 0.0
    return amount
