"""
Provider scanner interface shared by the AWS, Azure and GCP implementations
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional

from ..scanning.runner import AnalyzerSpec

DEFAULT_DAYS = 7


@dataclass
class ScanOptions:
    """Options of one scan invocation, after config and CLI flags are merged"""
    provider: str = 'aws'
    region: Optional[str] = None
    all_regions: bool = False
    profile: Optional[str] = None
    subscription_id: Optional[str] = None
    location: Optional[str] = None
    project_id: Optional[str] = None
    days: Optional[int] = None
    min_savings: float = 0.0
    batch_size: int = 5
    detailed_metrics: bool = False
    analyzer_timeout: Optional[float] = None


class ProviderScanner(ABC):
    """Knows how to connect to one cloud and which analyzers to run there"""

    name = ''
    region_label = 'region'
    default_days = DEFAULT_DAYS

    def __init__(self, options: ScanOptions, session: Any = None):
        self.options = options
        self.session = session

    @property
    def default_region(self) -> Optional[str]:
        return self.options.region

    @property
    def days(self) -> int:
        return self.options.days or self.default_days

    @abstractmethod
    def create_client(self, region: Optional[str] = None) -> Any:
        """Build a client handle bound to one region (None = provider default)"""

    @abstractmethod
    def test_connection(self, client: Any) -> None:
        """Raise CredentialsError when the credentials are rejected"""

    @abstractmethod
    def account_id(self, client: Any) -> str:
        pass

    @abstractmethod
    def list_regions(self) -> List[str]:
        """Regions or locations scanned in all-regions mode"""

    @abstractmethod
    def analyzers(self, client: Any) -> List[AnalyzerSpec]:
        """(name, zero-argument callable) pairs bound to `client`"""

    def report_region(self, client: Any) -> str:
        """Region label of a single-region report"""
        return client.region

    def multi_region_label(self, count: int) -> str:
        return f"multi-{self.region_label} ({count} {self.region_label}s)"
