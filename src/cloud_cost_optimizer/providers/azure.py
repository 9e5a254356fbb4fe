"""
Azure client, analyzers and scanner
"""
import functools
import logging
import os
import re
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from azure.core.exceptions import ClientAuthenticationError, HttpResponseError
from azure.identity import CredentialUnavailableError, DefaultAzureCredential
from azure.mgmt.compute import ComputeManagementClient
from azure.mgmt.monitor import MonitorManagementClient
from azure.mgmt.network import NetworkManagementClient

from ..exceptions import ConfigurationError, CredentialsError
from ..models import Category, Confidence, Opportunity, Provider, utcnow
from ..scanning.runner import AnalyzerSpec
from .base import ProviderScanner

logger = logging.getLogger(__name__)

AZURE_LOCATIONS = [
    'eastus', 'eastus2', 'westus', 'westus2', 'centralus',
    'westeurope', 'northeurope', 'uksouth', 'ukwest',
    'southeastasia', 'eastasia', 'australiaeast',
]

# Managed disk price per GB-month (East US)
DISK_PRICING = {
    'Premium_LRS': 0.135,
    'StandardSSD_LRS': 0.075,
    'Standard_LRS': 0.045,
}
DISK_DEFAULT_GB_MONTH = 0.075
PUBLIC_IP_MONTHLY = 3.65

# Pay-as-you-go monthly prices (East US, Linux)
VM_PRICING = {
    'Standard_B1s': 7.59,
    'Standard_B1ms': 15.18,
    'Standard_B2s': 30.37,
    'Standard_B2ms': 60.74,
    'Standard_D2s_v3': 70.08,
    'Standard_D4s_v3': 140.16,
    'Standard_D8s_v3': 280.32,
    'Standard_E2s_v3': 91.98,
    'Standard_E4s_v3': 183.96,
    'Standard_F2s_v2': 61.69,
    'Standard_F4s_v2': 123.37,
}
VM_DEFAULT_MONTHLY = 70.0

VM_DOWNSIZE = {
    'Standard_B2ms': 'Standard_B1ms',
    'Standard_B2s': 'Standard_B1s',
    'Standard_D4s_v3': 'Standard_D2s_v3',
    'Standard_D8s_v3': 'Standard_D4s_v3',
    'Standard_E4s_v3': 'Standard_E2s_v3',
    'Standard_F4s_v2': 'Standard_F2s_v2',
}

IDLE_CPU_THRESHOLD = 5.0
UNDERUTILIZED_CPU_THRESHOLD = 20.0
# Stopping an idle VM keeps its disks billed
IDLE_SAVINGS_RATIO = 0.9
MIN_DOWNSIZE_SAVINGS = 10.0

# Azure Monitor metric name -> key in the averaged metrics dict
VM_METRICS = {
    'Percentage CPU': 'cpu',
    'Available Memory Bytes': 'memoryAvailable',
    'Network In Total': 'networkIn',
    'Network Out Total': 'networkOut',
    'Disk Read Operations/Sec': 'diskReadOps',
    'Disk Write Operations/Sec': 'diskWriteOps',
}
LOW_NETWORK_BYTES = 1_000_000
LOW_DISK_OPS = 100
LOW_AVAILABLE_MEMORY_GB = 0.5

_RESOURCE_GROUP_PATTERN = re.compile(r'resourceGroups/([^/]+)', re.IGNORECASE)


class AzureClient:
    """Management clients for one subscription, optionally filtered to a location"""

    def __init__(self, subscription_id: Optional[str] = None, location: Optional[str] = None):
        self.subscription_id = subscription_id or os.environ.get('AZURE_SUBSCRIPTION_ID', '')
        if not self.subscription_id:
            raise ConfigurationError(
                'Azure subscription ID not found. Set AZURE_SUBSCRIPTION_ID '
                'environment variable or use --subscription-id flag.'
            )
        self.location = location or ''
        self.credential = DefaultAzureCredential()
        self._compute = None
        self._network = None
        self._monitor = None

    @property
    def region(self) -> str:
        return self.location or 'all'

    @property
    def compute(self) -> ComputeManagementClient:
        if self._compute is None:
            self._compute = ComputeManagementClient(self.credential, self.subscription_id)
        return self._compute

    @property
    def network(self) -> NetworkManagementClient:
        if self._network is None:
            self._network = NetworkManagementClient(self.credential, self.subscription_id)
        return self._network

    @property
    def monitor(self) -> MonitorManagementClient:
        if self._monitor is None:
            self._monitor = MonitorManagementClient(self.credential, self.subscription_id)
        return self._monitor

    def in_location(self, location: Optional[str]) -> bool:
        if not self.location:
            return True
        return (location or '').lower() == self.location.lower()

    def test_connection(self) -> None:
        """Fetch the first VM page to prove the credential chain works"""
        try:
            next(iter(self.compute.virtual_machines.list_all()), None)
        except (ClientAuthenticationError, CredentialUnavailableError) as e:
            raise CredentialsError(
                'Azure authentication failed. Run "az login" first or set up '
                f'service principal credentials. ({e})'
            ) from e
        except HttpResponseError as e:
            if e.status_code == 401:
                raise CredentialsError(f"Azure authentication failed: {e.message}") from e
            raise


def disk_monthly_cost(size_gb: int, sku: str) -> float:
    return size_gb * DISK_PRICING.get(sku, DISK_DEFAULT_GB_MONTH)


def analyze_disks(client: AzureClient) -> List[Opportunity]:
    """Flag managed disks in the Unattached state"""
    opportunities = []
    for disk in client.compute.disks.list():
        if not disk.id or not disk.name or not client.in_location(disk.location):
            continue
        if disk.disk_state != 'Unattached':
            continue

        size_gb = disk.disk_size_gb or 0
        sku = disk.sku.name if disk.sku else 'Standard_LRS'
        monthly_cost = disk_monthly_cost(size_gb, sku)
        opportunities.append(Opportunity(
            id=f"azure-disk-unattached-{disk.name}",
            provider=Provider.AZURE,
            resource_type='disk',
            resource_id=disk.id,
            resource_name=disk.name,
            category=Category.UNUSED,
            current_cost=monthly_cost,
            estimated_savings=monthly_cost,
            confidence=Confidence.HIGH,
            recommendation=f"Unattached disk ({size_gb} GB). Delete if no longer needed.",
            metadata={
                'sizeGB': size_gb,
                'diskType': sku,
                'location': disk.location,
                'diskState': disk.disk_state,
            },
        ))
    return opportunities


def analyze_public_ips(client: AzureClient) -> List[Opportunity]:
    """Flag public IPs attached to neither a NIC configuration nor a NAT gateway"""
    opportunities = []
    for ip in client.network.public_ip_addresses.list_all():
        if not ip.id or not ip.name or not client.in_location(ip.location):
            continue
        if ip.ip_configuration or ip.nat_gateway:
            continue

        opportunities.append(Opportunity(
            id=f"azure-ip-unassociated-{ip.name}",
            provider=Provider.AZURE,
            resource_type='public-ip',
            resource_id=ip.id,
            resource_name=ip.name,
            category=Category.UNUSED,
            current_cost=PUBLIC_IP_MONTHLY,
            estimated_savings=PUBLIC_IP_MONTHLY,
            confidence=Confidence.HIGH,
            recommendation='Unassociated public IP address. Delete if not needed.',
            metadata={
                'ipAddress': ip.ip_address,
                'allocationMethod': ip.public_ip_allocation_method,
                'location': ip.location,
            },
        ))
    return opportunities


def vm_monthly_cost(vm_size: str) -> float:
    return VM_PRICING.get(vm_size, VM_DEFAULT_MONTHLY)


def _resource_group(resource_id: str) -> Optional[str]:
    match = _RESOURCE_GROUP_PATTERN.search(resource_id)
    return match.group(1) if match else None


def _power_state(client: AzureClient, vm) -> str:
    resource_group = _resource_group(vm.id)
    if not resource_group:
        return 'unknown'
    try:
        view = client.compute.virtual_machines.instance_view(resource_group, vm.name)
    except HttpResponseError as e:
        logger.debug(f"No instance view for {vm.name}: {e}")
        return 'unknown'

    for status in view.statuses or []:
        if status.code and status.code.startswith('PowerState/'):
            return status.code[len('PowerState/'):].lower()
    return 'unknown'


def _vm_metrics(client: AzureClient, resource_id: str, metric_names: List[str],
                start: datetime, end: datetime) -> Dict[str, float]:
    """Average each requested Azure Monitor metric over hourly points"""
    response = client.monitor.metrics.list(
        resource_uri=resource_id,
        timespan=f"{start.strftime('%Y-%m-%dT%H:%M:%SZ')}/{end.strftime('%Y-%m-%dT%H:%M:%SZ')}",
        interval='PT1H',
        metricnames=','.join(metric_names),
        aggregation='Average',
    )

    metrics = {'cpu': 0.0}
    for metric in response.value or []:
        key = VM_METRICS.get(metric.name.value if metric.name else None)
        if key is None or not metric.timeseries:
            continue
        values = [point.average for point in metric.timeseries[0].data or [] if point.average is not None]
        if values:
            metrics[key] = sum(values) / len(values)
    return metrics


def _utilization_confidence(metrics: Dict[str, float]):
    """Confidence and reasoning from how many detailed signals are low"""
    low_signals = sum([
        metrics['cpu'] < UNDERUTILIZED_CPU_THRESHOLD,
        metrics.get('networkIn', LOW_NETWORK_BYTES) < LOW_NETWORK_BYTES,
        metrics.get('networkOut', LOW_NETWORK_BYTES) < LOW_NETWORK_BYTES,
        metrics.get('diskReadOps', LOW_DISK_OPS) < LOW_DISK_OPS,
        metrics.get('diskWriteOps', LOW_DISK_OPS) < LOW_DISK_OPS,
    ])
    if low_signals >= 4:
        confidence, reasoning = Confidence.HIGH, 'All metrics low'
    elif low_signals >= 2:
        confidence, reasoning = Confidence.MEDIUM, 'Multiple metrics low'
    else:
        confidence, reasoning = Confidence.LOW, 'Mixed metric signals'

    if 'memoryAvailable' not in metrics:
        return confidence, f"{reasoning} (memory data unavailable)"
    if metrics['memoryAvailable'] / 1024 ** 3 < LOW_AVAILABLE_MEMORY_GB:
        return Confidence.LOW, 'High memory usage detected (low available memory)'
    return confidence, reasoning


def analyze_vms(client: AzureClient,
                detailed_metrics: bool = False,
                days: int = 7,
                now: Optional[datetime] = None) -> List[Opportunity]:
    """
    Flag running VMs that are idle, or oversized when detailed metrics say so

    CPU alone only ever gives low confidence. With detailed metrics, memory,
    network and disk averages decide the confidence, and a VM below 20% CPU
    with high confidence gets a downsize finding when a smaller size exists.
    """
    end = now or utcnow()
    start = end - timedelta(days=days)
    metric_names = list(VM_METRICS) if detailed_metrics else ['Percentage CPU']

    opportunities = []
    for vm in client.compute.virtual_machines.list_all():
        if not vm.id or not vm.name or not client.in_location(vm.location):
            continue

        power_state = _power_state(client, vm)
        if power_state in ('stopped', 'deallocated'):
            continue

        vm_size = vm.hardware_profile.vm_size if vm.hardware_profile else 'Unknown'
        monthly_cost = vm_monthly_cost(vm_size)
        metrics = _vm_metrics(client, vm.id, metric_names, start, end)
        cpu = metrics['cpu']

        if detailed_metrics:
            confidence, reasoning = _utilization_confidence(metrics)
        else:
            confidence, reasoning = Confidence.LOW, 'CPU only - verify memory/disk before downsizing'

        metadata = {
            'vmSize': vm_size,
            'metrics': {key: round(value, 2) for key, value in metrics.items()},
            'reasoning': reasoning,
            'location': vm.location,
            'powerState': power_state,
        }

        if cpu < IDLE_CPU_THRESHOLD:
            opportunities.append(Opportunity(
                id=f"azure-vm-idle-{vm.name}",
                provider=Provider.AZURE,
                resource_type='vm',
                resource_id=vm.id,
                resource_name=vm.name,
                category=Category.IDLE,
                current_cost=monthly_cost,
                estimated_savings=monthly_cost * IDLE_SAVINGS_RATIO,
                confidence=confidence,
                recommendation=f"VM is idle ({cpu:.1f}% avg CPU). Consider stopping or downsizing.",
                metadata=metadata,
            ))
            continue

        smaller = VM_DOWNSIZE.get(vm_size)
        if (not detailed_metrics or confidence != Confidence.HIGH
                or cpu >= UNDERUTILIZED_CPU_THRESHOLD or smaller is None):
            continue

        savings = monthly_cost - vm_monthly_cost(smaller)
        if savings <= MIN_DOWNSIZE_SAVINGS:
            continue

        metadata['suggestedSize'] = smaller
        opportunities.append(Opportunity(
            id=f"azure-vm-underutilized-{vm.name}",
            provider=Provider.AZURE,
            resource_type='vm',
            resource_id=vm.id,
            resource_name=vm.name,
            category=Category.OVERSIZED,
            current_cost=monthly_cost,
            estimated_savings=savings,
            confidence=confidence,
            recommendation=f"Low utilization ({cpu:.1f}% avg CPU). Downsize to {smaller}.",
            metadata=metadata,
        ))

    return opportunities


class AzureScanner(ProviderScanner):
    name = 'azure'
    region_label = 'location'
    default_days = 7

    @property
    def default_region(self) -> Optional[str]:
        return self.options.location

    def create_client(self, region: Optional[str] = None) -> AzureClient:
        return AzureClient(
            subscription_id=self.options.subscription_id,
            location=region or self.options.location,
        )

    def test_connection(self, client: AzureClient) -> None:
        client.test_connection()

    def account_id(self, client: AzureClient) -> str:
        return client.subscription_id

    def list_regions(self) -> List[str]:
        return list(AZURE_LOCATIONS)

    def analyzers(self, client: AzureClient) -> List[AnalyzerSpec]:
        return [
            ('VMs', functools.partial(
                analyze_vms, client,
                detailed_metrics=self.options.detailed_metrics,
                days=self.days,
            )),
            ('Managed Disks', functools.partial(analyze_disks, client)),
            ('Public IPs', functools.partial(analyze_public_ips, client)),
        ]
