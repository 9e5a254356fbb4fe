"""
GCP client, analyzers and scanner
"""
import functools
import logging
import os
import time
from typing import List, Optional

from google.api_core import exceptions as google_exceptions
from google.auth.exceptions import DefaultCredentialsError
from google.cloud import compute_v1, monitoring_v3
from google.protobuf.timestamp_pb2 import Timestamp

from ..exceptions import ConfigurationError, CredentialsError
from ..models import Category, Confidence, Opportunity, Provider
from ..scanning.runner import AnalyzerSpec
from ..utils.cache import RegionCache
from .base import ProviderScanner

logger = logging.getLogger(__name__)

DEFAULT_REGION = 'us-central1'
GCP_REGIONS = [
    'us-central1', 'us-east1', 'us-west1', 'us-west2',
    'europe-west1', 'europe-west2', 'europe-west3',
    'asia-southeast1', 'asia-northeast1', 'asia-east1',
]

# Persistent disk price per GB-month (us-central1)
DISK_PRICING = {
    'pd-standard': 0.040,
    'pd-balanced': 0.100,
    'pd-ssd': 0.170,
    'pd-extreme': 0.125,
}
# On-demand monthly prices (us-central1)
MACHINE_PRICING = {
    'e2-micro': 6.11,
    'e2-small': 12.23,
    'e2-medium': 24.46,
    'e2-standard-2': 48.91,
    'e2-standard-4': 97.83,
    'n1-standard-1': 24.27,
    'n1-standard-2': 48.55,
    'n1-standard-4': 97.09,
    'n2-standard-2': 70.90,
    'n2-standard-4': 141.79,
}
MACHINE_DEFAULT_MONTHLY = 50.0
IDLE_CPU_THRESHOLD = 5.0
CPU_METRIC = 'compute.googleapis.com/instance/cpu/utilization'

STATIC_IP_HOURLY = 0.010
HOURS_PER_MONTH = 730

PROJECT_ENV_VARS = ('GCP_PROJECT_ID', 'GOOGLE_CLOUD_PROJECT', 'GCLOUD_PROJECT')


def fallback_zones(region: str) -> List[str]:
    return [f"{region}-a", f"{region}-b", f"{region}-c"]


class GCPClient:
    """Compute Engine clients for one project and region"""

    def __init__(self,
                 project_id: Optional[str] = None,
                 region: Optional[str] = None,
                 zone_cache: Optional[RegionCache] = None):
        self.project_id = project_id or next(
            (os.environ[var] for var in PROJECT_ENV_VARS if os.environ.get(var)), ''
        )
        if not self.project_id:
            raise ConfigurationError(
                'GCP project ID not found. Set GCP_PROJECT_ID environment '
                'variable or use --project-id flag.'
            )
        self.region = region or os.environ.get('GCP_REGION') or DEFAULT_REGION
        self.zone_cache = zone_cache if zone_cache is not None else RegionCache()

        self.instances = compute_v1.InstancesClient()
        self.disks = compute_v1.DisksClient()
        self.addresses = compute_v1.AddressesClient()
        self.global_addresses = compute_v1.GlobalAddressesClient()
        self.zones = compute_v1.ZonesClient()
        self.monitoring = monitoring_v3.MetricServiceClient()

    def test_connection(self) -> None:
        """List at most one instance in the region's first zone"""
        request = compute_v1.ListInstancesRequest(
            project=self.project_id,
            zone=f"{self.region}-a",
            max_results=1,
        )
        try:
            self.instances.list(request=request)
        except (DefaultCredentialsError,
                google_exceptions.Unauthenticated,
                google_exceptions.PermissionDenied) as e:
            raise CredentialsError(
                'GCP authentication failed. Run "gcloud auth application-default login" '
                f'or set GOOGLE_APPLICATION_CREDENTIALS. ({e})'
            ) from e

    def zones_in_region(self, region: Optional[str] = None) -> List[str]:
        """UP zones of a region, memoized in the scan's zone cache"""
        return self.zone_cache.get_or_load(region or self.region, self._load_zones)

    def _load_zones(self, region: str) -> List[str]:
        try:
            request = compute_v1.ListZonesRequest(project=self.project_id, filter=f"name:{region}-*")
            names = [zone.name for zone in self.zones.list(request=request)
                     if zone.name and zone.status == 'UP']
        except google_exceptions.GoogleAPIError as e:
            logger.warning(f"Failed to fetch zones for region {region}, using fallback: {e}")
            return fallback_zones(region)
        return names or fallback_zones(region)


def machine_monthly_cost(machine_type: str) -> float:
    return MACHINE_PRICING.get(machine_type, MACHINE_DEFAULT_MONTHLY)


def _average_cpu(client: GCPClient, instance_id: str, zone: str, start: float, end: float) -> float:
    """Mean CPU utilization in percent; 0.0 when the instance reported no points"""
    interval = monitoring_v3.TimeInterval({
        'end_time': Timestamp(seconds=int(end)),
        'start_time': Timestamp(seconds=int(start)),
    })
    series = client.monitoring.list_time_series(request={
        'name': f"projects/{client.project_id}",
        'filter': (
            f'metric.type="{CPU_METRIC}" '
            f'AND resource.labels.instance_id="{instance_id}" '
            f'AND resource.labels.zone="{zone}"'
        ),
        'interval': interval,
        'view': monitoring_v3.ListTimeSeriesRequest.TimeSeriesView.FULL,
    })

    # Utilization is reported as a 0-1 ratio
    values = [point.value.double_value * 100 for ts in series for point in ts.points]
    return sum(values) / len(values) if values else 0.0


def analyze_instances(client: GCPClient, days: int = 30, now: Optional[float] = None) -> List[Opportunity]:
    """Flag RUNNING instances whose average CPU stays below 5%"""
    end = now if now is not None else time.time()
    start = end - days * 86400

    opportunities = []
    for zone in client.zones_in_region():
        request = compute_v1.ListInstancesRequest(
            project=client.project_id,
            zone=zone,
            filter='status = "RUNNING"',
        )
        try:
            instances = list(client.instances.list(request=request))
        except google_exceptions.NotFound:
            logger.debug(f"Zone {zone} not found in project {client.project_id}")
            continue

        for instance in instances:
            if not instance.name or not instance.machine_type:
                continue

            avg_cpu = _average_cpu(client, str(instance.id), zone, start, end)
            if avg_cpu >= IDLE_CPU_THRESHOLD:
                continue

            machine_type = instance.machine_type.split('/')[-1]
            monthly_cost = machine_monthly_cost(machine_type)
            opportunities.append(Opportunity(
                id=f"gce-idle-{instance.name}",
                provider=Provider.GCP,
                resource_type='compute-engine',
                resource_id=instance.name,
                resource_name=instance.labels.get('name', instance.name) if instance.labels else instance.name,
                category=Category.IDLE,
                current_cost=monthly_cost,
                estimated_savings=monthly_cost,
                confidence=Confidence.HIGH,
                recommendation=f"Stop instance or downsize to e2-micro (avg CPU: {avg_cpu:.1f}%)",
                metadata={
                    'machineType': machine_type,
                    'zone': zone,
                    'avgCpu': round(avg_cpu, 2),
                    'status': instance.status,
                },
            ))
    return opportunities


def analyze_persistent_disks(client: GCPClient) -> List[Opportunity]:
    """Flag zonal persistent disks with no attached users"""
    opportunities = []
    for zone in client.zones_in_region():
        request = compute_v1.ListDisksRequest(project=client.project_id, zone=zone)
        try:
            disks = list(client.disks.list(request=request))
        except google_exceptions.NotFound:
            logger.debug(f"Zone {zone} not found in project {client.project_id}")
            continue

        for disk in disks:
            if not disk.name or not disk.size_gb or disk.users:
                continue

            size_gb = int(disk.size_gb)
            disk_type = disk.type_.split('/')[-1] if disk.type_ else 'pd-standard'
            monthly_cost = size_gb * DISK_PRICING.get(disk_type, DISK_PRICING['pd-standard'])
            opportunities.append(Opportunity(
                id=f"disk-unattached-{disk.name}",
                provider=Provider.GCP,
                resource_type='persistent-disk',
                resource_id=disk.name,
                resource_name=disk.name,
                category=Category.UNUSED,
                current_cost=monthly_cost,
                estimated_savings=monthly_cost,
                confidence=Confidence.HIGH,
                recommendation='Delete unattached disk or create snapshot and delete',
                metadata={
                    'sizeGB': size_gb,
                    'diskType': disk_type,
                    'zone': zone,
                    'creationTimestamp': disk.creation_timestamp,
                },
            ))
    return opportunities


def _static_ip_opportunity(address, scope: str, region: Optional[str]) -> Opportunity:
    monthly_cost = STATIC_IP_HOURLY * HOURS_PER_MONTH
    prefix = 'global-static-ip' if scope == 'GLOBAL' else 'static-ip'
    return Opportunity(
        id=f"{prefix}-unused-{address.name}",
        provider=Provider.GCP,
        resource_type='static-ip',
        resource_id=address.name,
        resource_name=address.name,
        category=Category.UNUSED,
        current_cost=monthly_cost,
        estimated_savings=monthly_cost,
        confidence=Confidence.HIGH,
        recommendation=f"Release unused {'global ' if scope == 'GLOBAL' else ''}static IP address",
        metadata={
            'ipAddress': address.address,
            'addressType': scope,
            'region': region,
            'status': address.status,
        },
    )


def analyze_static_ips(client: GCPClient) -> List[Opportunity]:
    """Flag regional and global addresses left in the RESERVED state"""
    opportunities = []

    regional = client.addresses.list(
        request=compute_v1.ListAddressesRequest(project=client.project_id, region=client.region)
    )
    for address in regional:
        if address.name and address.status == 'RESERVED':
            opportunities.append(_static_ip_opportunity(address, 'REGIONAL', client.region))

    global_addresses = client.global_addresses.list(
        request=compute_v1.ListGlobalAddressesRequest(project=client.project_id)
    )
    for address in global_addresses:
        if address.name and address.status == 'RESERVED':
            opportunities.append(_static_ip_opportunity(address, 'GLOBAL', None))

    return opportunities


class GCPScanner(ProviderScanner):
    name = 'gcp'
    region_label = 'region'
    default_days = 7

    def create_client(self, region: Optional[str] = None) -> GCPClient:
        zone_cache = self.session.zone_cache if self.session is not None else None
        return GCPClient(
            project_id=self.options.project_id,
            region=region or self.options.region,
            zone_cache=zone_cache,
        )

    def test_connection(self, client: GCPClient) -> None:
        client.test_connection()

    def account_id(self, client: GCPClient) -> str:
        return client.project_id

    def list_regions(self) -> List[str]:
        return list(GCP_REGIONS)

    def analyzers(self, client: GCPClient) -> List[AnalyzerSpec]:
        return [
            ('Compute Engine', functools.partial(analyze_instances, client, days=self.days)),
            ('Persistent Disks', functools.partial(analyze_persistent_disks, client)),
            ('Static IPs', functools.partial(analyze_static_ips, client)),
        ]
