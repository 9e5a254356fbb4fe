"""
AWS client, analyzers and scanner
"""
import functools
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import CredentialsError
from ..models import Category, Confidence, Opportunity, Provider, utcnow
from ..scanning.runner import AnalyzerSpec
from .base import ProviderScanner

logger = logging.getLogger(__name__)

DEFAULT_REGION = 'us-east-1'
FALLBACK_REGIONS = [
    'us-east-1', 'us-east-2', 'us-west-1', 'us-west-2',
    'eu-west-1', 'eu-west-2', 'eu-central-1',
    'ap-southeast-1', 'ap-southeast-2', 'ap-northeast-1',
]

# On-demand monthly prices (us-east-1, Linux)
EC2_PRICING = {
    't2.micro': 8.47,
    't2.small': 16.79,
    't2.medium': 33.87,
    't3.micro': 7.59,
    't3.small': 15.18,
    't3.medium': 30.37,
    't3.large': 60.74,
    't3.xlarge': 121.47,
    'm5.large': 70.08,
    'm5.xlarge': 140.16,
    'm5.2xlarge': 280.32,
    'm6i.large': 69.35,
    'm6i.xlarge': 138.70,
    'c5.large': 62.05,
    'c5.xlarge': 124.10,
    'r5.large': 91.25,
    'r5.xlarge': 182.50,
}
EC2_DEFAULT_MONTHLY = 50.0

# Per GB-month
EBS_PRICING = {
    'gp3': 0.08,
    'gp2': 0.10,
    'io1': 0.125,
    'io2': 0.125,
    'st1': 0.045,
    'sc1': 0.015,
}
EBS_DEFAULT_GB_MONTH = 0.08
SNAPSHOT_GB_MONTH = 0.05

HOURS_PER_MONTH = 730
EIP_HOURLY = 0.005

IDLE_CPU_THRESHOLD = 5.0
IDLE_NETWORK_MB_PER_DAY = 5.0
UNATTACHED_VOLUME_MIN_AGE_DAYS = 7
SNAPSHOT_MAX_AGE_DAYS = 90


def ec2_monthly_cost(instance_type: str) -> float:
    return EC2_PRICING.get(instance_type, EC2_DEFAULT_MONTHLY)


def ebs_monthly_cost(size_gb: int, volume_type: str) -> float:
    return size_gb * EBS_PRICING.get(volume_type, EBS_DEFAULT_GB_MONTH)


def _name_tag(tags: Optional[List[Dict[str, str]]]) -> Optional[str]:
    for tag in tags or []:
        if tag.get('Key') == 'Name':
            return tag.get('Value')
    return None


def _age_days(created: datetime, now: datetime) -> int:
    return (now - created).days


class AWSClient:
    """boto3 session bound to one region"""

    def __init__(self, region: Optional[str] = None, profile: Optional[str] = None):
        self.profile = profile
        if profile:
            self.session = boto3.Session(profile_name=profile)
        else:
            self.session = boto3.Session()
        # CLI option > profile region > default
        self.region = region or self.session.region_name or DEFAULT_REGION
        self._clients: Dict[str, Any] = {}

    def client(self, service: str):
        """Get (and memoize) a boto3 client for a service in this region"""
        if service not in self._clients:
            self._clients[service] = self.session.client(service, region_name=self.region)
        return self._clients[service]

    def test_connection(self) -> Dict[str, Any]:
        try:
            return self.client('sts').get_caller_identity()
        except (ClientError, BotoCoreError) as e:
            raise CredentialsError(
                f"AWS credentials check failed: {e}. "
                "Configure credentials with 'aws configure' or set AWS_PROFILE."
            ) from e

    def get_account_id(self) -> str:
        try:
            return self.client('sts').get_caller_identity()['Account']
        except (ClientError, BotoCoreError) as e:
            logger.debug(f"Could not resolve account id: {e}")
            return 'unknown'

    def get_all_regions(self) -> List[str]:
        """Get list of enabled regions"""
        try:
            response = self.client('ec2').describe_regions(
                Filters=[{'Name': 'opt-in-status', 'Values': ['opt-in-not-required', 'opted-in']}]
            )
            return sorted(region['RegionName'] for region in response['Regions'])
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Error getting regions, using fallback list: {e}")
            return list(FALLBACK_REGIONS)

    @staticmethod
    def get_all_regions_static(profile: Optional[str] = None) -> List[str]:
        return AWSClient(profile=profile).get_all_regions()


def _average_cpu(cloudwatch, instance_id: str, start: datetime, end: datetime) -> float:
    response = cloudwatch.get_metric_statistics(
        Namespace='AWS/EC2',
        MetricName='CPUUtilization',
        Dimensions=[{'Name': 'InstanceId', 'Value': instance_id}],
        StartTime=start,
        EndTime=end,
        Period=86400,
        Statistics=['Average'],
    )
    datapoints = response.get('Datapoints', [])
    if not datapoints:
        return 0.0
    return sum(dp.get('Average', 0.0) for dp in datapoints) / len(datapoints)


def _network_mb_per_day(cloudwatch, instance_id: str, start: datetime, end: datetime, days: int) -> float:
    total_bytes = 0.0
    for metric_name in ('NetworkIn', 'NetworkOut'):
        response = cloudwatch.get_metric_statistics(
            Namespace='AWS/EC2',
            MetricName=metric_name,
            Dimensions=[{'Name': 'InstanceId', 'Value': instance_id}],
            StartTime=start,
            EndTime=end,
            Period=86400,
            Statistics=['Sum'],
        )
        total_bytes += sum(dp.get('Sum', 0.0) for dp in response.get('Datapoints', []))
    return total_bytes / (1024 ** 2) / max(days, 1)


def analyze_ec2_instances(client: AWSClient,
                          detailed_metrics: bool = False,
                          days: int = 30,
                          now: Optional[datetime] = None) -> List[Opportunity]:
    """
    Flag running instances whose average CPU stays below 5%

    With detailed metrics, network traffic is checked too; an instance that
    is quiet on CPU but busy on the network is kept at medium confidence.
    """
    ec2 = client.client('ec2')
    cloudwatch = client.client('cloudwatch')
    end = now or utcnow()
    start = end - timedelta(days=days)

    opportunities = []
    paginator = ec2.get_paginator('describe_instances')
    pages = paginator.paginate(Filters=[{'Name': 'instance-state-name', 'Values': ['running']}])

    for page in pages:
        for reservation in page.get('Reservations', []):
            for instance in reservation.get('Instances', []):
                instance_id = instance.get('InstanceId')
                instance_type = instance.get('InstanceType')
                if not instance_id or not instance_type:
                    continue

                avg_cpu = _average_cpu(cloudwatch, instance_id, start, end)
                if avg_cpu >= IDLE_CPU_THRESHOLD:
                    continue

                metadata = {
                    'instanceType': instance_type,
                    'avgCpu': round(avg_cpu, 2),
                    'state': instance.get('State', {}).get('Name'),
                }
                confidence = Confidence.HIGH
                if detailed_metrics:
                    network = _network_mb_per_day(cloudwatch, instance_id, start, end, days)
                    metadata['networkMbPerDay'] = round(network, 2)
                    if network > IDLE_NETWORK_MB_PER_DAY:
                        confidence = Confidence.MEDIUM

                monthly_cost = ec2_monthly_cost(instance_type)
                opportunities.append(Opportunity(
                    id=f"ec2-idle-{instance_id}",
                    provider=Provider.AWS,
                    resource_type='ec2',
                    resource_id=instance_id,
                    resource_name=_name_tag(instance.get('Tags')),
                    category=Category.IDLE,
                    current_cost=monthly_cost,
                    estimated_savings=monthly_cost,
                    confidence=confidence,
                    recommendation=f"Stop instance or downsize to t3.small (avg CPU: {avg_cpu:.1f}%)",
                    metadata=metadata,
                ))

    return opportunities


def analyze_ebs_volumes(client: AWSClient, now: Optional[datetime] = None) -> List[Opportunity]:
    """Flag volumes left in the 'available' (unattached) state for over a week"""
    ec2 = client.client('ec2')
    now = now or utcnow()

    opportunities = []
    paginator = ec2.get_paginator('describe_volumes')
    for page in paginator.paginate(Filters=[{'Name': 'status', 'Values': ['available']}]):
        for volume in page.get('Volumes', []):
            volume_id = volume.get('VolumeId')
            size = volume.get('Size')
            created = volume.get('CreateTime')
            if not volume_id or not size or not created:
                continue

            age = _age_days(created, now)
            if age <= UNATTACHED_VOLUME_MIN_AGE_DAYS:
                continue

            volume_type = volume.get('VolumeType', 'gp3')
            monthly_cost = ebs_monthly_cost(size, volume_type)
            opportunities.append(Opportunity(
                id=f"ebs-unattached-{volume_id}",
                provider=Provider.AWS,
                resource_type='ebs',
                resource_id=volume_id,
                resource_name=_name_tag(volume.get('Tags')),
                category=Category.UNUSED,
                current_cost=monthly_cost,
                estimated_savings=monthly_cost,
                confidence=Confidence.HIGH,
                recommendation=f"Snapshot and delete, or delete if redundant (age: {age} days)",
                metadata={'size': size, 'volumeType': volume_type, 'age': age},
            ))

    return opportunities


def analyze_elastic_ips(client: AWSClient) -> List[Opportunity]:
    """Flag Elastic IPs without an association"""
    ec2 = client.client('ec2')
    monthly_cost = EIP_HOURLY * HOURS_PER_MONTH

    opportunities = []
    for address in ec2.describe_addresses().get('Addresses', []):
        public_ip = address.get('PublicIp')
        if not public_ip or address.get('AssociationId'):
            continue

        resource_id = address.get('AllocationId') or public_ip
        opportunities.append(Opportunity(
            id=f"eip-unattached-{resource_id}",
            provider=Provider.AWS,
            resource_type='eip',
            resource_id=resource_id,
            resource_name=public_ip,
            category=Category.UNUSED,
            current_cost=monthly_cost,
            estimated_savings=monthly_cost,
            confidence=Confidence.HIGH,
            recommendation='Release unattached Elastic IP',
            metadata={
                'publicIp': public_ip,
                'allocationId': address.get('AllocationId'),
                'domain': address.get('Domain'),
            },
        ))

    return opportunities


def analyze_snapshots(client: AWSClient, now: Optional[datetime] = None) -> List[Opportunity]:
    """Flag self-owned EBS snapshots older than 90 days"""
    ec2 = client.client('ec2')
    now = now or utcnow()

    opportunities = []
    paginator = ec2.get_paginator('describe_snapshots')
    for page in paginator.paginate(OwnerIds=['self']):
        for snapshot in page.get('Snapshots', []):
            snapshot_id = snapshot.get('SnapshotId')
            started = snapshot.get('StartTime')
            if not snapshot_id or not started:
                continue

            age = _age_days(started, now)
            if age <= SNAPSHOT_MAX_AGE_DAYS:
                continue

            size = snapshot.get('VolumeSize') or 0
            monthly_cost = size * SNAPSHOT_GB_MONTH
            opportunities.append(Opportunity(
                id=f"snapshot-old-{snapshot_id}",
                provider=Provider.AWS,
                resource_type='snapshot',
                resource_id=snapshot_id,
                resource_name=snapshot.get('Description') or snapshot_id,
                category=Category.UNUSED,
                current_cost=monthly_cost,
                estimated_savings=monthly_cost,
                confidence=Confidence.MEDIUM,
                recommendation=(
                    f"Review old EBS snapshot ({age} days old, {size} GB, "
                    f"~${monthly_cost:.2f}/month). Delete if no longer needed."
                ),
                metadata={
                    'volumeId': snapshot.get('VolumeId'),
                    'sizeGB': size,
                    'ageInDays': age,
                },
            ))

    return opportunities


class AWSScanner(ProviderScanner):
    name = 'aws'
    region_label = 'region'
    default_days = 30

    def create_client(self, region: Optional[str] = None) -> AWSClient:
        return AWSClient(region=region or self.options.region, profile=self.options.profile)

    def test_connection(self, client: AWSClient) -> None:
        client.test_connection()

    def account_id(self, client: AWSClient) -> str:
        return client.get_account_id()

    def list_regions(self) -> List[str]:
        return AWSClient.get_all_regions_static(self.options.profile)

    def analyzers(self, client: AWSClient) -> List[AnalyzerSpec]:
        return [
            ('EC2', functools.partial(
                analyze_ec2_instances, client,
                detailed_metrics=self.options.detailed_metrics,
                days=self.days,
            )),
            ('EBS', functools.partial(analyze_ebs_volumes, client)),
            ('EIP', functools.partial(analyze_elastic_ips, client)),
            ('Snapshots', functools.partial(analyze_snapshots, client)),
        ]
