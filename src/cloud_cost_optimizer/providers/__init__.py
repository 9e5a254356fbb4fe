"""Cloud provider clients, analyzers and scanners"""
import importlib
from typing import Any

from ..exceptions import ConfigurationError
from .base import ProviderScanner, ScanOptions

SCANNERS = {
    'aws': ('.aws', 'AWSScanner'),
    'azure': ('.azure', 'AzureScanner'),
    'gcp': ('.gcp', 'GCPScanner'),
}


def get_scanner(provider: str, options: ScanOptions, session: Any = None) -> ProviderScanner:
    """
    Resolve a provider name to its scanner

    SDK modules are imported here so a scan only needs the SDK of the
    provider it targets.
    """
    try:
        module_name, class_name = SCANNERS[provider.lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown provider: {provider} (expected one of {', '.join(SCANNERS)})"
        )
    module = importlib.import_module(module_name, __name__)
    return getattr(module, class_name)(options, session)


__all__ = ['ProviderScanner', 'ScanOptions', 'SCANNERS', 'get_scanner']
