"""
Fatal errors raised out of the scan and compare flows.

Analyzer and region failures are absorbed where they happen and never use
these types; anything raised from here terminates the command.
"""


class CloudCostError(Exception):
    """Base class for errors that abort a command"""


class ConfigurationError(CloudCostError):
    """Missing project/subscription id, unknown provider or unreadable config"""


class CredentialsError(CloudCostError):
    """Provider credentials were rejected by the connection test"""


class ReportNotFoundError(CloudCostError):
    pass


class ReportFormatError(CloudCostError):
    pass


class InsufficientReportsError(CloudCostError):
    pass
