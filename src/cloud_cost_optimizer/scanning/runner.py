"""
Analyzer runner - executes analyzers with per-analyzer failure isolation

A failing analyzer costs only its own findings; the others still report.
Warnings are logged by the thread that collects results, so an analyzer that
fails late, after its timeout fired, is never reported twice.
"""
import logging
import re
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from botocore.exceptions import ClientError

from ..models import Opportunity

logger = logging.getLogger(__name__)

AnalyzerFn = Callable[[], List[Opportunity]]
AnalyzerSpec = Tuple[str, AnalyzerFn]

PERMISSION_ERROR_CODES = {
    'AccessDeniedException',
    'UnauthorizedOperation',
    'AccessDenied',
    'UnauthorizedAccess',
    'Forbidden',
}

PERMISSION_MESSAGES = ('Permission denied', 'PERMISSION_DENIED', 'API not enabled', 'permission')

_IAM_ACTION_PATTERN = re.compile(r'perform: ([a-zA-Z0-9:]+)')


@dataclass
class AnalyzerResult:
    """Outcome of one analyzer invocation: findings, or the absorbed error"""
    name: str
    opportunities: List[Opportunity] = field(default_factory=list)
    error: Optional[str] = None
    warning: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _error_code(error: Exception) -> str:
    if isinstance(error, ClientError):
        return error.response.get('Error', {}).get('Code', '')
    return str(getattr(error, 'code', '') or type(error).__name__)


def is_permission_error(error: Exception) -> bool:
    """Check whether an exception from any provider SDK means 'not allowed'"""
    if _error_code(error) in PERMISSION_ERROR_CODES:
        return True

    status = getattr(error, 'status_code', None) or getattr(error, 'code', None)
    if status == 403:
        return True

    message = str(error)
    return any(text in message for text in PERMISSION_MESSAGES)


def describe_failure(name: str, error: Exception) -> str:
    """Build the single warning line logged for a failed analyzer"""
    if is_permission_error(error):
        match = _IAM_ACTION_PATTERN.search(str(error))
        if match:
            return f"Skipping {name} - missing IAM permission: {match.group(1)}"
        return f"Skipping {name} - insufficient permissions"
    return f"{name} analyzer failed: {error}"


class _TimedAnalyzer:
    """One analyzer on a daemon thread; its clock starts when the thread does"""

    def __init__(self, runner: 'AnalyzerRunner', name: str, analyzer_fn: AnalyzerFn):
        self.name = name
        self.future: Future = Future()
        self.started = threading.Event()
        self.started_at = 0.0
        self._thread = threading.Thread(
            target=self._work,
            args=(runner, analyzer_fn),
            name=f'analyzer-{name}',
            daemon=True,
        )

    def start(self) -> '_TimedAnalyzer':
        self._thread.start()
        return self

    def _work(self, runner: 'AnalyzerRunner', analyzer_fn: AnalyzerFn):
        self.started_at = time.monotonic()
        self.started.set()
        self.future.set_result(runner.execute(self.name, analyzer_fn))


class AnalyzerRunner:
    """Runs analyzers so that a failing analyzer never fails the scan"""

    def __init__(self, timeout: Optional[float] = None):
        """
        Args:
            timeout: Optional per-analyzer bound in seconds (None = wait forever)
        """
        self.timeout = timeout

    def execute(self, name: str, analyzer_fn: AnalyzerFn) -> AnalyzerResult:
        """Run one analyzer and capture its outcome without logging a warning"""
        try:
            opportunities = analyzer_fn()
        except Exception as e:
            logger.debug(f"{name} analyzer traceback", exc_info=True)
            return AnalyzerResult(name=name, error=str(e), warning=describe_failure(name, e))

        return AnalyzerResult(name=name, opportunities=list(opportunities or []))

    def run(self, name: str, analyzer_fn: AnalyzerFn) -> List[Opportunity]:
        """Run one analyzer; returns [] instead of raising"""
        return self._report(self.execute(name, analyzer_fn)).opportunities

    def run_all(self, analyzers: Sequence[AnalyzerSpec]) -> List[Opportunity]:
        """
        Run every analyzer of one region concurrently

        Args:
            analyzers: (name, callable) pairs

        Returns:
            Concatenated findings, in analyzer order
        """
        return [
            opportunity
            for result in self.execute_all(analyzers)
            for opportunity in result.opportunities
        ]

    def execute_all(self, analyzers: Sequence[AnalyzerSpec]) -> List[AnalyzerResult]:
        if not analyzers:
            return []

        if self.timeout is None:
            with ThreadPoolExecutor(max_workers=len(analyzers), thread_name_prefix='analyzer') as executor:
                futures = [executor.submit(self.execute, name, fn) for name, fn in analyzers]
                results = [future.result() for future in futures]
        else:
            # Daemon threads: a hung SDK call must not hold the process open at exit
            tasks = [_TimedAnalyzer(self, name, fn).start() for name, fn in analyzers]
            results = [self._collect(task) for task in tasks]

        return [self._report(result) for result in results]

    def _collect(self, task: _TimedAnalyzer) -> AnalyzerResult:
        task.started.wait()
        remaining = max(0.0, task.started_at + self.timeout - time.monotonic())
        try:
            return task.future.result(timeout=remaining)
        except FutureTimeoutError:
            return AnalyzerResult(
                name=task.name,
                error='timeout',
                warning=f"{task.name} analyzer failed: timed out after {self.timeout}s",
            )

    @staticmethod
    def _report(result: AnalyzerResult) -> AnalyzerResult:
        if result.ok:
            logger.debug(f"{result.name}: {len(result.opportunities)} opportunities")
        else:
            logger.warning(result.warning)
        return result
