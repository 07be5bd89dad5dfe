import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from flask import current_app, has_app_context

from utils.errors import SourceUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class SourceResult:
    """Outcome of loading one input source."""

    name: str
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def fetch_sources(
    sources: Dict[str, Callable[[], Any]], max_workers: Optional[int] = None
) -> Dict[str, SourceResult]:
    """Run independent loaders concurrently and collect every outcome.

    Each loader runs on a worker thread inside its own application context (when
    called from one) so database sessions are not shared. A loader that raises
    is reported as a failed :class:`SourceResult`; it never cancels or hides the
    others.
    """
    if not sources:
        return {}

    app = current_app._get_current_object() if has_app_context() else None
    if max_workers is None:
        max_workers = app.config.get("FETCH_MAX_WORKERS", 4) if app is not None else 4

    def _run(loader):
        if app is None:
            return loader()
        with app.app_context():
            return loader()

    results: Dict[str, SourceResult] = {}
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(sources)))) as pool:
        futures = {name: pool.submit(_run, loader) for name, loader in sources.items()}
        for name, future in futures.items():
            try:
                results[name] = SourceResult(name=name, value=future.result())
            except Exception as e:
                logger.warning(f"Source '{name}' unavailable: {str(e)}")
                results[name] = SourceResult(name=name, error=str(e))
    return results


def require(results: Dict[str, SourceResult], *names: str) -> None:
    """Raise SourceUnavailableError if any of the named sources failed."""
    failed = [n for n in names if n in results and not results[n].ok]
    if failed:
        raise SourceUnavailableError(
            f"Required data unavailable: {', '.join(failed)}",
            details={n: results[n].error for n in failed},
        )


def unavailable(results: Dict[str, SourceResult]) -> List[str]:
    return sorted(name for name, result in results.items() if not result.ok)
