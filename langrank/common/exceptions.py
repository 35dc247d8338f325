"""Exception types for ranking collection errors.

Two families live here. Assumption exceptions mean an upstream page no
longer looks the way an extraction rule expects; transient exceptions mean
the network let us down. Either one, raised while collecting a source, is
wrapped in SourceFetchFailure and degrades that source to an empty record
list. BrowserUnavailableException is the only fatal error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path

    from langrank.data_types import Source


class SourceAssumptionException(Exception):
    """Base class for violated assumptions about an upstream page.

    Extraction rules assume a given table exists and has its cells in fixed
    positions. When that stops being true, raise a subclass of this with
    enough context to find the problem.
    """

    def __init__(
        self,
        message: str,
        request_url: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable description of the assumption violation.
            request_url: The URL of the page that triggered this error.
            context: Optional dict of additional context (selector, counts).
        """
        self.message = message
        self.request_url = request_url
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [self.message]
        parts.append(f"URL: {self.request_url}")

        if self.context:
            parts.append("Context:")
            for key, value in self.context.items():
                parts.append(f"  {key}: {value}")

        return "\n".join(parts)


class HTMLStructuralAssumptionException(SourceAssumptionException):
    """Raised when a selector matches an unexpected number of elements.

    For ranking pages this almost always means the table moved or was
    renamed.

    Attributes:
        selector: The XPath or CSS selector that was used.
        selector_type: Type of selector ("xpath" or "css").
    """

    def __init__(
        self,
        selector: str,
        selector_type: str,
        description: str,
        expected_min: int,
        expected_max: int | None,
        actual_count: int,
        request_url: str,
    ) -> None:
        """Initialize the exception.

        Args:
            selector: The XPath or CSS selector that was used.
            selector_type: Type of selector ("xpath" or "css").
            description: Human-readable description of what was selected.
            expected_min: Minimum number of elements expected.
            expected_max: Maximum number of elements expected (None = any).
            actual_count: Actual number of elements found.
            request_url: The URL of the page being parsed.
        """
        self.selector = selector
        self.selector_type = selector_type
        self.description = description
        self.expected_min = expected_min
        self.expected_max = expected_max
        self.actual_count = actual_count

        if expected_max is None:
            expected_str = f"at least {expected_min}"
        elif expected_min == expected_max:
            expected_str = f"exactly {expected_min}"
        else:
            expected_str = f"between {expected_min} and {expected_max}"

        message = (
            f"HTML structure mismatch: Expected {expected_str} "
            f"elements for '{description}', but found {actual_count}"
        )

        context = {
            "selector": selector,
            "selector_type": selector_type,
            "expected_min": expected_min,
            "expected_max": expected_max
            if expected_max is not None
            else "unlimited",
            "actual_count": actual_count,
        }

        super().__init__(message, request_url, context)


class TransientException(Exception):
    """Base class for network failures that might resolve on a later run.

    Nothing in langrank retries; the type exists so callers can tell a
    flaky upstream apart from a changed one.
    """

    pass


class HTMLResponseAssumptionException(TransientException):
    """Raised when an upstream answers with an unexpected status code.

    Attributes:
        status_code: The actual HTTP status code received.
        expected_codes: Status codes that were expected.
        url: The URL that returned the unexpected status.
    """

    def __init__(
        self,
        status_code: int,
        expected_codes: list[int],
        url: str,
    ) -> None:
        self.status_code = status_code
        self.expected_codes = expected_codes
        self.url = url

        expected_str = ", ".join(str(code) for code in expected_codes)
        self.message = (
            f"HTTP {status_code} from {url} (expected one of: {expected_str})"
        )
        super().__init__(self.message)


class RequestTimeoutException(TransientException):
    """Raised when fetching or rendering a page takes too long.

    Attributes:
        url: The URL that timed out.
        timeout_seconds: The timeout duration in seconds.
    """

    def __init__(self, url: str, timeout_seconds: float) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.message = f"Request to {url} timed out after {timeout_seconds}s"
        super().__init__(self.message)


class SourceFetchFailure(Exception):
    """A source could not produce rows; its contribution becomes empty.

    Attributes:
        source: The source that failed.
        cause: The underlying exception.
    """

    def __init__(self, source: Source, cause: BaseException) -> None:
        self.source = source
        self.cause = cause
        self.message = (
            f"Error scraping {source.value} data: "
            f"{type(cause).__name__}: {cause}"
        )
        super().__init__(self.message)


class BrowserUnavailableException(Exception):
    """Raised when the headless browser cannot be started.

    This is fatal for a run: it is reported at the process boundary and
    never degraded to an empty source.
    """

    def __init__(self, browser_type: str, cause: BaseException) -> None:
        self.browser_type = browser_type
        self.cause = cause
        self.message = f"Could not launch {browser_type}: {cause}"
        super().__init__(self.message)


class DatasetWriteException(Exception):
    """Raised when a sink fails to write a dataset file.

    Nothing is left at ``path`` when this is raised.
    """

    def __init__(self, path: Path, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        self.message = f"Could not write {path}: {cause}"
        super().__init__(self.message)
