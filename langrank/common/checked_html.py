"""Checked HTML element wrapper and table-row extraction.

CheckedHtmlElement wraps an lxml HtmlElement and validates selector results
against expected counts, so a ranking table that disappears from a page
surfaces as HTMLStructuralAssumptionException instead of an empty dataset
nobody notices.

parse_table_rows() is the one routine every row provider uses to turn a
document into positional cell texts, whether the HTML came over plain HTTP
or from a rendered browser DOM.
"""

from __future__ import annotations

from lxml import html as lxml_html
from lxml.etree import ParserError
from lxml.html import HtmlElement

from langrank.common.exceptions import (
    HTMLStructuralAssumptionException,
    SourceAssumptionException,
)
from langrank.data_types import RawRow


class CheckedHtmlElement:
    """Wrapper around HtmlElement with validated selectors.

    Example::

        tree = CheckedHtmlElement(lxml.html.fromstring(html), url)
        rows = tree.checked_css("#top20 tbody tr", "ranking rows")
        for row in rows:
            cells = row.checked_xpath("./td", "cells", min_count=0)
    """

    def __init__(self, element: HtmlElement, request_url: str = "") -> None:
        """Initialize the checked element wrapper.

        Args:
            element: The lxml HtmlElement to wrap.
            request_url: Optional URL for error context.
        """
        self._element = element
        self._request_url = request_url

    def checked_xpath(
        self,
        xpath: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
    ) -> list[CheckedHtmlElement]:
        """Execute an XPath query with count validation.

        Only element results are kept; text and attribute results are
        ignored.

        Args:
            xpath: XPath expression to execute.
            description: Human-readable description of what's being selected.
            min_count: Minimum number of elements expected (default: 1).
            max_count: Maximum number of elements expected (None = unlimited).

        Returns:
            List of matching elements, each wrapped for nested queries.

        Raises:
            HTMLStructuralAssumptionException: If count doesn't match.
        """
        results = self._element.xpath(xpath)
        wrapped = [
            CheckedHtmlElement(r, self._request_url)
            for r in results
            if isinstance(r, HtmlElement)
        ]
        self._check_count(
            xpath, "xpath", description, min_count, max_count, len(wrapped)
        )
        return wrapped

    def checked_css(
        self,
        selector: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
    ) -> list[CheckedHtmlElement]:
        """Execute a CSS selector query with count validation.

        Args:
            selector: CSS selector expression.
            description: Human-readable description of what's being selected.
            min_count: Minimum number of elements expected (default: 1).
            max_count: Maximum number of elements expected (None = unlimited).

        Returns:
            List of matching elements, each wrapped for nested queries.

        Raises:
            HTMLStructuralAssumptionException: If the selector is invalid or
                the count doesn't match.
        """
        try:
            results = self._element.cssselect(selector)
        except Exception as e:
            raise HTMLStructuralAssumptionException(
                selector=selector,
                selector_type="css",
                description=description,
                expected_min=min_count,
                expected_max=max_count,
                actual_count=0,
                request_url=self._request_url,
            ) from e

        self._check_count(
            selector, "css", description, min_count, max_count, len(results)
        )
        return [CheckedHtmlElement(r, self._request_url) for r in results]

    def _check_count(
        self,
        selector: str,
        selector_type: str,
        description: str,
        min_count: int,
        max_count: int | None,
        actual_count: int,
    ) -> None:
        if actual_count < min_count or (
            max_count is not None and actual_count > max_count
        ):
            raise HTMLStructuralAssumptionException(
                selector=selector,
                selector_type=selector_type,
                description=description,
                expected_min=min_count,
                expected_max=max_count,
                actual_count=actual_count,
                request_url=self._request_url,
            )

    def __getattr__(self, name: str):
        """Delegate all other attributes to the wrapped element."""
        return getattr(self._element, name)


def parse_html(content: str | bytes, url: str = "") -> CheckedHtmlElement:
    """Parse a document into a CheckedHtmlElement.

    Raw bytes are passed straight to lxml so it can detect the encoding
    from the BOM or the meta charset tag.

    Raises:
        SourceAssumptionException: If the document cannot be parsed.
    """
    try:
        return CheckedHtmlElement(lxml_html.fromstring(content), url)
    except (ParserError, ValueError) as e:
        raise SourceAssumptionException(
            f"Failed to parse HTML: {e}",
            request_url=url,
            context={"error": str(e)},
        ) from e


def parse_table_rows(
    content: str | bytes, row_selector: str, url: str = ""
) -> list[RawRow]:
    """Extract the cell texts of every row matched by ``row_selector``.

    Only ``td`` children count as cells, so header rows built from ``th``
    come back as empty tuples and are left for the adapter to drop.

    Args:
        content: The HTML document.
        row_selector: CSS selector matching the table's ``tr`` elements.
        url: The page URL, for error context.

    Returns:
        One tuple of cell texts per matched row, in document order.

    Raises:
        HTMLStructuralAssumptionException: If no row matches the selector.
        SourceAssumptionException: If the document cannot be parsed.
    """
    tree = parse_html(content, url)
    rows = tree.checked_css(row_selector, "ranking table rows")
    return [
        tuple(
            cell.text_content()
            for cell in row.checked_xpath("./td", "row cells", min_count=0)
        )
        for row in rows
    ]
