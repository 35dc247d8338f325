"""Row providers: fetch a source's ranking table as raw cell texts.

HttpRowProvider serves sources whose table is in the served HTML;
PlaywrightRowProvider renders JavaScript-built tables in a browser. The
Playwright provider needs the ``browser`` extra::

    pip install langrank[browser]
    playwright install chromium
"""

from langrank.providers.http_provider import HttpRowProvider

__all__ = ["HttpRowProvider"]
