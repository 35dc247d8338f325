"""Web-language popularity across ranking sources.

This package collects the TIOBE, Tecsify and PYPL rankings, keeps the
languages on an allow-list, and averages each language's percentage over
the sources that report it. Fetching (providers) and writing (sinks) are
kept apart from the extraction and aggregation logic, which works on
plain in-memory rows and records.
"""
