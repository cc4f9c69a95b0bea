"""Sensor sentence models and parsers.

:mod:`sentences` defines the typed samples (acceleration, intensity, raw)
produced from ``$XS...`` sentences, plus :class:`ParseFailure` for lines
that do not parse.
"""
