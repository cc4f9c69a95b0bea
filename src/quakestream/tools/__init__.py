"""Developer tools: debug instrumentation and the headless monitor.

:mod:`debug` holds the ``QUAKESTREAM_DEBUG`` switches used by the parser and
history store; :mod:`monitor` runs the full pipeline without a GUI.
"""
