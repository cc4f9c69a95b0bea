"""Signal analysis for acceleration samples (filtering, LPGM, rate).

Modules here stay free of threads and I/O: :mod:`filters` designs and runs
the high-pass biquad, :mod:`lpgm` chains magnitude, calibration, filtering,
integration and classification, and :mod:`rate` estimates the real input
rate so it can be checked against the rate the filter assumes.
"""
