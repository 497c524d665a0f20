"""EOD Watch - delta-cached end-of-day bars for a charting frontend."""

__version__ = "0.1.0"
