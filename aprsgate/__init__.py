"""Building blocks for an APRS iGate: passcodes, bulletins, rate limits, retries, diagnostics and TNC helpers."""

__version__ = "0.1.0"