"""rosoku: batch retrieval of historical candlesticks from crypto exchanges.

This package pulls OHLCV series from several exchanges' REST APIs for a
symbol, interval, market type and time window, and normalizes the
heterogeneous responses into one `Kline` record.

Key modules:
- `adapters`: One translator per exchange for symbols, intervals, requests,
  responses and error codes.
- `engine`: The pagination loop that drives an adapter across a window.
- `capabilities`: The table of intervals each exchange accepts.
- `output`: Sorting, field selection and text formats for the results.
"""

# The version is managed in pyproject.toml and read back at runtime.
import importlib.metadata

try:
    __version__: str = importlib.metadata.version("rosoku")
except importlib.metadata.PackageNotFoundError:
    # Running from a source checkout without an install.
    __version__ = "0.0.0-dev"
