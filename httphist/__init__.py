"""httphist - send one HTTP request, keep a browsable history of them."""

__version__ = "0.1.0"
