"""Tools to download, check, sample, transform and serve CNPJ open data."""

__version__ = "0.1.0"