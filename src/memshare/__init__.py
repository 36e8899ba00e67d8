"""memshare — persistent, searchable memories for agents."""

__version__ = "0.3.0"
