"""dblineage - database column lineage across multi-language codebases."""

__version__ = "0.1.0"
