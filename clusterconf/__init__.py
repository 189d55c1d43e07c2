"""Reading, validating, migrating and merging cluster configuration files, and matching image names."""

__version__ = "0.1.0"
__all__ = ["types", "v1alpha2", "v1alpha3", "migrations", "schema", "config", "merge", "images"]