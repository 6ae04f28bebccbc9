"""Electric vehicle population data service."""
