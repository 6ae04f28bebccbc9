"""Bundled CSV resources addressable with the ``classpath:`` location prefix."""
