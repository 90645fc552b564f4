"""Package walked by the package-scan tests; ``broken`` fails on import."""
