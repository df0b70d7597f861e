"""Wire-level request builders and response parsers."""
