"""Core domain: models, redaction, counters, rates and exporters."""
