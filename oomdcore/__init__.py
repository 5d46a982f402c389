"""Rule engine core for a userspace out-of-memory killer: config IR, JSON parsing, plugins, rulesets and engine."""

__version__ = "0.5.0"