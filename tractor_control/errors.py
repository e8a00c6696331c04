"""Error types raised by the guidance core.

Two families exist:
- ConfigurationError: invalid setup values, raised at construction or
  reconfiguration time and never clamped to a default.
- ContractViolation: the caller used the core incorrectly (tick without a
  guidance line, non-positive dt, section index out of range).
"""


class ConfigurationError(ValueError):
    """Invalid configuration supplied at setup or reconfiguration."""


class ContractViolation(RuntimeError):
    """Programming error in how the core is driven."""


class SectionIndexError(ContractViolation, IndexError):
    """Section index outside the configured implement."""
