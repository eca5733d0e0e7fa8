"""
Error classes for LedgerLab.

This module defines the structural error hierarchy used by the parsing,
aggregation, merge and derivation stages. Structural errors are fatal to the
current operation and always propagate to the caller; row-level problems are
never raised (see :mod:`ledgerlab.core.parser`).
"""


class StructuralError(ValueError):
    """
    Structural violation in a source, a model or a derivation pass.

    This exception is raised when the input cannot be turned into a valid model
    or when a derivation step finds a shape it cannot repair by clamping.

    **Common Causes:**
    - Header without the required ``Kategorie`` / ``Betrag`` columns
    - Source text with no data lines, or no usable rows after parsing
    - Missing source identifier (detail provenance is mandatory)
    - Empty, non-finite or inverted year domain
    - Empty type or category universe after merging

    **Example Usage:**
        ```python
        from ledgerlab.core.errors import StructuralError
        from ledgerlab.core.aggregator import build_model

        try:
            build_model("Kategorie;Betrag\\n", ";", source_id="energy")
        except StructuralError as e:
            print(f"Source rejected: {e}")
        ```
    """

    pass


class ConfigError(StructuralError):
    """Raised when a source configuration file cannot be parsed or validated."""
