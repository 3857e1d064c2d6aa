"""demolink - Linkage d'enregistrements démographiques (clinique / registre communautaire)."""

from demolink.config import ConfigError, ConfigFormatError, DemolinkError, MatchingConfig
from demolink.records import Record

__all__ = [
    "__version__",
    "DemolinkError",
    "ConfigError",
    "ConfigFormatError",
    "MatchingConfig",
    "Record",
]

__version__ = "0.1.0"
