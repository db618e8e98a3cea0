"""
Persistence of reusable session configurations.

Saved configurations are restored automatically only when they are
fully compatible with the loaded table; user-initiated imports apply
whatever matches and report what was skipped.
"""

from .models import ConfigurationSignature, CriterionIdentity, ImportReport, PersistedConfiguration
from .compat import build_signature, import_mapping, is_compatible, load_session, restore_session, snapshot
from .store import ConfigStore, read_configuration, write_configuration

__all__ = [
    "ConfigurationSignature",
    "CriterionIdentity",
    "ImportReport",
    "PersistedConfiguration",
    "build_signature",
    "import_mapping",
    "is_compatible",
    "load_session",
    "restore_session",
    "snapshot",
    "ConfigStore",
    "read_configuration",
    "write_configuration",
]
