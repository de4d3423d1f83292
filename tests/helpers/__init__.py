"""Test helpers for MissionBoard tests.

    from tests.helpers import SetupResult, load_scenario, setup_from_yaml

See setup.py for the YAML scenario format.
"""

from tests.helpers.setup import SetupResult, load_scenario, setup_from_yaml

__all__ = [
    "SetupResult",
    "load_scenario",
    "setup_from_yaml",
]
