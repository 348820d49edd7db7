"""
bom_config.py

Engine settings, read from environment variables.

- BOM_DUPLICATE_EDGE_POLICY: "merge" (default) sums the quantity of a repeated
  parent/child item, "reject" refuses it.
- BOM_LOG_LEVEL: logging level name (default WARNING).
- BOM_DEFAULT_UOM: unit of measure given to loaded components without one.
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional


MERGE = "merge"
REJECT = "reject"
DUPLICATE_EDGE_POLICIES = (MERGE, REJECT)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class EngineSettings:
    duplicate_edge_policy: str = MERGE
    log_level: str = "WARNING"
    default_uom: str = "EA"

    def __post_init__(self):
        if self.duplicate_edge_policy not in DUPLICATE_EDGE_POLICIES:
            raise ValueError(
                f"duplicate_edge_policy must be one of {DUPLICATE_EDGE_POLICIES}, "
                f"got {self.duplicate_edge_policy!r}"
            )
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"Unknown log level: {self.log_level!r}")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> EngineSettings:
    """Build settings from ``environ`` (defaults to ``os.environ``)."""
    env = os.environ if environ is None else environ
    return EngineSettings(
        duplicate_edge_policy=env.get("BOM_DUPLICATE_EDGE_POLICY", MERGE).strip().lower(),
        log_level=env.get("BOM_LOG_LEVEL", "WARNING").strip().upper(),
        default_uom=env.get("BOM_DEFAULT_UOM", "EA").strip() or "EA",
    )


def configure_logging(settings: EngineSettings) -> None:
    """Install a root handler for the command line and the Streamlit app."""
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
