# File: ies_batch/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

# ===================== Reconciliation thresholds =====================
# Displayed values are formatted and re-parsed, so "changed" means beyond these.
WATTAGE_TOLERANCE   = 0.01
LUMENS_TOLERANCE    = 0.1
DIMENSION_TOLERANCE = 0.001
CCT_MULTIPLIER_TOLERANCE = 0.001

SUMMARY_SAMPLE_SIZE = 5
DEFAULT_SUFFIX = ""

_TRUTHY = {"1", "true", "yes", "on", "y"}


def _env_flag(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class ExportSettings:
    use_original_filename: bool = False
    suffix: str = DEFAULT_SUFFIX


@dataclass(frozen=True)
class BatchSettings:
    auto_adjust_wattage: bool = False
    export: ExportSettings = field(default_factory=ExportSettings)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "BatchSettings":
        """IES_BATCH_AUTO_ADJUST_WATTAGE, IES_BATCH_USE_ORIGINAL_FILENAME, IES_BATCH_SUFFIX."""
        env = os.environ if env is None else env
        return cls(
            auto_adjust_wattage=_env_flag(env, "IES_BATCH_AUTO_ADJUST_WATTAGE", False),
            export=ExportSettings(
                use_original_filename=_env_flag(env, "IES_BATCH_USE_ORIGINAL_FILENAME", False),
                suffix=env.get("IES_BATCH_SUFFIX", DEFAULT_SUFFIX),
            ),
        )
