"""
Run Traceability
================
Ties every monitoring result back to:
1. The exact log file (via SHA-256 hash)
2. The exact configuration used (via config hash + snapshot)
3. When, where and by whom the run was performed
4. The processing version of the monitor
"""

import getpass
import hashlib
import json
import platform
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, Optional, Union

from .config_validation import MonitorConfig


# Increment when segmentation or fault rules change
PROCESSING_VERSION = "1.0.0"


def compute_file_hash(file_path: Union[str, Path]) -> str:
    """
    Compute SHA-256 hash of a file.

    Returns:
        Hex string of SHA-256 hash prefixed with 'sha256:'
    """
    sha256_hash = hashlib.sha256()

    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha256_hash.update(chunk)

    return f"sha256:{sha256_hash.hexdigest()}"


def compute_config_hash(config: Union[MonitorConfig, Dict[str, Any]]) -> str:
    """
    Compute hash of a configuration, independent of key order.

    Returns:
        Hex string of SHA-256 hash prefixed with 'sha256:'
    """
    if isinstance(config, MonitorConfig):
        config = config.to_dict()
    config_str = json.dumps(config, sort_keys=True, default=str)
    return f"sha256:{hashlib.sha256(config_str.encode('utf-8')).hexdigest()}"


@dataclass
class RunContext:
    """Who ran the monitor, where, when, and with which version."""
    username: str = field(default_factory=lambda: getpass.getuser())
    hostname: str = field(default_factory=lambda: platform.node())
    timestamp_utc: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    processing_version: str = PROCESSING_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def create_traceability_record(
    config: MonitorConfig,
    source_path: Optional[Union[str, Path]] = None,
    context: Optional[RunContext] = None,
) -> Dict[str, Any]:
    """
    Build the traceability record attached to exported results.

    Args:
        config: Configuration used for the run
        source_path: Log file analyzed, if the data came from a file
        context: Run context (created now if omitted)

    Returns:
        Flat dictionary of traceability fields
    """
    context = context or RunContext()
    record = {
        'config_hash': compute_config_hash(config),
        'config_snapshot': json.dumps(config.to_dict(), sort_keys=True),
        **context.to_dict(),
    }

    if source_path is not None:
        source_path = Path(source_path)
        record['source_path'] = str(source_path)
        record['source_filename'] = source_path.name
        record['source_hash'] = compute_file_hash(source_path)

    return record
