# ========================
# lifexp/utils/job_metadata.py
# ========================

"""
Job Metadata Management

Persists the API server's pipeline job records between restarts.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Any

logger = logging.getLogger(__name__)


class JobMetadataManager:
    """Manages persistent job metadata storage."""

    def __init__(self, metadata_file: str = "data/job_metadata.json"):
        self.metadata_file = Path(metadata_file)
        self.metadata_file.parent.mkdir(parents=True, exist_ok=True)

    def save_job_metadata(self, job_status_dict: Dict[str, Dict[str, Any]]) -> None:
        """Save all job metadata to persistent storage."""
        try:
            with open(self.metadata_file, 'w') as f:
                json.dump(job_status_dict, f, indent=2, default=str)
            logger.debug(f"Saved job metadata for {len(job_status_dict)} jobs")
        except OSError as e:
            logger.error(f"Failed to save job metadata: {e}")

    def load_job_metadata(self) -> Dict[str, Dict[str, Any]]:
        """
        Load job metadata from persistent storage.

        Jobs that were still queued or processing when the server stopped
        are marked as interrupted.
        """
        if not self.metadata_file.exists():
            return {}

        try:
            with open(self.metadata_file, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load job metadata: {e}")
            return {}

        for job in data.values():
            if job.get('status') in ('queued', 'processing'):
                job['status'] = 'interrupted'

        logger.info(f"Loaded metadata for {len(data)} persisted jobs")
        return data
