import csv
import logging
from pathlib import Path
from typing import Optional, Union

from .database.ops import DBOperations
from .models import ActionStatus

class ReportGenerator:
    def __init__(self, db_ops: DBOperations):
        self.db = db_ops

    def export_duplicates(self, output_csv: Union[str, Path]) -> int:
        """
        Writes one row per member of every duplicate group.
        The first member of each group (lowest id) is marked as the keeper.
        Returns the number of groups written.
        """
        groups = self.db.list_duplicate_groups()
        logging.info(f"Writing {len(groups)} duplicate groups -> {output_csv}")

        headers = ["Hash", "Group Size", "Media ID", "Path", "Size (bytes)", "Taken At", "Role"]
        with open(output_csv, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(headers)
            for group in groups:
                for idx, media in enumerate(group.files):
                    writer.writerow([
                        group.hash,
                        len(group.files),
                        media.id,
                        media.path,
                        media.size_bytes,
                        media.taken_at.isoformat() if media.taken_at else "",
                        "Keep" if idx == 0 else "Duplicate",
                    ])
        return len(groups)

    def export_actions(self,
                       output_csv: Union[str, Path],
                       status: Optional[Union[ActionStatus, str]] = None) -> int:
        """Writes the action ledger, optionally limited to one status. Returns the row count."""
        actions = self.db.list_actions(status)
        logging.info(f"Writing {len(actions)} ledger rows -> {output_csv}")

        headers = [
            "Action ID", "Media ID", "Type", "Status", "Source Path", "Target Path",
            "Error", "Created At", "Executed At", "Hash",
        ]
        with open(output_csv, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(headers)
            for a in actions:
                writer.writerow([
                    a.id,
                    a.media_id if a.media_id is not None else "",
                    a.action_type,
                    a.status.value,
                    a.source_path,
                    a.target_path or "",
                    a.error_msg or "",
                    a.created_at or "",
                    a.executed_at or "",
                    a.content_hash or "",
                ])
        return len(actions)
