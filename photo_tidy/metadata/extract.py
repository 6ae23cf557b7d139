import logging
from pathlib import Path
from datetime import datetime
from typing import Optional, Union, Protocol

import exifread
from pymediainfo import MediaInfo

from .. import config
from ..exceptions import MetadataExtractionError
from ..models import CaptureMetadata


class MetadataEnricher(Protocol):
    """Anything that can supply capture metadata for a file."""

    def extract(self, path: Union[str, Path]) -> CaptureMetadata:
        ...


class MetadataExtractor:
    """
    Default enricher.

    Strategies:
      - Images: 'exifread' for DateTimeOriginal, Make and Model.
      - Video: 'pymediainfo' for the recorded/encoded date and device fields.

    Missing tags simply leave the field empty. Unreadable files raise
    MetadataExtractionError; the scanner treats that as "no metadata".
    """

    def extract(self, path: Union[str, Path]) -> CaptureMetadata:
        path = Path(path)
        ext = path.suffix.lower()
        if ext in config.VIDEO_EXTS:
            return self.get_video_metadata(path)
        if ext in config.IMAGE_EXTS:
            return self.get_image_metadata(path)
        return CaptureMetadata()

    def get_image_metadata(self, path: Path) -> CaptureMetadata:
        try:
            with path.open('rb') as f:
                # details=False skips makernotes and thumbnails
                tags = exifread.process_file(f, details=False)
        except Exception as e:
            raise MetadataExtractionError(f"exif {path}: {e}") from e

        return CaptureMetadata(
            taken_at=self._parse_exif_date(tags),
            camera_make=_clean(tags.get(config.MAKE_TAG)),
            camera_model=_clean(tags.get(config.MODEL_TAG)),
        )

    def get_video_metadata(self, path: Path) -> CaptureMetadata:
        try:
            mi = MediaInfo.parse(str(path))
        except Exception as e:
            raise MetadataExtractionError(f"mediainfo {path}: {e}") from e

        meta = CaptureMetadata()
        for track in mi.tracks:
            if track.track_type != "General":
                continue

            # Priority: Recorded -> Encoded -> Tagged
            for field in ("recorded_date", "encoded_date", "tagged_date"):
                val = getattr(track, field, None)
                if val:
                    meta.taken_at = self._parse_flexible_date(str(val))
                    if meta.taken_at:
                        break

            meta.camera_make = _clean(getattr(track, "make", None) or getattr(track, "comapplequicktimemake", None))
            meta.camera_model = _clean(
                getattr(track, "model", None) or
                getattr(track, "comapplequicktimemodel", None) or
                getattr(track, "device_model", None)
            )
        return meta

    def _parse_exif_date(self, tags) -> Optional[datetime]:
        """EXIF dates are "YYYY:MM:DD HH:MM:SS" local wall-clock times."""
        for tag in config.DATE_TAGS:
            if tag in tags:
                try:
                    dt_str = str(tags[tag]).strip().replace(':', '-', 2)
                    return datetime.strptime(dt_str, "%Y-%m-%d %H:%M:%S")
                except ValueError:
                    continue
        return None

    def _parse_flexible_date(self, dt_str: str) -> Optional[datetime]:
        """
        Handles ISO strings, 'UTC' prefixes/suffixes and EXIF-style dates.
        """
        clean = dt_str.replace("UTC", "").strip()
        if not clean:
            return None

        try:
            return datetime.fromisoformat(clean)
        except ValueError:
            pass

        try:
            clean_exif = clean.replace(":", "-", 2)
            if "." in clean_exif:
                clean_exif = clean_exif.split(".")[0]
            return datetime.strptime(clean_exif, "%Y-%m-%d %H:%M:%S")
        except ValueError:
            return None


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip().strip('\x00').strip()
    return text or None
