"""
MIME classification: extension lookup first, libmagic content sniffing second.
"""
import logging
import mimetypes
from pathlib import Path
from typing import Optional, Union

import magic

from .. import config

def detect_mime(path: Union[str, Path]) -> Optional[str]:
    ext = Path(path).suffix.lower()
    if ext:
        if ext in config.EXTRA_MIME_TYPES:
            return config.EXTRA_MIME_TYPES[ext]
        guess, _ = mimetypes.guess_type(f"file{ext}", strict=False)
        if guess:
            return guess

    try:
        with open(path, 'rb') as f:
            head = f.read(config.MIME_SNIFF_BYTES)
    except OSError as e:
        logging.debug(f"MIME sniff failed for {path}: {e}")
        return None
    return sniff_mime(head)

def sniff_mime(head: bytes) -> Optional[str]:
    """Classifies the leading bytes of a file with libmagic."""
    if not head:
        return None
    try:
        return magic.from_buffer(head, mime=True) or None
    except magic.MagicException as e:
        logging.debug(f"libmagic could not classify buffer: {e}")
        return None
