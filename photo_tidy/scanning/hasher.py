import hashlib
from pathlib import Path
from typing import Union

from .. import config
from ..exceptions import FileHashError

class FileHasher:
    """
    Content fingerprint used as duplicate identity.

    Every accepted file is read end to end: there is no size pre-filter and
    no cache between scans, so a scan costs O(total bytes).
    """

    def compute_hash(self, path: Union[str, Path]) -> str:
        """Returns the hex MD5 digest of the whole file."""
        h = hashlib.md5()
        try:
            with open(path, 'rb') as f:
                while chunk := f.read(config.HASH_CHUNK_SIZE):
                    h.update(chunk)
        except OSError as e:
            raise FileHashError(f"hash {path}: {e}") from e
        return h.hexdigest()
