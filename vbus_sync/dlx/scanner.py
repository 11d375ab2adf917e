"""
Incremental scanner for recording filenames in a DLx /log/ listing.

The listing is an HTML page that arrives in arbitrary chunks, so a link can
be split across two chunks. The scanner keeps the bytes after the last full
match and prepends them to the next chunk.
"""

import re
from typing import Iterable, Iterator, List

LINK_PATTERN = re.compile(rb'<a href="([0-9]{8}_[a-z]+\.vbus)">')


class RecordingFilenameScanner:
    """
    Extracts "/log/<name>.vbus" filenames from a chunked listing body.

    One scanner per listing request; not reusable across requests.
    """

    def __init__(self, prefix: str = "/log/"):
        self.prefix = prefix
        self.pending_tail = b""

    def feed(self, chunk: bytes) -> List[str]:
        """Scan one chunk and return the filenames completed by it."""
        buffer = self.pending_tail + chunk if self.pending_tail else chunk

        filenames = []
        end = None
        for match in LINK_PATTERN.finditer(buffer):
            filenames.append(self.prefix + match.group(1).decode("ascii"))
            end = match.end()

        # Without a match the whole buffer may still hold the start of one
        self.pending_tail = buffer if end is None else buffer[end:]
        return filenames

    def scan(self, chunks: Iterable[bytes]) -> Iterator[str]:
        """Lazily yield filenames from a sequence of chunks."""
        for chunk in chunks:
            if chunk:
                yield from self.feed(chunk)
