# utils/loader.py
"""
Catalog loader
--------------
Streams the fund catalog (a JSON array of scheme objects) in fixed-size
chunks and yields one raw dict per complete top-level object, so the
whole file is never held in memory.

Object boundaries are found by counting braces. Braces inside string
values are not special-cased; the catalog does not contain any.
"""

import codecs
import json
import logging
import os
import re
from dataclasses import dataclass, asdict

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 16 * 1024

_BRACE_RE = re.compile(r"[{}]")


@dataclass
class LoadStats:
    """Counters for one pass over the catalog."""
    parsed: int = 0
    malformed: int = 0
    dropped: int = 0
    duplicates: int = 0
    indexed: int = 0

    def to_dict(self):
        return asdict(self)


class ObjectStreamParser:
    """
    Incremental splitter for a stream of concatenated JSON objects.

    Feed text with `feed()`; every balanced `{...}` span completed by that
    text is decoded and returned. An unfinished span is carried over to the
    next call.
    """

    def __init__(self, stats: LoadStats = None):
        self.stats = stats if stats is not None else LoadStats()
        self._buffer = ""
        self._depth = 0

    @property
    def pending(self) -> str:
        """Text of the object still waiting for its closing brace."""
        return self._buffer

    def feed(self, chunk: str) -> list:
        text = self._buffer + chunk
        depth = self._depth
        start = 0 if depth > 0 else None
        records = []

        for match in _BRACE_RE.finditer(text, len(self._buffer)):
            if match.group() == "{":
                if depth == 0:
                    start = match.start()
                depth += 1
            elif depth > 0:
                depth -= 1
                if depth == 0:
                    record = self._decode(text[start:match.end()])
                    if record is not None:
                        records.append(record)
                    start = None

        self._buffer = text[start:] if depth > 0 else ""
        self._depth = depth
        return records

    def _decode(self, span: str):
        try:
            record = json.loads(span)
        except json.JSONDecodeError as exc:
            self.stats.malformed += 1
            logger.debug("Skipping malformed catalog record: %s", exc)
            return None
        if not isinstance(record, dict):
            self.stats.malformed += 1
            return None
        self.stats.parsed += 1
        return record


def stream_catalog(data_path: str, chunk_size: int = DEFAULT_CHUNK_SIZE, stats: LoadStats = None):
    """
    Yield raw fund records from the catalog at `data_path`.

    Reads `chunk_size` bytes at a time. Malformed objects are counted in
    `stats.malformed` and skipped.

    Raises:
        FileNotFoundError: if the catalog does not exist (raised on the
        first iteration, since this is a generator).
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
    if not os.path.exists(data_path):
        raise FileNotFoundError(f"Fund catalog not found: {data_path}")

    parser = ObjectStreamParser(stats)
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    with open(data_path, "rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            yield from parser.feed(decoder.decode(chunk))
        yield from parser.feed(decoder.decode(b"", final=True))

    if parser.pending:
        parser.stats.malformed += 1
        logger.warning("Catalog %s ended inside an unterminated object", data_path)
