"""Chunked byte stream to text lines, reassembling lines cut at chunk edges."""

from __future__ import annotations

import codecs
from typing import BinaryIO, Iterator


# Receita Federal publishes its extracts in ISO-8859-1, not UTF-8.
SOURCE_ENCODING = "latin-1"
DEFAULT_CHUNK_SIZE = 1024 * 1024


def iter_chunks(stream: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
    """Read *stream* in fixed-size chunks until EOF.

    Each chunk is read only when the consumer asks for it, so a slow
    consumer holds the reader back.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be positive")
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            return
        yield chunk


def iter_lines(
    stream: BinaryIO,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    encoding: str = SOURCE_ENCODING,
) -> Iterator[str]:
    """Decode *stream* and yield complete ``\\n``-terminated lines.

    The trailing fragment of each chunk is carried over and prefixed to the
    next one; a final line without a newline is yielded at EOF.
    """
    decoder = codecs.getincrementaldecoder(encoding)()
    pending = ""
    for chunk in iter_chunks(stream, chunk_size):
        pending += decoder.decode(chunk)
        lines = pending.split("\n")
        pending = lines.pop()
        yield from lines
    pending += decoder.decode(b"", final=True)
    if pending:
        yield pending
